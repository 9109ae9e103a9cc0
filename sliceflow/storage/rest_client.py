"""
Minimal PostgREST client used by the REST-backed stores.

Rows are addressed with PostgREST filter syntax, e.g. {"id": "eq.123"}.
"""

from typing import Dict, Any, List, Optional

import requests

from sliceflow.core.constants import DEFAULT_SERVICE_TIMEOUT
from sliceflow.core.credentials import get_api_key
from sliceflow.core.error_handler import APIError, ConfigurationError
from sliceflow.core.logging_config import get_logger

logger = get_logger(__name__)


class RestClient:
    """
    Thin wrapper over requests for PostgREST tables.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_SERVICE_TIMEOUT,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the client.

        Args:
            base_url (str): REST root, e.g. https://<project>/rest/v1
            api_key (str, optional): Service key. Read from credentials if omitted.
            timeout (float): Request timeout in seconds
            session (requests.Session, optional): Session to send requests with

        Raises:
            ConfigurationError: If base_url is empty
        """
        if not base_url:
            raise ConfigurationError(
                "REST storage URL is not configured",
                component="storage",
                missing_keys=["storage.rest_url"]
            )
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key or get_api_key("storage")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self, prefer: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _request(
        self,
        method: str,
        table: str,
        params: Optional[Dict[str, str]] = None,
        payload: Optional[Any] = None,
        prefer: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        url = f"{self.base_url}/{table}"
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=payload,
                headers=self._headers(prefer),
                timeout=self.timeout
            )
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            logger.error(f"REST {method} {table} failed: {e}")
            raise APIError(
                message=f"REST {method} on {table} failed: {e}",
                status_code=status_code,
                response=e.response.text if e.response is not None else None,
                endpoint=url
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"REST {method} {table} failed: {e}")
            raise APIError(message=f"REST {method} on {table} failed: {e}", endpoint=url)

        if not response.content:
            return []
        try:
            return response.json()
        except ValueError as e:
            raise APIError(
                message=f"Failed to parse REST response: {e}",
                status_code=response.status_code,
                response=response.text,
                endpoint=url
            )

    def select(self, table: str, filters: Dict[str, str], limit: Optional[int] = None) -> List[Dict[str, Any]]:
        params = {"select": "*", **filters}
        if limit is not None:
            params["limit"] = str(limit)
        return self._request("GET", table, params=params)

    def update(self, table: str, filters: Dict[str, str], fields: Dict[str, Any]) -> List[Dict[str, Any]]:
        """PATCH matching rows and return the rows that changed."""
        return self._request("PATCH", table, params=filters, payload=fields, prefer="return=representation")

    def upsert(
        self,
        table: str,
        row: Dict[str, Any],
        on_conflict: Optional[str] = None,
        ignore_duplicates: bool = False
    ) -> List[Dict[str, Any]]:
        params = {"on_conflict": on_conflict} if on_conflict else None
        resolution = "ignore-duplicates" if ignore_duplicates else "merge-duplicates"
        return self._request(
            "POST",
            table,
            params=params,
            payload=row,
            prefer=f"resolution={resolution},return=representation"
        )
