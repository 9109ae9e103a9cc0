"""
HTTP implementations of the collaborator interfaces.

Every collaborator is a JSON-over-HTTP function under a shared base URL,
authenticated with the service key as a bearer token.
"""

from typing import Dict, Any, List, Optional

import jsonschema
import requests

from sliceflow.core.config import get_config_value
from sliceflow.core.constants import (
    DEFAULT_SERVICES_BASE_URL,
    DEFAULT_SERVICE_TIMEOUT,
    DEFAULT_SERVICE_MAX_RETRIES,
    DEFAULT_SERVICE_ENDPOINTS,
)
from sliceflow.core.credentials import get_api_key
from sliceflow.core.error_handler import APIError, ValidationError, log_api_error, retry_api_request
from sliceflow.core.logging_config import get_logger, redact_sensitive_data
from sliceflow.schemas import validate_response
from sliceflow.services.base import (
    SegmentationService,
    SliceAnnotationService,
    LinkResolutionService,
    CopyGenerationService,
    SpellingCheckService,
    CopySearchService,
)

logger = get_logger(__name__)


class HttpServiceClient:
    """
    Shared request handling for the HTTP collaborators.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        request_func=None
    ):
        """
        Initialize the client.

        Args:
            base_url (str, optional): Functions root URL. Read from config if omitted.
            api_key (str, optional): Bearer token. Read from credentials if omitted.
            timeout (float, optional): Per-request timeout in seconds
            max_retries (int, optional): Attempts per call
            request_func (callable, optional): Replacement for requests.post
        """
        self.base_url = (base_url or get_config_value("services.base_url", DEFAULT_SERVICES_BASE_URL)).rstrip("/")
        self.api_key = api_key or get_api_key("service")
        self.timeout = timeout or get_config_value("services.timeout", DEFAULT_SERVICE_TIMEOUT)
        self.max_retries = max_retries or get_config_value("services.max_retries", DEFAULT_SERVICE_MAX_RETRIES)
        self.request_func = request_func or requests.post

    def endpoint_url(self, name: str) -> str:
        endpoint = get_config_value(f"services.endpoints.{name}", DEFAULT_SERVICE_ENDPOINTS[name])
        return f"{self.base_url}/{endpoint}"

    def call(self, name: str, payload: Dict[str, Any], schema_name: Optional[str] = None) -> Dict[str, Any]:
        """
        POST a payload to a collaborator and validate its response.

        Args:
            name (str): Collaborator name (key of services.endpoints)
            payload (Dict[str, Any]): JSON body
            schema_name (str, optional): Schema the response must satisfy

        Returns:
            Dict[str, Any]: Parsed response

        Raises:
            APIError: If the request fails after retries
            ValidationError: If the response does not match the schema
        """
        url = self.endpoint_url(name)
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        logger.debug(f"Calling {name}: {redact_sensitive_data(payload)}")

        try:
            result = retry_api_request(
                self.request_func,
                url,
                payload,
                headers,
                error_message=f"{name} request failed",
                max_retries=self.max_retries,
                timeout=self.timeout
            )
        except APIError as e:
            log_api_error(e)
            raise

        if schema_name:
            try:
                validate_response(result, schema_name)
            except jsonschema.exceptions.ValidationError as e:
                logger.error(f"{name} returned an invalid response: {e.message}")
                raise ValidationError(
                    message=f"{name} response failed validation: {e.message}",
                    field=".".join(str(p) for p in e.path) or None
                )

        return result


class HttpSegmentationService(SegmentationService):

    def __init__(self, client: HttpServiceClient):
        self.client = client

    def segment(
        self,
        image_url: str,
        image_width: int,
        image_height: int,
        link_index: Optional[List[Dict[str, Any]]] = None,
        default_destination_url: Optional[str] = None,
        preference_rules: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        payload = {
            "imageUrl": image_url,
            "imageWidth": image_width,
            "imageHeight": image_height,
        }
        if link_index:
            payload["linkIndex"] = link_index
            payload["defaultDestinationUrl"] = default_destination_url
            payload["linkPreferenceRules"] = preference_rules or []

        result = self.client.call("segment", payload, "segmentation_response")
        if result.get("success") is False:
            raise ValidationError(message=f"Segmentation unsuccessful: {result.get('error')}")
        return result


class HttpSliceAnnotationService(SliceAnnotationService):

    def __init__(self, client: HttpServiceClient):
        self.client = client

    def annotate(
        self,
        slice_views: List[Dict[str, Any]],
        brand_domain: Optional[str],
        full_image_url: str,
        known_urls: Optional[List[Dict[str, str]]] = None
    ) -> Dict[str, Any]:
        payload = {
            "slices": slice_views,
            "brandDomain": brand_domain,
            "fullCampaignImage": full_image_url,
            "knownProductUrls": known_urls or [],
        }
        return self.client.call("annotate_slices", payload, "slice_annotation_response")


class HttpLinkResolutionService(LinkResolutionService):

    def __init__(self, client: HttpServiceClient):
        self.client = client

    def resolve(
        self,
        brand_id: Optional[str],
        brand_domain: Optional[str],
        flagged_slices: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        payload = {
            "brandId": brand_id,
            "brandDomain": brand_domain,
            "slices": flagged_slices,
        }
        return self.client.call("resolve_links", payload, "link_resolution_response")


class HttpCopyGenerationService(CopyGenerationService):

    def __init__(self, client: HttpServiceClient):
        self.client = client

    def generate(
        self,
        slices: List[Dict[str, Any]],
        brand_context: Dict[str, Any],
        pair_count: int,
        copy_examples: Optional[Dict[str, Any]],
        image_url: str
    ) -> Dict[str, Any]:
        payload = {
            "slices": slices,
            "brandContext": brand_context,
            "pairCount": pair_count,
            "copyExamples": copy_examples,
            "campaignImageUrl": image_url,
        }
        return self.client.call("generate_copy", payload, "copy_response")


class HttpSpellingCheckService(SpellingCheckService):

    def __init__(self, client: HttpServiceClient):
        self.client = client

    def check(self, image_url: str) -> Dict[str, Any]:
        return self.client.call("check_spelling", {"imageUrl": image_url}, "spelling_response")


class HttpCopySearchService(CopySearchService):

    def __init__(self, client: HttpServiceClient):
        self.client = client

    def search(self, source_url: str, brand_id: Optional[str], list_id: Optional[str]) -> Dict[str, Any]:
        payload = {
            "figmaUrl": source_url,
            "brandId": brand_id,
            "listId": list_id,
        }
        return self.client.call("search_copy", payload, "copy_search_response")
