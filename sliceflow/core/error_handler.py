"""
Error handling module.

This module provides the exception types used across Sliceflow and helpers
for making collaborator API requests with consistent error reporting.

Pipeline failures form a small taxonomy rooted at PipelineError. Fatal
failures stop a job and mark it failed; non-fatal ones are logged and the
job continues with default values.
"""

import json
import time
import logging
from typing import Dict, Any, Optional, Callable

import requests

logger = logging.getLogger(__name__)


class APIError(Exception):
    """
    Exception raised for API errors.

    Attributes:
        message: Error message.
        status_code: HTTP status code.
        response: API response.
        endpoint: API endpoint.
        request_data: Request data.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Optional[Any] = None,
        endpoint: Optional[str] = None,
        request_data: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.response = response
        self.endpoint = endpoint
        self.request_data = request_data

        detailed_message = f"API Error: {message}"
        if status_code:
            detailed_message += f" (Status Code: {status_code})"
        if endpoint:
            detailed_message += f" (Endpoint: {endpoint})"

        super().__init__(detailed_message)


class ValidationError(Exception):
    """
    Exception raised for validation errors.

    Attributes:
        message: Error message.
        field: Field that failed validation.
        value: Value that failed validation.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None
    ):
        self.message = message
        self.field = field
        self.value = value

        detailed_message = f"Validation Error: {message}"
        if field:
            detailed_message += f" (Field: {field})"

        super().__init__(detailed_message)


class ConfigurationError(Exception):
    """
    Exception raised for configuration errors.

    Attributes:
        message: Error message.
        component: Component that has a configuration error.
        missing_keys: Keys that are missing from the configuration.
    """

    def __init__(
        self,
        message: str,
        component: Optional[str] = None,
        missing_keys: Optional[list] = None
    ):
        self.message = message
        self.component = component
        self.missing_keys = missing_keys or []

        detailed_message = f"Configuration Error: {message}"
        if component:
            detailed_message += f" (Component: {component})"
        if missing_keys:
            detailed_message += f" (Missing Keys: {', '.join(missing_keys)})"

        super().__init__(detailed_message)


class PipelineError(Exception):
    """
    Base class for failures raised while processing a queue item.

    Attributes:
        message: Human-readable error message.
        step: Pipeline step the failure belongs to.
        fatal: Whether the failure stops the job.
    """

    fatal = False

    def __init__(self, message: str, step: Optional[str] = None):
        self.message = message
        self.step = step
        super().__init__(f"{step}: {message}" if step else message)


class FetchFailure(PipelineError):
    """The source image is unreachable or its dimensions cannot be parsed."""
    fatal = True


class SegmentationFailure(PipelineError):
    """Segmentation errored or produced no usable slices."""
    fatal = True


class CropUrlFailure(PipelineError):
    """No slice survived rescaling and crop view generation."""
    fatal = True


class AnnotationFailure(PipelineError):
    """Slice annotation failed or returned incomplete data."""


class ResolutionFailure(PipelineError):
    """Link resolution failed for the flagged slices."""


class CopyGenerationFailure(PipelineError):
    """Both early and synchronous copy generation failed."""


class QAFailure(PipelineError):
    """Both early and synchronous spelling checks failed."""


def handle_api_request(
    request_func: Callable,
    endpoint: str,
    payload: Dict[str, Any],
    headers: Dict[str, str],
    error_message: str = "API request failed",
    timeout: Optional[float] = None
) -> Dict[str, Any]:
    """
    Handle an API request with error handling.

    Args:
        request_func: Function to make the API request (e.g. requests.post).
        endpoint: API endpoint.
        payload: Request payload.
        headers: Request headers.
        error_message: Error message to use if the request fails.
        timeout: Request timeout in seconds.

    Returns:
        Parsed JSON response.

    Raises:
        APIError: If the API request fails or the response is not JSON.
    """
    try:
        response = request_func(
            endpoint,
            json=payload,
            headers=headers,
            timeout=timeout
        )
        response.raise_for_status()

    except requests.exceptions.HTTPError as e:
        if getattr(e, 'response', None) is not None:
            status_code = e.response.status_code
            response_text = e.response.text
        else:
            status_code = getattr(response, 'status_code', None)
            response_text = getattr(response, 'text', str(e))

        logger.error(f"HTTP error: {e}")
        logger.error(f"Response: {response_text}")

        raise APIError(
            message=f"{error_message}: {e}",
            status_code=status_code,
            response=response_text,
            endpoint=endpoint,
            request_data=payload
        )

    except requests.exceptions.ConnectionError as e:
        logger.error(f"Connection error: {e}")
        raise APIError(
            message=f"{error_message}: Connection error",
            endpoint=endpoint,
            request_data=payload
        )

    except requests.exceptions.Timeout as e:
        logger.error(f"Timeout error: {e}")
        raise APIError(
            message=f"{error_message}: Request timed out",
            endpoint=endpoint,
            request_data=payload
        )

    except requests.exceptions.RequestException as e:
        logger.error(f"Request error: {e}")
        raise APIError(
            message=f"{error_message}: {e}",
            endpoint=endpoint,
            request_data=payload
        )

    try:
        return response.json()
    except (json.JSONDecodeError, ValueError) as e:
        logger.error(f"Failed to parse API response: {e}")
        raise APIError(
            message=f"Failed to parse API response: {e}",
            status_code=response.status_code,
            response=response.text,
            endpoint=endpoint,
            request_data=payload
        )


def validate_required_fields(
    data: Dict[str, Any],
    required_fields: list,
    component: str = "Unknown"
) -> None:
    """
    Validate that required fields are present in the data.

    Args:
        data: Data to validate.
        required_fields: List of required field names.
        component: Component name for error reporting.

    Raises:
        ValidationError: If a required field is missing.
    """
    missing_fields = [field for field in required_fields if field not in data]

    if missing_fields:
        raise ValidationError(
            message=f"Missing required fields in {component}: {', '.join(missing_fields)}",
            field=missing_fields[0]
        )


def log_api_error(error: APIError) -> None:
    """
    Log an API error with detailed information.

    Args:
        error: API error to log.
    """
    logger.error(f"API Error: {error.message}")

    if error.status_code:
        logger.error(f"Status Code: {error.status_code}")

    if error.endpoint:
        logger.error(f"Endpoint: {error.endpoint}")

    if error.response:
        logger.error(f"Response: {str(error.response)[:500]}")

    if error.request_data:
        safe_request_data = error.request_data.copy()
        for key in safe_request_data:
            if "key" in key.lower() or "token" in key.lower() or "secret" in key.lower():
                safe_request_data[key] = "***REDACTED***"
        logger.error(f"Request Data keys: {sorted(safe_request_data.keys())}")


def retry_api_request(
    request_func: Callable,
    endpoint: str,
    payload: Dict[str, Any],
    headers: Dict[str, str],
    error_message: str = "API request failed",
    max_retries: int = 3,
    retry_delay: float = 1,
    timeout: Optional[float] = None
) -> Dict[str, Any]:
    """
    Retry an API request with exponential backoff.

    Client errors (4xx) are not retried, except 429 rate limiting.

    Args:
        request_func: Function to make the API request.
        endpoint: API endpoint.
        payload: Request payload.
        headers: Request headers.
        error_message: Error message to use if the request fails.
        max_retries: Maximum number of attempts.
        retry_delay: Initial delay between retries in seconds.
        timeout: Per-request timeout in seconds.

    Returns:
        Parsed JSON response.

    Raises:
        APIError: If the API request fails after all retries.
    """
    retries = 0

    while True:
        try:
            return handle_api_request(
                request_func,
                endpoint,
                payload,
                headers,
                error_message,
                timeout=timeout
            )
        except APIError as e:
            if e.status_code and 400 <= e.status_code < 500 and e.status_code != 429:
                logger.warning(f"Client error, not retrying: {e}")
                raise

            retries += 1
            if retries >= max_retries:
                logger.error(f"API request failed after {max_retries} attempts")
                raise

            delay = retry_delay * (2 ** (retries - 1))
            logger.warning(f"API request failed, retrying in {delay} seconds (attempt {retries}/{max_retries})")
            time.sleep(delay)
