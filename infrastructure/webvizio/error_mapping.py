from typing import Any, Dict, Optional

import requests

from core.errors import NETWORK_ERROR_CODE, REQUEST_ERROR_CODE, NormalizedApiError

STATUS_MESSAGES: Dict[int, str] = {
    401: "Unauthorized: Invalid or missing API key",
    403: "Forbidden: Access denied",
    404: "Not Found: Resource not found",
    429: "Rate Limit Exceeded: Too many requests",
    500: "Internal Server Error: Webvizio API error",
}
NETWORK_ERROR_MESSAGE = "Network Error: Unable to reach Webvizio API"

# Raised by requests before anything is written to the socket.
_CONSTRUCTION_ERRORS = (
    requests.exceptions.URLRequired,
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
    requests.exceptions.InvalidURL,
    requests.exceptions.InvalidHeader,
    requests.exceptions.InvalidJSONError,
)


def response_details(response: requests.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _message_from_body(details: Any) -> Optional[str]:
    if isinstance(details, dict):
        for key in ("message", "error"):
            value = details.get(key)
            if value:
                return str(value)
    return None


def error_from_response(response: requests.Response) -> NormalizedApiError:
    status = int(response.status_code)
    details = response_details(response)
    message = STATUS_MESSAGES.get(status)
    if message is None:
        message = _message_from_body(details)
    if message is None:
        reason = (response.reason or "").strip()
        message = f"HTTP {status}: {reason}" if reason else f"HTTP {status}"
    return NormalizedApiError(status, message, details)


def error_from_exception(exc: Exception) -> NormalizedApiError:
    original = str(exc) or exc.__class__.__name__
    if isinstance(exc, _CONSTRUCTION_ERRORS) or not isinstance(exc, requests.RequestException):
        return NormalizedApiError(REQUEST_ERROR_CODE, f"Request Error: {original}", {"originalError": original})
    return NormalizedApiError(NETWORK_ERROR_CODE, NETWORK_ERROR_MESSAGE, {"originalError": original})
