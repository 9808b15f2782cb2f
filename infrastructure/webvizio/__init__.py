from .client import PROJECT_NOT_FOUND, WebvizioClient
from .error_mapping import (
    NETWORK_ERROR_MESSAGE,
    STATUS_MESSAGES,
    error_from_exception,
    error_from_response,
)

__all__ = [
    "WebvizioClient",
    "PROJECT_NOT_FOUND",
    "NETWORK_ERROR_MESSAGE",
    "STATUS_MESSAGES",
    "error_from_exception",
    "error_from_response",
]
