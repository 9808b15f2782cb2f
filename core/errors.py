"""Failure variants shared by the transport adapter and the tool dispatcher.

The kind of a failure is fixed when it is raised:

- ``NormalizedApiError``: anything that went wrong on the wire (HTTP status,
  network, request construction). Carries a numeric code.
- ``GenericFailure``: everything else (a 2xx body missing a required field,
  local argument validation).
"""

from typing import Any, Optional

NETWORK_ERROR_CODE = 0
REQUEST_ERROR_CODE = -1


class WebvizioError(RuntimeError):
    pass


class NormalizedApiError(WebvizioError):
    def __init__(self, code: int, message: Optional[str] = None, details: Any = None) -> None:
        self.code = int(code)
        self.message = message if message else f"HTTP {self.code}"
        self.details = details
        super().__init__(self.message)

    @property
    def is_network_error(self) -> bool:
        return self.code == NETWORK_ERROR_CODE

    def __repr__(self) -> str:
        return f"NormalizedApiError(code={self.code!r}, message={self.message!r})"


class GenericFailure(WebvizioError):
    pass


class ToolValidationError(GenericFailure):
    """Tool arguments rejected locally; the remote service is never contacted."""


__all__ = [
    "NETWORK_ERROR_CODE",
    "REQUEST_ERROR_CODE",
    "WebvizioError",
    "NormalizedApiError",
    "GenericFailure",
    "ToolValidationError",
]
