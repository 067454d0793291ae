"""Exception hierarchy for novu-init."""

from typing import Any, Optional


class NovuInitError(Exception):
    """Base exception for all novu-init errors."""


class APIError(NovuInitError):
    """A remote API answered with an error (or could not be reached).

    The upstream status code and body are preserved for diagnostics.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message)

    def __str__(self) -> str:
        msg = super().__str__()
        if self.status_code is not None:
            msg = f"{msg} (HTTP {self.status_code})"
        return msg


class NotAuthenticatedError(APIError):
    """The API key was rejected."""


class ValidationError(NovuInitError):
    """Invalid user or command-line input."""


class SetupError(NovuInitError):
    """Cloning or installing the starter project failed."""


class ServeError(NovuInitError):
    """The local development server could not be started."""


class PortAllocationError(ServeError):
    """No free port was found within the scan limit."""


class TunnelError(NovuInitError):
    """The relay tunnel could not be issued or connected."""
