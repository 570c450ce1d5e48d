"""Error types raised by the Kakeibo server."""

from typing import Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """JSON body returned for handled errors."""
    code: str
    message: str
    details: dict[str, Any] = {}


class KakeiboError(Exception):
    """Base exception for application errors."""

    code = "KAKEIBO_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(code=self.code, message=self.message, details=self.details)


class BackendError(KakeiboError):
    """The hosted backend answered with an error or could not be reached."""

    code = "BACKEND_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.backend_status = status_code
        # Client errors from the backend are passed through, everything else is a bad gateway
        if status_code is not None and 400 <= status_code < 500:
            self.status_code = status_code
        else:
            self.status_code = 502


class BackendNotConfiguredError(KakeiboError):
    """Backend URL or anon key missing from configuration."""

    code = "BACKEND_NOT_CONFIGURED"
    status_code = 503

    def __init__(self, message: str = "Backend URL and anon key must be configured"):
        super().__init__(message)


class AuthenticationError(KakeiboError):
    """Missing, malformed or rejected access token."""

    code = "AUTHENTICATION_ERROR"
    status_code = 401

    def __init__(self, message: str = "Authentication failed", details: Optional[dict[str, Any]] = None):
        super().__init__(message, details)


class NotFoundError(KakeiboError):
    """A requested row does not exist or is not visible to the user."""

    code = "NOT_FOUND"
    status_code = 404
