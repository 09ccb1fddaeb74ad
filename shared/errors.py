"""
Shared error handling for the authorization core.

Expected authentication outcomes are returned as values by the services;
the exceptions here describe infrastructure conditions and the internal
control flow that the services convert into those values.
"""

from enum import Enum
from typing import Dict, Any, Optional, TYPE_CHECKING
from pydantic import BaseModel

from shared.logging import request_id_var

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from service_auth.app.models.oauth import OAuthError


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class AuthCoreException(Exception):
    """Base exception for the authorization core."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id_var.get(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class ValidationError(AuthCoreException):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class DirectoryUnavailable(AuthCoreException):
    """The secret store behind a credential directory could not answer."""

    def __init__(self, directory: str, message: str = "Secret store unavailable", details: Optional[Dict[str, Any]] = None):
        self.directory = directory
        super().__init__("DIRECTORY_UNAVAILABLE", f"{directory}: {message}", details)


class KeyProviderUnavailable(AuthCoreException):
    """The signing/verification key provider could not supply a key."""

    def __init__(self, message: str = "Key provider unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("KEY_PROVIDER_UNAVAILABLE", message, details)


class TokenInvalidReason(str, Enum):
    """Why a bearer token failed verification."""
    EXPIRED = "expired"
    BAD_SIGNATURE = "bad_signature"
    MALFORMED = "malformed"


class TokenInvalid(AuthCoreException):
    """Token verification failure."""

    def __init__(self, reason: TokenInvalidReason, message: str = "Token is invalid"):
        self.reason = reason
        super().__init__("TOKEN_INVALID", message, {"reason": reason.value})


class OAuthException(AuthCoreException):
    """Carries an OAuthError out of a failed processing step."""

    def __init__(self, oauth_error: "OAuthError"):
        self.oauth_error = oauth_error
        super().__init__(
            oauth_error.error.upper(),
            oauth_error.error_description or oauth_error.error,
        )
