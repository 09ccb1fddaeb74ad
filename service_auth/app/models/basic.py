"""
Basic-auth validation result.
"""

from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from .credentials import User

INVALID_CREDENTIALS = "invalid credentials"
AUTHENTICATED = "authenticated"


class AuthenticationResult(BaseModel):
    """Outcome of a username/password check.

    ``subject`` and ``roles`` are only populated when ``allowed`` is true; the
    reason never contains the submitted secret.
    """

    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: str
    subject: Optional[str] = None
    roles: Optional[Tuple[str, ...]] = None

    @classmethod
    def granted(cls, user: User) -> "AuthenticationResult":
        return cls(allowed=True, reason=AUTHENTICATED, subject=user.username, roles=user.roles)

    @classmethod
    def denied(cls) -> "AuthenticationResult":
        return cls(allowed=False, reason=INVALID_CREDENTIALS)

    def to_response(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"allowed": self.allowed, "reason": self.reason}
        if self.allowed:
            body["subject"] = self.subject
            body["roles"] = list(self.roles or ())
        return body
