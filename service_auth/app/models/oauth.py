"""
OAuth 2.0 request, response and error values for the client-credentials flow.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .credentials import CLIENT_CREDENTIALS_GRANT

BEARER = "Bearer"


class OAuthErrorCode(str, Enum):
    """RFC 6749 section 5.2 error codes."""
    INVALID_REQUEST = "invalid_request"
    INVALID_CLIENT = "invalid_client"
    INVALID_GRANT = "invalid_grant"
    UNAUTHORIZED_CLIENT = "unauthorized_client"
    UNSUPPORTED_GRANT_TYPE = "unsupported_grant_type"
    INVALID_SCOPE = "invalid_scope"
    SERVER_ERROR = "server_error"


class OAuthError(BaseModel):
    """OAuth 2.0 error result."""

    model_config = ConfigDict(frozen=True)

    error: OAuthErrorCode
    error_description: Optional[str] = None

    @classmethod
    def invalid_request(cls, description: str) -> "OAuthError":
        return cls(error=OAuthErrorCode.INVALID_REQUEST, error_description=description)

    @classmethod
    def invalid_client(cls, description: str = "Client authentication failed") -> "OAuthError":
        return cls(error=OAuthErrorCode.INVALID_CLIENT, error_description=description)

    @classmethod
    def unauthorized_client(cls, description: str) -> "OAuthError":
        return cls(error=OAuthErrorCode.UNAUTHORIZED_CLIENT, error_description=description)

    @classmethod
    def unsupported_grant_type(cls, grant_type: Optional[str]) -> "OAuthError":
        return cls(
            error=OAuthErrorCode.UNSUPPORTED_GRANT_TYPE,
            error_description=f"Unsupported grant type: {grant_type or ''}".rstrip(),
        )

    @classmethod
    def invalid_scope(cls, description: str) -> "OAuthError":
        return cls(error=OAuthErrorCode.INVALID_SCOPE, error_description=description)

    @classmethod
    def server_error(cls, description: str = "Internal authentication error") -> "OAuthError":
        return cls(error=OAuthErrorCode.SERVER_ERROR, error_description=description)

    @property
    def http_status(self) -> int:
        if self.error == OAuthErrorCode.INVALID_CLIENT:
            return 401
        if self.error == OAuthErrorCode.SERVER_ERROR:
            return 500
        return 400

    def to_response(self) -> Dict[str, Any]:
        return {"error": self.error.value, "error_description": self.error_description}


class TokenRequest(BaseModel):
    """Parsed token endpoint request."""

    grant_type: str = ""
    client_id: str = ""
    client_secret: str = Field(default="", repr=False)
    scope: Optional[str] = None

    def is_client_credentials_grant(self) -> bool:
        return self.grant_type == CLIENT_CREDENTIALS_GRANT

    def requested_scopes(self) -> List[str]:
        """Space-delimited scope parameter split into tokens."""
        return (self.scope or "").split()


class TokenResponse(BaseModel):
    """Successful token endpoint result."""

    model_config = ConfigDict(frozen=True)

    access_token: str = Field(..., repr=False)
    token_type: str = BEARER
    expires_in: int
    scope: Optional[str] = None
    issued_at: int

    def to_response(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "access_token": self.access_token,
            "token_type": self.token_type,
            "expires_in": self.expires_in,
        }
        if self.scope:
            body["scope"] = self.scope
        body["issued_at"] = self.issued_at
        return body


class TokenClaims(BaseModel):
    """Claims carried by an access token minted by this service."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    iss: str
    aud: str
    sub: str
    iat: int
    exp: int
    jti: str
    client_id: str
    token_type: str = BEARER
    scope: str = ""

    @property
    def lifetime_seconds(self) -> int:
        return self.exp - self.iat


class IntrospectionResult(BaseModel):
    """Token introspection result; only ``active`` is set for inactive tokens."""

    model_config = ConfigDict(frozen=True)

    active: bool
    client_id: Optional[str] = None
    scope: Optional[str] = None
    token_type: Optional[str] = None
    exp: Optional[int] = None
    iat: Optional[int] = None

    @classmethod
    def inactive(cls) -> "IntrospectionResult":
        return cls(active=False)

    @classmethod
    def from_claims(cls, claims: TokenClaims) -> "IntrospectionResult":
        return cls(
            active=True,
            client_id=claims.client_id,
            scope=claims.scope,
            token_type=claims.token_type,
            exp=claims.exp,
            iat=claims.iat,
        )

    def to_response(self) -> Dict[str, Any]:
        if not self.active:
            return {"active": False}
        return {
            "active": True,
            "client_id": self.client_id,
            "scope": self.scope,
            "token_type": self.token_type,
            "exp": self.exp,
            "iat": self.iat,
        }
