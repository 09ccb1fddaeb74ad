"""
Data model shared by the directory, codec, authority and basic authenticator.
"""

from .basic import AuthenticationResult
from .credentials import CLIENT_CREDENTIALS_GRANT, Client, ClientStatus, User, UserStatus
from .oauth import (
    BEARER,
    IntrospectionResult,
    OAuthError,
    OAuthErrorCode,
    TokenClaims,
    TokenRequest,
    TokenResponse,
)

__all__ = [
    "AuthenticationResult",
    "BEARER",
    "CLIENT_CREDENTIALS_GRANT",
    "Client",
    "ClientStatus",
    "IntrospectionResult",
    "OAuthError",
    "OAuthErrorCode",
    "TokenClaims",
    "TokenRequest",
    "TokenResponse",
    "User",
    "UserStatus",
]
