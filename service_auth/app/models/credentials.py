"""
Secret-bearing entities served by the credential directories.

Records arrive from the secret store as JSON objects using the store's
camelCase field names (``clientSecretHash``, ``allowedScopes`` ...); the
snake_case attribute names are accepted as well.
"""

from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

CLIENT_CREDENTIALS_GRANT = "client_credentials"


class ClientStatus(str, Enum):
    """OAuth client status."""
    ACTIVE = "ACTIVE"
    DISABLED = "DISABLED"
    SUSPENDED = "SUSPENDED"


class UserStatus(str, Enum):
    """Basic-auth user status."""
    ACTIVE = "ACTIVE"
    DISABLED = "DISABLED"


def _dedupe(values) -> Tuple[str, ...]:
    seen = []
    for value in values or ():
        value = str(value).strip()
        if value and value not in seen:
            seen.append(value)
    return tuple(seen)


class Client(BaseModel):
    """OAuth client registered for the client-credentials grant."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    client_id: str = Field(..., min_length=1, alias="clientId")
    secret_hash: str = Field(..., min_length=1, alias="clientSecretHash")
    status: ClientStatus = ClientStatus.DISABLED
    allowed_scopes: Tuple[str, ...] = Field(default=(), alias="allowedScopes")
    allowed_grant_types: FrozenSet[str] = Field(
        default=frozenset({CLIENT_CREDENTIALS_GRANT}), alias="allowedGrantTypes"
    )
    token_lifetime_seconds: int = Field(default=3600, gt=0, alias="tokenExpirationSeconds")
    description: Optional[str] = None

    @field_validator("client_id", "secret_hash", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value: Any) -> ClientStatus:
        # Unknown or missing status never yields an active client
        try:
            return ClientStatus(str(value).strip().upper())
        except ValueError:
            return ClientStatus.DISABLED

    @field_validator("allowed_scopes", mode="before")
    @classmethod
    def _parse_scopes(cls, value: Any) -> Tuple[str, ...]:
        if isinstance(value, str):
            value = value.split()
        return _dedupe(value)

    @field_validator("allowed_grant_types", mode="before")
    @classmethod
    def _parse_grant_types(cls, value: Any) -> FrozenSet[str]:
        if isinstance(value, str):
            value = value.split()
        return frozenset(_dedupe(value))

    @classmethod
    def from_record(cls, key: str, record: Dict[str, Any]) -> "Client":
        """Build a client from a secret-store record stored under ``key``."""
        data = dict(record)
        if not data.get("clientId") and not data.get("client_id"):
            data["clientId"] = key
        return cls.model_validate(data)

    def is_active(self) -> bool:
        return self.status == ClientStatus.ACTIVE

    def allows_scope(self, scope: str) -> bool:
        return scope in self.allowed_scopes

    def allows_grant_type(self, grant_type: str) -> bool:
        return grant_type in self.allowed_grant_types


class User(BaseModel):
    """User authenticated through HTTP Basic credentials."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    username: str = Field(..., min_length=1)
    password_hash: str = Field(..., min_length=1, alias="passwordHash")
    status: UserStatus = UserStatus.ACTIVE
    roles: Tuple[str, ...] = ()

    @field_validator("username", "password_hash", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value: Any) -> UserStatus:
        if value is None:
            return UserStatus.ACTIVE
        try:
            return UserStatus(str(value).strip().upper())
        except ValueError:
            return UserStatus.DISABLED

    @field_validator("roles", mode="before")
    @classmethod
    def _parse_roles(cls, value: Any) -> Tuple[str, ...]:
        return _dedupe(value)

    @classmethod
    def from_record(cls, key: str, record: Dict[str, Any]) -> "User":
        """Build a user from a secret-store record stored under ``key``."""
        data = dict(record)
        data.setdefault("username", key)
        return cls.model_validate(data)

    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE
