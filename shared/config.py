"""
Shared configuration management for the authorization core.
"""

from typing import List, Literal, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


# Development signing secret; deployments must override AUTH_JWT_SIGNING_KEY.
DEV_SIGNING_KEY = "mySecretKeyForJWTTokenGenerationThatIsAtLeast256BitsLong"


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")


class AuthSettings(BaseConfig):
    """Settings for the auth service and the core it wires together."""

    service_name: str = "auth"
    host: str = "0.0.0.0"
    port: int = 8010

    # Credential directory
    directory_backend: Literal["file", "remote"] = Field(default="file")
    clients_file: str = Field(default="config/clients.json")
    users_file: str = Field(default="config/users.json")
    secret_store_url: str = Field(default="http://localhost:8200")
    secret_store_token: Optional[SecretStr] = Field(default=None)
    clients_namespace: str = Field(default="oauth-clients")
    users_namespace: str = Field(default="basic-users")
    store_timeout_seconds: float = Field(default=2.0, gt=0)
    cache_ttl_seconds: float = Field(default=300.0, gt=0)
    cache_max_entries: int = Field(default=1000, gt=0)
    metadata_cache_ttl_seconds: float = Field(default=60.0, gt=0)
    store_failure_threshold: int = Field(default=5, gt=0)
    store_recovery_timeout: float = Field(default=30.0, gt=0)

    # Token codec
    jwt_issuer: str = Field(default="https://auth.example.com")
    jwt_audience: str = Field(default="https://api.example.com")
    jwt_algorithm: str = Field(default="HS256")
    jwt_signing_key: SecretStr = Field(default=SecretStr(DEV_SIGNING_KEY))
    jwt_key_id: str = Field(default="default")
    clock_skew_seconds: int = Field(default=0, ge=0)
    key_provider_timeout_seconds: float = Field(default=1.0, gt=0)

    # Client-credentials flow
    default_scopes: Optional[List[str]] = Field(default=None)

    # Administrative commands are disabled unless a token is configured
    admin_token: Optional[SecretStr] = Field(default=None)


def get_settings(**overrides) -> AuthSettings:
    """Load settings from the environment, applying explicit overrides."""
    return AuthSettings(**overrides)
