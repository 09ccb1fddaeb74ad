"""
Credential directories: cache-first lookup of OAuth clients and Basic-auth
users from a secret store, with single-flight miss handling.
"""

from typing import Optional

from shared.config import AuthSettings
from shared.metrics import MetricsCollector

from ..models import Client, User
from .cache import MISS, TTLCache
from .directory import CredentialDirectory
from .singleflight import SingleFlight
from .stores import (
    FileSecretStore,
    HttpSecretStore,
    MalformedRecord,
    SecretStore,
    SecretStoreError,
    create_secret_store,
    normalize_key,
)


def _build(name: str, store: SecretStore, parse, settings: AuthSettings,
           metrics: Optional[MetricsCollector]) -> CredentialDirectory:
    return CredentialDirectory(
        name=name,
        store=store,
        parse=parse,
        ttl_seconds=settings.cache_ttl_seconds,
        max_entries=settings.cache_max_entries,
        metadata_ttl_seconds=settings.metadata_cache_ttl_seconds,
        fetch_timeout=settings.store_timeout_seconds,
        metrics=metrics,
    )


def build_client_directory(settings: AuthSettings,
                           metrics: Optional[MetricsCollector] = None,
                           store: Optional[SecretStore] = None) -> "CredentialDirectory[Client]":
    """Client directory backed by the configured store."""
    if store is None:
        store = create_secret_store(settings, settings.clients_namespace, settings.clients_file)
    return _build("clients", store, Client.from_record, settings, metrics)


def build_user_directory(settings: AuthSettings,
                         metrics: Optional[MetricsCollector] = None,
                         store: Optional[SecretStore] = None) -> "CredentialDirectory[User]":
    """User directory backed by the configured store."""
    if store is None:
        store = create_secret_store(settings, settings.users_namespace, settings.users_file)
    return _build("users", store, User.from_record, settings, metrics)


__all__ = [
    "MISS",
    "TTLCache",
    "SingleFlight",
    "CredentialDirectory",
    "SecretStore",
    "FileSecretStore",
    "HttpSecretStore",
    "MalformedRecord",
    "SecretStoreError",
    "create_secret_store",
    "normalize_key",
    "build_client_directory",
    "build_user_directory",
]
