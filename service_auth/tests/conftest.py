"""
Shared fixtures for auth service tests.
"""

import pytest

from shared.test_helpers import (
    InMemorySecretStore,
    client_record,
    fast_hasher,
    make_settings,
    signing_key_handle,
    user_record,
)
from service_auth.app.directory import CredentialDirectory
from service_auth.app.models import Client, User
from service_auth.app.oauth import ClientCredentialsAuthority, ScopeResolver
from service_auth.app.basic import BasicAuthenticator
from service_auth.app.tokens import StaticKeyProvider, TokenCodec


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    """Controllable clock."""
    return FakeClock()


@pytest.fixture
def hasher():
    """Fast secret hasher."""
    return fast_hasher()


@pytest.fixture
def settings():
    """Test settings."""
    return make_settings()


@pytest.fixture
def key_handle():
    """HS256 signing key."""
    return signing_key_handle()


@pytest.fixture
def client_store():
    """Client secret store with active, disabled and suspended clients."""
    return InMemorySecretStore({
        "acme": client_record("acme", "s3cr3t", scopes=("read", "write"), lifetime=3600),
        "legacy": client_record("legacy", "s3cr3t", status="DISABLED"),
        "paused": client_record("paused", "s3cr3t", status="SUSPENDED"),
        "reporting": client_record("reporting", "r3p0rt", scopes=("read", "reports:view"), lifetime=600),
        "no-grant": client_record("no-grant", "s3cr3t", grant_types=("authorization_code",)),
    }, name="clients")


@pytest.fixture
def user_store():
    """User secret store with active and disabled users."""
    return InMemorySecretStore({
        "alice": user_record("alice", "password123", roles=("user",)),
        "admin": user_record("admin", "admin123", roles=("admin", "user")),
        "bob": user_record("bob", "password123", status="DISABLED", roles=("user",)),
    }, name="users")


@pytest.fixture
def client_directory(client_store):
    """Client directory over the in-memory store."""
    return CredentialDirectory("clients", client_store, Client.from_record, fetch_timeout=1.0)


@pytest.fixture
def user_directory(user_store):
    """User directory over the in-memory store."""
    return CredentialDirectory("users", user_store, User.from_record, fetch_timeout=1.0)


@pytest.fixture
def codec(clock):
    """Token codec on the fake clock."""
    return TokenCodec("https://auth.test", "https://api.test", clock=clock)


@pytest.fixture
def authority(client_directory, codec, key_handle, hasher):
    """Client-credentials authority."""
    return ClientCredentialsAuthority(
        directory=client_directory,
        codec=codec,
        key_provider=StaticKeyProvider(key_handle),
        hasher=hasher,
        scopes=ScopeResolver(),
    )


@pytest.fixture
def basic_authenticator(user_directory, hasher):
    """Basic authenticator."""
    return BasicAuthenticator(user_directory, hasher=hasher)
