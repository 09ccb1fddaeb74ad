"""
Unit tests for the secret store backends.
"""

import asyncio
import json

import httpx
import pytest

from shared.circuit_breaker import CircuitBreaker, CircuitBreakerOpenException
from shared.errors import DirectoryUnavailable
from shared.test_helpers import client_record, make_settings
from service_auth.app.directory import CredentialDirectory
from service_auth.app.directory.stores import (
    FileSecretStore,
    HttpSecretStore,
    MalformedRecord,
    SecretStoreError,
    create_secret_store,
)
from service_auth.app.models import Client


class TestFileSecretStore:
    """Test cases for FileSecretStore."""

    @pytest.fixture
    def clients_file(self, tmp_path):
        """Clients file with mixed-case ids."""
        path = tmp_path / "clients.json"
        path.write_text(json.dumps({
            "Acme": client_record("Acme"),
            "wrapped": {"value": json.dumps(client_record("wrapped"))},
            "broken": "not json",
        }))
        return path

    @pytest.mark.asyncio
    async def test_fetch_normalizes_keys(self, clients_file):
        """Test that file keys are matched case-insensitively."""
        store = FileSecretStore(str(clients_file))

        record = await store.fetch("acme")

        assert record["clientId"] == "Acme"

    @pytest.mark.asyncio
    async def test_fetch_unwraps_value_envelope(self, clients_file):
        """Test records stored as serialized JSON strings."""
        store = FileSecretStore(str(clients_file))

        record = await store.fetch("wrapped")

        assert record["clientId"] == "wrapped"

    @pytest.mark.asyncio
    async def test_fetch_missing_returns_none(self, clients_file):
        """Test not-found."""
        store = FileSecretStore(str(clients_file))

        assert await store.fetch("ghost") is None

    @pytest.mark.asyncio
    async def test_fetch_malformed_record(self, clients_file):
        """Test that a non-object record is reported as malformed."""
        store = FileSecretStore(str(clients_file))

        with pytest.raises(MalformedRecord):
            await store.fetch("broken")

    @pytest.mark.asyncio
    async def test_list_keys(self, clients_file):
        """Test key listing."""
        store = FileSecretStore(str(clients_file))

        assert await store.list_keys() == ["acme", "broken", "wrapped"]

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        """Test that a missing file is an error, not an empty directory."""
        store = FileSecretStore(str(tmp_path / "absent.json"))

        with pytest.raises(OSError):
            await store.fetch("acme")
        assert await store.is_healthy() is False

    @pytest.mark.asyncio
    async def test_invalid_json_file(self, tmp_path):
        """Test that an unparsable file is a store error."""
        path = tmp_path / "clients.json"
        path.write_text("{not json")
        store = FileSecretStore(str(path))

        with pytest.raises(SecretStoreError):
            await store.fetch("acme")


class TestHttpSecretStore:
    """Test cases for HttpSecretStore."""

    @pytest.fixture
    def requests_seen(self):
        """Requests received by the mock transport."""
        return []

    @pytest.fixture
    def records(self):
        """Records served by the mock secret store."""
        return {
            "acme": {"value": json.dumps(client_record("acme"))},
            "plain": client_record("plain"),
            "garbled": {"value": "{oops"},
        }

    @pytest.fixture
    def transport(self, records, requests_seen):
        """Mock secret store speaking the /v1 protocol."""
        def handler(request: httpx.Request) -> httpx.Response:
            requests_seen.append(request)
            path = request.url.path
            if path == "/v1/health":
                return httpx.Response(200, json={"status": "ok"})
            if path == "/v1/secrets/oauth-clients":
                return httpx.Response(200, json={"keys": ["ACME", "plain", "garbled"]})
            key = path.rsplit("/", 1)[-1]
            if key == "boom":
                return httpx.Response(503, json={"error": "unavailable"})
            if key not in records:
                return httpx.Response(404)
            return httpx.Response(200, json=records[key])

        return httpx.MockTransport(handler)

    @pytest.fixture
    def store(self, transport):
        """HttpSecretStore over the mock transport."""
        return HttpSecretStore(
            base_url="http://secrets.test/",
            namespace="oauth-clients",
            token="store-token",
            timeout=1.0,
            transport=transport,
        )

    @pytest.mark.asyncio
    async def test_fetch_wrapped_record(self, store, requests_seen):
        """Test fetching a record wrapped in a value envelope."""
        record = await store.fetch("acme")

        assert record["clientId"] == "acme"
        request = requests_seen[0]
        assert request.url.path == "/v1/secrets/oauth-clients/acme"
        assert request.headers["Authorization"] == "Bearer store-token"

    @pytest.mark.asyncio
    async def test_fetch_plain_record(self, store):
        """Test fetching an unwrapped record object."""
        record = await store.fetch("plain")

        assert record["clientId"] == "plain"

    @pytest.mark.asyncio
    async def test_fetch_not_found(self, store):
        """Test that 404 means not found."""
        assert await store.fetch("ghost") is None

    @pytest.mark.asyncio
    async def test_fetch_garbled_value(self, store):
        """Test that an unparsable value is malformed."""
        with pytest.raises(MalformedRecord):
            await store.fetch("garbled")

    @pytest.mark.asyncio
    async def test_server_error_raises(self, store):
        """Test that 5xx responses raise."""
        with pytest.raises(httpx.HTTPStatusError):
            await store.fetch("boom")

    @pytest.mark.asyncio
    async def test_list_keys_normalizes(self, store):
        """Test key listing."""
        assert await store.list_keys() == ["acme", "garbled", "plain"]

    @pytest.mark.asyncio
    async def test_is_healthy(self, store):
        """Test health endpoint."""
        assert await store.is_healthy() is True

    @pytest.mark.asyncio
    async def test_circuit_opens_after_failures(self, transport):
        """Test that repeated failures open the store's circuit breaker."""
        breaker = CircuitBreaker(failure_threshold=2, recovery_timeout=60, expected_exception=httpx.HTTPError)
        store = HttpSecretStore("http://secrets.test", "oauth-clients", circuit_breaker=breaker, transport=transport)

        for _ in range(2):
            with pytest.raises(httpx.HTTPStatusError):
                await store.fetch("boom")

        with pytest.raises(CircuitBreakerOpenException):
            await store.fetch("acme")
        assert await store.is_healthy() is False

    @pytest.mark.asyncio
    async def test_not_found_does_not_trip_breaker(self, transport):
        """Test that 404 is a successful answer for the breaker."""
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=60, expected_exception=httpx.HTTPError)
        store = HttpSecretStore("http://secrets.test", "oauth-clients", circuit_breaker=breaker, transport=transport)

        assert await store.fetch("ghost") is None
        assert not breaker.is_open()

    @pytest.mark.asyncio
    async def test_hung_store_opens_breaker_through_directory(self):
        """Test that fetch timeouts trip the breaker of a hung store."""
        async def hang(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(5)
            return httpx.Response(200, json=client_record("acme"))

        breaker = CircuitBreaker(failure_threshold=2, recovery_timeout=60, expected_exception=httpx.HTTPError)
        store = HttpSecretStore(
            "http://secrets.test",
            "oauth-clients",
            circuit_breaker=breaker,
            transport=httpx.MockTransport(hang),
        )
        directory = CredentialDirectory("clients", store, Client.from_record, fetch_timeout=0.05)

        for key in ("acme", "other"):
            with pytest.raises(DirectoryUnavailable) as exc_info:
                await directory.find(key)
            assert exc_info.value.details["cause"] == "timeout"

        assert breaker.is_open()
        with pytest.raises(DirectoryUnavailable) as exc_info:
            await directory.find("third")
        assert exc_info.value.details["cause"] == "circuit_open"


class TestCreateSecretStore:
    """Test cases for backend selection."""

    def test_file_backend(self):
        """Test the file backend is selected by default."""
        store = create_secret_store(make_settings(), "oauth-clients", "config/clients.json")

        assert isinstance(store, FileSecretStore)
        assert store.name == "oauth-clients"

    def test_remote_backend(self):
        """Test the remote backend uses settings."""
        settings = make_settings(
            directory_backend="remote",
            secret_store_url="http://vault.internal:8200",
            secret_store_token="t0ken",
            store_timeout_seconds=0.5,
            store_failure_threshold=3,
        )

        store = create_secret_store(settings, "basic-users", "config/users.json")

        assert isinstance(store, HttpSecretStore)
        assert store.base_url == "http://vault.internal:8200"
        assert store.namespace == "basic-users"
        assert store.token == "t0ken"
        assert store.timeout == 0.5
        assert store.circuit_breaker.failure_threshold == 3
