"""
Secret store backends consulted by the credential directories.

A store answers raw records keyed by normalized id. ``None`` means the store
positively answered "not found"; any exception means it could not answer.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from shared.circuit_breaker import CircuitBreaker
from shared.config import AuthSettings
from shared.logging import get_logger


class SecretStoreError(Exception):
    """The store could not be read."""
    pass


class MalformedRecord(ValueError):
    """The store answered with something that is not a record object."""
    pass


def normalize_key(key: Optional[str]) -> str:
    """Trim and lower-case a lookup key."""
    return (key or "").strip().lower()


def _decode_record(payload: Any) -> Dict[str, Any]:
    # Remote stores wrap records as {"value": "<json>"}
    if isinstance(payload, dict) and "value" in payload:
        payload = payload["value"]
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except ValueError as e:
            raise MalformedRecord("Record is not valid JSON") from e
    if not isinstance(payload, dict):
        raise MalformedRecord("Record is not a JSON object")
    return payload


class SecretStore(ABC):
    """Key-value secret store holding one namespace of records."""

    name: str = "store"

    @abstractmethod
    async def fetch(self, key: str) -> Optional[Dict[str, Any]]:
        """Fetch the record stored under a normalized key."""

    @abstractmethod
    async def list_keys(self) -> List[str]:
        """List the normalized keys present in the namespace."""

    @abstractmethod
    async def is_healthy(self) -> bool:
        """Check whether the store can currently be read."""


class FileSecretStore(SecretStore):
    """JSON file mapping id to record, for local development and tests."""

    def __init__(self, path: str, name: Optional[str] = None):
        self.path = Path(path)
        self.name = name or self.path.stem
        self.logger = get_logger(f"auth.store.{self.name}")

    def _load(self) -> Dict[str, Any]:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except ValueError as e:
            raise SecretStoreError(f"Invalid JSON in {self.path}") from e
        if not isinstance(data, dict):
            raise SecretStoreError(f"{self.path} must contain a JSON object")
        return {normalize_key(key): value for key, value in data.items()}

    async def _read(self) -> Dict[str, Any]:
        return await asyncio.to_thread(self._load)

    async def fetch(self, key: str) -> Optional[Dict[str, Any]]:
        records = await self._read()
        if key not in records:
            return None
        return _decode_record(records[key])

    async def list_keys(self) -> List[str]:
        return sorted(await self._read())

    async def is_healthy(self) -> bool:
        try:
            await self._read()
            return True
        except (OSError, SecretStoreError) as e:
            self.logger.warning("Secret file unreadable", path=str(self.path), error=str(e))
            return False


class HttpSecretStore(SecretStore):
    """Remote key-value secret store reached over HTTP.

    ``GET {base}/v1/secrets/{namespace}/{key}`` returns a record (optionally
    wrapped as ``{"value": "<json>"}``) or 404; ``GET {base}/v1/secrets/{namespace}``
    returns ``{"keys": [...]}``; ``GET {base}/v1/health`` reports liveness.
    """

    def __init__(self,
                 base_url: str,
                 namespace: str,
                 token: Optional[str] = None,
                 timeout: float = 2.0,
                 circuit_breaker: Optional[CircuitBreaker] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.namespace = namespace
        self.name = namespace
        self.token = token
        self.timeout = timeout
        self.transport = transport
        self.logger = get_logger(f"auth.store.{namespace}")
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=5,
            recovery_timeout=30.0,
            expected_exception=httpx.HTTPError,
            name=f"secret-store-{namespace}",
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _namespace_url(self) -> str:
        return f"{self.base_url}/v1/secrets/{quote(self.namespace, safe='')}"

    async def _get_json(self, url: str) -> Optional[Any]:
        async with self._client() as client:
            response = await client.get(url, headers=self._headers())
            if response.status_code == 404:
                return None
            response.raise_for_status()
            try:
                return response.json()
            except ValueError as e:
                raise MalformedRecord("Secret store returned non-JSON body") from e

    async def fetch(self, key: str) -> Optional[Dict[str, Any]]:
        url = f"{self._namespace_url()}/{quote(key, safe='')}"
        payload = await self.circuit_breaker.call(self._get_json, url)
        if payload is None:
            return None
        return _decode_record(payload)

    async def list_keys(self) -> List[str]:
        payload = await self.circuit_breaker.call(self._get_json, self._namespace_url())
        if payload is None:
            return []
        if not isinstance(payload, dict) or not isinstance(payload.get("keys"), list):
            raise SecretStoreError("Secret store key listing is malformed")
        return sorted({normalize_key(str(key)) for key in payload["keys"] if str(key).strip()})

    async def is_healthy(self) -> bool:
        if self.circuit_breaker.is_open():
            return False
        try:
            async with self._client() as client:
                response = await client.get(f"{self.base_url}/v1/health", headers=self._headers())
            return response.status_code == 200
        except httpx.HTTPError as e:
            self.logger.warning("Secret store health check failed", error=str(e))
            return False


def create_secret_store(settings: AuthSettings, namespace: str, file_path: str) -> SecretStore:
    """Build the store selected by ``settings.directory_backend``."""
    if settings.directory_backend == "remote":
        token = settings.secret_store_token.get_secret_value() if settings.secret_store_token else None
        return HttpSecretStore(
            base_url=settings.secret_store_url,
            namespace=namespace,
            token=token,
            timeout=settings.store_timeout_seconds,
            circuit_breaker=CircuitBreaker(
                failure_threshold=settings.store_failure_threshold,
                recovery_timeout=settings.store_recovery_timeout,
                expected_exception=httpx.HTTPError,
                name=f"secret-store-{namespace}",
            ),
        )
    return FileSecretStore(file_path, name=namespace)
