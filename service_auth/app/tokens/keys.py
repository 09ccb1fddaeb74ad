"""
Signing and verification key handles.

Keys are supplied by an external provider; rotation happens outside this
service. The provider is awaited under a timeout and any failure surfaces as
:class:`KeyProviderUnavailable`.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from shared.config import AuthSettings
from shared.errors import KeyProviderUnavailable
from shared.logging import get_logger

logger = get_logger("auth.keys")


@dataclass(frozen=True)
class KeyHandle:
    """Opaque key material plus the JWS algorithm and key id it is used with."""
    key_id: str
    algorithm: str
    key: Any = field(repr=False)


class KeyProvider(ABC):
    """Source of the current signing and verification keys."""

    @abstractmethod
    async def signing_key(self) -> KeyHandle:
        """Key used to sign newly minted tokens."""

    @abstractmethod
    async def verification_key(self) -> KeyHandle:
        """Key used to verify presented tokens."""


class StaticKeyProvider(KeyProvider):
    """Provider returning fixed handles; symmetric algorithms share one key."""

    def __init__(self, signing: KeyHandle, verification: Optional[KeyHandle] = None):
        self._signing = signing
        self._verification = verification or signing

    @classmethod
    def from_settings(cls, settings: AuthSettings) -> "StaticKeyProvider":
        handle = KeyHandle(
            key_id=settings.jwt_key_id,
            algorithm=settings.jwt_algorithm,
            key=settings.jwt_signing_key.get_secret_value(),
        )
        return cls(handle)

    async def signing_key(self) -> KeyHandle:
        return self._signing

    async def verification_key(self) -> KeyHandle:
        return self._verification


async def resolve_key(fetch: Callable[[], Awaitable[KeyHandle]], timeout: float) -> KeyHandle:
    """Await a key provider call, mapping timeouts and errors to KeyProviderUnavailable."""
    try:
        return await asyncio.wait_for(fetch(), timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.error("Key provider timed out", timeout=timeout)
        raise KeyProviderUnavailable("Key provider timed out") from e
    except KeyProviderUnavailable:
        raise
    except Exception as e:
        logger.error("Key provider failed", error_type=type(e).__name__)
        raise KeyProviderUnavailable() from e
