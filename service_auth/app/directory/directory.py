"""
Cached credential directory shared by OAuth clients and Basic-auth users.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, TypeVar

import httpx

from shared.circuit_breaker import CircuitBreakerOpenException
from shared.errors import DirectoryUnavailable
from shared.logging import get_logger, mask_identifier
from shared.metrics import MetricsCollector

from .cache import MISS, TTLCache
from .singleflight import SingleFlight
from .stores import MalformedRecord, SecretStore, SecretStoreError, normalize_key

E = TypeVar("E")
T = TypeVar("T")

_ALL_KEY = "__all__"


class CredentialDirectory(Generic[E]):
    """Cache-first lookup of secret-bearing entities.

    Positive and negative ("not found") answers are cached for
    ``ttl_seconds``; misses are collapsed so at most one store fetch per key
    is outstanding. Store failures raise :class:`DirectoryUnavailable` and
    leave the key uncached. Malformed records are cached as "not found".
    """

    def __init__(self,
                 name: str,
                 store: SecretStore,
                 parse: Callable[[str, Dict[str, Any]], E],
                 ttl_seconds: float = 300.0,
                 max_entries: int = 1000,
                 metadata_ttl_seconds: float = 60.0,
                 fetch_timeout: float = 2.0,
                 metrics: Optional[MetricsCollector] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.name = name
        self.store = store
        self.fetch_timeout = fetch_timeout
        self.metrics = metrics
        self.logger = get_logger(f"auth.directory.{name}")
        self._parse = parse
        self._cache: TTLCache[Optional[E]] = TTLCache(ttl_seconds, max_entries, clock=clock)
        self._metadata: TTLCache[Dict[str, E]] = TTLCache(metadata_ttl_seconds, 1, clock=clock)
        self._inflight: SingleFlight[Optional[E]] = SingleFlight()
        self._bulk_inflight: SingleFlight[Dict[str, E]] = SingleFlight()
        # Bumped by every invalidation; fetches started under an older
        # generation do not write their result back.
        self._generation = 0
        self.store_fetches = 0

    async def find(self, key: Optional[str]) -> Optional[E]:
        """Find an entity by key; ``None`` when absent, malformed or blank."""
        normalized = normalize_key(key)
        if not normalized:
            return None

        cached = self._cache.get(normalized)
        if cached is not MISS:
            self.logger.debug(
                "Directory cache hit",
                key=mask_identifier(normalized),
                negative=cached is None
            )
            self._record_event("negative_hit" if cached is None else "hit")
            return cached

        self.logger.debug("Directory cache miss", key=mask_identifier(normalized))
        self._record_event("miss")
        # Lookups after an invalidation never join a fetch started before it
        generation = self._generation
        return await self._inflight.do((normalized, generation), lambda: self._load(normalized, generation))

    async def all(self) -> Dict[str, E]:
        """All entities in the store, keyed by normalized key."""
        cached = self._metadata.get(_ALL_KEY)
        if cached is not MISS:
            return dict(cached)
        generation = self._generation
        return dict(await self._bulk_inflight.do((_ALL_KEY, generation), lambda: self._load_all(generation)))

    def invalidate(self, key: Optional[str]) -> bool:
        """Drop one cached entry; returns whether anything was cached."""
        normalized = normalize_key(key)
        self._generation += 1
        self._metadata.clear()
        removed = self._cache.invalidate(normalized)
        self.logger.info("Directory entry invalidated", key=mask_identifier(normalized), removed=removed)
        return removed

    def invalidate_all(self) -> int:
        """Drop every cached entry; returns how many were dropped."""
        self._generation += 1
        count = len(self._cache)
        self._cache.clear()
        self._metadata.clear()
        self.logger.info("Directory cache cleared", entries=count)
        return count

    async def is_healthy(self) -> bool:
        try:
            return await asyncio.wait_for(self.store.is_healthy(), timeout=self.fetch_timeout)
        except asyncio.TimeoutError:
            self.logger.warning("Secret store health check timed out")
            return False

    def stats(self) -> Dict[str, Any]:
        stats = self._cache.stats()
        stats["store_fetches"] = self.store_fetches
        stats["in_flight"] = len(self._inflight)
        return stats

    async def _load(self, key: str, generation: int) -> Optional[E]:
        try:
            record = await self._fetch(key)
        except MalformedRecord as e:
            self.logger.warning("Malformed record treated as not found", key=mask_identifier(key), error=str(e))
            record = None

        entity = self._to_entity(key, record) if record is not None else None

        if generation == self._generation:
            self._cache.set(key, entity)
        else:
            self.logger.debug("Discarding fetch result invalidated in flight", key=mask_identifier(key))
        return entity

    async def _fetch(self, key: str) -> Optional[Dict[str, Any]]:
        self.store_fetches += 1
        self._record_event("store_fetch")
        if self.metrics is None:
            return await self._call_store(self.store.fetch(key), key)
        with self.metrics.time_operation("directory_store_fetch_seconds", directory=self.name):
            return await self._call_store(self.store.fetch(key), key)

    async def _call_store(self, call: Awaitable[T], key: str) -> T:
        """Await a store call under the fetch timeout, mapping failures."""
        try:
            return await asyncio.wait_for(call, timeout=self.fetch_timeout)
        except asyncio.TimeoutError as e:
            raise self._unavailable(key, "timeout") from e
        except CircuitBreakerOpenException as e:
            raise self._unavailable(key, "circuit_open") from e
        except (httpx.HTTPError, OSError, SecretStoreError) as e:
            raise self._unavailable(key, "store_error", error=str(e)) from e

    def _to_entity(self, key: str, record: Dict[str, Any]) -> Optional[E]:
        try:
            return self._parse(key, record)
        except (ValueError, TypeError) as e:
            # pydantic.ValidationError is a ValueError; its text may echo the record
            self.logger.warning(
                "Malformed record treated as not found",
                key=mask_identifier(key),
                error_type=type(e).__name__
            )
            return None

    async def _load_all(self, generation: int) -> Dict[str, E]:
        try:
            keys = await self._call_store(self.store.list_keys(), "*")
        except MalformedRecord as e:
            raise self._unavailable("*", "malformed_listing") from e

        entities: Dict[str, E] = {}
        for key in keys:
            entity = await self.find(key)
            if entity is not None:
                entities[normalize_key(key)] = entity

        if generation == self._generation:
            self._metadata.set(_ALL_KEY, entities)
        return entities

    def _unavailable(self, key: str, cause: str, **extra) -> DirectoryUnavailable:
        self._record_event("store_error")
        self.logger.warning(
            "Secret store unavailable",
            directory=self.name,
            key=mask_identifier(key),
            cause=cause,
            **extra
        )
        return DirectoryUnavailable(self.name, details={"cause": cause})

    def _record_event(self, event: str) -> None:
        if self.metrics is not None:
            self.metrics.record_cache_event(self.name, event)
