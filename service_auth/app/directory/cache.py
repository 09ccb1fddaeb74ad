"""
Bounded in-memory cache with TTL expiry and LRU eviction.
"""

import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Generic, Hashable, Tuple, TypeVar, Union

V = TypeVar("V")


class _Missing:
    def __repr__(self) -> str:
        return "MISS"


MISS = _Missing()


class TTLCache(Generic[V]):
    """LRU cache whose entries expire ``ttl_seconds`` after being written.

    ``None`` is a legitimate cached value (negative caching); absence is
    signalled by the :data:`MISS` sentinel.
    """

    def __init__(self, ttl_seconds: float, max_entries: int,
                 clock: Callable[[], float] = time.monotonic):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[Hashable, Tuple[float, V]]" = OrderedDict()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, key: Hashable) -> Union[V, _Missing]:
        """Get a live entry, refreshing its recency."""
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return MISS

        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            self.misses += 1
            return MISS

        self._entries.move_to_end(key)
        self.hits += 1
        return value

    def set(self, key: Hashable, value: V) -> None:
        """Store a value, evicting least recently used entries past capacity."""
        self._entries[key] = (self._clock() + self.ttl_seconds, value)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
            self.evictions += 1

    def invalidate(self, key: Hashable) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        entry = self._entries.get(key)
        return entry is not None and self._clock() < entry[0]

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        return {
            "size": len(self._entries),
            "max_entries": self.max_entries,
            "ttl_seconds": self.ttl_seconds,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
        }
