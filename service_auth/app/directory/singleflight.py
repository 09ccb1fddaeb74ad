"""
Single-flight collapsing of concurrent calls for the same key.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Generic, Hashable, TypeVar

T = TypeVar("T")


class SingleFlight(Generic[T]):
    """At most one outstanding call per key.

    The first caller for a key starts ``fn()`` as a task; callers arriving
    while it runs await the same task and observe the same value or the same
    exception. A waiter being cancelled does not cancel the shared task.
    """

    def __init__(self):
        self._inflight: Dict[Hashable, "asyncio.Task[T]"] = {}

    async def do(self, key: Hashable, fn: Callable[[], Awaitable[T]]) -> T:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(fn())
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._forget(k, t))
        return await asyncio.shield(task)

    def in_flight(self, key: Hashable) -> bool:
        return key in self._inflight

    def __len__(self) -> int:
        return len(self._inflight)

    def _forget(self, key: Hashable, task: "asyncio.Task[Any]") -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Mark the exception retrieved even when every waiter was cancelled
        if not task.cancelled():
            task.exception()
