"""Short-TTL cache for fetched, parsed and searched results.

Keys are tuples such as ``("schedule", 2)``, ``("week",)`` or
``("search", "bcs-1g", "all")``. Values are stored by reference. Concurrent
loads of the same key share one in-flight task. Expired entries are evicted
whenever a new value is stored, so arbitrary search keys do not accumulate.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable, Hashable
from typing import Any

from gviz_timetable.logging import get_logger

log = get_logger(__name__)

Clock = Callable[[], float]


class ScheduleCache:
    """TTL cache keyed by hashable tuples, with an injectable clock."""

    def __init__(self, ttl_seconds: float = 30.0, clock: Clock = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[Hashable, tuple[Any, float]] = {}
        # key -> (task, generation the load started in)
        self._inflight: dict[Hashable, tuple[asyncio.Task, int]] = {}
        self._waiters: dict[asyncio.Task, int] = {}
        self._generation = 0

    def __len__(self) -> int:
        return len(self._entries)

    def _expired(self, stored_at: float, now: float) -> bool:
        return (now - stored_at) >= self.ttl_seconds

    def is_valid(self, key: Hashable) -> bool:
        """True when ``key`` holds a value younger than the TTL."""
        item = self._entries.get(key)
        if item is None:
            return False
        return not self._expired(item[1], self._clock())

    def get(self, key: Hashable) -> Any | None:
        """Return the value for ``key`` if still valid, else None."""
        if not self.is_valid(key):
            return None
        return self._entries[key][0]

    def set(self, key: Hashable, value: Any) -> None:
        now = self._clock()
        self._evict_expired(now)
        self._entries[key] = (value, now)

    def _evict_expired(self, now: float) -> None:
        stale = [key for key, (_, stored_at) in self._entries.items() if self._expired(stored_at, now)]
        for key in stale:
            del self._entries[key]
        if stale:
            log.debug("cache_evicted", entries=len(stale))

    def clear(self) -> None:
        """Drop every entry immediately, regardless of age.

        Loads already running keep serving their current waiters, but their
        results are not stored and later requests start a fresh load.
        """
        count = len(self._entries)
        self._entries.clear()
        self._inflight.clear()
        self._generation += 1
        log.info("cache_cleared", entries=count)

    async def get_or_load(
        self,
        key: Hashable,
        loader: Callable[[], Awaitable[Any]],
        should_cache: Callable[[Any], bool] = lambda value: True,
    ) -> tuple[Any, bool]:
        """Return ``(value, from_cache)``, loading on a miss.

        A load already running for ``key`` is awaited instead of starting a
        second one. Values rejected by ``should_cache`` are returned but not
        stored.
        """
        if self.is_valid(key):
            log.debug("cache_hit", key=key)
            return self._entries[key][0], True

        current = self._inflight.get(key)
        if current is None:
            task = asyncio.ensure_future(loader())
            generation = self._generation
            self._inflight[key] = (task, generation)
            task.add_done_callback(lambda t, k=key: self._forget(k, t))
            log.debug("cache_miss", key=key)
        else:
            task, generation = current
            log.debug("cache_join_inflight", key=key)

        self._waiters[task] = self._waiters.get(task, 0) + 1
        cancelled = False
        try:
            # shield: one cancelled waiter must not cancel a load others still await
            value = await asyncio.shield(task)
        except asyncio.CancelledError:
            cancelled = True
            raise
        finally:
            remaining = self._release(task)
            if cancelled and remaining <= 0 and not task.done():
                log.debug("cache_load_cancelled", key=key)
                task.cancel()

        if generation == self._generation and should_cache(value):
            self.set(key, value)
        return value, False

    def _release(self, task: asyncio.Task) -> int:
        remaining = self._waiters.get(task, 1) - 1
        if remaining <= 0:
            self._waiters.pop(task, None)
        else:
            self._waiters[task] = remaining
        return remaining

    def _forget(self, key: Hashable, task: asyncio.Task) -> None:
        current = self._inflight.get(key)
        if current is not None and current[0] is task:
            del self._inflight[key]
