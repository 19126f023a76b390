"""In-memory counter store.

Notes:
- Per-process only: running multiple workers multiplies the effective quota.
  Use the Redis store whenever more than one instance shares the upstream key.
- Thread-safe: the increment and the expiry check happen under one lock, so
  the store is atomic for both threads and coroutines.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable

from weather_gateway.adapters.counter_store.base import AbstractCounterStore


@dataclass
class _Counter:
    value: int
    expires_at: float


class InMemoryCounterStore(AbstractCounterStore):
    """Counter map with lazy expiry.

    Expired counters are treated as absent on access and purged whenever a new
    key is created, which bounds memory to the number of live window buckets.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        """Initialize the store.

        Args:
            clock: Time source function returning UNIX time in seconds.
        """
        self._clock = clock
        self._lock = threading.Lock()
        self._counters: dict[str, _Counter] = {}

    def _live_counter(self, key: str, now: float) -> _Counter | None:
        counter = self._counters.get(key)
        if counter is not None and counter.expires_at <= now:
            del self._counters[key]
            return None
        return counter

    def _purge_expired_locked(self, now: float) -> None:
        expired = [k for k, c in self._counters.items() if c.expires_at <= now]
        for key in expired:
            del self._counters[key]

    async def incr_with_expiry(self, key: str, ttl_seconds: int) -> int:
        if not key:
            raise ValueError("key must be a non-empty string")
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be >= 1")

        now = self._clock()
        with self._lock:
            counter = self._live_counter(key, now)
            if counter is None:
                self._purge_expired_locked(now)
                counter = _Counter(value=0, expires_at=now + ttl_seconds)
                self._counters[key] = counter
            counter.value += 1
            return counter.value

    async def get(self, key: str) -> int:
        now = self._clock()
        with self._lock:
            counter = self._live_counter(key, now)
            return counter.value if counter else 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._counters)
