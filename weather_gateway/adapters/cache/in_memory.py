"""In-memory TTL cache backend with LRU eviction.

Per-process only: an empty cache after a restart is expected, entries are
recomputable from the upstream provider.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from typing import Callable

from weather_gateway.adapters.cache.base import AbstractCacheBackend, CacheEntry

logger = logging.getLogger(__name__)


class InMemoryCacheBackend(AbstractCacheBackend):
    """Thread-safe, in-memory entry store with lazy expiry.

    Attributes:
        max_entries: Maximum number of cached items (None for unlimited).
    """

    def __init__(
        self,
        max_entries: int | None = 1024,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be >= 1 or None")
        self._max_entries = max_entries
        self._clock = clock
        self._store: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.RLock()
        self._evictions = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"InMemoryCacheBackend(max_entries={self._max_entries}, "
            f"size={len(self._store)}, evictions={self._evictions})"
        )

    async def get(self, key: str) -> CacheEntry | None:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None

            if not entry.is_fresh(self._clock()):
                self._evict_single(key)
                logger.debug("cache.expired", extra={"cache_key": key})
                return None

            self._store.move_to_end(key)  # mark as recently used
            return entry

    async def set(self, entry: CacheEntry) -> None:
        with self._lock:
            self._evict_expired_locked()
            self._store[entry.key] = entry
            self._store.move_to_end(entry.key)
            self._evict_if_over_capacity_locked()

    async def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def stats(self) -> dict[str, int | float | None]:
        with self._lock:
            return {
                "max_entries": self._max_entries,
                "entries": len(self._store),
                "evictions": self._evictions,
            }

    def _evict_single(self, key: str) -> None:
        if self._store.pop(key, None) is not None:
            self._evictions += 1

    def _evict_expired_locked(self) -> None:
        now = self._clock()
        expired_keys = [k for k, entry in self._store.items() if not entry.is_fresh(now)]
        for key in expired_keys:
            self._evict_single(key)

    def _evict_if_over_capacity_locked(self) -> None:
        if self._max_entries is None:
            return

        while len(self._store) > self._max_entries:
            # popitem(last=False) removes the least recently used entry
            self._store.popitem(last=False)
            self._evictions += 1
