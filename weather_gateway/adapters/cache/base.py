"""Cache backend interface and entry model.

The response cache owns freshness and single-flight logic; backends only store
whole entries. Entries are replaced, never partially updated.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class CacheEntry:
    """One cached upstream response.

    Attributes:
        key: Resource key (e.g. ``forecast:2618425``).
        value: Opaque payload returned by the loader.
        stored_at: UNIX time the entry was written.
        ttl_seconds: Lifetime of the entry.
    """

    key: str
    value: Any
    stored_at: float
    ttl_seconds: int

    @property
    def expires_at(self) -> float:
        return self.stored_at + self.ttl_seconds

    def is_fresh(self, now: float) -> bool:
        return now < self.expires_at


class AbstractCacheBackend(ABC):
    """Interface for response cache storage."""

    @abstractmethod
    async def get(self, key: str) -> CacheEntry | None:
        """Return the stored entry for ``key`` or None if absent/expired."""
        raise NotImplementedError

    @abstractmethod
    async def set(self, entry: CacheEntry) -> None:
        """Store ``entry``, overwriting any previous entry for its key."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> None:
        raise NotImplementedError

    def stats(self) -> dict[str, int | float | None]:
        """Return lightweight backend metrics without exposing values."""
        return {}

    async def close(self) -> None:
        return None
