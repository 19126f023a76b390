"""Counter store interface.

The admission controller depends on this abstraction (not a concrete store) so
the backing service can be swapped without touching quota logic. Atomicity is
the store's job: one ``incr_with_expiry`` call must be a single atomic step,
never a read followed by a write.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractCounterStore(ABC):
    """Interface for shared counting stores."""

    @abstractmethod
    async def incr_with_expiry(self, key: str, ttl_seconds: int) -> int:
        """Atomically increment ``key`` and return the new count.

        The first increment of a key sets its expiry to ``ttl_seconds``; later
        increments leave the expiry untouched.

        Args:
            key: Counter key (already bucketed by time window).
            ttl_seconds: Expiry applied when the key is created.

        Returns:
            The count after the increment.

        Raises:
            QuotaStoreUnavailable: If the store cannot be reached.
        """
        raise NotImplementedError

    @abstractmethod
    async def get(self, key: str) -> int:
        """Return the current count for ``key`` (0 if absent or expired).

        Raises:
            QuotaStoreUnavailable: If the store cannot be reached.
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Release resources held by the store."""
        return None
