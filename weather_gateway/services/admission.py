"""Admission control across several quota windows.

Every upstream call must be admitted by all configured windows (AND semantics).
Counting happens in a shared store so every gateway instance draws from the
same budget.

Accounting policy: increment-then-check, no rollback.
- Windows are evaluated shortest first (hourly before daily) and evaluation
  stops at the first window that denies.
- The store has no multi-key transaction, so increments applied to earlier
  windows stay in place when a later window denies. A request denied by the
  daily window therefore still consumes one hourly unit. Each increment is a
  single atomic store call, so concurrent callers can never be over-admitted.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Sequence

from weather_gateway.adapters.counter_store.base import AbstractCounterStore
from weather_gateway.services.quota import QuotaWindow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdmissionDecision:
    """Result of one ``try_admit`` call. Truthy iff the call was admitted.

    Attributes:
        allowed: Whether the upstream call may proceed.
        denied_by: Name of the window that denied the call, if any.
        limit: Limit of the denying window, if any.
        retry_after_seconds: Seconds until the denying window rolls over.
    """

    allowed: bool
    denied_by: str | None = None
    limit: int | None = None
    retry_after_seconds: int | None = None

    def __bool__(self) -> bool:
        return self.allowed


@dataclass(frozen=True)
class WindowUsage:
    """Read-only snapshot of one window's counter."""

    name: str
    limit: int
    used: int
    remaining: int
    reset_at: int


class AdmissionController:
    """Decide whether one more upstream call may proceed.

    The controller holds no counters itself; it is safe to share one instance
    between all request handlers of a process.
    """

    def __init__(
        self,
        store: AbstractCounterStore,
        windows: Sequence[QuotaWindow],
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the controller.

        Args:
            store: Shared counter store.
            windows: Quota windows; evaluated shortest window first.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If no windows are given or window names collide.
        """
        if not windows:
            raise ValueError("at least one quota window is required")
        names = [w.name for w in windows]
        if len(set(names)) != len(names):
            raise ValueError("quota window names must be unique")

        self._store = store
        # sorted() is stable, so equal-length windows keep their given order
        self._windows = tuple(sorted(windows, key=lambda w: w.window_seconds))
        self._clock = clock

    @property
    def windows(self) -> tuple[QuotaWindow, ...]:
        return self._windows

    async def try_admit(self) -> AdmissionDecision:
        """Consume one unit from every window, stopping at the first denial.

        Returns:
            AdmissionDecision describing the outcome.

        Raises:
            QuotaStoreUnavailable: If the counter store cannot be reached.
        """
        now = self._clock()

        for window in self._windows:
            bucket_key = window.current_bucket_key(now)
            count = await self._store.incr_with_expiry(bucket_key, window.window_seconds)

            if count > window.limit:
                retry_after = window.seconds_until_reset(now)
                logger.warning(
                    "admission.denied",
                    extra={
                        "window": window.name,
                        "limit": window.limit,
                        "count": count,
                        "retry_after_s": retry_after,
                    },
                )
                return AdmissionDecision(
                    allowed=False,
                    denied_by=window.name,
                    limit=window.limit,
                    retry_after_seconds=retry_after,
                )

            logger.debug(
                "admission.window_passed",
                extra={"window": window.name, "limit": window.limit, "count": count},
            )

        logger.info("admission.allowed", extra={"windows": [w.name for w in self._windows]})
        return AdmissionDecision(allowed=True)

    async def usage(self) -> list[WindowUsage]:
        """Report the current count of every window without consuming quota.

        Counts may exceed the limit because denied calls are counted too.

        Raises:
            QuotaStoreUnavailable: If the counter store cannot be reached.
        """
        now = self._clock()
        report: list[WindowUsage] = []
        for window in self._windows:
            used = await self._store.get(window.current_bucket_key(now))
            _, reset_at = window.window_bounds(now)
            report.append(
                WindowUsage(
                    name=window.name,
                    limit=window.limit,
                    used=used,
                    remaining=max(0, window.limit - used),
                    reset_at=reset_at,
                )
            )
        return report
