"""Quota windows: fixed counting rules keyed by wall-clock buckets.

A window never holds mutable state. Its counter lives in the shared store under
a key derived purely from the current time, so every instance (and every
restart) agrees on which bucket "now" belongs to and counters reset on their
own when the bucket rolls over.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone

HOUR_SECONDS = 3600
DAY_SECONDS = 86400


@dataclass(frozen=True)
class QuotaWindow:
    """One counting rule (e.g. 60 calls per hour).

    Attributes:
        name: Label used in logs and usage reports (e.g. "hourly").
        limit: Maximum admissions per window.
        window_seconds: Window length; buckets are aligned to the UNIX epoch.
        counter_key: Prefix of the shared counter keys for this window.
    """

    name: str
    limit: int
    window_seconds: int
    counter_key: str

    def __post_init__(self) -> None:
        if self.limit < 1:
            raise ValueError("limit must be >= 1")
        if self.window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")
        if not self.counter_key:
            raise ValueError("counter_key must be a non-empty string")

    @classmethod
    def hourly(cls, limit: int, counter_key: str) -> "QuotaWindow":
        return cls(name="hourly", limit=limit, window_seconds=HOUR_SECONDS, counter_key=counter_key)

    @classmethod
    def daily(cls, limit: int, counter_key: str) -> "QuotaWindow":
        return cls(name="daily", limit=limit, window_seconds=DAY_SECONDS, counter_key=counter_key)

    def window_bounds(self, now: float) -> tuple[int, int]:
        """Return ``(window_start, reset_at)`` epoch seconds for ``now``."""
        window_start = int(now // self.window_seconds) * self.window_seconds
        return window_start, window_start + self.window_seconds

    def current_bucket_key(self, now: float) -> str:
        """Build the store key for the bucket containing ``now``.

        Examples:
            >>> QuotaWindow.daily(20, "owm").current_bucket_key(1_760_000_000)
            'owm:daily:2025-10-09T00:00:00Z'
        """
        window_start, _ = self.window_bounds(now)
        label = datetime.fromtimestamp(window_start, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        return f"{self.counter_key}:{self.name}:{label}"

    def seconds_until_reset(self, now: float) -> int:
        _, reset_at = self.window_bounds(now)
        return max(0, int(math.ceil(reset_at - now)))
