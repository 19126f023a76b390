"""Response cache gating upstream fetches behind admission control.

``get_or_fetch`` is the only way the gateway reaches the upstream provider:

1. A fresh cached entry is returned without touching the quota.
2. On a miss the admission controller must admit the call, otherwise
   ``RateLimitExceeded`` is raised and nothing is fetched.
3. The loader runs under a deadline. Any failure propagates and leaves the
   cache untouched, so the next call fetches again and consumes quota again.
4. A successful result replaces the entry for the key.

Concurrent misses for the same key are collapsed into one in-flight fetch
(single-flight). Every waiter observes that fetch's outcome. A waiter that is
cancelled stops waiting, but the fetch keeps running and still fills the cache.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable

from weather_gateway.adapters.cache.base import AbstractCacheBackend, CacheEntry
from weather_gateway.adapters.cache.in_memory import InMemoryCacheBackend
from weather_gateway.core.errors import QuotaStoreUnavailable, RateLimitExceeded, UpstreamTimeout
from weather_gateway.services.admission import AdmissionController

logger = logging.getLogger(__name__)

Loader = Callable[[], Awaitable[Any]]


class ResponseCache:
    """TTL cache with single-flight fetches and quota-gated misses.

    All calls must come from the same event loop: the in-flight map is only
    touched between awaits, which makes each check-and-insert atomic.

    Attributes:
        ttl_seconds: Lifetime applied to every entry of this cache.
    """

    def __init__(
        self,
        admission: AdmissionController,
        *,
        ttl_seconds: int,
        backend: AbstractCacheBackend | None = None,
        fetch_timeout_seconds: float | None = None,
        fail_open: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the cache.

        Args:
            admission: Controller consulted on every miss.
            ttl_seconds: Entry lifetime in seconds.
            backend: Entry storage; defaults to an in-memory backend.
            fetch_timeout_seconds: Deadline for one loader call (None disables it).
            fail_open: Fetch anyway when the quota store is unreachable.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If ttl_seconds or fetch_timeout_seconds are invalid.
        """
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be >= 1")
        if fetch_timeout_seconds is not None and fetch_timeout_seconds <= 0:
            raise ValueError("fetch_timeout_seconds must be > 0")

        self.ttl_seconds = ttl_seconds
        self._admission = admission
        self._backend = backend or InMemoryCacheBackend(clock=clock)
        self._fetch_timeout = fetch_timeout_seconds
        self._fail_open = fail_open
        self._clock = clock
        self._inflight: dict[str, asyncio.Task[Any]] = {}
        self._hits = 0
        self._misses = 0
        self._collapsed = 0
        self._fetches = 0
        self._failures = 0
        self._stores = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"ResponseCache(ttl_seconds={self.ttl_seconds}, hits={self._hits}, "
            f"misses={self._misses}, inflight={len(self._inflight)})"
        )

    async def get_or_fetch(self, key: str, loader: Loader) -> Any:
        """Return the cached value for ``key`` or fetch it through ``loader``.

        Args:
            key: Resource key; one key per upstream resource.
            loader: Zero-argument coroutine function performing the upstream call.

        Returns:
            The cached or freshly fetched value.

        Raises:
            RateLimitExceeded: If admission control denies the fetch.
            QuotaStoreUnavailable: If the quota store is down (fail-closed).
            UpstreamTimeout: If the loader exceeds the fetch deadline.
            Exception: Any error raised by the loader, unmodified.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        task = self._inflight.get(key)
        if task is None:
            stores_before = self._stores
            entry = await self._backend.get(key)
            if entry is None and self._stores != stores_before:
                # A fetch may have stored this key while the read was pending
                entry = await self._backend.get(key)
            if entry is not None and entry.is_fresh(self._clock()):
                self._hits += 1
                logger.debug("cache.hit", extra={"cache_key": key})
                return entry.value
            # Re-check: a fetch may have started while the backend read was pending
            task = self._inflight.get(key)

        if task is None:
            self._misses += 1
            logger.debug("cache.miss", extra={"cache_key": key})
            task = asyncio.create_task(self._fetch(key, loader), name=f"cache-fetch:{key}")
            self._inflight[key] = task
            task.add_done_callback(lambda done, key=key: self._on_fetch_done(key, done))
        else:
            self._collapsed += 1
            logger.debug("cache.collapsed", extra={"cache_key": key})

        # shield: a cancelled waiter must not cancel the shared fetch
        return await asyncio.shield(task)

    async def invalidate(self, key: str) -> None:
        """Drop the entry for ``key``; the next call fetches again."""
        await self._backend.delete(key)

    def stats(self) -> dict[str, int | float | None]:
        """Return lightweight cache metrics without exposing values."""
        return {
            "ttl_seconds": self.ttl_seconds,
            "hits": self._hits,
            "misses": self._misses,
            "collapsed": self._collapsed,
            "fetches": self._fetches,
            "failures": self._failures,
            "inflight": len(self._inflight),
            **self._backend.stats(),
        }

    async def close(self) -> None:
        """Cancel in-flight fetches, then release the backend."""
        tasks = list(self._inflight.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        await self._backend.close()

    def _on_fetch_done(self, key: str, task: asyncio.Task[Any]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Mark the outcome as retrieved even when every waiter was cancelled.
        if not task.cancelled():
            task.exception()

    async def _admit(self, key: str) -> None:
        try:
            decision = await self._admission.try_admit()
        except QuotaStoreUnavailable:
            if not self._fail_open:
                raise
            logger.warning("cache.admission_fail_open", extra={"cache_key": key})
            return

        if not decision:
            raise RateLimitExceeded(
                code="rate_limit_exceeded",
                message=f"Upstream {decision.denied_by} quota exhausted. Try again later.",
                details={
                    "window": decision.denied_by or "",
                    "limit": decision.limit or 0,
                    "retry_after": decision.retry_after_seconds or 0,
                },
            )

    async def _run_loader(self, key: str, loader: Loader) -> Any:
        if self._fetch_timeout is None:
            return await loader()

        deadline = asyncio.timeout(self._fetch_timeout)
        try:
            async with deadline:
                return await loader()
        except TimeoutError as exc:
            # A TimeoutError raised by the loader itself passes through unchanged
            if not deadline.expired():
                raise
            logger.warning(
                "cache.fetch_timeout",
                extra={"cache_key": key, "timeout_s": self._fetch_timeout},
            )
            raise UpstreamTimeout(
                code="upstream_timeout",
                message="Upstream provider did not respond in time",
                details={"timeout_seconds": self._fetch_timeout},
            ) from exc

    async def _fetch(self, key: str, loader: Loader) -> Any:
        await self._admit(key)

        self._fetches += 1
        start = time.perf_counter()
        try:
            value = await self._run_loader(key, loader)
        except Exception as exc:
            self._failures += 1
            logger.warning(
                "cache.fetch_failed",
                extra={"cache_key": key, "error_type": type(exc).__name__},
            )
            raise

        await self._backend.set(
            CacheEntry(key=key, value=value, stored_at=self._clock(), ttl_seconds=self.ttl_seconds)
        )
        self._stores += 1
        logger.info(
            "cache.stored",
            extra={
                "cache_key": key,
                "ttl_s": self.ttl_seconds,
                "fetch_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return value
