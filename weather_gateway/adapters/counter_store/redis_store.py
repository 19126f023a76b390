"""Redis-backed counter store shared by every gateway instance.

Redis key layout:
    {counter_key}:{window_name}:{window_start}  → integer count, expires with the window

The increment and the first-write expiry run inside one Lua script, so a single
round trip is atomic even with many concurrent instances.
"""

from __future__ import annotations

import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from weather_gateway.adapters.counter_store.base import AbstractCounterStore
from weather_gateway.core.errors import QuotaStoreUnavailable

logger = logging.getLogger(__name__)

INCR_WITH_EXPIRY_LUA = """
local count = redis.call('INCR', KEYS[1])
if count == 1 then
    redis.call('EXPIRE', KEYS[1], ARGV[1])
end
return count
"""


class RedisCounterStore(AbstractCounterStore):
    """Counter store using Redis ``INCR`` with expire-on-first-write."""

    def __init__(self, client: aioredis.Redis) -> None:
        self._client = client
        self._incr_script = client.register_script(INCR_WITH_EXPIRY_LUA)

    @classmethod
    def from_url(cls, url: str, *, socket_timeout: float = 2.0) -> "RedisCounterStore":
        """Create a store with its own async Redis client.

        Args:
            url: Redis connection URL.
            socket_timeout: Seconds before a command is considered failed.
        """
        client = aioredis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client)

    def _unavailable(self, operation: str, key: str, exc: Exception) -> QuotaStoreUnavailable:
        logger.error(
            "counter_store.unavailable",
            extra={
                "operation": operation,
                "counter_key": key,
                "error_type": type(exc).__name__,
            },
        )
        return QuotaStoreUnavailable(
            code="quota_store_unavailable",
            message="Quota counter store is unavailable",
            details={"hint": "Check the Redis connection used for rate limiting"},
        )

    async def incr_with_expiry(self, key: str, ttl_seconds: int) -> int:
        try:
            count = await self._incr_script(keys=[key], args=[ttl_seconds])
        except RedisError as exc:
            raise self._unavailable("incr_with_expiry", key, exc) from exc
        return int(count)

    async def get(self, key: str) -> int:
        try:
            value = await self._client.get(key)
        except RedisError as exc:
            raise self._unavailable("get", key, exc) from exc
        return int(value) if value is not None else 0

    async def close(self) -> None:
        await self._client.aclose()
