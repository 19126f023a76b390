"""Redis cache backend with native TTL eviction.

Redis key layout:
    {key_prefix}{cache_key}  → JSON {"value", "stored_at", "ttl_seconds"}, EX ttl

Values must be JSON-serializable (raw upstream payloads are). A backend error
is logged and reported as a miss: the caller then goes through admission
control and refetches, it never receives stale data.
"""

from __future__ import annotations

import json
import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from weather_gateway.adapters.cache.base import AbstractCacheBackend, CacheEntry

logger = logging.getLogger(__name__)


class RedisCacheBackend(AbstractCacheBackend):
    """Entry store shared between instances through Redis."""

    def __init__(self, client: aioredis.Redis, *, key_prefix: str = "weather_gateway:cache:") -> None:
        self._client = client
        self._prefix = key_prefix
        self._errors = 0

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        key_prefix: str = "weather_gateway:cache:",
        socket_timeout: float = 2.0,
    ) -> "RedisCacheBackend":
        client = aioredis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client, key_prefix=key_prefix)

    def _redis_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _log_error(self, operation: str, key: str, exc: Exception) -> None:
        self._errors += 1
        logger.warning(
            "cache.backend_error",
            extra={
                "operation": operation,
                "cache_key": key,
                "error_type": type(exc).__name__,
            },
        )

    async def get(self, key: str) -> CacheEntry | None:
        try:
            raw = await self._client.get(self._redis_key(key))
        except RedisError as exc:
            self._log_error("get", key, exc)
            return None

        if raw is None:
            return None

        try:
            data = json.loads(raw)
            return CacheEntry(
                key=key,
                value=data["value"],
                stored_at=float(data["stored_at"]),
                ttl_seconds=int(data["ttl_seconds"]),
            )
        except (ValueError, KeyError, TypeError) as exc:
            self._log_error("decode", key, exc)
            return None

    async def set(self, entry: CacheEntry) -> None:
        payload = json.dumps(
            {
                "value": entry.value,
                "stored_at": entry.stored_at,
                "ttl_seconds": entry.ttl_seconds,
            }
        )
        try:
            await self._client.set(self._redis_key(entry.key), payload, ex=entry.ttl_seconds)
        except RedisError as exc:
            self._log_error("set", entry.key, exc)

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(self._redis_key(key))
        except RedisError as exc:
            self._log_error("delete", key, exc)

    def stats(self) -> dict[str, int | float | None]:
        return {"backend_errors": self._errors}

    async def close(self) -> None:
        await self._client.aclose()
