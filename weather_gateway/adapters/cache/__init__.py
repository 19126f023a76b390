"""Cache backends for upstream responses."""

from weather_gateway.adapters.cache.base import AbstractCacheBackend, CacheEntry
from weather_gateway.adapters.cache.in_memory import InMemoryCacheBackend
from weather_gateway.adapters.cache.redis_backend import RedisCacheBackend

__all__ = [
    "AbstractCacheBackend",
    "CacheEntry",
    "InMemoryCacheBackend",
    "RedisCacheBackend",
]
