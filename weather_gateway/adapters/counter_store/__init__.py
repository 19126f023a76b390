"""Shared counter store adapters.

Admission control only needs an atomic increment-with-expiry primitive, so the
store is hidden behind a small abstraction. Single-instance deployments and
tests use the in-memory store; multi-instance deployments share Redis.
"""

from weather_gateway.adapters.counter_store.base import AbstractCounterStore
from weather_gateway.adapters.counter_store.in_memory import InMemoryCounterStore
from weather_gateway.adapters.counter_store.redis_store import RedisCounterStore

__all__ = [
    "AbstractCounterStore",
    "InMemoryCounterStore",
    "RedisCounterStore",
]
