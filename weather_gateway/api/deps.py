"""Service construction and FastAPI dependencies.

The admission controller, response cache and weather service are built once
per process from settings and stored on ``app.state``. Route handlers receive
them through the dependency functions below.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Request

from weather_gateway.adapters.cache.base import AbstractCacheBackend
from weather_gateway.adapters.cache.in_memory import InMemoryCacheBackend
from weather_gateway.adapters.cache.redis_backend import RedisCacheBackend
from weather_gateway.adapters.counter_store.base import AbstractCounterStore
from weather_gateway.adapters.counter_store.in_memory import InMemoryCounterStore
from weather_gateway.adapters.counter_store.redis_store import RedisCounterStore
from weather_gateway.adapters.weather.base import AbstractWeatherClient
from weather_gateway.adapters.weather.factory import create_weather_client
from weather_gateway.core.config import Settings
from weather_gateway.core.errors import ValidationAppError
from weather_gateway.services.admission import AdmissionController
from weather_gateway.services.quota import QuotaWindow
from weather_gateway.services.response_cache import ResponseCache
from weather_gateway.services.weather_service import WeatherService

logger = logging.getLogger(__name__)


@dataclass
class GatewayServices:
    """Process-wide collaborators shared by all request handlers."""

    store: AbstractCounterStore
    admission: AdmissionController
    cache: ResponseCache
    client: AbstractWeatherClient
    weather: WeatherService

    async def aclose(self) -> None:
        await self.client.aclose()
        await self.cache.close()
        await self.store.close()


def build_counter_store(cfg: Settings) -> AbstractCounterStore:
    if cfg.redis.enabled:
        return RedisCounterStore.from_url(cfg.redis.url, socket_timeout=cfg.redis.socket_timeout_seconds)

    logger.warning(
        "counter_store.in_memory",
        extra={"hint": "Quota is per-process; enable REDIS_ENABLED for multi-instance deployments"},
    )
    return InMemoryCounterStore()


def build_cache_backend(cfg: Settings) -> AbstractCacheBackend:
    backend = cfg.cache.backend.lower()
    if backend == "memory":
        return InMemoryCacheBackend(max_entries=cfg.cache.max_entries)
    if backend == "redis":
        return RedisCacheBackend.from_url(
            cfg.redis.url,
            key_prefix=cfg.cache.key_prefix,
            socket_timeout=cfg.redis.socket_timeout_seconds,
        )
    raise ValidationAppError(
        code="cache_unknown_backend",
        message=f"Unknown cache backend: '{backend}'. Supported backends: memory, redis",
    )


def build_admission_controller(cfg: Settings, store: AbstractCounterStore) -> AdmissionController:
    windows = [
        QuotaWindow.hourly(cfg.rate_limit.requests_per_hour, cfg.rate_limit.counter_key),
        QuotaWindow.daily(cfg.rate_limit.requests_per_day, cfg.rate_limit.counter_key),
    ]
    return AdmissionController(store, windows)


def build_services(cfg: Settings, *, client: AbstractWeatherClient | None = None) -> GatewayServices:
    """Wire the gateway core from settings.

    Args:
        cfg: Application settings.
        client: Optional upstream client override (used by tests).
    """
    store = build_counter_store(cfg)
    admission = build_admission_controller(cfg, store)
    cache = ResponseCache(
        admission,
        ttl_seconds=cfg.cache.ttl_seconds,
        backend=build_cache_backend(cfg),
        fetch_timeout_seconds=cfg.weather_api.timeout_seconds,
        fail_open=cfg.rate_limit.fail_open,
    )
    client = client or create_weather_client(cfg.weather_api)
    return GatewayServices(
        store=store,
        admission=admission,
        cache=cache,
        client=client,
        weather=WeatherService(client, cache),
    )


def get_services(request: Request) -> GatewayServices:
    return request.app.state.services


def get_weather_service(request: Request) -> WeatherService:
    return get_services(request).weather


def get_admission_controller(request: Request) -> AdmissionController:
    return get_services(request).admission
