"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers and the
gateway core) to keep it testable and free of import-time side effects.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from weather_gateway.api.deps import GatewayServices, build_services
from weather_gateway.api.routes import health_router, quota_router, weather_router
from weather_gateway.core.config import Settings, settings
from weather_gateway.core.exception_handlers import setup_exception_handlers
from weather_gateway.core.logging import configure_logging
from weather_gateway.core.middleware import request_id_middleware


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Release upstream and Redis connections on shutdown."""
    yield
    services: GatewayServices = app.state.services
    await services.aclose()


def create_app(
    app_settings: Settings | None = None,
    *,
    services: GatewayServices | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Settings to build from; defaults to the global settings.
        services: Prebuilt gateway services (tests inject fakes here).

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    cfg = app_settings or settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    app = FastAPI(
        title="Weather Gateway",
        description=(
            "Rate-limited integration layer between client apps and the "
            "OpenWeatherMap forecast API. Upstream calls are admitted against "
            "shared hourly and daily quotas and responses are cached per location."
        ),
        version="1.0.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=lifespan,
    )

    # Core: constructed once per process, shared by all handlers
    app.state.services = services or build_services(cfg)

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(weather_router, prefix="/v1")
    app.include_router(quota_router, prefix="/v1")
    app.include_router(health_router)

    return app
