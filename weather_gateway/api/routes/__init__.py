from __future__ import annotations

from weather_gateway.api.routes.health import router as health_router
from weather_gateway.api.routes.quota import router as quota_router
from weather_gateway.api.routes.weather import router as weather_router

__all__ = ["health_router", "quota_router", "weather_router"]
