"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_weather_api_settings() -> "WeatherApiSettings":
    """Build upstream provider settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return WeatherApiSettings()  # type: ignore[call-arg]


class WeatherApiSettings(BaseSettings):
    """Upstream weather provider (OpenWeatherMap) configuration."""

    api_key: str = Field(
        ...,
        description="OpenWeatherMap API key (sent as the appid query parameter)",
    )
    base_url: str = Field(
        "https://api.openweathermap.org/data/2.5",
        description="Base URL of the OpenWeatherMap REST API",
    )
    timeout_seconds: float = Field(
        5.0,
        description="Deadline for a single upstream fetch in seconds",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="WEATHER_API_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Admission control quotas protecting the upstream provider."""

    requests_per_hour: int = Field(
        60,
        description="Maximum upstream calls admitted per hourly window",
        ge=1,
    )
    requests_per_day: int = Field(
        1000,
        description="Maximum upstream calls admitted per daily window",
        ge=1,
    )
    counter_key: str = Field(
        "weather_api_requests",
        description="Prefix of the shared counter keys (one key per window bucket)",
        min_length=1,
    )
    fail_open: bool = Field(
        False,
        description="Allow upstream calls when the counter store is unreachable",
    )
    include_headers: bool = Field(
        True,
        description="Include Retry-After header when throttling",
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class CacheSettings(BaseSettings):
    """Response cache configuration."""

    ttl_seconds: int = Field(
        600,
        description="Time-to-live applied to every cached upstream response",
        ge=1,
    )
    max_entries: int | None = Field(
        1024,
        description="Maximum entries kept by the in-memory backend (None for unlimited)",
    )
    backend: str = Field(
        "memory",
        description="Cache backend: memory or redis",
    )
    key_prefix: str = Field(
        "weather_gateway:cache:",
        description="Key prefix used by the redis backend",
    )

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        case_sensitive=False,
    )


class RedisSettings(BaseSettings):
    """Shared Redis instance used for quota counters (and optionally the cache)."""

    enabled: bool = Field(
        False,
        description="Use Redis for quota counters; otherwise an in-process store is used",
    )
    url: str = Field(
        "redis://localhost:6379/0",
        description="Redis connection URL",
    )
    socket_timeout_seconds: float = Field(
        2.0,
        description="Socket timeout for Redis commands",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log output: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(10_485_760, description="Rotate log file after this many bytes (0 disables)")
    backup_count: int = Field(5, description="Rotated log files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header carrying the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if required settings are missing.

    Environments:
    - development: Local development
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    weather_api: WeatherApiSettings = Field(default_factory=_build_weather_api_settings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
