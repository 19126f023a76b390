"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment defaults are set before any import that might build settings.
"""

import os

# CRITICAL: Set these before any imports that might load settings
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("WEATHER_API_API_KEY", "test-owm-key-123")
os.environ.setdefault("WEATHER_API_BASE_URL", "https://owm.test/data/2.5")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("CACHE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from weather_gateway.adapters.counter_store.in_memory import InMemoryCounterStore  # noqa: E402
from weather_gateway.adapters.weather.base import AbstractWeatherClient  # noqa: E402
from weather_gateway.api.deps import build_services  # noqa: E402
from weather_gateway.core.app_factory import create_app  # noqa: E402
from weather_gateway.core.config import RateLimitSettings, Settings  # noqa: E402
from weather_gateway.core.errors import LocationNotFound  # noqa: E402
from weather_gateway.services.admission import AdmissionController  # noqa: E402
from weather_gateway.services.quota import QuotaWindow  # noqa: E402

# 2025-10-09T10:00:00Z: top of an hour, mid-day
START_TIME = 1_760_004_000.0


class FakeClock:
    """Deterministic clock used to test window and TTL expiry."""

    def __init__(self, start: float = START_TIME) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def counter_store(clock: FakeClock) -> InMemoryCounterStore:
    return InMemoryCounterStore(clock=clock)


@pytest.fixture
def make_controller(counter_store: InMemoryCounterStore, clock: FakeClock):
    """Build an hourly+daily controller over the shared in-memory store."""

    def _make(hourly: int = 5, daily: int = 20) -> AdmissionController:
        return AdmissionController(
            counter_store,
            [QuotaWindow.daily(daily, "owm"), QuotaWindow.hourly(hourly, "owm")],
            clock=clock,
        )

    return _make


def forecast_payload(
    temps_by_date: dict[str, float],
    *,
    city_id: int = 2618425,
    city_name: str = "Copenhagen",
) -> dict:
    """Build an OpenWeatherMap /forecast payload with 3-hourly entries.

    Each date gets entries from 00:00 to 21:00; the noon entry carries the
    given temperature and the others are 10 degrees colder.
    """
    items = []
    for date, noon_temp in temps_by_date.items():
        for hour in range(0, 24, 3):
            temp = noon_temp if hour == 12 else noon_temp - 10
            items.append(
                {
                    "dt": 0,
                    "dt_txt": f"{date} {hour:02d}:00:00",
                    "main": {"temp": temp, "humidity": 40 + hour},
                    "weather": [{"description": "clear sky" if hour == 12 else "clouds"}],
                    "wind": {"speed": 3.5},
                }
            )
    return {"cod": "200", "list": items, "city": {"id": city_id, "name": city_name}}


class FakeWeatherClient(AbstractWeatherClient):
    """In-process upstream double: payloads or errors keyed by location id."""

    def __init__(self, responses: dict | None = None) -> None:
        self.responses: dict = responses or {}
        self.calls: list[str] = []
        self.closed = False

    async def get_forecast(self, location_id: str) -> dict:
        self.calls.append(location_id)
        result = self.responses.get(location_id)
        if result is None:
            raise LocationNotFound(
                code="location_not_found",
                message=f"Location not found: {location_id}",
                details={"location_id": location_id, "upstream_status": 404},
            )
        if isinstance(result, Exception):
            raise result
        return result

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_client() -> FakeWeatherClient:
    return FakeWeatherClient()


@pytest.fixture
def make_test_client(fake_client: FakeWeatherClient):
    """Build a TestClient over the full app with the upstream faked out.

    Keyword arguments override RateLimitSettings fields.
    """
    clients: list[TestClient] = []

    def _make(**rate_limit) -> TestClient:
        cfg = Settings(rate_limit=RateLimitSettings(**rate_limit))
        client = TestClient(create_app(cfg, services=build_services(cfg, client=fake_client)))
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)
