"""Weather service turning cached upstream forecasts into API responses.

Every upstream access goes through ``ResponseCache.get_or_fetch`` keyed by
location, so repeated requests for a location within the cache TTL cost no
quota. The raw metric payload is cached; unit conversion and daily
aggregation are applied per request.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable

from pydantic import ValidationError

from weather_gateway.adapters.weather.base import AbstractWeatherClient
from weather_gateway.core.errors import (
    AppError,
    QuotaStoreUnavailable,
    RateLimitExceeded,
    UpstreamError,
    ValidationAppError,
)
from weather_gateway.schemas.weather import (
    DayForecast,
    LocationForecastResponse,
    LocationSummary,
    UpstreamForecast,
    UpstreamForecastItem,
    WeatherSummaryResponse,
)
from weather_gateway.services.response_cache import ResponseCache

logger = logging.getLogger(__name__)

FORECAST_DAYS = 5
SUPPORTED_UNITS = ("celsius", "fahrenheit")

# Errors that mean "stop calling upstream", not "this location is broken"
_ABORTING_ERRORS = (RateLimitExceeded, QuotaStoreUnavailable)


def forecast_cache_key(location_id: str) -> str:
    return f"forecast:{location_id}"


def convert_temperature(celsius: float, unit: str) -> float:
    """Convert a Celsius value to ``unit``, rounded to one decimal.

    Raises:
        ValidationAppError: If the unit is not supported.

    Examples:
        >>> convert_temperature(25.0, "fahrenheit")
        77.0
    """
    if _require_unit(unit) == "fahrenheit":
        celsius = celsius * 9 / 5 + 32
    return round(celsius, 1)


def _require_unit(unit: str) -> str:
    unit = unit.lower()
    if unit not in SUPPORTED_UNITS:
        raise ValidationAppError(
            code="unsupported_unit",
            message=f"Unsupported temperature unit: {unit}. Use 'celsius' or 'fahrenheit'",
        )
    return unit


def _minutes_from_noon(item: UpstreamForecastItem) -> int:
    # dt_txt is "YYYY-MM-DD HH:MM:SS" in UTC
    hour, minute = int(item.dt_txt[11:13]), int(item.dt_txt[14:16])
    return abs(hour * 60 + minute - 12 * 60)


def closest_to_noon(items: Iterable[UpstreamForecastItem]) -> UpstreamForecastItem | None:
    """Pick the forecast entry closest to 12:00, the most representative of the day."""
    return min(items, key=_minutes_from_noon, default=None)


def parse_forecast(payload: dict[str, Any], location_id: str) -> UpstreamForecast:
    """Validate a raw provider payload.

    Raises:
        UpstreamError: If the payload does not have the expected shape.
    """
    try:
        return UpstreamForecast.model_validate(payload)
    except ValidationError as exc:
        raise UpstreamError(
            code="upstream_invalid_payload",
            message="Weather provider returned an unexpected payload",
            details={"location_id": location_id, "context": {"errors": exc.error_count()}},
        ) from exc


class WeatherService:
    """Forecast and summary use cases on top of the response cache.

    Attributes:
        client: Upstream weather client used as the cache loader.
        cache: Response cache gating upstream calls.
    """

    def __init__(
        self,
        client: AbstractWeatherClient,
        cache: ResponseCache,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.client = client
        self.cache = cache
        self._clock = clock

    async def _load_forecast(self, location_id: str) -> UpstreamForecast:
        async def loader() -> dict[str, Any]:
            payload = await self.client.get_forecast(location_id)
            # Reject malformed payloads before they reach the cache.
            parse_forecast(payload, location_id)
            return payload

        payload = await self.cache.get_or_fetch(forecast_cache_key(location_id), loader)
        return parse_forecast(payload, location_id)

    async def get_location_forecast(self, location_id: str, unit: str = "celsius") -> LocationForecastResponse:
        """Return up to five daily forecasts for a location.

        Raises:
            ValidationAppError: If the unit is not supported.
            RateLimitExceeded: If the upstream quota is exhausted.
            UpstreamError: If the provider call fails.
        """
        unit = _require_unit(unit)

        logger.info("weather.forecast_requested", extra={"location_id": location_id, "unit": unit})
        forecast = await self._load_forecast(location_id)

        by_date: dict[str, list[UpstreamForecastItem]] = defaultdict(list)
        for item in forecast.items:
            by_date[item.dt_txt[:10]].append(item)

        days: list[DayForecast] = []
        for date in sorted(by_date)[:FORECAST_DAYS]:
            midday = closest_to_noon(by_date[date])
            if midday is None:
                continue
            days.append(
                DayForecast(
                    date=date,
                    temperature=convert_temperature(midday.main.temp, unit),
                    description=midday.weather[0].description if midday.weather else "Unknown",
                    humidity=midday.main.humidity,
                    wind_speed=midday.wind.speed,
                )
            )

        return LocationForecastResponse(
            location_id=location_id,
            location_name=forecast.city.name,
            unit=unit,
            forecast=days,
        )

    async def _summarize_location(
        self,
        location_id: str,
        threshold: int,
        unit: str,
        tomorrow: str,
    ) -> LocationSummary | None:
        forecast = await self._load_forecast(location_id)
        midday = closest_to_noon(i for i in forecast.items if i.dt_txt.startswith(tomorrow))
        if midday is None:
            logger.warning(
                "weather.no_tomorrow_forecast",
                extra={"location_id": location_id, "date": tomorrow},
            )
            return None

        temperature = convert_temperature(midday.main.temp, unit)
        return LocationSummary(
            location_id=location_id,
            location_name=forecast.city.name,
            tomorrow_temperature=temperature,
            will_exceed_threshold=temperature > threshold,
        )

    async def get_weather_summary(
        self,
        location_ids: list[str],
        threshold: int,
        unit: str = "celsius",
    ) -> WeatherSummaryResponse:
        """Return the locations whose temperature tomorrow is above ``threshold``.

        Locations are fetched concurrently. A location whose fetch fails is
        logged and left out; quota exhaustion or an unreachable quota store
        aborts the whole request instead.

        Raises:
            ValidationAppError: If the unit is not supported.
            RateLimitExceeded: If the upstream quota is exhausted.
            QuotaStoreUnavailable: If the quota store is unreachable.
        """
        unit = _require_unit(unit)

        unique_ids = list(dict.fromkeys(location_ids))
        tomorrow = (datetime.fromtimestamp(self._clock(), tz=timezone.utc) + timedelta(days=1)).strftime("%Y-%m-%d")
        logger.info(
            "weather.summary_requested",
            extra={"locations": len(unique_ids), "threshold": threshold, "unit": unit},
        )

        results = await asyncio.gather(
            *(self._summarize_location(lid, threshold, unit, tomorrow) for lid in unique_ids),
            return_exceptions=True,
        )

        summaries: list[LocationSummary] = []
        for location_id, result in zip(unique_ids, results):
            if isinstance(result, _ABORTING_ERRORS):
                raise result
            if isinstance(result, AppError):
                logger.warning(
                    "weather.location_skipped",
                    extra={"location_id": location_id, "error_code": result.code},
                )
                continue
            if isinstance(result, BaseException):
                raise result
            if result is not None and result.will_exceed_threshold:
                summaries.append(result)

        return WeatherSummaryResponse(
            locations=summaries,
            unit=unit,
            temperature_threshold=threshold,
        )
