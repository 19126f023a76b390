"""Pydantic schemas for weather responses."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

TemperatureUnit = Literal["celsius", "fahrenheit"]


class DayForecast(BaseModel):
    """Weather forecast for a single day (entry closest to noon)."""

    date: str = Field(..., description="Date in YYYY-MM-DD format.", examples=["2025-10-03"])
    temperature: float = Field(..., description="Temperature in the requested unit, one decimal.")
    description: str = Field(..., description="Weather description (e.g. 'clear sky').")
    humidity: int = Field(..., ge=0, le=100, description="Humidity percentage.")
    wind_speed: float = Field(..., description="Wind speed in m/s.")


class LocationForecastResponse(BaseModel):
    """Up to five daily forecasts for one location."""

    location_id: str = Field(..., description="Provider location id.", examples=["2618425"])
    location_name: str = Field(..., description="Human-readable location name.", examples=["London"])
    unit: TemperatureUnit = Field(..., description="Temperature unit used.")
    forecast: list[DayForecast] = Field(
        default_factory=list,
        description="Daily forecasts, sorted by date, at most five entries.",
    )


class LocationSummary(BaseModel):
    """Tomorrow's temperature for one location."""

    location_id: str
    location_name: str
    tomorrow_temperature: float = Field(..., description="Tomorrow's temperature in the requested unit.")
    will_exceed_threshold: bool


class WeatherSummaryResponse(BaseModel):
    """Favourite locations whose temperature tomorrow exceeds a threshold."""

    locations: list[LocationSummary] = Field(
        default_factory=list,
        description="Only locations strictly above the threshold.",
    )
    unit: TemperatureUnit
    temperature_threshold: int


class WindowUsageResponse(BaseModel):
    name: str = Field(..., examples=["hourly"])
    limit: int
    used: int = Field(..., description="Calls counted in the current window, denied calls included.")
    remaining: int
    reset_at: int = Field(..., description="UNIX epoch seconds when the window rolls over.")


class QuotaUsageResponse(BaseModel):
    """Upstream quota consumption across all admission windows."""

    windows: list[WindowUsageResponse]


# --- Upstream (OpenWeatherMap /forecast) payload -----------------------------
# Only the fields the gateway reads are declared; extra fields are ignored.


class UpstreamMain(BaseModel):
    temp: float
    humidity: int = 0


class UpstreamCondition(BaseModel):
    description: str = "Unknown"


class UpstreamWind(BaseModel):
    speed: float = 0.0


class UpstreamForecastItem(BaseModel):
    dt: int
    dt_txt: str
    main: UpstreamMain
    weather: list[UpstreamCondition] = Field(default_factory=list)
    wind: UpstreamWind = Field(default_factory=UpstreamWind)


class UpstreamCity(BaseModel):
    id: int | None = None
    name: str = ""


class UpstreamForecast(BaseModel):
    items: list[UpstreamForecastItem] = Field(default_factory=list, alias="list")
    city: UpstreamCity = Field(default_factory=UpstreamCity)
