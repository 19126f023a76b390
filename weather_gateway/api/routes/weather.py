import logging
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Path, Query

from weather_gateway.api.deps import get_weather_service
from weather_gateway.core.errors import ValidationAppError
from weather_gateway.schemas.weather import LocationForecastResponse, WeatherSummaryResponse
from weather_gateway.services.weather_service import WeatherService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/weather", tags=["Weather"])

Unit = Literal["celsius", "fahrenheit"]


def parse_location_ids(locations: str) -> list[str]:
    """Split a comma-separated list of numeric location ids.

    Raises:
        ValidationAppError: If the list is empty or contains a non-numeric id.

    Examples:
        >>> parse_location_ids("2988507, 2643743")
        ['2988507', '2643743']
    """
    ids = [part.strip() for part in locations.split(",") if part.strip()]
    if not ids:
        raise ValidationAppError(
            code="invalid_locations",
            message="Locations parameter cannot be blank",
        )
    invalid = [part for part in ids if not part.isdigit()]
    if invalid:
        raise ValidationAppError(
            code="invalid_locations",
            message="Locations must be comma-separated numeric IDs",
            details={"context": {"invalid": invalid[:10]}},
        )
    return ids


@router.get("/summary", response_model=WeatherSummaryResponse)
async def get_weather_summary(
    service: Annotated[WeatherService, Depends(get_weather_service)],
    temperature: Annotated[int, Query(ge=-100, le=100, description="Minimum temperature threshold")],
    locations: Annotated[str, Query(description="Comma-separated list of location IDs", examples=["2988507,2643743"])],
    unit: Annotated[Unit, Query(description="Temperature unit")] = "celsius",
) -> WeatherSummaryResponse:
    """Favourite locations whose temperature tomorrow is above a threshold.

    Raises:
        ValidationAppError: 400 for malformed location lists.
        RateLimitExceeded: 429 when the upstream quota is exhausted.
    """
    location_ids = parse_location_ids(locations)
    return await service.get_weather_summary(location_ids, temperature, unit)


@router.get("/locations/{location_id}", response_model=LocationForecastResponse)
async def get_location_forecast(
    service: Annotated[WeatherService, Depends(get_weather_service)],
    location_id: Annotated[str, Path(pattern=r"^\d+$", description="Location ID", examples=["2618425"])],
    unit: Annotated[Unit, Query(description="Temperature unit")] = "celsius",
) -> LocationForecastResponse:
    """Five-day forecast for one location.

    Raises:
        LocationNotFound: 404 when the provider does not know the location.
        RateLimitExceeded: 429 when the upstream quota is exhausted.
    """
    return await service.get_location_forecast(location_id, unit)
