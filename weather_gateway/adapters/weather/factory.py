"""Factory for the upstream weather client."""

from weather_gateway.adapters.weather.base import AbstractWeatherClient
from weather_gateway.adapters.weather.openweathermap import OpenWeatherMapClient
from weather_gateway.core.config import WeatherApiSettings
from weather_gateway.core.errors import ValidationAppError


def create_weather_client(weather_settings: WeatherApiSettings) -> AbstractWeatherClient:
    """Instantiate the OpenWeatherMap client from settings.

    Raises:
        ValidationAppError: If the API key is blank.
    """
    if not weather_settings.api_key.strip():
        raise ValidationAppError(
            code="weather_missing_api_key",
            message="OpenWeatherMap requires WEATHER_API_API_KEY",
        )

    return OpenWeatherMapClient(
        api_key=weather_settings.api_key,
        base_url=weather_settings.base_url,
        timeout_seconds=weather_settings.timeout_seconds,
    )
