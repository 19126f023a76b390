"""Upstream weather provider adapters."""

from weather_gateway.adapters.weather.base import AbstractWeatherClient
from weather_gateway.adapters.weather.factory import create_weather_client
from weather_gateway.adapters.weather.openweathermap import OpenWeatherMapClient

__all__ = [
    "AbstractWeatherClient",
    "OpenWeatherMapClient",
    "create_weather_client",
]
