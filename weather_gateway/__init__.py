"""Rate-limited, cached gateway in front of the OpenWeatherMap forecast API."""

__version__ = "1.0.0"
