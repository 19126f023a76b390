"""OpenWeatherMap forecast client adapter.

API docs: https://openweathermap.org/forecast5
"""

import logging
from typing import Any

import httpx

from weather_gateway.adapters.weather.base import AbstractWeatherClient
from weather_gateway.core.errors import (
    LocationNotFound,
    RateLimitExceeded,
    UpstreamError,
    UpstreamTimeout,
)

logger = logging.getLogger(__name__)


class OpenWeatherMapClient(AbstractWeatherClient):
    """Client for the OpenWeatherMap ``/forecast`` endpoint.

    Forecasts are always requested in metric units; unit conversion happens
    in the service layer so one cached payload serves every unit.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openweathermap.org/data/2.5",
        timeout_seconds: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the async HTTP client.

        Args:
            api_key: OpenWeatherMap API key (``appid``).
            base_url: API base URL.
            timeout_seconds: Timeout for requests in seconds.
            transport: Optional transport override (used by tests).
        """
        self._api_key = api_key
        self._timeout_seconds = timeout_seconds
        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            transport=transport,
        )

    async def get_forecast(self, location_id: str) -> dict[str, Any]:
        params = {"id": location_id, "appid": self._api_key, "units": "metric"}

        logger.info("upstream.request", extra={"location_id": location_id})
        try:
            response = await self.client.get("/forecast", params=params)
        except httpx.TimeoutException as exc:
            raise UpstreamTimeout(
                code="upstream_timeout",
                message="Upstream provider did not respond in time",
                details={"location_id": location_id, "timeout_seconds": self._timeout_seconds},
            ) from exc
        except httpx.RequestError as exc:
            logger.error(
                "upstream.network_error",
                extra={"location_id": location_id, "error_type": type(exc).__name__},
            )
            raise UpstreamError(
                code="upstream_unreachable",
                message="Failed to reach the weather provider",
                details={"location_id": location_id},
            ) from exc

        self._raise_for_status(response, location_id)

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError(
                code="upstream_invalid_payload",
                message="Weather provider returned invalid JSON",
                details={"location_id": location_id},
            ) from exc

        if not isinstance(payload, dict):
            raise UpstreamError(
                code="upstream_invalid_payload",
                message="Weather provider returned an unexpected payload",
                details={"location_id": location_id},
            )

        logger.info(
            "upstream.success",
            extra={"location_id": location_id, "items": len(payload.get("list") or [])},
        )
        return payload

    def _raise_for_status(self, response: httpx.Response, location_id: str) -> None:
        status = response.status_code
        if status < 400:
            return

        logger.error(
            "upstream.http_error",
            extra={"location_id": location_id, "upstream_status": status},
        )
        if status == 404:
            raise LocationNotFound(
                code="location_not_found",
                message=f"Location not found: {location_id}",
                details={"location_id": location_id, "upstream_status": status},
            )
        if status == 401:
            raise UpstreamError(
                code="upstream_unauthorized",
                message="Weather provider rejected the configured API key",
                details={"upstream_status": status},
            )
        if status == 429:
            raise RateLimitExceeded(
                code="upstream_rate_limited",
                message="Rate limit exceeded by the weather provider",
                details={"upstream_status": status},
            )
        raise UpstreamError(
            code="upstream_error",
            message=f"Weather provider returned HTTP {status}",
            details={"location_id": location_id, "upstream_status": status},
        )

    async def aclose(self) -> None:
        await self.client.aclose()
