from abc import ABC, abstractmethod
from typing import Any


class AbstractWeatherClient(ABC):
    """Interface for upstream weather providers."""

    @abstractmethod
    async def get_forecast(self, location_id: str) -> dict[str, Any]:
        """Fetch the raw 5-day / 3-hour forecast payload for a location.

        Args:
            location_id: Provider city id (numeric string).

        Returns:
            dict[str, Any]: Decoded JSON payload as returned by the provider.

        Raises:
            LocationNotFound: If the provider does not know the location.
            RateLimitExceeded: If the provider itself throttles the call.
            UpstreamTimeout: If the provider does not answer in time.
            UpstreamError: For any other provider or network failure.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources."""
        return None
