"""Weather provider abstraction - allows swapping different weather APIs."""
from abc import ABC, abstractmethod
from typing import List, Optional

from weather_data import Location, WeatherContext

NON_RETRYABLE_STATUS = frozenset({400, 401, 403, 404})


class WeatherProviderBase(ABC):
    """Abstract base class for weather data providers."""

    @abstractmethod
    def get_current(self, location: Location) -> WeatherContext:
        """
        Fetch current weather data for a location.

        Returns:
            WeatherContext: Current weather information

        Raises:
            WeatherProviderError: If the provider fails to fetch data
        """
        pass

    @abstractmethod
    def get_forecast(self, location: Location, days: int) -> List[WeatherContext]:
        """
        Fetch one representative record per day for the next ``days`` days.

        Raises:
            WeatherProviderError: If the provider fails to fetch data
        """
        pass


class WeatherProviderError(Exception):
    """Exception raised when a weather provider fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        # Bad request, auth and not-found answers won't change on retry
        return self.status_code not in NON_RETRYABLE_STATUS
