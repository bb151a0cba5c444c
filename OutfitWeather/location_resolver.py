"""Resolve the user's approximate location with cached and default fallbacks."""
import logging
from abc import ABC, abstractmethod
from typing import Optional, Tuple

import requests

from weather_cache import WeatherCache
from weather_data import Location

DEFAULT_LOCATION = Location(latitude=40.7128, longitude=-74.0060, city="New York")


class LocationSource(ABC):
    """Platform hook for permissions, position fixes and reverse geocoding."""

    @abstractmethod
    def request_permission(self) -> bool:
        """Return True when foreground location access is granted."""
        pass

    @abstractmethod
    def current_position(self, timeout: float) -> Tuple[float, float]:
        """
        Return a best-effort (latitude, longitude) fix.

        Raises:
            Exception: Any failure; the resolver falls back to cached data
        """
        pass

    @abstractmethod
    def reverse_geocode(self, latitude: float, longitude: float) -> Optional[str]:
        """Return a city name for the coordinates, or None."""
        pass


class ConfiguredLocationSource(LocationSource):
    """
    Location source for hosts without a GPS: the fix comes from configuration.

    Permission counts as granted only when both coordinates are set. City
    names come from OpenWeather's reverse geocoding endpoint.
    """

    def __init__(
        self,
        latitude: Optional[float],
        longitude: Optional[float],
        api_key: Optional[str] = None,
        geo_url: str = "https://api.openweathermap.org/geo/1.0",
        timeout: float = 10,
    ):
        self.latitude = latitude
        self.longitude = longitude
        self.api_key = api_key
        self.geo_url = geo_url.rstrip("/")
        self.timeout = timeout

    def request_permission(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def current_position(self, timeout: float) -> Tuple[float, float]:
        if self.latitude is None or self.longitude is None:
            raise RuntimeError("No coordinates configured")
        return self.latitude, self.longitude

    def reverse_geocode(self, latitude: float, longitude: float) -> Optional[str]:
        if not self.api_key:
            return None

        response = requests.get(
            f"{self.geo_url}/reverse",
            params={"lat": latitude, "lon": longitude, "limit": 1, "appid": self.api_key},
            timeout=self.timeout,
        )
        response.raise_for_status()
        results = response.json()
        if not results:
            return None
        return results[0].get("name") or results[0].get("state")


class LocationResolver:
    """
    Total location lookup: fresh fix, else last known location, else a default.

    Every successfully resolved location is persisted as the last known
    location so later calls can reuse it when permission is denied.
    """

    def __init__(
        self,
        source: LocationSource,
        cache: WeatherCache,
        default: Location = DEFAULT_LOCATION,
        fix_timeout: float = 10,
    ):
        self.source = source
        self.cache = cache
        self.default = default
        self.fix_timeout = fix_timeout

    def resolve(self) -> Location:
        try:
            if not self.source.request_permission():
                logging.info("Location permission denied, using cached location")
                return self._last_known_or_default()

            latitude, longitude = self.source.current_position(self.fix_timeout)
            location = Location(latitude=latitude, longitude=longitude, city=self._city_for(latitude, longitude))
            self.cache.set_location(location)
            logging.debug(f"Resolved location: {location}")
            return location
        except Exception as e:
            logging.warning(f"Failed to get user location: {e}")
            return self._last_known_or_default()

    def _city_for(self, latitude: float, longitude: float) -> Optional[str]:
        try:
            return self.source.reverse_geocode(latitude, longitude)
        except Exception as e:
            logging.warning(f"Failed to get city name: {e}")
            return None

    def _last_known_or_default(self) -> Location:
        cached = self.cache.get_location()
        if cached is None:
            logging.info(f"No cached location, using default {self.default.city}")
            return self.default
        self.cache.set_location(cached)
        return cached
