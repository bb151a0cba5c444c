"""OpenWeather current weather and 5-day/3-hour forecast provider."""
import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import requests

from fallback_weather import fallback_current, fallback_forecast
from weather_data import Location, WeatherCondition, WeatherContext
from weather_provider import WeatherProviderBase, WeatherProviderError

SLOTS_PER_DAY = 8  # forecast endpoint reports every 3 hours
MIDDAY_HOUR = 12
MIDDAY_WINDOW = (10, 14)


def map_weather_condition(main: Optional[str], description: Optional[str]) -> WeatherCondition:
    """
    Map OpenWeather's condition text to the closed condition vocabulary.

    Case-insensitive substring rules checked in order: rain, snow,
    storm/thunder, cloud, clear/sun, wind (description only). Anything
    else maps to cloudy.
    """
    main_lower = (main or "").lower()
    desc_lower = (description or "").lower()

    if "rain" in main_lower or "rain" in desc_lower:
        return WeatherCondition.RAINY
    if "snow" in main_lower or "snow" in desc_lower:
        return WeatherCondition.SNOWY
    if "storm" in main_lower or "storm" in desc_lower or "thunder" in desc_lower:
        return WeatherCondition.STORMY
    if "cloud" in main_lower or "cloud" in desc_lower:
        return WeatherCondition.CLOUDY
    if "clear" in main_lower or "clear" in desc_lower or "sun" in desc_lower:
        return WeatherCondition.SUNNY
    if "wind" in desc_lower:
        return WeatherCondition.WINDY
    return WeatherCondition.CLOUDY


def _round_half_up(value: float) -> int:
    return int(math.floor(float(value) + 0.5))


def _record_from_slot(slot: Dict[str, Any], location_name: str, timestamp: datetime) -> WeatherContext:
    weather_array = slot.get("weather") or [{}]
    weather = weather_array[0]
    main_data = slot["main"]
    wind_data = slot.get("wind") or {}

    return WeatherContext(
        temperature=_round_half_up(main_data["temp"]),
        condition=map_weather_condition(weather.get("main"), weather.get("description")),
        humidity=int(main_data["humidity"]),
        wind_speed=float(wind_data.get("speed") or 0.0),
        location=location_name,
        timestamp=timestamp,
    )


def parse_current_response(
    data: Dict[str, Any],
    location: Location,
    now: Optional[datetime] = None,
) -> WeatherContext:
    """Parse a Current Weather API payload into a WeatherContext."""
    if not data.get("main"):
        raise WeatherProviderError("Response missing 'main' block")

    name = location.city or data.get("name") or "Unknown"
    return _record_from_slot(data, name, now or datetime.now(timezone.utc))


def parse_forecast_response(
    data: Dict[str, Any],
    location: Location,
    days: Optional[int] = None,
) -> List[WeatherContext]:
    """
    Reduce a 3-hour forecast payload to one record per calendar day.

    Days are computed in the city's local time (``city.timezone`` offset in
    seconds). The slot nearest midday within 10:00-14:00 wins, otherwise the
    first slot seen for that day.
    """
    slots = data.get("list")
    if slots is None:
        raise WeatherProviderError("Response missing 'list' array")

    city = data.get("city") or {}
    offset = timedelta(seconds=city.get("timezone", 0) or 0)
    name = location.city or city.get("name") or "Unknown"

    chosen: Dict[Any, Dict[str, Any]] = {}
    for slot in slots:
        local_time = datetime.fromtimestamp(slot["dt"], tz=timezone.utc) + offset
        day = local_time.date()
        hour = local_time.hour
        in_window = MIDDAY_WINDOW[0] <= hour <= MIDDAY_WINDOW[1]

        current = chosen.get(day)
        if current is None:
            chosen[day] = {"slot": slot, "hour": hour, "midday": in_window}
        elif in_window and (
            not current["midday"]
            or abs(hour - MIDDAY_HOUR) < abs(current["hour"] - MIDDAY_HOUR)
        ):
            chosen[day] = {"slot": slot, "hour": hour, "midday": True}

    forecasts = [
        _record_from_slot(
            entry["slot"],
            name,
            datetime.fromtimestamp(entry["slot"]["dt"], tz=timezone.utc),
        )
        for _, entry in sorted(chosen.items())
    ]
    if days is not None:
        forecasts = forecasts[:days]
    return forecasts


class OpenWeatherProvider(WeatherProviderBase):
    """
    Weather provider using the free OpenWeather 2.5 API.

    Current weather: https://openweathermap.org/current
    Forecast: https://openweathermap.org/forecast5
    Without an API key the provider answers with seasonal fallback data
    instead of issuing requests.
    """

    BASE_URL = "https://api.openweathermap.org/data/2.5"

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = BASE_URL,
        units: str = "imperial",
        current_timeout: float = 10,
        forecast_timeout: float = 15,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize OpenWeather provider.

        Args:
            api_key: OpenWeather API key, or None to serve fallback data
            base_url: API root, without the endpoint name
            units: Temperature units ("metric", "imperial", or "standard")
            current_timeout: HTTP timeout in seconds for current weather
            forecast_timeout: HTTP timeout in seconds for the forecast
            session: Optional requests session (defaults to module-level requests)
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.units = units
        self.current_timeout = current_timeout
        self.forecast_timeout = forecast_timeout
        self.session = session

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def get_current(self, location: Location) -> WeatherContext:
        """
        Fetch current weather from the Current Weather API.

        Raises:
            WeatherProviderError: If the request times out, fails or can't be parsed
        """
        if not self.configured:
            logging.info("Weather API key not configured, using fallback data")
            return fallback_current()

        data = self._get("weather", location, {}, self.current_timeout)
        try:
            weather = parse_current_response(data, location)
        except (KeyError, ValueError, TypeError, IndexError, AttributeError) as e:
            logging.error(f"Failed to parse current weather response: {e}", exc_info=True)
            raise WeatherProviderError(f"Failed to parse response: {e}")

        logging.info(f"Parsed current weather: {weather.temperature}°, {weather.condition.value}")
        return weather

    def get_forecast(self, location: Location, days: int) -> List[WeatherContext]:
        """
        Fetch a ``days``-day forecast, one record per day.

        Raises:
            WeatherProviderError: If the request times out, fails or can't be parsed
        """
        if not self.configured:
            logging.info("Weather API key not configured, using fallback forecast data")
            return fallback_forecast(days)

        data = self._get("forecast", location, {"cnt": days * SLOTS_PER_DAY}, self.forecast_timeout)
        try:
            forecasts = parse_forecast_response(data, location, days)
        except (KeyError, ValueError, TypeError, IndexError, AttributeError) as e:
            logging.error(f"Failed to parse forecast response: {e}", exc_info=True)
            raise WeatherProviderError(f"Failed to parse response: {e}")

        logging.info(f"Parsed {len(forecasts)}-day forecast")
        return forecasts

    def _get(
        self,
        endpoint: str,
        location: Location,
        extra_params: Dict[str, Any],
        timeout: float,
    ) -> Dict[str, Any]:
        url = f"{self.base_url}/{endpoint}"
        params = {
            "lat": location.latitude,
            "lon": location.longitude,
            "appid": self.api_key,
            "units": self.units,
        }
        params.update(extra_params)

        try:
            logging.info(f"Making OpenWeather API request: {url}")
            logging.debug(
                f"Request parameters: lat={location.latitude}, lon={location.longitude}, "
                f"units={self.units}, timeout={timeout}s"
            )

            getter = self.session.get if self.session is not None else requests.get
            response = getter(
                url,
                params=params,
                headers={"Accept": "application/json"},
                timeout=timeout,
            )
            logging.info(f"API response status: {response.status_code}")

            if not response.ok:
                logging.error(f"API request failed with status {response.status_code}")
                self._handle_error_response(response)

            data = response.json()
        except requests.exceptions.Timeout as e:
            logging.error(f"Weather request timed out after {timeout}s: {e}")
            raise WeatherProviderError(f"Request timed out after {timeout}s")
        except requests.exceptions.RequestException as e:
            logging.error(f"Network error during API request: {e}")
            raise WeatherProviderError(f"Network error: {e}")
        except ValueError as e:
            logging.error(f"API returned invalid JSON: {e}")
            raise WeatherProviderError(f"Failed to parse response: {e}")

        if not isinstance(data, dict):
            raise WeatherProviderError("Unexpected response payload")
        logging.debug(f"API response (truncated): {str(data)[:500]}...")
        return data

    def _handle_error_response(self, response: requests.Response) -> None:
        """Parse and raise error from OpenWeather error response."""
        try:
            error_data = response.json()
            cod = error_data.get("cod", response.status_code)
            message = error_data.get("message", "Unknown error")
            logging.error(f"OpenWeather API error response: {error_data}")
            error_msg = f"OpenWeather API error {cod}: {message}"
        except (ValueError, AttributeError):
            # Not a JSON object, use HTTP status
            logging.error(f"Non-JSON error response: HTTP {response.status_code}, body: {response.text[:500]}")
            error_msg = f"HTTP {response.status_code}: {response.text[:200]}"

        raise WeatherProviderError(error_msg, status_code=response.status_code)
