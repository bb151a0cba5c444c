"""Runtime configuration, loaded from the environment (and an optional .env file)."""
import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


@dataclass
class WeatherConfig:
    """Settings shared by the provider, cache, resolver and retry layers."""
    api_key: Optional[str] = None
    base_url: str = "https://api.openweathermap.org/data/2.5"
    geo_url: str = "https://api.openweathermap.org/geo/1.0"
    units: str = "imperial"
    current_timeout: float = 10
    forecast_timeout: float = 15
    cache_ttl_seconds: int = 30 * 60
    cache_precision: Optional[int] = 2
    cache_path: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    max_retries: int = 2
    retry_base_delay: float = 1.0
    retry_max_delay: float = 10.0
    user_weather_ttl_seconds: int = 2 * 60 * 60

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    @property
    def has_fixed_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None


def _float_env(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return None
    try:
        return float(raw)
    except ValueError:
        logging.warning("Ignoring invalid %s=%r", name, raw)
        return None


def load_config(**overrides) -> WeatherConfig:
    """
    Build a WeatherConfig from WEATHER_* environment variables.

    A missing WEATHER_API_KEY is a normal state: the service then serves
    seasonal fallback data. Keyword overrides win over the environment.
    """
    load_dotenv()

    config = WeatherConfig(
        api_key=os.getenv("WEATHER_API_KEY") or None,
        units=os.getenv("WEATHER_UNITS", "imperial"),
        cache_path=os.getenv("WEATHER_CACHE_PATH") or None,
        latitude=_float_env("WEATHER_LAT"),
        longitude=_float_env("WEATHER_LON"),
    )

    ttl = _float_env("WEATHER_CACHE_TTL")
    if ttl is not None:
        config.cache_ttl_seconds = int(ttl)

    for name, value in overrides.items():
        if value is None:
            continue
        if not hasattr(config, name):
            raise TypeError(f"Unknown configuration field: {name}")
        setattr(config, name, value)

    if config.latitude is not None and not -90 <= config.latitude <= 90:
        logging.warning("Ignoring out-of-range latitude %s", config.latitude)
        config.latitude = None
    if config.longitude is not None and not -180 <= config.longitude <= 180:
        logging.warning("Ignoring out-of-range longitude %s", config.longitude)
        config.longitude = None

    logging.info(
        "Configuration loaded: api_key=%s lat=%s lon=%s units=%s ttl=%ss",
        "set" if config.has_api_key else "missing",
        config.latitude,
        config.longitude,
        config.units,
        config.cache_ttl_seconds,
    )
    return config
