"""Best-effort persistent cache for weather records with TTL semantics."""
import json
import logging
import os
import tempfile
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from weather_data import SOURCE_CACHE, CacheEntry, Location, WeatherContext

CACHE_KEY_PREFIX = "weather_cache_"
LOCATION_CACHE_KEY = "last_known_location"
DEFAULT_TTL_SECONDS = 30 * 60


class KeyValueStore(ABC):
    """String key/value persistence (the device's async storage equivalent)."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        pass


class MemoryStore(KeyValueStore):
    """Process-local store, used in tests and when no cache path is configured."""

    def __init__(self):
        self._items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value


class JsonFileStore(KeyValueStore):
    """All keys kept in one JSON object on disk, rewritten atomically on each set."""

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Cache file {self.path} does not hold a JSON object")
        return data

    def get_item(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            try:
                items = self._load()
            except ValueError:
                logging.warning(f"Discarding unreadable cache file {self.path}")
                items = {}
            items[key] = value

            directory = os.path.dirname(os.path.abspath(self.path))
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(items, f)
                os.replace(tmp_path, self.path)
            except BaseException:
                os.unlink(tmp_path)
                raise


def _coordinate(value: float, precision: Optional[int]) -> str:
    if precision is None:
        return str(value)
    return f"{round(value, precision):.{precision}f}"


def weather_cache_key(location: Location, precision: Optional[int] = 2) -> str:
    """Cache key for current weather at a location (rounded to ``precision`` decimals)."""
    return (
        f"{CACHE_KEY_PREFIX}{_coordinate(location.latitude, precision)}"
        f"_{_coordinate(location.longitude, precision)}"
    )


def forecast_cache_key(location: Location, precision: Optional[int] = 2) -> str:
    return (
        f"{CACHE_KEY_PREFIX}forecast_{_coordinate(location.latitude, precision)}"
        f"_{_coordinate(location.longitude, precision)}"
    )


class WeatherCache:
    """
    TTL cache over a KeyValueStore.

    Values are stored as JSON ``{"data": ..., "timestamp": epoch_ms}``
    envelopes. Reads past the TTL are treated as misses but never evicted;
    the next write simply overwrites them. Every storage or parse failure is
    logged and swallowed so caching never blocks a weather fetch.
    """

    def __init__(
        self,
        store: KeyValueStore,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        precision: Optional[int] = 2,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.precision = precision
        self.clock = clock

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def is_valid(self, entry: CacheEntry) -> bool:
        return entry.age_ms(self._now_ms()) < self.ttl_seconds * 1000

    def get_raw(self, key: str) -> Optional[Any]:
        """Return the deserialized value stored under ``key`` without TTL checks."""
        try:
            cached = self.store.get_item(key)
            return json.loads(cached) if cached else None
        except Exception as e:
            logging.warning(f"Failed to get cached data for key {key}: {e}")
            return None

    def set_raw(self, key: str, value: Any) -> None:
        try:
            self.store.set_item(key, json.dumps(value))
        except Exception as e:
            logging.warning(f"Failed to set cached data for key {key}: {e}")

    def get(self, key: str) -> Optional[Any]:
        """Return a fresh copy of the cached value, or None on miss/parse failure/staleness."""
        raw = self.get_raw(key)
        if raw is None:
            return None
        try:
            entry = CacheEntry(data=raw["data"], timestamp=int(raw["timestamp"]))
        except (KeyError, TypeError, ValueError) as e:
            logging.warning(f"Ignoring malformed cache entry for key {key}: {e}")
            return None

        if not self.is_valid(entry):
            age = entry.age_ms(self._now_ms()) / 1000
            logging.info(f"Cache expired for {key} (age: {age:.1f}s > TTL: {self.ttl_seconds}s)")
            return None
        return entry.data

    def set(self, key: str, value: Any) -> None:
        """Overwrite ``key`` with a freshly stamped envelope."""
        entry = CacheEntry(data=value, timestamp=self._now_ms())
        self.set_raw(key, {"data": entry.data, "timestamp": entry.timestamp})

    # Typed helpers

    def get_weather(self, location: Location) -> Optional[WeatherContext]:
        key = weather_cache_key(location, self.precision)
        data = self.get(key)
        if data is None:
            return None
        try:
            weather = WeatherContext.from_dict(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logging.warning(f"Ignoring unreadable cached weather for key {key}: {e}")
            return None
        logging.debug(f"Cache hit for {key}")
        return weather if weather.is_fallback else weather.with_source(SOURCE_CACHE)

    def set_weather(self, location: Location, weather: WeatherContext) -> None:
        self.set(weather_cache_key(location, self.precision), weather.to_dict())

    def get_forecast(self, location: Location) -> Optional[List[WeatherContext]]:
        key = forecast_cache_key(location, self.precision)
        data = self.get(key)
        if data is None:
            return None
        try:
            if not isinstance(data, list):
                raise TypeError(f"Expected a forecast list, got {type(data).__name__}")
            return [WeatherContext.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logging.warning(f"Ignoring unreadable cached forecast for key {key}: {e}")
            return None

    def set_forecast(self, location: Location, forecast: List[WeatherContext]) -> None:
        self.set(forecast_cache_key(location, self.precision), [item.to_dict() for item in forecast])

    def get_location(self) -> Optional[Location]:
        data = self.get_raw(LOCATION_CACHE_KEY)
        if data is None:
            return None
        try:
            return Location.from_dict(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logging.warning(f"Ignoring unreadable cached location: {e}")
            return None

    def set_location(self, location: Location) -> None:
        self.set_raw(LOCATION_CACHE_KEY, location.to_dict())
