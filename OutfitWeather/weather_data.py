"""Weather domain model - pure data structures independent of any API."""
import math
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional


class WeatherCondition(str, Enum):
    """Closed vocabulary of conditions used by scoring and suggestions."""
    SUNNY = "sunny"
    CLOUDY = "cloudy"
    RAINY = "rainy"
    SNOWY = "snowy"
    STORMY = "stormy"
    WINDY = "windy"

    @classmethod
    def parse(cls, value: Any) -> "WeatherCondition":
        """Return the matching member, or CLOUDY for anything unrecognized."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.CLOUDY


SOURCE_LIVE = "live"
SOURCE_CACHE = "cache"
SOURCE_FALLBACK = "fallback"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    return datetime.fromisoformat(str(value))


@dataclass(frozen=True)
class WeatherContext:
    """Normalized weather snapshot used for outfit decisions."""
    temperature: int  # provider's native unit (°F for imperial)
    condition: WeatherCondition
    humidity: int  # percentage 0-100
    location: str = "Unknown"
    wind_speed: Optional[float] = None
    timestamp: datetime = field(default_factory=_utcnow)
    source: str = SOURCE_LIVE  # live, cache or fallback

    def __post_init__(self):
        if not math.isfinite(self.temperature):
            raise ValueError(f"temperature must be finite, got {self.temperature!r}")
        if not 0 <= self.humidity <= 100:
            raise ValueError(f"humidity must be within 0-100, got {self.humidity!r}")
        if self.wind_speed is not None and self.wind_speed < 0:
            raise ValueError(f"wind_speed must be non-negative, got {self.wind_speed!r}")
        # Keep the enum invariant even when callers pass raw strings
        object.__setattr__(self, "condition", WeatherCondition.parse(self.condition))

    @property
    def effective_wind_speed(self) -> float:
        return self.wind_speed or 0.0

    @property
    def is_fallback(self) -> bool:
        return self.source == SOURCE_FALLBACK

    def is_stale(self, max_age_seconds: int = 1800, now: Optional[datetime] = None) -> bool:
        """Check if this data is stale (older than max_age_seconds)."""
        current = now or _utcnow()
        stamp = self.timestamp
        if stamp.tzinfo is None:
            stamp = stamp.replace(tzinfo=timezone.utc)
        return (current - stamp).total_seconds() > max_age_seconds

    def with_source(self, source: str) -> "WeatherContext":
        data = self.to_dict()
        data["source"] = source
        return WeatherContext.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "temperature": self.temperature,
            "condition": self.condition.value,
            "humidity": self.humidity,
            "wind_speed": self.wind_speed,
            "location": self.location,
            "timestamp": self.timestamp.isoformat(),
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WeatherContext":
        if not isinstance(data, Mapping):
            raise TypeError(f"Expected a weather mapping, got {type(data).__name__}")
        wind = data.get("wind_speed")
        return cls(
            temperature=int(data["temperature"]),
            condition=WeatherCondition.parse(data.get("condition")),
            humidity=int(data["humidity"]),
            wind_speed=float(wind) if wind is not None else None,
            location=data.get("location") or "Unknown",
            timestamp=_parse_timestamp(data.get("timestamp", _utcnow())),
            source=data.get("source", SOURCE_LIVE),
        )


@dataclass(frozen=True)
class Location:
    """Approximate user position, optionally with a city name."""
    latitude: float
    longitude: float
    city: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Location":
        if not isinstance(data, Mapping):
            raise TypeError(f"Expected a location mapping, got {type(data).__name__}")
        return cls(
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            city=data.get("city"),
        )


@dataclass(frozen=True)
class ClothingItem:
    """Caller-owned description of a garment: category plus lowercase tags."""
    category: str
    tags: FrozenSet[str] = frozenset()

    @classmethod
    def of(cls, category: str, tags: Iterable[str] = ()) -> "ClothingItem":
        return cls(category=category, tags=frozenset(tags))


@dataclass
class CacheEntry:
    """Stored envelope: payload plus the epoch-millis time it was written."""
    data: Any
    timestamp: int

    def age_ms(self, now_ms: int) -> int:
        return now_ms - self.timestamp
