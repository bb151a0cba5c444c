"""Seasonal synthetic weather used when live data is unavailable."""
import logging
import random
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from weather_data import SOURCE_FALLBACK, WeatherCondition, WeatherContext

FALLBACK_HUMIDITY = 50
FALLBACK_WIND_SPEED = 5.0
FALLBACK_LOCATION = "Unknown"

# season -> (temperature °F, condition)
SEASON_DEFAULTS = {
    "winter": (45, WeatherCondition.CLOUDY),
    "spring": (65, WeatherCondition.SUNNY),
    "summer": (80, WeatherCondition.SUNNY),
    "autumn": (60, WeatherCondition.CLOUDY),
}

FORECAST_CONDITIONS = (WeatherCondition.SUNNY, WeatherCondition.CLOUDY, WeatherCondition.RAINY)


def season_for_month(month: int) -> str:
    """Map a calendar month (1-12) to its season name."""
    if month in (12, 1, 2):
        return "winter"
    if month in (3, 4, 5):
        return "spring"
    if month in (6, 7, 8):
        return "summer"
    return "autumn"


def _season_defaults(now: datetime) -> Tuple[int, WeatherCondition]:
    return SEASON_DEFAULTS[season_for_month(now.month)]


def fallback_current(now: Optional[datetime] = None) -> WeatherContext:
    """Build a season-appropriate weather record for the current month."""
    now = now or datetime.now(timezone.utc)
    temperature, condition = _season_defaults(now)
    logging.info(f"Using seasonal fallback weather: {temperature}°, {condition.value}")
    return WeatherContext(
        temperature=temperature,
        condition=condition,
        humidity=FALLBACK_HUMIDITY,
        wind_speed=FALLBACK_WIND_SPEED,
        location=FALLBACK_LOCATION,
        timestamp=now,
        source=SOURCE_FALLBACK,
    )


def fallback_forecast(
    days: int,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> List[WeatherContext]:
    """
    Repeat the seasonal fallback for ``days`` days with a little noise.

    Temperatures jitter by up to ±5°. Day 0 keeps the seasonal condition;
    later days pick randomly among sunny, cloudy and rainy. The noise is not
    predictive, it only keeps downstream filtering honest.
    """
    now = now or datetime.now(timezone.utc)
    rng = rng or random.Random()
    base = fallback_current(now)

    forecasts = []
    for day in range(max(days, 0)):
        variation = (rng.random() - 0.5) * 10
        condition = base.condition if day == 0 else rng.choice(FORECAST_CONDITIONS)
        forecasts.append(
            WeatherContext(
                temperature=round(base.temperature + variation),
                condition=condition,
                humidity=base.humidity,
                wind_speed=base.wind_speed,
                location=base.location,
                timestamp=now + timedelta(days=day),
                source=SOURCE_FALLBACK,
            )
        )
    return forecasts
