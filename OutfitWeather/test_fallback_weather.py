"""Tests for seasonal fallback weather."""
import random
from datetime import datetime, timedelta, timezone

import pytest

from fallback_weather import fallback_current, fallback_forecast, season_for_month
from weather_data import WeatherCondition


def on(month):
    return datetime(2024, month, 15, 9, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("month,season", [
    (12, "winter"), (1, "winter"), (2, "winter"),
    (3, "spring"), (5, "spring"),
    (6, "summer"), (8, "summer"),
    (9, "autumn"), (11, "autumn"),
])
def test_season_for_month(month, season):
    assert season_for_month(month) == season


@pytest.mark.parametrize("month,temperature,condition", [
    (1, 45, WeatherCondition.CLOUDY),
    (4, 65, WeatherCondition.SUNNY),
    (7, 80, WeatherCondition.SUNNY),
    (10, 60, WeatherCondition.CLOUDY),
])
def test_fallback_current_by_season(month, temperature, condition):
    weather = fallback_current(on(month))

    assert weather.temperature == temperature
    assert weather.condition is condition
    assert weather.humidity == 50
    assert weather.wind_speed == 5.0
    assert weather.location == "Unknown"
    assert weather.timestamp == on(month)
    assert weather.is_fallback


def test_fallback_current_defaults_to_now():
    weather = fallback_current()
    assert abs((datetime.now(timezone.utc) - weather.timestamp).total_seconds()) < 60


def test_fallback_forecast_shape():
    now = on(7)
    forecast = fallback_forecast(5, now=now, rng=random.Random(7))

    assert len(forecast) == 5
    assert forecast[0].condition is WeatherCondition.SUNNY
    for day, weather in enumerate(forecast):
        assert 75 <= weather.temperature <= 85
        assert weather.condition in (WeatherCondition.SUNNY, WeatherCondition.CLOUDY, WeatherCondition.RAINY)
        assert weather.timestamp == now + timedelta(days=day)
        assert weather.is_fallback


def test_fallback_forecast_is_reproducible_with_seed():
    first = fallback_forecast(4, now=on(3), rng=random.Random(99))
    second = fallback_forecast(4, now=on(3), rng=random.Random(99))
    assert first == second


def test_fallback_forecast_zero_days():
    assert fallback_forecast(0) == []
