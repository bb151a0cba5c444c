"""Tests for weather service."""
from datetime import datetime, timezone

import pytest

from config import WeatherConfig
from error_handling import ErrorHandler
from location_resolver import LocationResolver, LocationSource
from weather_cache import MemoryStore, WeatherCache, forecast_cache_key, weather_cache_key
from weather_data import ClothingItem, Location, WeatherCondition, WeatherContext
from weather_provider import WeatherProviderBase, WeatherProviderError
from weather_service import FetchResult, WeatherService


class MockProvider(WeatherProviderBase):
    """Mock weather provider for testing."""

    def __init__(self, return_data=None, raise_error=None, forecast=None):
        self.return_data = return_data
        self.raise_error = raise_error
        self.forecast = forecast or []
        self.call_count = 0
        self.forecast_calls = 0

    def get_current(self, location):
        self.call_count += 1
        if self.raise_error:
            raise self.raise_error
        return self.return_data

    def get_forecast(self, location, days):
        self.forecast_calls += 1
        if self.raise_error:
            raise self.raise_error
        return self.forecast[:days]


class FixedSource(LocationSource):
    def __init__(self, latitude=33.44, longitude=-94.04, granted=True):
        self.latitude = latitude
        self.longitude = longitude
        self.granted = granted

    def request_permission(self):
        return self.granted

    def current_position(self, timeout):
        return self.latitude, self.longitude

    def reverse_geocode(self, latitude, longitude):
        return "Testville"


class FakeClock:
    def __init__(self):
        self.now = 1_700_000_000.0

    def __call__(self):
        return self.now


@pytest.fixture
def sample_weather():
    """Sample weather data."""
    return WeatherContext(
        temperature=68,
        condition=WeatherCondition.SUNNY,
        humidity=60,
        wind_speed=5.0,
        location="Testville",
        timestamp=datetime(2024, 5, 20, 12, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeps():
    return []


def build_service(provider, clock, sleeps, source=None, store=None):
    store = store or MemoryStore()
    config = WeatherConfig(api_key="test_key", max_retries=2, retry_base_delay=0.01)
    cache = WeatherCache(store, ttl_seconds=config.cache_ttl_seconds, clock=clock)
    resolver = LocationResolver(source or FixedSource(), cache)
    handler = ErrorHandler(store=store, sleep=sleeps.append)
    return WeatherService(config, provider, cache, resolver, handler, sleep=sleeps.append)


def test_weather_service_caching(sample_weather, clock, sleeps):
    """Test that service caches results."""
    provider = MockProvider(return_data=sample_weather)
    service = build_service(provider, clock, sleeps)

    result1 = service.get_current_weather_context()
    assert provider.call_count == 1
    assert result1.temperature == 68
    assert result1.source == "live"

    clock.now += 29 * 60
    result2 = service.get_current_weather_context()
    assert provider.call_count == 1  # Still 1, not 2
    assert result2.temperature == 68
    assert result2.source == "cache"


def test_weather_service_cache_expiry(sample_weather, clock, sleeps):
    """Test that cache expires after TTL."""
    provider = MockProvider(return_data=sample_weather)
    service = build_service(provider, clock, sleeps)

    service.get_current_weather_context()
    clock.now += 31 * 60
    service.get_current_weather_context()

    assert provider.call_count == 2


def test_weather_service_retry_on_error(sample_weather, clock, sleeps):
    """Test that service retries on transient errors."""
    provider = MockProvider(return_data=sample_weather)
    service = build_service(provider, clock, sleeps)

    def side_effect(location):
        provider.call_count += 1
        if provider.call_count < 2:
            raise WeatherProviderError("Network error")
        return sample_weather

    provider.get_current = side_effect

    result = service.get_current_weather_context()
    assert result.temperature == 68
    assert provider.call_count == 2
    assert len(sleeps) == 1


def test_weather_service_fallback_after_retries(clock, sleeps):
    """Persistent failures end in seasonal fallback data, not an exception."""
    provider = MockProvider(raise_error=WeatherProviderError("Network error"))
    service = build_service(provider, clock, sleeps)

    result = service.get_current_weather_context()

    assert provider.call_count == 3
    assert result.is_fallback
    assert result.location == "Unknown"


def test_weather_service_no_retry_on_4xx(clock, sleeps):
    """Test that service doesn't retry on 4xx errors."""
    provider = MockProvider(raise_error=WeatherProviderError("401 Unauthorized", status_code=401))
    service = build_service(provider, clock, sleeps)

    assert service.get_current_weather_context().is_fallback
    assert provider.call_count == 1


def test_weather_service_user_cache_fallback(sample_weather, clock, sleeps):
    """A failed fetch serves the user's recently published weather."""
    provider = MockProvider(return_data=sample_weather)
    service = build_service(provider, clock, sleeps)
    service.get_current_weather_context(user_id="u1")

    provider.raise_error = WeatherProviderError("Network error")
    clock.now += 31 * 60

    result = service.get_current_weather_context(user_id="u1")
    assert result.temperature == 68
    assert result.source == "cache"


def test_fallback_totality_without_key_or_cache(clock, sleeps):
    """No API key and nothing cached still yields complete weather."""
    from openweather_provider import OpenWeatherProvider

    service = build_service(OpenWeatherProvider(api_key=None), clock, sleeps, source=FixedSource(granted=False))

    weather = service.get_current_weather_context()

    assert isinstance(weather.temperature, int)
    assert weather.condition in set(WeatherCondition)
    assert 0 <= weather.humidity <= 100
    assert weather.location == "Unknown"
    assert weather.timestamp is not None
    assert weather.is_fallback


def test_fallback_data_is_not_cached(clock, sleeps):
    from openweather_provider import OpenWeatherProvider

    store = MemoryStore()
    service = build_service(OpenWeatherProvider(api_key=None), clock, sleeps, store=store)
    service.get_current_weather_context(user_id="u1")

    assert [key for key in store._items if "weather_" in key] == []
    assert "last_known_location" in store._items


def test_unexpected_errors_never_escape(clock, sleeps):
    provider = MockProvider(raise_error=RuntimeError("boom"))
    service = build_service(provider, clock, sleeps)
    assert service.get_current_weather_context().is_fallback


def test_recover_passes_success_through(sample_weather, clock, sleeps):
    service = build_service(MockProvider(), clock, sleeps)
    assert service.recover(FetchResult(value=sample_weather)) is sample_weather
    assert service.recover(FetchResult(error=WeatherProviderError("x"))).is_fallback


def make_forecast(count):
    return [
        WeatherContext(
            temperature=60 + day,
            condition=WeatherCondition.CLOUDY,
            humidity=50,
            location="Testville",
        )
        for day in range(count)
    ]


def test_forecast_fetched_then_cached(clock, sleeps):
    provider = MockProvider(forecast=make_forecast(5))
    service = build_service(provider, clock, sleeps)

    first = service.get_weather_forecast(3)
    second = service.get_weather_forecast(2)

    assert [d.temperature for d in first] == [60, 61, 62]
    assert [d.temperature for d in second] == [60, 61]
    assert provider.forecast_calls == 1
    assert service.cache.get_raw(forecast_cache_key(Location(33.44, -94.04))) is not None


def test_forecast_longer_than_cache_refetches(clock, sleeps):
    provider = MockProvider(forecast=make_forecast(5))
    service = build_service(provider, clock, sleeps)

    service.get_weather_forecast(2)
    assert len(service.get_weather_forecast(4)) == 4
    assert provider.forecast_calls == 2


def test_forecast_retries_then_falls_back(clock, sleeps):
    provider = MockProvider(raise_error=WeatherProviderError("HTTP 503", status_code=503))
    service = build_service(provider, clock, sleeps)

    forecast = service.get_weather_forecast(3)

    assert provider.forecast_calls == 3
    assert sleeps == [0.01, 0.02]
    assert len(forecast) == 3
    assert all(day.is_fallback for day in forecast)


def test_forecast_zero_days(clock, sleeps):
    provider = MockProvider(forecast=make_forecast(3))
    assert build_service(provider, clock, sleeps).get_weather_forecast(0) == []
    assert provider.forecast_calls == 0


def test_scoring_pass_throughs(clock, sleeps):
    service = build_service(MockProvider(), clock, sleeps)
    cold = WeatherContext(temperature=20, condition=WeatherCondition.SNOWY, humidity=80)
    coat = ClothingItem.of("outerwear", ["warm"])
    sandals = ClothingItem.of("shoes", ["summer", "light"])

    assert service.analyze_item(coat, cold) > service.analyze_item(sandals, cold)
    outfits = [{"items": [sandals]}, {"items": [coat]}]
    assert service.filter_recommendations(outfits, cold) == [{"items": [coat]}]
    assert service.suggestions(cold)[0] == "Layer up with warm outerwear"


def test_from_config_wires_memory_store_without_path():
    service = WeatherService.from_config(WeatherConfig(api_key=None, latitude=10.0, longitude=20.0))
    assert isinstance(service.cache.store, MemoryStore)
    assert service.get_current_weather_context().is_fallback


def test_corrupt_weather_cache_entry_is_refetched(sample_weather, clock, sleeps):
    provider = MockProvider(return_data=sample_weather)
    service = build_service(provider, clock, sleeps)
    service.cache.set(weather_cache_key(Location(33.44, -94.04)), ["garbage"])

    result = service.get_current_weather_context()

    assert result.source == "live"
    assert provider.call_count == 1
    assert sleeps == []
    assert service.get_current_weather_context().source == "cache"


def test_corrupt_forecast_cache_entry_is_refetched(clock, sleeps):
    provider = MockProvider(forecast=make_forecast(3))
    service = build_service(provider, clock, sleeps)
    service.cache.set(forecast_cache_key(Location(33.44, -94.04)), {"temperature": 70})

    forecast = service.get_weather_forecast(3)

    assert provider.forecast_calls == 1
    assert [d.temperature for d in forecast] == [60, 61, 62]
    assert not any(day.is_fallback for day in forecast)
