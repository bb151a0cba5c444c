"""Weather service: location, caching, provider calls and fallback recovery."""
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, TypeVar

from appropriateness import score_item
from config import WeatherConfig
from error_handling import ErrorContext, ErrorHandler, RetryPolicy
from fallback_weather import fallback_current, fallback_forecast
from location_resolver import ConfiguredLocationSource, LocationResolver
from openweather_provider import OpenWeatherProvider
from recommendation_filter import DEFAULT_MIN_SCORE, filter_recommendations
from suggestions import weather_suggestions
from weather_cache import JsonFileStore, KeyValueStore, MemoryStore, WeatherCache
from weather_data import Location, WeatherContext
from weather_provider import WeatherProviderBase, WeatherProviderError

T = TypeVar("T")


@dataclass
class FetchResult:
    """Outcome of one fetch: a value or the error that prevented it."""
    value: Optional[WeatherContext] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.value is not None


class WeatherService:
    """
    Entry point for weather-aware outfit decisions.

    get_current_weather_context() and get_weather_forecast() are total: any
    failure is logged and turned into cached or seasonal fallback data, so
    callers always receive usable weather.
    """

    def __init__(
        self,
        config: WeatherConfig,
        provider: WeatherProviderBase,
        cache: WeatherCache,
        resolver: LocationResolver,
        error_handler: Optional[ErrorHandler] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.provider = provider
        self.cache = cache
        self.resolver = resolver
        self.error_handler = error_handler or ErrorHandler(
            store=cache.store,
            user_weather_ttl_seconds=config.user_weather_ttl_seconds,
        )
        self.sleep = sleep

    @classmethod
    def from_config(cls, config: WeatherConfig, store: Optional[KeyValueStore] = None) -> "WeatherService":
        """Wire the OpenWeather provider, cache and resolver from configuration."""
        if store is None:
            store = JsonFileStore(config.cache_path) if config.cache_path else MemoryStore()

        cache = WeatherCache(store, ttl_seconds=config.cache_ttl_seconds, precision=config.cache_precision)
        provider = OpenWeatherProvider(
            api_key=config.api_key,
            base_url=config.base_url,
            units=config.units,
            current_timeout=config.current_timeout,
            forecast_timeout=config.forecast_timeout,
        )
        source = ConfiguredLocationSource(
            latitude=config.latitude,
            longitude=config.longitude,
            api_key=config.api_key,
            geo_url=config.geo_url,
        )
        resolver = LocationResolver(source, cache)
        logging.info(f"Weather service ready (cache ttl={config.cache_ttl_seconds}s)")
        return cls(config, provider, cache, resolver)

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.config.max_retries,
            base_delay=self.config.retry_base_delay,
            max_delay=self.config.retry_max_delay,
            enable_offline_mode=True,
        )

    # Current weather

    def get_current_weather_context(self, user_id: Optional[str] = None) -> WeatherContext:
        """Current weather for the user's location; never raises."""
        policy = self.retry_policy
        return self.recover(self.fetch_current(user_id, policy), user_id, policy)

    def fetch_current(self, user_id: Optional[str] = None, policy: Optional[RetryPolicy] = None) -> FetchResult:
        context = ErrorContext(service="weather", operation="get_current_weather_context", user_id=user_id)
        try:
            weather = self.error_handler.execute_with_retry(
                lambda: self._load_current(user_id),
                context,
                policy or self.retry_policy,
            )
        except Exception as e:
            return FetchResult(error=e)
        return FetchResult(value=weather)

    def recover(
        self,
        result: FetchResult,
        user_id: Optional[str] = None,
        policy: Optional[RetryPolicy] = None,
    ) -> WeatherContext:
        """Turn a failed FetchResult into fallback weather."""
        if result.ok:
            return result.value

        logging.error(f"All weather fetch attempts failed: {result.error}")
        offline = (policy or self.retry_policy).enable_offline_mode
        if offline and user_id:
            return self.error_handler.handle_weather_service_error(user_id)
        return fallback_current()

    def _load_current(self, user_id: Optional[str]) -> WeatherContext:
        logging.info("Getting current weather context")
        location = self.resolver.resolve()

        cached = self.cache.get_weather(location)
        if cached is not None:
            logging.info("Using cached weather data")
            return cached

        logging.info("Fetching fresh weather data from provider")
        weather = self.provider.get_current(location)

        # Seasonal guesses are cheap to rebuild and must not mask live data later
        if not weather.is_fallback:
            self.cache.set_weather(location, weather)
            if user_id:
                self.error_handler.cache_weather(user_id, weather)
        return weather

    # Forecast

    def get_weather_forecast(self, days: int = 3) -> List[WeatherContext]:
        """One record per day for ``days`` days; never raises."""
        if days <= 0:
            return []
        logging.info(f"Getting {days}-day weather forecast")

        try:
            location = self.resolver.resolve()
            cached = self.cache.get_forecast(location)
            if cached and len(cached) >= days:
                logging.info("Using cached forecast data")
                return cached[:days]

            forecast = self._fetch_forecast(location, days)
            if forecast and not all(day.is_fallback for day in forecast):
                self.cache.set_forecast(location, forecast)
            return forecast
        except Exception as e:
            logging.error(f"Failed to get weather forecast: {e}")
            return fallback_forecast(days)

    def _fetch_forecast(self, location: Location, days: int) -> List[WeatherContext]:
        attempts = self.config.max_retries + 1
        for attempt in range(attempts):
            try:
                return self.provider.get_forecast(location, days)
            except WeatherProviderError as e:
                logging.warning(f"Forecast fetch attempt {attempt + 1}/{attempts} failed: {e}")
                if not e.retryable or attempt == attempts - 1:
                    raise
                retry_delay = self.config.retry_base_delay * (attempt + 1)
                logging.info(f"Retrying in {retry_delay}s...")
                self.sleep(retry_delay)
        return []

    # Scoring pass-throughs

    def analyze_item(self, item: Any, weather: WeatherContext) -> float:
        return score_item(item, weather)

    def filter_recommendations(
        self,
        recommendations: Sequence[T],
        weather: WeatherContext,
        min_score: float = DEFAULT_MIN_SCORE,
    ) -> List[T]:
        return filter_recommendations(recommendations, weather, min_score)

    def suggestions(self, weather: WeatherContext) -> List[str]:
        return weather_suggestions(weather)
