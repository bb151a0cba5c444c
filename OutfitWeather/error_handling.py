"""Retry orchestration and per-user weather fallback shared across services."""
import json
import logging
import random
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, TypeVar

from fallback_weather import fallback_current
from weather_cache import KeyValueStore, MemoryStore
from weather_data import SOURCE_CACHE, WeatherContext
from weather_provider import WeatherProviderError

T = TypeVar("T")

USER_WEATHER_KEY_PREFIX = "user_weather_"


@dataclass
class RetryPolicy:
    """How hard execute_with_retry tries before giving up."""
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    enable_offline_mode: bool = True


@dataclass
class ErrorContext:
    service: str
    operation: str
    user_id: Optional[str] = None


class ErrorHandler:
    """
    Generic retry with exponential backoff, plus a per-user weather cache
    other services can read without fetching again.
    """

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        user_weather_ttl_seconds: int = 2 * 60 * 60,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        rng: Optional[random.Random] = None,
    ):
        self.store = store if store is not None else MemoryStore()
        self.user_weather_ttl_seconds = user_weather_ttl_seconds
        self.sleep = sleep
        self.clock = clock
        self.rng = rng or random.Random()

    def backoff_delay(self, attempt: int, policy: RetryPolicy) -> float:
        jitter = self.rng.random()
        return min(policy.base_delay * (2 ** attempt) + jitter, policy.max_delay)

    def execute_with_retry(
        self,
        operation: Callable[[], T],
        context: ErrorContext,
        policy: Optional[RetryPolicy] = None,
    ) -> T:
        """
        Run ``operation`` up to ``policy.max_retries + 1`` times.

        Raises:
            Exception: The last error once attempts are exhausted, or a
                non-retryable WeatherProviderError immediately
        """
        policy = policy or RetryPolicy()
        last_error: Optional[Exception] = None

        for attempt in range(policy.max_retries + 1):
            try:
                return operation()
            except Exception as e:
                last_error = e
                logging.warning(
                    "%s.%s attempt %s/%s failed (user=%s): %s",
                    context.service,
                    context.operation,
                    attempt + 1,
                    policy.max_retries + 1,
                    context.user_id,
                    e,
                )
                if isinstance(e, WeatherProviderError) and not e.retryable:
                    logging.error("Non-retryable error (%s), stopping retries", e.status_code)
                    break
                if attempt < policy.max_retries:
                    delay = self.backoff_delay(attempt, policy)
                    logging.info("Retrying in %.2fs...", delay)
                    self.sleep(delay)

        raise last_error

    def cache_weather(self, user_id: str, weather: WeatherContext) -> None:
        """Publish the latest weather for ``user_id``; storage failures are swallowed."""
        payload = weather.to_dict()
        payload["cached_at"] = self.clock().isoformat()
        try:
            self.store.set_item(f"{USER_WEATHER_KEY_PREFIX}{user_id}", json.dumps(payload))
        except Exception as e:
            logging.warning(f"Failed to cache weather for user {user_id}: {e}")

    def get_cached_weather(self, user_id: str) -> Optional[WeatherContext]:
        try:
            cached = self.store.get_item(f"{USER_WEATHER_KEY_PREFIX}{user_id}")
            if not cached:
                return None
            data = json.loads(cached)
            weather = WeatherContext.from_dict(data)
            cached_at = data.get("cached_at")
            stamp = datetime.fromisoformat(cached_at) if cached_at else weather.timestamp
        except Exception as e:
            logging.warning(f"Failed to get cached weather for user {user_id}: {e}")
            return None

        if stamp.tzinfo is None:
            stamp = stamp.replace(tzinfo=timezone.utc)
        age = (self.clock() - stamp).total_seconds()
        if age >= self.user_weather_ttl_seconds:
            logging.info(f"Cached weather for user {user_id} is too old ({age:.0f}s)")
            return None
        return weather.with_source(SOURCE_CACHE) if not weather.is_fallback else weather

    def handle_weather_service_error(self, user_id: Optional[str]) -> WeatherContext:
        """Recent per-user weather if any, otherwise the seasonal fallback."""
        if user_id:
            cached = self.get_cached_weather(user_id)
            if cached is not None:
                logging.info(f"Serving cached weather for user {user_id}")
                return cached
        return fallback_current(self.clock())
