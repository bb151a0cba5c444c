"""Command-line weather check: current conditions, styling tips and outfit ranking."""
import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from appropriateness import outfit_score
from config import load_config
from recommendation_filter import DEFAULT_MIN_SCORE
from weather_data import WeatherContext
from weather_service import WeatherService


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser("weather-outfit", description="Weather-aware outfit recommendations")
    parser.add_argument("--log-file", default=None)
    parser.add_argument("--units", choices=["metric", "imperial", "standard"], default=None)
    parser.add_argument("--cache-path", default=None, help="JSON file used to persist the weather cache")
    parser.add_argument("--cache-ttl", type=int, default=None, help="Seconds before cached weather is refetched")
    parser.add_argument("--max-retries", type=int, default=None)
    parser.add_argument("--forecast", type=int, default=0, metavar="DAYS", help="Also show a DAYS-day forecast")
    parser.add_argument("--wardrobe", default=None, help="JSON list of outfits to rank for today's weather")
    parser.add_argument("--min-score", type=float, default=DEFAULT_MIN_SCORE)
    parser.add_argument("--user-id", default=None)
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def setup_logging(log_file: Optional[str], verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def format_weather_line(weather: WeatherContext) -> str:
    line = (
        f"{weather.location}: {weather.temperature}° {weather.condition.value}, "
        f"humidity {weather.humidity}%, wind {weather.effective_wind_speed:.1f}"
    )
    if weather.is_fallback:
        line += " (estimated)"
    return line


def load_wardrobe(path: str) -> List[Dict[str, Any]]:
    with open(path, "r", encoding="utf-8") as f:
        outfits = json.load(f)
    if not isinstance(outfits, list):
        raise ValueError("Wardrobe file must contain a JSON list of outfits")
    for outfit in outfits:
        if not isinstance(outfit, dict):
            raise ValueError(f"Outfit entries must be JSON objects, got {outfit!r}")
        items = outfit.setdefault("items", [])
        if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
            raise ValueError(f"Outfit items must be a JSON list of objects, got {items!r}")
    return outfits


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_file, args.verbose)
    config = load_config(
        units=args.units,
        cache_path=args.cache_path,
        cache_ttl_seconds=args.cache_ttl,
        max_retries=args.max_retries,
    )
    service = WeatherService.from_config(config)

    weather = service.get_current_weather_context(args.user_id)
    print(format_weather_line(weather))
    for tip in service.suggestions(weather):
        print(f"  - {tip}")

    if args.forecast > 0:
        print()
        print(f"{args.forecast}-day forecast:")
        for day in service.get_weather_forecast(args.forecast):
            print(f"  {day.timestamp:%a %d %b}: {day.temperature}° {day.condition.value}")

    if args.wardrobe:
        try:
            outfits = load_wardrobe(args.wardrobe)
        except (OSError, ValueError) as e:
            logging.error("Could not read wardrobe %s: %s", args.wardrobe, e)
            return 1

        ranked = service.filter_recommendations(outfits, weather, args.min_score)
        print()
        print(f"Outfits for today ({len(ranked)}/{len(outfits)} suitable):")
        for outfit in ranked:
            name = outfit.get("name", "outfit")
            print(f"  {outfit_score(outfit['items'], weather):.2f}  {name}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
