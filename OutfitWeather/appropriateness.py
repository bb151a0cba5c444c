"""
Weather appropriateness scoring for clothing items and outfits.

Every item starts at a neutral 0.5, then picks up three independent
deltas (temperature band, sky condition, humidity/wind) and the sum is
clamped to [0, 1]. Tags are matched case-sensitively; callers supply
lowercase tags. Unknown tags contribute nothing.
"""
from typing import AbstractSet, Any, Iterable, Mapping, Optional, Tuple

from weather_data import WeatherCondition, WeatherContext

NEUTRAL_SCORE = 0.5
HUMID_THRESHOLD = 70
WINDY_THRESHOLD = 15


def _item_fields(item: Any) -> Tuple[str, AbstractSet[str]]:
    """Accept ClothingItem, any object with category/tags, or a mapping."""
    if isinstance(item, Mapping):
        category, tags = item.get("category", ""), item.get("tags", ())
    else:
        category, tags = getattr(item, "category", ""), getattr(item, "tags", ())
    return category or "", frozenset(tags or ())


def _any(tags: AbstractSet[str], *names: str) -> bool:
    return any(name in tags for name in names)


def temperature_score(category: str, tags: AbstractSet[str], temperature: float) -> float:
    score = 0.0
    outerwear = category == "outerwear"

    if temperature < 32:  # freezing
        if outerwear or _any(tags, "winter", "warm"):
            score += 0.3
        if _any(tags, "light", "summer"):
            score -= 0.3
        if _any(tags, "shorts", "sleeveless"):
            score -= 0.3
    elif temperature < 50:  # cold
        if outerwear or _any(tags, "warm", "long-sleeve"):
            score += 0.2
        if _any(tags, "light", "sleeveless"):
            score -= 0.2
        if "shorts" in tags:
            score -= 0.2
        if "summer" in tags:
            score -= 0.1
    elif temperature < 65:  # cool
        if _any(tags, "light-layer", "cardigan"):
            score += 0.1
        if _any(tags, "heavy", "winter"):
            score -= 0.1
    elif temperature < 75:  # mild, nearly everything works
        score += 0.1
    elif temperature < 85:  # warm
        if _any(tags, "light", "breathable", "summer"):
            score += 0.25
        if outerwear or _any(tags, "heavy", "long-sleeve"):
            score -= 0.25
    else:  # hot
        if _any(tags, "light", "breathable", "sleeveless"):
            score += 0.3
        if outerwear or _any(tags, "heavy", "long-sleeve"):
            score -= 0.35

    return score


def condition_score(category: str, tags: AbstractSet[str], condition: WeatherCondition) -> float:
    score = 0.0

    if condition == WeatherCondition.RAINY:
        if _any(tags, "waterproof", "water-resistant"):
            score += 0.2
        if _any(tags, "suede", "delicate"):
            score -= 0.2
        if category == "shoes" and "waterproof" not in tags:
            score -= 0.1
    elif condition == WeatherCondition.SNOWY:
        if _any(tags, "waterproof", "winter", "warm"):
            score += 0.2
        if _any(tags, "light", "delicate"):
            score -= 0.2
        if category == "shoes" and "waterproof" not in tags:
            score -= 0.3
    elif condition == WeatherCondition.WINDY:
        if _any(tags, "fitted", "structured"):
            score += 0.1
        if _any(tags, "flowy", "loose"):
            score -= 0.1
        if category == "accessories" and "hat" in tags:
            score -= 0.1
    elif condition == WeatherCondition.SUNNY:
        if _any(tags, "sun-protection", "light-color", "breathable", "light"):
            score += 0.1
        if category == "tops" and "dark" in tags:
            score -= 0.05
    elif condition == WeatherCondition.STORMY:
        if category == "outerwear" or "waterproof" in tags:
            score += 0.2
        if _any(tags, "delicate", "formal"):
            score -= 0.2

    return score


def environmental_score(
    category: str,
    tags: AbstractSet[str],
    humidity: float,
    wind_speed: Optional[float] = None,
) -> float:
    score = 0.0

    if humidity > HUMID_THRESHOLD:
        if _any(tags, "breathable", "moisture-wicking"):
            score += 0.1
        if _any(tags, "heavy", "non-breathable"):
            score -= 0.1

    if wind_speed and wind_speed >= WINDY_THRESHOLD:
        if _any(tags, "wind-resistant", "fitted"):
            score += 0.1
        if _any(tags, "flowy", "loose"):
            score -= 0.1

    return score


def score_item(item: Any, weather: WeatherContext) -> float:
    """Return how suitable ``item`` is for ``weather``, from 0 (bad) to 1 (ideal)."""
    category, tags = _item_fields(item)

    score = NEUTRAL_SCORE
    score += temperature_score(category, tags, weather.temperature)
    score += condition_score(category, tags, weather.condition)
    score += environmental_score(category, tags, weather.humidity, weather.wind_speed)

    return max(0.0, min(1.0, score))


def outfit_score(items: Iterable[Any], weather: WeatherContext) -> float:
    """Mean item score; an empty outfit scores 0."""
    scores = [score_item(item, weather) for item in items]
    if not scores:
        return 0.0
    return sum(scores) / len(scores)
