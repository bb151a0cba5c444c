"""Filter and rank outfit recommendations by weather suitability."""
import logging
from typing import Any, List, Mapping, Sequence, TypeVar

from appropriateness import outfit_score
from weather_data import WeatherContext

DEFAULT_MIN_SCORE = 0.35

T = TypeVar("T")


def _outfit_items(recommendation: Any) -> Sequence[Any]:
    if isinstance(recommendation, Mapping):
        return recommendation["items"]
    return recommendation.items


def filter_recommendations(
    recommendations: Sequence[T],
    weather: WeatherContext,
    min_score: float = DEFAULT_MIN_SCORE,
) -> List[T]:
    """
    Keep outfits scoring at least ``min_score`` and sort them best first.

    Each recommendation is a mapping with an ``items`` key or an object with
    an ``items`` attribute. Ties keep their input order. If scoring any
    candidate fails, the whole call gives up and returns the input unchanged
    rather than a partially filtered list.
    """
    try:
        scored = [
            (outfit_score(_outfit_items(recommendation), weather), recommendation)
            for recommendation in recommendations
        ]
    except Exception as e:
        logging.error(f"Failed to filter recommendations by weather: {e}", exc_info=True)
        return list(recommendations)

    kept = [entry for entry in scored if entry[0] >= min_score]
    # sorted() is stable, so equal scores keep input order
    kept = sorted(kept, key=lambda entry: entry[0], reverse=True)
    logging.debug(f"Weather filter kept {len(kept)}/{len(scored)} recommendations (min score {min_score})")
    return [recommendation for _, recommendation in kept]
