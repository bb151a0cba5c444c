"""Human-readable styling tips derived from a weather record."""
from typing import List, Optional

from weather_data import WeatherCondition, WeatherContext

GENERIC_TIP = "Check the weather and dress accordingly"

# (upper bound exclusive, tips); the last band has no upper bound
TEMPERATURE_TIPS = [
    (32, [
        "Layer up with warm outerwear",
        "Don't forget gloves and a hat",
        "Waterproof boots recommended",
    ]),
    (50, [
        "A warm jacket or coat is essential",
        "Consider layering for warmth",
        "Closed-toe shoes recommended",
    ]),
    (65, [
        "Light jacket or cardigan recommended",
        "Perfect weather for layering",
        "Comfortable for most clothing choices",
    ]),
    (75, [
        "Ideal weather for most outfits",
        "Light layers work well",
        "Great day for your favorite pieces",
    ]),
    (85, [
        "Light, breathable fabrics recommended",
        "Consider short sleeves or sleeveless",
        "Comfortable shoes for warm weather",
    ]),
    (None, [
        "Stay cool with minimal, light clothing",
        "Breathable fabrics are essential",
        "Sun protection recommended",
    ]),
]

CONDITION_TIPS = {
    WeatherCondition.RAINY: [
        "Waterproof or water-resistant items",
        "Avoid light colors that show water stains",
        "Quick-dry fabrics are ideal",
    ],
    WeatherCondition.SNOWY: [
        "Waterproof boots are essential",
        "Dark colors hide salt stains",
        "Layer for warmth and protection",
    ],
    WeatherCondition.WINDY: [
        "Avoid loose, flowing garments",
        "Secure accessories and layers",
        "Consider wind-resistant outerwear",
    ],
    WeatherCondition.SUNNY: [
        "UV protection recommended",
        "Light colors reflect heat",
        "Perfect day to showcase your style",
    ],
}

HUMIDITY_TIPS = [
    "Breathable, moisture-wicking fabrics",
    "Avoid heavy layering",
]

WIND_TIPS = [
    "Secure loose items and accessories",
    "Consider wind-resistant outerwear",
]


def _temperature_tips(temperature: float) -> List[str]:
    for upper, tips in TEMPERATURE_TIPS:
        if upper is None or temperature < upper:
            return list(tips)
    return []


def weather_suggestions(weather: Optional[WeatherContext]) -> List[str]:
    """
    Ordered tips: temperature band first, then sky condition, then humidity
    above 70% and wind above 15. Never empty.
    """
    if weather is None:
        return [GENERIC_TIP]

    try:
        tips = _temperature_tips(weather.temperature)
        tips.extend(CONDITION_TIPS.get(weather.condition, []))
        if weather.humidity > 70:
            tips.extend(HUMIDITY_TIPS)
        if weather.wind_speed and weather.wind_speed > 15:
            tips.extend(WIND_TIPS)
    except (AttributeError, TypeError):
        return [GENERIC_TIP]

    return tips or [GENERIC_TIP]
