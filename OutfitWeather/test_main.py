"""Tests for the command-line entry point."""
import json

import pytest

import config
import main
from weather_data import WeatherCondition, WeatherContext


@pytest.fixture(autouse=True)
def offline_env(monkeypatch):
    for name in ("WEATHER_API_KEY", "WEATHER_LAT", "WEATHER_LON", "WEATHER_CACHE_PATH", "WEATHER_CACHE_TTL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config, "load_dotenv", lambda: False)
    monkeypatch.setattr(main, "setup_logging", lambda log_file, verbose: None)


def test_parse_args_defaults():
    args = main.parse_args([])
    assert args.forecast == 0
    assert args.wardrobe is None
    assert args.min_score == 0.35


def test_format_weather_line_marks_estimates():
    weather = WeatherContext(
        temperature=45,
        condition=WeatherCondition.CLOUDY,
        humidity=50,
        wind_speed=5.0,
        source="fallback",
    )
    assert main.format_weather_line(weather) == "Unknown: 45° cloudy, humidity 50%, wind 5.0 (estimated)"


def test_main_prints_weather_and_tips(capsys):
    assert main.main([]) == 0

    out = capsys.readouterr().out
    assert "(estimated)" in out
    assert "  - " in out


def test_main_with_forecast_and_wardrobe(tmp_path, capsys):
    wardrobe = tmp_path / "wardrobe.json"
    wardrobe.write_text(json.dumps([
        {"name": "plain tee", "items": [{"category": "tops", "tags": []}]},
        {"name": "nothing", "items": []},
    ]), encoding="utf-8")

    assert main.main(["--forecast", "2", "--wardrobe", str(wardrobe)]) == 0

    out = capsys.readouterr().out
    assert "2-day forecast:" in out
    assert "plain tee" in out
    assert "(1/2 suitable)" in out


def test_main_reports_bad_wardrobe(tmp_path):
    wardrobe = tmp_path / "wardrobe.json"
    wardrobe.write_text('{"not": "a list"}', encoding="utf-8")

    assert main.main(["--wardrobe", str(wardrobe)]) == 1


def test_load_wardrobe_rejects_non_objects(tmp_path):
    wardrobe = tmp_path / "wardrobe.json"
    wardrobe.write_text('["shirt"]', encoding="utf-8")

    with pytest.raises(ValueError):
        main.load_wardrobe(str(wardrobe))


@pytest.mark.parametrize("items", ["tee", {"category": "tops"}, ["tee"]])
def test_load_wardrobe_rejects_malformed_items(tmp_path, items):
    wardrobe = tmp_path / "wardrobe.json"
    wardrobe.write_text(json.dumps([{"name": "odd", "items": items}]), encoding="utf-8")

    with pytest.raises(ValueError):
        main.load_wardrobe(str(wardrobe))
    assert main.main(["--wardrobe", str(wardrobe)]) == 1
