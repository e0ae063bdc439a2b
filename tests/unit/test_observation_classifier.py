"""
UNIT TESTS - OBSERVATION CLASSIFIER
===================================
Tests for rain_alert/observation_classifier.py
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import pytest

from rain_alert.observation_classifier import (
    classify,
    is_freezing,
    is_rain_by_text,
    is_raining,
)
from tests.mock_data import make_observation


# =============================================================================
# RAIN
# =============================================================================


def test_measured_precipitation_is_rain():
    assert is_raining(make_observation(precipitation_in=0.02, text="Cloudy"))


def test_trace_precipitation_is_not_rain():
    assert not is_raining(make_observation(precipitation_in=0.01, text="Cloudy"))


def test_dry_clear_is_not_rain():
    assert not is_raining(make_observation(precipitation_in=0.0, humidity_pct=40.0, text="Clear"))


def test_saturated_overcast_is_rain():
    assert is_raining(make_observation(precipitation_in=None, humidity_pct=97.0, text="Overcast"))


def test_saturated_fog_is_rain():
    assert is_raining(make_observation(precipitation_in=None, humidity_pct=96.0, text="Fog/Mist"))


def test_humidity_at_95_is_not_saturated():
    assert not is_raining(make_observation(precipitation_in=None, humidity_pct=95.0, text="Overcast"))


def test_high_humidity_without_cloud_text_is_not_rain():
    assert not is_raining(make_observation(precipitation_in=None, humidity_pct=99.0, text="Clear"))


@pytest.mark.parametrize("text", [
    "Light Rain",
    "Rain Showers",
    "Drizzle",
    "Thunderstorms in Vicinity",
    "Precipitation",
    "Wet",
    "Mist",
    "LIGHT RAIN AND FOG",
])
def test_rain_indicator_text_is_rain(text):
    assert is_raining(make_observation(precipitation_in=None, humidity_pct=None, text=text))


def test_all_fields_missing_is_not_rain():
    obs = make_observation(precipitation_in=None, humidity_pct=None, text=None)

    assert not is_raining(obs)
    assert not is_rain_by_text(obs)


def test_rain_by_text_flags_text_only_detection():
    assert is_rain_by_text(make_observation(precipitation_in=0.0, text="Light Rain"))
    assert not is_rain_by_text(make_observation(precipitation_in=0.2, text="Heavy Rain"))
    assert not is_rain_by_text(make_observation(precipitation_in=0.0, text="Clear"))


# =============================================================================
# FREEZE
# =============================================================================


def test_below_threshold_is_freezing():
    assert is_freezing(make_observation(temperature_f=34.9), 35.0)


def test_at_threshold_is_freezing():
    assert is_freezing(make_observation(temperature_f=35.0), 35.0)


def test_above_threshold_is_not_freezing():
    assert not is_freezing(make_observation(temperature_f=35.1), 35.0)


def test_missing_temperature_is_not_freezing():
    assert not is_freezing(make_observation(temperature_f=None), 35.0)


def test_default_threshold_is_35():
    assert is_freezing(make_observation(temperature_f=35.0))
    assert not is_freezing(make_observation(temperature_f=35.5))


# =============================================================================
# CLASSIFY
# =============================================================================


def test_classify_combines_both_rules():
    result = classify(make_observation(temperature_f=33.0, precipitation_in=0.0, text="Light Drizzle"))

    assert result.is_raining
    assert result.is_freezing
    assert result.rain_by_text


def test_classify_uses_given_threshold():
    obs = make_observation(temperature_f=30.0)

    assert classify(obs, freeze_threshold_f=32.0).is_freezing
    assert not classify(obs, freeze_threshold_f=28.0).is_freezing
