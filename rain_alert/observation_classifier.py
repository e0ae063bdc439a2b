# =============================================================================
# RAIN ALERT ENGINE - OBSERVATION CLASSIFIER
# =============================================================================
#
# Pure, total functions over one Observation.
# A missing field fails only its own sub-condition, never the call.
#
# =============================================================================

from typing import Optional

from .station_models import ClassificationResult, Observation


RAIN_PRECIPITATION_MIN_IN = 0.01
SATURATED_HUMIDITY_PCT = 95.0
DEFAULT_FREEZE_THRESHOLD_F = 35.0

RAIN_INDICATORS = (
    "rain",
    "shower",
    "drizzle",
    "thunderstorm",
    "precipitation",
    "precip",
    "wet",
    "mist",
)

SATURATION_INDICATORS = ("overcast", "fog")


def _description(obs: Observation) -> str:
    return (obs.text_description or "").lower()


def has_measured_rain(obs: Observation) -> bool:
    precip = obs.precipitation_last_hour_in
    return precip is not None and precip > RAIN_PRECIPITATION_MIN_IN


def has_saturated_sky(obs: Observation) -> bool:
    humidity = obs.relative_humidity_pct
    if humidity is None or humidity <= SATURATED_HUMIDITY_PCT:
        return False
    desc = _description(obs)
    return any(word in desc for word in SATURATION_INDICATORS)


def has_rain_description(obs: Observation) -> bool:
    desc = _description(obs)
    return any(word in desc for word in RAIN_INDICATORS)


def is_raining(obs: Observation) -> bool:
    """
    True if any of:
    - precipitation in the last hour > 0.01 in
    - humidity > 95% with an overcast/fog description
    - description mentions a rain indicator
    """
    return has_measured_rain(obs) or has_saturated_sky(obs) or has_rain_description(obs)


def is_rain_by_text(obs: Observation) -> bool:
    """Raining, but the numeric precipitation reading did not show it."""
    return not has_measured_rain(obs) and is_raining(obs)


def is_freezing(obs: Observation, threshold_f: float = DEFAULT_FREEZE_THRESHOLD_F) -> bool:
    """True iff temperature is reported and at or below threshold_f."""
    return obs.temperature_f is not None and obs.temperature_f <= threshold_f


def classify(
    obs: Observation,
    freeze_threshold_f: Optional[float] = None,
) -> ClassificationResult:
    threshold = DEFAULT_FREEZE_THRESHOLD_F if freeze_threshold_f is None else freeze_threshold_f
    return ClassificationResult(
        is_raining=is_raining(obs),
        is_freezing=is_freezing(obs, threshold),
        rain_by_text=is_rain_by_text(obs),
    )
