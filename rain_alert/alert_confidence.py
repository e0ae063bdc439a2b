# =============================================================================
# RAIN ALERT ENGINE - DECISION CONFIDENCE
# =============================================================================
#
# Additive confidence scoring. Every factor adds a capped increment and
# records a human-readable justification.
#
# LEVELS:
#   HIGH    score >= 0.7
#   MEDIUM  score >= 0.4
#   LOW     otherwise
#
# The score is a sum, not a probability. With all rain factors firing it
# reaches 1.2; treat it as an ordering, not a percentage.
#
# =============================================================================

from typing import List, Optional, Tuple

from shared.enums import ConfidenceLevel

from .station_models import ConfidenceScore


HIGH_CONFIDENCE_MIN_SCORE = 0.7
MEDIUM_CONFIDENCE_MIN_SCORE = 0.4


def _level_for(score: float) -> ConfidenceLevel:
    if score >= HIGH_CONFIDENCE_MIN_SCORE:
        return ConfidenceLevel.HIGH
    if score >= MEDIUM_CONFIDENCE_MIN_SCORE:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def _station_count_factor(station_count: int, many: float, several: float) -> Tuple[float, str]:
    if station_count >= 5:
        return many, f"Multiple stations reporting ({station_count})"
    if station_count >= 3:
        return several, f"Several stations reporting ({station_count})"
    return 0.0, f"Limited station data ({station_count})"


def _agreement_factor(weighted_percentage: float) -> Tuple[float, str]:
    if weighted_percentage >= 80:
        return 0.3, "Strong agreement between stations"
    if weighted_percentage >= 60:
        return 0.2, "Moderate agreement between stations"
    return 0.0, "Mixed signals from stations"


def _distance_factor(max_distance_km: Optional[float]) -> Optional[Tuple[float, str]]:
    if max_distance_km is None:
        return None
    if max_distance_km < 10:
        return 0.2, "Stations within 10km"
    if max_distance_km < 30:
        return 0.1, "Stations within 30km"
    return 0.0, "Some distant stations used"


def _build(parts: List[Tuple[float, str]]) -> ConfidenceScore:
    # 0.3 + 0.2 + 0.2 must compare as 0.7
    score = round(sum(increment for increment, _ in parts), 6)
    factors = [reason for _, reason in parts]
    return ConfidenceScore(level=_level_for(score), score=score, factors=factors)


def calculate_rain_confidence(
    station_count: int,
    weighted_percentage: float,
    max_distance_km: Optional[float],
    precipitation_in: Optional[float],
    text_based_detection: bool,
) -> ConfidenceScore:
    """
    Confidence of a rain cycle decision.

    Args:
        station_count: Stations with a usable observation
        weighted_percentage: Share of positive stations (0..100)
        max_distance_km: Farthest usable station, None if unknown
        precipitation_in: Largest last-hour precipitation among positive stations
        text_based_detection: Any positive station classified from its description
    """
    parts: List[Tuple[float, str]] = [
        _station_count_factor(station_count, many=0.3, several=0.2),
        _agreement_factor(weighted_percentage),
    ]

    distance = _distance_factor(max_distance_km)
    if distance is not None:
        parts.append(distance)

    if precipitation_in is not None:
        if precipitation_in > 0.1:
            parts.append((0.2, "Significant precipitation detected"))
        elif precipitation_in > 0.01:
            parts.append((0.1, "Light precipitation detected"))

    if text_based_detection:
        parts.append((0.2, "Weather description indicates rain"))

    return _build(parts)


def calculate_freeze_confidence(
    station_count: int,
    weighted_percentage: float,
    max_distance_km: Optional[float],
    threshold_difference_f: float,
) -> ConfidenceScore:
    """
    Confidence of a freeze cycle decision.

    Args:
        station_count: Stations with a usable observation
        weighted_percentage: Share of freezing stations (0..100)
        max_distance_km: Farthest usable station, None if unknown
        threshold_difference_f: How far below the threshold the coldest
            freezing station is (degF); 0 when none is freezing
    """
    parts: List[Tuple[float, str]] = [
        _station_count_factor(station_count, many=0.4, several=0.2),
        _agreement_factor(weighted_percentage),
    ]

    distance = _distance_factor(max_distance_km)
    if distance is not None:
        parts.append(distance)

    if threshold_difference_f > 5:
        parts.append((0.2, "Temperature well below freezing"))
    elif threshold_difference_f > 2:
        parts.append((0.1, "Temperature below freezing"))

    return _build(parts)
