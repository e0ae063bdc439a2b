# =============================================================================
# RAIN ALERT ENGINE - DATA MODEL
# =============================================================================
#
# Value types shared by every engine component.
#
# IMMUTABILITY:
# All types are frozen dataclasses. A Station or Observation is never
# mutated once created; a refresh produces new instances instead.
#
# LIFETIME:
# - Station: created when the directory is fetched, superseded on refresh
# - Observation: created per fetch cycle, discarded after the decision
# - DecisionResult: returned to the caller, not retained by the engine
#
# =============================================================================

import json
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Optional, TypeVar

from shared.enums import ConfidenceLevel, CycleKind, DecisionStatus


# =============================================================================
# ERRORS
# =============================================================================


class AlertEngineError(Exception):
    """Base class for all engine errors."""


class CatalogFetchError(AlertEngineError):
    """
    The station catalog could not be fetched.

    Network failure, non-2xx response, unparsable body or an empty catalog.
    The underlying exception (if any) is kept in `cause`.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class ObservationFetchError(AlertEngineError):
    """A single station's observation could not be fetched or parsed."""


class NoUsableDataError(AlertEngineError):
    """Zero stations produced a usable observation in a cycle."""


class ConfigError(ValueError):
    """Engine configuration is missing keys or has invalid values."""


# =============================================================================
# RESULT TYPE
# =============================================================================

T = TypeVar("T")


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """
    Tagged success/failure result.

    Exactly one of `value` / `error` is meaningful, selected by `ok`.
    Use the `success` / `failure` constructors rather than building
    instances directly.
    """
    ok: bool
    value: Optional[T] = None
    error: Optional[AlertEngineError] = None

    @classmethod
    def success(cls, value: T) -> "FetchResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: AlertEngineError) -> "FetchResult[T]":
        return cls(ok=False, error=error)

    def unwrap(self) -> T:
        """Return the value or raise the carried error."""
        if not self.ok:
            raise self.error
        return self.value


# =============================================================================
# STATIONS
# =============================================================================


@dataclass(frozen=True)
class Coordinate:
    """(latitude, longitude) in decimal degrees."""
    latitude: float
    longitude: float

    def __post_init__(self):
        if not (-90.0 <= self.latitude <= 90.0):
            raise ValueError(f"latitude must be in [-90, 90], got {self.latitude}")
        if not (-180.0 <= self.longitude <= 180.0):
            raise ValueError(f"longitude must be in [-180, 180], got {self.longitude}")

    def to_dict(self) -> Dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass(frozen=True)
class Station:
    """
    A fixed weather-observing location.

    distance_km is None until the directory ranks the station against a
    query point. A candidate station always carries a distance.
    """
    station_id: str
    name: str
    coordinate: Coordinate
    observation_url: str
    distance_km: Optional[float] = None

    def with_distance(self, distance_km: float) -> "Station":
        """Return a copy of this station with the ranking distance set."""
        return replace(self, distance_km=distance_km)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "station_id": self.station_id,
            "name": self.name,
            "latitude": self.coordinate.latitude,
            "longitude": self.coordinate.longitude,
            "observation_url": self.observation_url,
            "distance_km": self.distance_km,
        }


# =============================================================================
# OBSERVATIONS
# =============================================================================


@dataclass(frozen=True)
class Observation:
    """
    Latest normalized observation from one station.

    All measurements are already in imperial units. Any field may be None
    when the station did not report it; a station reporting only
    temperature is still usable for freeze decisions.
    """
    station: Station
    temperature_f: Optional[float] = None
    precipitation_last_hour_in: Optional[float] = None
    relative_humidity_pct: Optional[float] = None
    wind_speed_mph: Optional[float] = None
    wind_direction_cardinal: Optional[str] = None
    text_description: Optional[str] = None
    raw_payload: Optional[str] = field(default=None, repr=False)
    observed_at_iso: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "station_id": self.station.station_id,
            "station_name": self.station.name,
            "temperature_f": self.temperature_f,
            "precipitation_last_hour_in": self.precipitation_last_hour_in,
            "relative_humidity_pct": self.relative_humidity_pct,
            "wind_speed_mph": self.wind_speed_mph,
            "wind_direction_cardinal": self.wind_direction_cardinal,
            "text_description": self.text_description,
            "observed_at_iso": self.observed_at_iso,
        }


@dataclass(frozen=True)
class ClassificationResult:
    """
    Per-observation classification.

    rain_by_text is True when the observation counts as raining but the
    numeric precipitation reading alone would not have said so.
    """
    is_raining: bool
    is_freezing: bool
    rain_by_text: bool = False


# =============================================================================
# DECISIONS
# =============================================================================


@dataclass(frozen=True)
class ConfidenceScore:
    """
    Additive, explainable confidence indicator.

    score is a sum of capped per-factor increments. It is indicative only
    and is not a probability.
    """
    level: ConfidenceLevel
    score: float
    factors: List[str] = field(default_factory=list)

    def __post_init__(self):
        if not isinstance(self.level, ConfidenceLevel):
            raise TypeError(f"level must be ConfidenceLevel, got {type(self.level)}")
        if self.score < 0.0:
            raise ValueError(f"score must be non-negative, got {self.score}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level.value,
            "score": round(self.score, 3),
            "factors": list(self.factors),
        }


@dataclass(frozen=True)
class StationContribution:
    """One station's input to a decision, for the math and for display."""
    station: Station
    distance_km: float
    weight: float
    is_positive: bool
    temperature_f: Optional[float] = None
    precipitation_in: Optional[float] = None
    text_description: Optional[str] = None
    observed_at_iso: Optional[str] = None

    def __post_init__(self):
        if self.distance_km is None:
            raise ValueError(f"station {self.station.station_id} has no distance")
        if not (0.0 <= self.weight <= 1.0):
            raise ValueError(f"weight must be in [0, 1], got {self.weight}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "station_id": self.station.station_id,
            "station_name": self.station.name,
            "distance_km": round(self.distance_km, 2),
            "weight": round(self.weight, 4),
            "is_positive": self.is_positive,
            "temperature_f": self.temperature_f,
            "precipitation_in": self.precipitation_in,
            "text_description": self.text_description,
            "observed_at_iso": self.observed_at_iso,
        }


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S") + "Z"


@dataclass(frozen=True)
class DecisionResult:
    """
    Result of one rain or freeze cycle.

    stations_used == 0 means NO_DATA: not an alert, and not the same as
    "checked and clear". Use `status` / `has_data` to tell them apart.
    """
    cycle: CycleKind
    triggered: bool
    weighted_percentage: float
    threshold_used: float
    stations_used: int
    contributions: List[StationContribution] = field(default_factory=list)
    max_distance_km: Optional[float] = None
    confidence: Optional[ConfidenceScore] = None
    decided_at_iso: str = field(default_factory=_utc_now_iso)

    def __post_init__(self):
        if not (0.0 <= self.weighted_percentage <= 100.0):
            raise ValueError(
                f"weighted_percentage must be in [0, 100], got {self.weighted_percentage}"
            )
        if not isinstance(self.cycle, CycleKind):
            raise TypeError(f"cycle must be CycleKind, got {type(self.cycle)}")
        if self.stations_used == 0 and self.triggered:
            raise ValueError("a cycle without usable stations cannot trigger")

    @property
    def has_data(self) -> bool:
        return self.stations_used > 0

    @property
    def status(self) -> DecisionStatus:
        if not self.has_data:
            return DecisionStatus.NO_DATA
        if self.triggered:
            return DecisionStatus.TRIGGERED
        return DecisionStatus.CLEAR

    @property
    def positive_count(self) -> int:
        return sum(1 for c in self.contributions if c.is_positive)

    def require_data(self) -> "DecisionResult":
        """
        Return self, or raise for callers that treat NO_DATA as an error.

        Raises:
            NoUsableDataError: If no station produced a usable observation
        """
        if not self.has_data:
            raise NoUsableDataError(
                f"{self.cycle.value} cycle at {self.decided_at_iso}: no usable station data"
            )
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary for display and audit."""
        return {
            "cycle": self.cycle.value,
            "status": self.status.value,
            "triggered": self.triggered,
            "weighted_percentage": round(self.weighted_percentage, 2),
            "threshold_used": self.threshold_used,
            "stations_used": self.stations_used,
            "max_distance_km": (
                round(self.max_distance_km, 2) if self.max_distance_km is not None else None
            ),
            "confidence": self.confidence.to_dict() if self.confidence else None,
            "contributions": [c.to_dict() for c in self.contributions],
            "decided_at_iso": self.decided_at_iso,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)
