# =============================================================================
# RAIN ALERT ENGINE - AGGREGATION & DECISION ENGINE
# =============================================================================
#
# Main orchestrator. One call = one decision cycle.
#
# PIPELINE (rain and freeze cycles are independent):
# 1. Resolve candidate stations via the StationCache
# 2. Fetch all observations in parallel, bounded by a cycle deadline
# 3. Classify each usable observation
# 4. weighted_percentage = positive / usable * 100   (simple counting)
# 5. Trigger:
#    - rain:   weighted_percentage >= RAIN_PROBABILITY_THRESHOLD
#    - freeze: weighted_percentage >= 50 (majority of reporting stations)
# 6. Contributions for every usable station, inverse-distance weights
#    (presentation only, never used for the trigger)
# 7. Additive confidence score
#
# STATE:
# Nothing survives a cycle except the StationCache snapshot. There is no
# "alert currently active" flag; debouncing repeated triggers is the
# caller's job.
#
# =============================================================================

import hashlib
import json
import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Sequence

import yaml
from dotenv import load_dotenv

from shared.enums import CycleKind

from .alert_confidence import calculate_freeze_confidence, calculate_rain_confidence
from .geo_distance import distance_km
from .http_client import DEFAULT_API_BASE_URL, build_user_agent
from .observation_classifier import classify
from .observation_fetcher import ObservationFetcher
from .station_cache import StationCache
from .station_directory import PinnedMatcher, StationDirectory
from .station_models import (
    ConfigError,
    Coordinate,
    DecisionResult,
    Observation,
    Station,
    StationContribution,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION DEFAULTS
# =============================================================================

FREEZE_TRIGGER_PERCENTAGE = 50.0
MIN_WEIGHT_DISTANCE_KM = 1.0

DEFAULT_CONFIG: Dict[str, Any] = {
    "FREEZE_THRESHOLD_F": 35.0,
    "RAIN_PROBABILITY_THRESHOLD": 50,
    "STATION_REFRESH_INTERVAL_MS": 6 * 60 * 60 * 1000,
    "STATION_LIMIT": 3,
    "CONNECT_TIMEOUT_SECONDS": 15,
    "READ_TIMEOUT_SECONDS": 30,
    "CYCLE_DEADLINE_SECONDS": 40,
    "PINNED_STATIONS": [],
    "STATION_CACHE_RELOCATION_KM": None,
    "API_BASE_URL": DEFAULT_API_BASE_URL,
    "USER_AGENT": "RainAlertEngine",
    "CONTACT_EMAIL": "rain-alert@example.com",
}

USER_AGENT_ENV_VAR = "RAIN_ALERT_USER_AGENT"
CONTACT_EMAIL_ENV_VAR = "RAIN_ALERT_CONTACT_EMAIL"

# Type alias for an injectable per-station fetch function
ObservationFetchFn = Callable[[Station], Optional[Observation]]


# =============================================================================
# PURE ANALYSIS
# =============================================================================


def compute_weights(distances_km: Sequence[float]) -> List[float]:
    """
    Normalized inverse-distance weights, in input order.

    Distances under 1 km count as 1 km. The result sums to 1.0 for any
    non-empty input.
    """
    raw = [1.0 / max(d, MIN_WEIGHT_DISTANCE_KM) for d in distances_km]
    total = sum(raw)
    if total <= 0:
        return []
    return [w / total for w in raw]


def distance_weighted_percentage(contributions: Sequence[StationContribution]) -> float:
    """
    Share of positive stations weighted by closeness (0..100).

    Display helper only; cycle triggers use simple counting.
    """
    total = sum(c.weight for c in contributions)
    if total <= 0:
        return 0.0
    positive = sum(c.weight for c in contributions if c.is_positive)
    return min(100.0, max(0.0, positive / total * 100.0))


def _with_distance(obs: Observation, origin: Optional[Coordinate]) -> Optional[Observation]:
    if obs.station.distance_km is not None:
        return obs
    if origin is None:
        return None
    station = obs.station.with_distance(distance_km(origin, obs.station.coordinate))
    return replace(obs, station=station)


def analyze_observations(
    observations: Sequence[Observation],
    cycle: CycleKind,
    freeze_threshold_f: float = DEFAULT_CONFIG["FREEZE_THRESHOLD_F"],
    rain_threshold: float = DEFAULT_CONFIG["RAIN_PROBABILITY_THRESHOLD"],
    origin: Optional[Coordinate] = None,
) -> DecisionResult:
    """
    Turn a set of usable observations into a DecisionResult.

    No network access. Observations whose station has no distance get one
    from `origin`; without an origin they are left out, since a decision
    never includes a station of unknown distance.

    Args:
        observations: Usable observations, in candidate order
        cycle: RAIN or FREEZE
        freeze_threshold_f: Per-station freeze threshold (degF)
        rain_threshold: Rain trigger percentage (0..100)
        origin: Query point, used only to fill missing distances

    Returns:
        DecisionResult (stations_used == 0 when nothing is usable)
    """
    threshold_used = float(rain_threshold if cycle == CycleKind.RAIN else freeze_threshold_f)

    usable: List[Observation] = []
    for obs in observations:
        ranged = _with_distance(obs, origin)
        if ranged is None:
            logger.warning(f"Dropping station {obs.station.station_id}: no distance available")
            continue
        usable.append(ranged)

    if not usable:
        logger.info(f"{cycle.value} cycle: no usable station data")
        return DecisionResult(
            cycle=cycle,
            triggered=False,
            weighted_percentage=0.0,
            threshold_used=threshold_used,
            stations_used=0,
        )

    classifications = [classify(obs, freeze_threshold_f) for obs in usable]
    if cycle == CycleKind.RAIN:
        positives = [c.is_raining for c in classifications]
    else:
        positives = [c.is_freezing for c in classifications]

    count = len(usable)
    positive_count = sum(1 for p in positives if p)
    weighted_percentage = min(100.0, max(0.0, positive_count / count * 100.0))

    if cycle == CycleKind.RAIN:
        triggered = weighted_percentage >= rain_threshold
    else:
        triggered = weighted_percentage >= FREEZE_TRIGGER_PERCENTAGE

    distances = [obs.station.distance_km for obs in usable]
    weights = compute_weights(distances)
    contributions = [
        StationContribution(
            station=obs.station,
            distance_km=obs.station.distance_km,
            weight=weight,
            is_positive=positive,
            temperature_f=obs.temperature_f,
            precipitation_in=obs.precipitation_last_hour_in,
            text_description=obs.text_description,
            observed_at_iso=obs.observed_at_iso,
        )
        for obs, weight, positive in zip(usable, weights, positives)
    ]
    max_distance = max(distances)

    if cycle == CycleKind.RAIN:
        positive_precip = [
            obs.precipitation_last_hour_in
            for obs, positive in zip(usable, positives)
            if positive and obs.precipitation_last_hour_in is not None
        ]
        text_based = any(
            c.rain_by_text for c, positive in zip(classifications, positives) if positive
        )
        confidence = calculate_rain_confidence(
            station_count=count,
            weighted_percentage=weighted_percentage,
            max_distance_km=max_distance,
            precipitation_in=max(positive_precip) if positive_precip else None,
            text_based_detection=text_based,
        )
    else:
        freezing_temps = [
            obs.temperature_f for obs, positive in zip(usable, positives) if positive
        ]
        margin = freeze_threshold_f - min(freezing_temps) if freezing_temps else 0.0
        confidence = calculate_freeze_confidence(
            station_count=count,
            weighted_percentage=weighted_percentage,
            max_distance_km=max_distance,
            threshold_difference_f=margin,
        )

    for c in contributions:
        logger.debug(
            f"Station: {c.station.name}, Distance: {c.distance_km:.1f} km, "
            f"Positive: {c.is_positive}, Weight: {c.weight:.4f}"
        )
    logger.info(
        f"{cycle.value} cycle | {positive_count}/{count} stations positive | "
        f"pct={weighted_percentage:.1f} | triggered={triggered} | "
        f"confidence={confidence.level.value} ({confidence.score:.2f})"
    )

    return DecisionResult(
        cycle=cycle,
        triggered=triggered,
        weighted_percentage=weighted_percentage,
        threshold_used=threshold_used,
        stations_used=count,
        contributions=contributions,
        max_distance_km=max_distance,
        confidence=confidence,
    )


# =============================================================================
# ALERT ENGINE
# =============================================================================


class AlertEngine:
    """
    Multi-station rain/freeze decision engine.

    The StationCache is owned by the caller and may be shared between
    engines; everything else is per-cycle.
    """

    VERSION = "1.0.0"

    def __init__(
        self,
        config: Dict[str, Any],
        location: Coordinate,
        station_cache: Optional[StationCache] = None,
        fetch_observation: Optional[ObservationFetchFn] = None,
    ):
        """
        Initialize the engine.

        Args:
            config: Configuration dictionary (see config/alert.yaml)
            location: Current location
            station_cache: Candidate station cache (built from config if None)
            fetch_observation: Per-station fetch function (injectable for testing)
        """
        self.config = {**DEFAULT_CONFIG, **config}
        validate_config(self.config)

        self.location = location
        self.freeze_threshold_f = float(self.config["FREEZE_THRESHOLD_F"])
        self.rain_threshold = float(self.config["RAIN_PROBABILITY_THRESHOLD"])
        self.refresh_interval_ms = float(self.config["STATION_REFRESH_INTERVAL_MS"])
        self.cycle_deadline_seconds = float(self.config["CYCLE_DEADLINE_SECONDS"])

        user_agent = build_user_agent(self.config["USER_AGENT"], self.config["CONTACT_EMAIL"])
        connect_timeout = float(self.config["CONNECT_TIMEOUT_SECONDS"])
        read_timeout = float(self.config["READ_TIMEOUT_SECONDS"])

        relocation = self.config["STATION_CACHE_RELOCATION_KM"]
        relocation_km = float(relocation) if relocation is not None else None

        if station_cache is None:
            directory = StationDirectory(
                base_url=self.config["API_BASE_URL"],
                user_agent=user_agent,
                connect_timeout=connect_timeout,
                read_timeout=read_timeout,
            )
            station_cache = StationCache(
                directory,
                limit=int(self.config["STATION_LIMIT"]),
                pinned_matchers=[
                    PinnedMatcher.from_config(p) for p in self.config["PINNED_STATIONS"] or []
                ],
                relocation_km=relocation_km,
            )
        self.station_cache = station_cache

        if fetch_observation is None:
            fetch_observation = ObservationFetcher(
                user_agent=user_agent,
                connect_timeout=connect_timeout,
                read_timeout=read_timeout,
            ).fetch_observation
        self._fetch_observation = fetch_observation

        config_json = json.dumps(self.config, sort_keys=True, default=str)
        self._config_hash = hashlib.sha256(config_json.encode()).hexdigest()[:16]

        logger.info(
            f"AlertEngine initialized | version={self.VERSION} | "
            f"config_hash={self._config_hash}"
        )

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def set_location(self, location: Coordinate) -> None:
        self.location = location

    def run_rain_cycle(self) -> DecisionResult:
        """Run one rain decision cycle for the current location."""
        return self._run_cycle(CycleKind.RAIN)

    def run_freeze_cycle(self) -> DecisionResult:
        """Run one freeze decision cycle for the current location."""
        return self._run_cycle(CycleKind.FREEZE)

    def clear_station_cache(self) -> None:
        self.station_cache.clear_cache()

    # -------------------------------------------------------------------------
    # Cycle internals
    # -------------------------------------------------------------------------

    def _run_cycle(self, cycle: CycleKind) -> DecisionResult:
        start = time.monotonic()
        location = self.location
        logger.info(
            f"{cycle.value} cycle started | "
            f"location=({location.latitude:.4f},{location.longitude:.4f})"
        )

        stations = self.station_cache.get_nearby_stations(location, self.refresh_interval_ms)
        if not stations:
            logger.warning(f"{cycle.value} cycle: no candidate stations available")

        observations = self._fetch_all(stations)

        result = analyze_observations(
            observations,
            cycle,
            freeze_threshold_f=self.freeze_threshold_f,
            rain_threshold=self.rain_threshold,
            origin=location,
        )

        logger.info(
            f"{cycle.value} cycle complete | duration={time.monotonic() - start:.2f}s | "
            f"status={result.status.value} | stations={result.stations_used}/{len(stations)}"
        )
        return result

    def _fetch_one(self, station: Station) -> Optional[Observation]:
        try:
            return self._fetch_observation(station)
        except Exception as e:
            logger.warning(f"Observation fetch for {station.station_id} failed: {e}")
            return None

    def _fetch_all(self, stations: Sequence[Station]) -> List[Observation]:
        """
        Fetch every station in parallel and wait for all to settle.

        Fetches still running at the cycle deadline count as "no
        observation". Results keep candidate order.
        """
        if not stations:
            return []

        pool = ThreadPoolExecutor(max_workers=len(stations), thread_name_prefix="station-fetch")
        try:
            futures = [pool.submit(self._fetch_one, s) for s in stations]
            done, not_done = wait(futures, timeout=self.cycle_deadline_seconds)

            for future, station in zip(futures, stations):
                if future in not_done:
                    logger.warning(
                        f"Station {station.station_id} missed the "
                        f"{self.cycle_deadline_seconds:.0f}s cycle deadline"
                    )
                    future.cancel()

            observations = [
                f.result() for f in futures if f in done and f.result() is not None
            ]
        finally:
            # Do not block on stragglers; their results are discarded
            pool.shutdown(wait=False, cancel_futures=True)

        logger.debug(f"Fetched observations from {len(observations)}/{len(stations)} stations")
        return observations

    @property
    def config_hash(self) -> str:
        return self._config_hash


# =============================================================================
# CONFIGURATION
# =============================================================================


REQUIRED_CONFIG_KEYS = [
    "FREEZE_THRESHOLD_F",
    "RAIN_PROBABILITY_THRESHOLD",
    "STATION_REFRESH_INTERVAL_MS",
    "STATION_LIMIT",
]


def validate_config(config: Any) -> None:
    """
    Validate an engine configuration.

    Raises:
        ConfigError: If config is None, misses required keys or has
            out-of-range values
    """
    if config is None:
        raise ConfigError("alert config is empty or invalid")

    errors = [f"missing key: {key}" for key in REQUIRED_CONFIG_KEYS if key not in config]
    if errors:
        raise ConfigError(f"alert config validation failed: {', '.join(errors)}")

    def _number(key: str) -> float:
        try:
            return float(config[key])
        except (TypeError, ValueError):
            errors.append(f"{key} must be a number, got {config[key]!r}")
            return 0.0

    if not (0 <= _number("RAIN_PROBABILITY_THRESHOLD") <= 100):
        errors.append("RAIN_PROBABILITY_THRESHOLD must be in [0, 100]")
    if _number("STATION_REFRESH_INTERVAL_MS") < 0:
        errors.append("STATION_REFRESH_INTERVAL_MS must be >= 0")
    if _number("STATION_LIMIT") < 1:
        errors.append("STATION_LIMIT must be >= 1")
    _number("FREEZE_THRESHOLD_F")

    if config.get("STATION_CACHE_RELOCATION_KM") is not None:
        if _number("STATION_CACHE_RELOCATION_KM") < 0:
            errors.append("STATION_CACHE_RELOCATION_KM must be >= 0 or null")

    for key in ("CONNECT_TIMEOUT_SECONDS", "READ_TIMEOUT_SECONDS", "CYCLE_DEADLINE_SECONDS"):
        if key in config and _number(key) <= 0:
            errors.append(f"{key} must be > 0")

    pinned = config.get("PINNED_STATIONS") or []
    if not isinstance(pinned, list):
        errors.append("PINNED_STATIONS must be a list")
    else:
        for entry in pinned:
            try:
                PinnedMatcher.from_config(entry)
            except ValueError as e:
                errors.append(f"PINNED_STATIONS: {e}")

    if errors:
        raise ConfigError(f"alert config validation failed: {', '.join(errors)}")


def _default_config_path() -> str:
    return os.path.join(os.path.dirname(os.path.dirname(__file__)), "config", "alert.yaml")


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load engine configuration from YAML, over the built-in defaults.

    Environment variables (also read from a .env file) override the
    identity header: RAIN_ALERT_USER_AGENT, RAIN_ALERT_CONTACT_EMAIL.

    Args:
        config_path: Path to config file. If None, uses config/alert.yaml.

    Returns:
        Configuration dictionary

    Raises:
        ConfigError: If the file is invalid or values are out of range
        OSError: If the file cannot be read
    """
    load_dotenv(override=False)

    if config_path is None:
        config_path = _default_config_path()

    with open(config_path, "r", encoding="utf-8") as f:
        try:
            loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"alert config is not valid YAML: {e}") from e

    if loaded is None:
        loaded = {}
    if not isinstance(loaded, dict):
        raise ConfigError("alert config must be a mapping")

    config = {**DEFAULT_CONFIG, **loaded}

    if os.environ.get(USER_AGENT_ENV_VAR):
        config["USER_AGENT"] = os.environ[USER_AGENT_ENV_VAR].strip()
    if os.environ.get(CONTACT_EMAIL_ENV_VAR):
        config["CONTACT_EMAIL"] = os.environ[CONTACT_EMAIL_ENV_VAR].strip()

    validate_config(config)
    return config


def create_engine(
    location: Coordinate,
    config_path: Optional[str] = None,
    station_cache: Optional[StationCache] = None,
    fetch_observation: Optional[ObservationFetchFn] = None,
) -> AlertEngine:
    """
    Create a configured AlertEngine.

    Args:
        location: Current location
        config_path: Path to alert.yaml. If None, uses default.
        station_cache: Shared cache, if the caller keeps one across engines
        fetch_observation: Per-station fetch function (default: HTTP fetcher)

    Returns:
        Configured AlertEngine
    """
    config = load_config(config_path)
    return AlertEngine(
        config=config,
        location=location,
        station_cache=station_cache,
        fetch_observation=fetch_observation,
    )
