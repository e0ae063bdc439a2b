# =============================================================================
# RAIN ALERT ENGINE - CORE MODULE
# =============================================================================
#
# Multi-station rain and freeze alerting from public weather observations.
# Decides "is it raining / freezing here now", nothing more.
#
# MODULES:
# - geo_distance: Great-circle distance
# - station_models: Data model and errors
# - http_client: Shared requests session setup
# - station_directory: Station catalog + candidate selection
# - station_cache: Time-bounded candidate cache
# - observation_fetcher: Latest observation per station
# - observation_classifier: Per-observation rain/freeze rules
# - alert_confidence: Additive confidence scoring
# - alert_engine: Decision cycles, config loading
#
# =============================================================================

from .station_models import (
    AlertEngineError,
    CatalogFetchError,
    ConfidenceScore,
    ConfigError,
    Coordinate,
    DecisionResult,
    FetchResult,
    NoUsableDataError,
    Observation,
    ObservationFetchError,
    Station,
    StationContribution,
)
from .station_directory import PinnedMatcher, StationDirectory
from .station_cache import StationCache
from .observation_fetcher import ObservationFetcher
from .alert_engine import (
    AlertEngine,
    analyze_observations,
    create_engine,
    load_config,
    validate_config,
)

__all__ = [
    "AlertEngineError",
    "CatalogFetchError",
    "ConfidenceScore",
    "ConfigError",
    "Coordinate",
    "DecisionResult",
    "FetchResult",
    "NoUsableDataError",
    "Observation",
    "ObservationFetchError",
    "Station",
    "StationContribution",
    "PinnedMatcher",
    "StationDirectory",
    "StationCache",
    "ObservationFetcher",
    "AlertEngine",
    "analyze_observations",
    "create_engine",
    "load_config",
    "validate_config",
]
