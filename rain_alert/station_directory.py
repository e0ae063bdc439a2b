# =============================================================================
# RAIN ALERT ENGINE - STATION DIRECTORY
# =============================================================================
#
# Discovers observing stations around a query point and selects the
# candidate set for a decision cycle.
#
# CATALOG SOURCE (api.weather.gov):
# 1. /points/{lat},{lon}            -> properties.observationStations (URL)
# 2. {observationStations}           -> GeoJSON FeatureCollection of stations
#
# SELECTION:
# - Rank every catalog station by haversine distance (stable sort)
# - Take the nearest `limit` stations
# - Append "pinned" stations (matched by id or name) found anywhere in the
#   ranked list, regardless of distance
#
# FAILURE POLICY:
# - Catalog fetch failure or empty catalog -> failed FetchResult
# - A malformed station entry -> logged and skipped, never fatal
#
# =============================================================================

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

import requests

from .geo_distance import distance_km
from .http_client import (
    DEFAULT_API_BASE_URL,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_READ_TIMEOUT,
    Timeouts,
    create_session,
    get_json,
)
from .station_models import CatalogFetchError, Coordinate, FetchResult, Station

logger = logging.getLogger(__name__)


# =============================================================================
# PINNED MATCHERS
# =============================================================================


def _config_text(entry: Dict[str, Any], key: str) -> Optional[str]:
    """
    Read a pinned-station field as text.

    YAML turns an unquoted id like 1234 into an int; numbers are taken as
    their string form. Anything else that is not a string is rejected.
    """
    value = entry.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ValueError(f"pinned station '{key}' must be text, got {value!r}")
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class PinnedMatcher:
    """
    Rule that always pulls a specific station into the candidate set.

    Matching is case-insensitive. Build instances with `by_id` or
    `name_contains`.
    """
    station_id: Optional[str] = None
    name_fragment: Optional[str] = None

    def __post_init__(self):
        if not self.station_id and not self.name_fragment:
            raise ValueError("PinnedMatcher needs a station_id or a name_fragment")
        for value in (self.station_id, self.name_fragment):
            if value is not None and not isinstance(value, str):
                raise ValueError(f"PinnedMatcher fields must be strings, got {value!r}")

    @classmethod
    def by_id(cls, station_id: str) -> "PinnedMatcher":
        return cls(station_id=station_id)

    @classmethod
    def name_contains(cls, fragment: str) -> "PinnedMatcher":
        return cls(name_fragment=fragment)

    @classmethod
    def from_config(cls, entry: Dict[str, Any]) -> "PinnedMatcher":
        """Build from a config entry: {"id": "KGSP"} or {"name_contains": "..."}."""
        if not isinstance(entry, dict):
            raise ValueError(f"pinned station entry must be a mapping, got {entry!r}")
        return cls(
            station_id=_config_text(entry, "id"),
            name_fragment=_config_text(entry, "name_contains"),
        )

    def matches(self, station: Station) -> bool:
        if self.station_id and station.station_id.lower() == self.station_id.lower():
            return True
        if self.name_fragment and self.name_fragment.lower() in station.name.lower():
            return True
        return False

    def describe(self) -> str:
        if self.station_id and self.name_fragment:
            return f"id={self.station_id} or name~{self.name_fragment}"
        if self.station_id:
            return f"id={self.station_id}"
        return f"name~{self.name_fragment}"


# =============================================================================
# CATALOG PARSING
# =============================================================================


def parse_station_feature(feature: Any, base_url: str) -> Optional[Station]:
    """
    Parse one GeoJSON station feature.

    Returns None (and logs) when a required field is missing or invalid.
    Coordinates arrive as [longitude, latitude].
    """
    try:
        props = feature["properties"]
        coords = feature["geometry"]["coordinates"]

        station_id = props["stationIdentifier"]
        name = props["name"]
        if not isinstance(station_id, str) or not isinstance(name, str):
            raise ValueError("station id and name must be strings")
        station_id = station_id.strip()
        name = name.strip()
        if not station_id or not name:
            raise ValueError("empty station id or name")

        coordinate = Coordinate(latitude=float(coords[1]), longitude=float(coords[0]))
    except (KeyError, IndexError, TypeError, ValueError) as e:
        logger.warning(f"Skipping station entry due to parse error: {e}")
        return None

    return Station(
        station_id=station_id,
        name=name,
        coordinate=coordinate,
        observation_url=f"{base_url}/stations/{station_id}/observations/latest",
    )


def rank_by_distance(stations: Iterable[Station], origin: Coordinate) -> List[Station]:
    """
    Attach distance to every station and sort ascending.

    sorted() is stable, so equal distances keep catalog order.
    """
    ranked = [s.with_distance(distance_km(origin, s.coordinate)) for s in stations]
    return sorted(ranked, key=lambda s: s.distance_km)


def select_candidates(
    ranked: List[Station],
    limit: int,
    pinned_matchers: Iterable[PinnedMatcher] = (),
) -> List[Station]:
    """
    Nearest `limit` stations, then any pinned matches not already present.

    Pinned stations are searched for in the whole ranked list and appended
    after the primary set in matcher order.
    """
    selected = list(ranked[: max(0, int(limit))])
    selected_ids = {s.station_id for s in selected}

    for matcher in pinned_matchers:
        match = next((s for s in ranked if matcher.matches(s)), None)
        if match is None:
            logger.debug(f"Pinned station {matcher.describe()} not in catalog")
            continue
        if match.station_id in selected_ids:
            continue
        logger.debug(
            f"Adding pinned station {match.name} ({match.station_id}) "
            f"dist={match.distance_km:.2f} km"
        )
        selected.append(match)
        selected_ids.add(match.station_id)

    return selected


# =============================================================================
# STATION DIRECTORY
# =============================================================================


class StationDirectory:
    """
    Station catalog client and candidate selector.

    The session is injectable so tests never touch the network.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        base_url: str = DEFAULT_API_BASE_URL,
        user_agent: Optional[str] = None,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or create_session(user_agent)
        self.timeouts: Timeouts = (connect_timeout, read_timeout)

    def fetch_all_stations(self, origin: Coordinate) -> FetchResult[List[Station]]:
        """
        Fetch the station catalog serving `origin`.

        Individual malformed entries are skipped; the call still succeeds
        with the entries that parsed.

        Returns:
            FetchResult with the parsed stations (unranked, catalog order)
        """
        points_url = f"{self.base_url}/points/{origin.latitude:.4f},{origin.longitude:.4f}"
        try:
            points = get_json(self.session, points_url, self.timeouts)
            stations_url = (points.get("properties") or {}).get("observationStations")
            if not stations_url:
                return FetchResult.failure(
                    CatalogFetchError("points response has no observationStations link")
                )

            catalog = get_json(self.session, stations_url, self.timeouts)
            features = catalog.get("features")
        except requests.exceptions.Timeout as e:
            logger.warning(f"Station catalog request timed out: {e}")
            return FetchResult.failure(CatalogFetchError("station catalog request timed out", e))
        except requests.exceptions.RequestException as e:
            logger.warning(f"Station catalog request failed: {e}")
            return FetchResult.failure(CatalogFetchError(f"station catalog request failed: {e}", e))
        except (ValueError, AttributeError) as e:
            logger.error(f"Station catalog response unparsable: {e}")
            return FetchResult.failure(CatalogFetchError(f"station catalog unparsable: {e}", e))

        if not isinstance(features, list):
            return FetchResult.failure(CatalogFetchError("station catalog has no features array"))

        stations = []
        for feature in features:
            station = parse_station_feature(feature, self.base_url)
            if station is not None:
                stations.append(station)

        logger.info(
            f"Fetched {len(stations)}/{len(features)} stations for "
            f"({origin.latitude:.4f},{origin.longitude:.4f})"
        )
        return FetchResult.success(stations)

    def find_nearest_stations(
        self,
        origin: Coordinate,
        limit: int = 3,
        pinned_matchers: Iterable[PinnedMatcher] = (),
    ) -> FetchResult[List[Station]]:
        """
        Select the candidate set for a decision cycle.

        Args:
            origin: Query point
            limit: Number of nearest stations in the primary set
            pinned_matchers: Stations to include regardless of distance

        Returns:
            FetchResult with primary stations (distance ascending) followed
            by appended pinned stations
        """
        result = self.fetch_all_stations(origin)
        if not result.ok:
            return result

        if not result.value:
            return FetchResult.failure(
                CatalogFetchError(
                    f"no stations found for ({origin.latitude},{origin.longitude})"
                )
            )

        ranked = rank_by_distance(result.value, origin)
        candidates = select_candidates(ranked, limit, pinned_matchers)

        logger.info(f"Selected {len(candidates)} candidate stations")
        for i, s in enumerate(candidates, start=1):
            logger.debug(f"Station {i}: {s.name} ({s.station_id}), dist={s.distance_km:.2f} km")

        return FetchResult.success(candidates)
