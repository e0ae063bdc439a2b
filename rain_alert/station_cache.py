# =============================================================================
# RAIN ALERT ENGINE - STATION CACHE
# =============================================================================
#
# Time-bounded, in-memory cache of the last candidate set.
#
# - A recent successful result is served unchanged, whatever the origin
#   (optional relocation check, see `relocation_km`)
# - On refresh failure the previous snapshot is served, else []
# - Never raises past this boundary
#
# THREAD SAFETY:
# The (stations, timestamp, origin) snapshot is read and replaced under a
# single lock. Cycles run minutes apart, so contention is rare.
#
# =============================================================================

import logging
import time
from threading import Lock
from typing import Callable, Iterable, List, Optional

from .geo_distance import distance_km
from .station_directory import PinnedMatcher, StationDirectory
from .station_models import Coordinate, Station

logger = logging.getLogger(__name__)


DEFAULT_REFRESH_INTERVAL_MS = 6 * 60 * 60 * 1000  # 6 hours


class StationCache:
    """
    Caches the StationDirectory candidate set for a refresh interval.

    Owned by the caller and injected into the engine; there is no
    module-level instance.
    """

    def __init__(
        self,
        directory: StationDirectory,
        limit: int = 3,
        pinned_matchers: Iterable[PinnedMatcher] = (),
        clock: Callable[[], float] = time.monotonic,
        relocation_km: Optional[float] = None,
    ):
        """
        Args:
            directory: Source of candidate stations
            limit: Nearest-station count passed to the directory
            pinned_matchers: Stations always included
            clock: Seconds clock (injectable for tests)
            relocation_km: If set, a query farther than this from the cached
                origin counts as a cache miss. None keeps the cache purely
                time-based.
        """
        self.directory = directory
        self.limit = limit
        self.pinned_matchers = list(pinned_matchers)
        self.relocation_km = relocation_km
        self._clock = clock
        self._lock = Lock()

        self._stations: List[Station] = []
        self._last_fetch: Optional[float] = None
        self._origin: Optional[Coordinate] = None

    def _is_fresh(self, origin: Coordinate, refresh_interval_ms: float, now: float) -> bool:
        if self._last_fetch is None or not self._stations:
            return False
        if (now - self._last_fetch) * 1000.0 >= refresh_interval_ms:
            return False
        if self.relocation_km is not None and self._origin is not None:
            moved = distance_km(self._origin, origin)
            if moved > self.relocation_km:
                logger.info(f"Location moved {moved:.1f} km, refreshing stations")
                return False
        return True

    def get_nearby_stations(
        self,
        origin: Coordinate,
        refresh_interval_ms: float = DEFAULT_REFRESH_INTERVAL_MS,
        force_refresh: bool = False,
    ) -> List[Station]:
        """
        Candidate stations for `origin`, from cache when fresh.

        Args:
            origin: Query point
            refresh_interval_ms: Maximum age of a cached result
            force_refresh: Ignore the cache for this call

        Returns:
            Candidate stations, the previous snapshot on failure, or []
        """
        with self._lock:
            now = self._clock()

            if not force_refresh and self._is_fresh(origin, refresh_interval_ms, now):
                logger.debug(f"Using cached nearby stations ({len(self._stations)})")
                return list(self._stations)

            if force_refresh:
                logger.debug("Force refreshing nearby stations")
            else:
                logger.debug("Station cache empty or expired, fetching")

            try:
                result = self.directory.find_nearest_stations(
                    origin, limit=self.limit, pinned_matchers=self.pinned_matchers
                )
            except Exception as e:
                logger.error(f"Station directory raised unexpectedly: {e}")
                return list(self._stations)

            if not result.ok:
                logger.error(f"Failed to find nearby stations: {result.error}")
                return list(self._stations)

            self._stations = list(result.value)
            self._last_fetch = now
            self._origin = origin
            logger.info(f"Updated station cache with {len(self._stations)} stations")
            return list(self._stations)

    def clear_cache(self) -> None:
        """Drop the snapshot so the next call refetches."""
        with self._lock:
            self._stations = []
            self._last_fetch = None
            self._origin = None
        logger.debug("Station cache cleared")

    @property
    def cached_station_ids(self) -> List[str]:
        with self._lock:
            return [s.station_id for s in self._stations]
