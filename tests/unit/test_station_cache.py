"""
UNIT TESTS - STATION CACHE
==========================
Tests for rain_alert/station_cache.py (TTL, fallback, relocation)
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import threading
import time
from unittest.mock import MagicMock

from rain_alert.station_cache import DEFAULT_REFRESH_INTERVAL_MS, StationCache
from rain_alert.station_directory import PinnedMatcher, StationDirectory
from rain_alert.station_models import CatalogFetchError, Coordinate, FetchResult
from tests.mock_data import HOME, make_station


HOUR_MS = 60 * 60 * 1000


class FakeClock:
    """Monotonic seconds clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000.0


def create_cache(results, relocation_km=None, pinned=()):
    directory = MagicMock(spec=StationDirectory)
    directory.find_nearest_stations.side_effect = list(results)
    clock = FakeClock()
    cache = StationCache(
        directory, limit=3, pinned_matchers=pinned, clock=clock, relocation_km=relocation_km
    )
    return cache, directory, clock


def ok(*ids):
    return FetchResult.success([make_station(i, distance_km=float(n)) for n, i in enumerate(ids)])


def failed():
    return FetchResult.failure(CatalogFetchError("network down"))


def test_first_call_fetches():
    cache, directory, _ = create_cache([ok("A", "B", "C")])
    stations = cache.get_nearby_stations(HOME)

    assert [s.station_id for s in stations] == ["A", "B", "C"]
    directory.find_nearest_stations.assert_called_once()


def test_second_call_within_interval_uses_cache():
    cache, directory, clock = create_cache([ok("A"), ok("B")])
    cache.get_nearby_stations(HOME, 6 * HOUR_MS)
    clock.advance_ms(HOUR_MS)
    stations = cache.get_nearby_stations(HOME, 6 * HOUR_MS)

    assert [s.station_id for s in stations] == ["A"]
    assert directory.find_nearest_stations.call_count == 1


def test_call_after_interval_refetches():
    cache, directory, clock = create_cache([ok("A"), ok("B")])
    cache.get_nearby_stations(HOME, 6 * HOUR_MS)
    clock.advance_ms(7 * HOUR_MS)
    stations = cache.get_nearby_stations(HOME, 6 * HOUR_MS)

    assert [s.station_id for s in stations] == ["B"]
    assert directory.find_nearest_stations.call_count == 2


def test_cache_is_location_independent_by_default():
    cache, directory, _ = create_cache([ok("A"), ok("B")])
    cache.get_nearby_stations(HOME)
    stations = cache.get_nearby_stations(Coordinate(latitude=40.71, longitude=-74.0))

    assert [s.station_id for s in stations] == ["A"]
    assert directory.find_nearest_stations.call_count == 1


def test_relocation_invalidates_when_configured():
    cache, directory, _ = create_cache([ok("A"), ok("B")], relocation_km=25.0)
    cache.get_nearby_stations(HOME)
    stations = cache.get_nearby_stations(Coordinate(latitude=40.71, longitude=-74.0))

    assert [s.station_id for s in stations] == ["B"]


def test_small_move_keeps_cache_with_relocation():
    cache, directory, _ = create_cache([ok("A"), ok("B")], relocation_km=25.0)
    cache.get_nearby_stations(HOME)
    stations = cache.get_nearby_stations(Coordinate(latitude=34.86, longitude=-82.39))

    assert [s.station_id for s in stations] == ["A"]


def test_failure_with_snapshot_returns_snapshot():
    cache, _, clock = create_cache([ok("A", "B"), failed()])
    cache.get_nearby_stations(HOME)
    clock.advance_ms(DEFAULT_REFRESH_INTERVAL_MS + 1)
    stations = cache.get_nearby_stations(HOME)

    assert [s.station_id for s in stations] == ["A", "B"]


def test_failure_without_snapshot_returns_empty():
    cache, _, _ = create_cache([failed()])

    assert cache.get_nearby_stations(HOME) == []


def test_unexpected_directory_exception_never_escapes():
    cache, _, _ = create_cache([RuntimeError("boom")])

    assert cache.get_nearby_stations(HOME) == []


def test_failed_refresh_retries_next_call():
    cache, directory, _ = create_cache([failed(), ok("A")])
    cache.get_nearby_stations(HOME)
    stations = cache.get_nearby_stations(HOME)

    assert [s.station_id for s in stations] == ["A"]
    assert directory.find_nearest_stations.call_count == 2


def test_force_refresh_bypasses_cache():
    cache, directory, _ = create_cache([ok("A"), ok("B")])
    cache.get_nearby_stations(HOME)
    stations = cache.get_nearby_stations(HOME, force_refresh=True)

    assert [s.station_id for s in stations] == ["B"]


def test_clear_cache_forces_refetch():
    cache, directory, _ = create_cache([ok("A"), ok("B")])
    cache.get_nearby_stations(HOME)
    cache.clear_cache()

    assert cache.cached_station_ids == []
    assert [s.station_id for s in cache.get_nearby_stations(HOME)] == ["B"]


def test_returned_list_is_a_copy():
    cache, _, _ = create_cache([ok("A")])
    first = cache.get_nearby_stations(HOME)
    first.clear()

    assert cache.cached_station_ids == ["A"]


def test_pinned_matchers_and_limit_passed_to_directory():
    pinned = [PinnedMatcher.by_id("KGSP")]
    cache, directory, _ = create_cache([ok("A")], pinned=pinned)
    cache.get_nearby_stations(HOME)

    directory.find_nearest_stations.assert_called_once_with(
        HOME, limit=3, pinned_matchers=pinned
    )


def test_concurrent_calls_on_expired_cache_fetch_once():
    started = threading.Event()
    calls = []

    def _slow_find(origin, limit, pinned_matchers):
        calls.append(origin)
        if len(calls) == 1:
            return ok("OLD")
        started.set()
        time.sleep(0.1)
        return ok("A", "B", "C")

    directory = MagicMock(spec=StationDirectory)
    directory.find_nearest_stations.side_effect = _slow_find
    clock = FakeClock()
    cache = StationCache(directory, limit=3, clock=clock)
    cache.get_nearby_stations(HOME)
    clock.advance_ms(DEFAULT_REFRESH_INTERVAL_MS + 1)

    results = []
    results_lock = threading.Lock()

    def _worker():
        stations = cache.get_nearby_stations(HOME)
        with results_lock:
            results.append([s.station_id for s in stations])

    threads = [threading.Thread(target=_worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)

    assert started.is_set()
    assert len(calls) == 2
    assert len(results) == 8
    assert all(ids == ["A", "B", "C"] for ids in results)
