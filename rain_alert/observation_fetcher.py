# =============================================================================
# RAIN ALERT ENGINE - OBSERVATION FETCHER
# =============================================================================
#
# Fetches the latest observation of one station and normalizes it.
#
# UNITS (converted at parse time):
# - temperature:   degC -> degF      F = C * 9/5 + 32
# - precipitation: mm   -> in        / 25.4
# - wind speed:    m/s  -> mph       * 2.237   (km/h -> mph / 1.609344)
# - wind dir:      deg  -> 16-point cardinal
#
# When the payload carries a unitCode, it is honored; without one the
# metric default above is assumed.
#
# FAILURE POLICY:
# Any failure (network, timeout, non-2xx, bad body) returns None.
# The caller treats None as "no contribution this cycle".
#
# =============================================================================

import json
import logging
import math
from typing import Any, Dict, Optional

import requests

from .http_client import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_READ_TIMEOUT,
    Timeouts,
    create_session,
)
from .station_models import Observation, ObservationFetchError, Station

logger = logging.getLogger(__name__)


CARDINAL_DIRECTIONS = (
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
)

MM_PER_INCH = 25.4
MPS_TO_MPH = 2.237
KM_PER_MILE = 1.609344


# =============================================================================
# UNIT CONVERSION
# =============================================================================


def celsius_to_fahrenheit(c: float) -> float:
    return c * 9.0 / 5.0 + 32.0


def mm_to_inches(mm: float) -> float:
    return mm / MM_PER_INCH


def mps_to_mph(mps: float) -> float:
    return mps * MPS_TO_MPH


def degrees_to_cardinal(degrees: float) -> str:
    """16-point compass direction; index = floor((deg mod 360) / 22.5)."""
    index = int(math.floor((degrees % 360.0) / 22.5)) % len(CARDINAL_DIRECTIONS)
    return CARDINAL_DIRECTIONS[index]


def _unit(raw: Dict[str, Any]) -> str:
    return str(raw.get("unitCode") or "").strip().lower()


def _measure(props: Dict[str, Any], key: str) -> Optional[Dict[str, Any]]:
    """Return {"value": float, "unitCode": str} or None if absent/null/non-finite."""
    raw = props.get(key)
    if not isinstance(raw, dict):
        return None
    value = raw.get("value")
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return {"value": number, "unitCode": _unit(raw)}


def _temperature_f(m: Optional[Dict[str, Any]]) -> Optional[float]:
    if m is None:
        return None
    if "degf" in m["unitCode"]:
        return m["value"]
    return celsius_to_fahrenheit(m["value"])


def _precipitation_in(m: Optional[Dict[str, Any]]) -> Optional[float]:
    if m is None:
        return None
    unit = m["unitCode"]
    if unit.endswith(":in") or unit.endswith("/in"):
        return m["value"]
    if unit.endswith(":m") or unit.endswith("/m"):
        return mm_to_inches(m["value"] * 1000.0)
    return mm_to_inches(m["value"])


def _wind_mph(m: Optional[Dict[str, Any]]) -> Optional[float]:
    if m is None:
        return None
    unit = m["unitCode"]
    if "km_h-1" in unit:
        return m["value"] / KM_PER_MILE
    if "mi_h-1" in unit:
        return m["value"]
    return mps_to_mph(m["value"])


# =============================================================================
# PARSING
# =============================================================================


def parse_observation(station: Station, body: str) -> Observation:
    """
    Parse a GeoJSON latest-observation body.

    Missing measurements become None; only a body without a
    properties object is an error.

    Raises:
        ObservationFetchError: body is not JSON or has no properties
    """
    try:
        payload = json.loads(body)
    except (TypeError, ValueError) as e:
        raise ObservationFetchError(f"{station.station_id}: body is not JSON: {e}") from e

    props = payload.get("properties") if isinstance(payload, dict) else None
    if not isinstance(props, dict):
        raise ObservationFetchError(f"{station.station_id}: response has no properties object")

    direction = _measure(props, "windDirection")
    text = props.get("textDescription")
    timestamp = props.get("timestamp")

    return Observation(
        station=station,
        temperature_f=_temperature_f(_measure(props, "temperature")),
        precipitation_last_hour_in=_precipitation_in(_measure(props, "precipitationLastHour")),
        relative_humidity_pct=(_measure(props, "relativeHumidity") or {}).get("value"),
        wind_speed_mph=_wind_mph(_measure(props, "windSpeed")),
        wind_direction_cardinal=degrees_to_cardinal(direction["value"]) if direction else None,
        text_description=str(text) if text else None,
        raw_payload=body,
        observed_at_iso=str(timestamp) if timestamp else None,
    )


# =============================================================================
# FETCHER
# =============================================================================


class ObservationFetcher:
    """
    Latest-observation client.

    Safe to call from several worker threads at once: requests sessions
    are shared read-only here (no cookies, fixed headers).
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        user_agent: Optional[str] = None,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
    ):
        self.session = session or create_session(user_agent)
        self.timeouts: Timeouts = (connect_timeout, read_timeout)

    def fetch_observation(self, station: Station) -> Optional[Observation]:
        """
        Fetch and normalize the latest observation of `station`.

        Returns:
            Observation, or None on any failure
        """
        try:
            response = self.session.get(station.observation_url, timeout=self.timeouts)
        except requests.exceptions.Timeout:
            logger.warning(f"Observation request timed out for station {station.station_id}")
            return None
        except requests.exceptions.RequestException as e:
            logger.warning(f"Observation request failed for station {station.station_id}: {e}")
            return None

        if not response.ok:
            logger.warning(
                f"Failed to fetch observation from station {station.station_id}: "
                f"HTTP {response.status_code}"
            )
            return None

        try:
            observation = parse_observation(station, response.text)
        except ObservationFetchError as e:
            logger.warning(f"Error parsing station observation: {e}")
            return None

        logger.debug(
            f"Observation {station.station_id} | temp_f={observation.temperature_f} | "
            f"precip_in={observation.precipitation_last_hour_in} | "
            f"desc={observation.text_description!r}"
        )
        return observation
