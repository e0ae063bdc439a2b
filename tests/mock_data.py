# =============================================================================
# RAIN ALERT ENGINE - MOCK DATA GENERATORS
# =============================================================================
#
# PURPOSE:
# Build stations, observations and api.weather.gov-shaped payloads so that
# tests never touch the network.
#
# Coordinates are around Greenville, SC (34.85, -82.39).
#
# =============================================================================

import json
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import requests

from rain_alert.station_models import Coordinate, Observation, Station


BASE_URL = "https://api.weather.gov"
HOME = Coordinate(latitude=34.85, longitude=-82.39)


# =============================================================================
# MODEL FACTORIES
# =============================================================================


def make_station(
    station_id: str = "KGMU",
    name: str = "Greenville Downtown Airport",
    latitude: float = 34.85,
    longitude: float = -82.35,
    distance_km: Optional[float] = 5.0,
) -> Station:
    return Station(
        station_id=station_id,
        name=name,
        coordinate=Coordinate(latitude=latitude, longitude=longitude),
        observation_url=f"{BASE_URL}/stations/{station_id}/observations/latest",
        distance_km=distance_km,
    )


def make_observation(
    station: Optional[Station] = None,
    temperature_f: Optional[float] = 60.0,
    precipitation_in: Optional[float] = 0.0,
    humidity_pct: Optional[float] = 50.0,
    text: Optional[str] = "Clear",
) -> Observation:
    return Observation(
        station=station or make_station(),
        temperature_f=temperature_f,
        precipitation_last_hour_in=precipitation_in,
        relative_humidity_pct=humidity_pct,
        text_description=text,
        observed_at_iso="2026-10-19T12:00:00+00:00",
    )


def rainy(station: Station, precipitation_in: float = 0.05) -> Observation:
    return make_observation(station, precipitation_in=precipitation_in, text="Light Rain")


def dry(station: Station, temperature_f: float = 60.0) -> Observation:
    return make_observation(station, temperature_f=temperature_f, text="Clear")


def cold(station: Station, temperature_f: float = 30.0) -> Observation:
    return make_observation(station, temperature_f=temperature_f, text="Clear")


# =============================================================================
# API PAYLOADS
# =============================================================================


def station_feature(station_id: str, name: str, latitude: float, longitude: float) -> Dict[str, Any]:
    """One GeoJSON station feature; coordinates are [lon, lat]."""
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [longitude, latitude]},
        "properties": {"stationIdentifier": station_id, "name": name},
    }


def points_payload(stations_url: str = f"{BASE_URL}/gridpoints/GSP/56,48/stations") -> Dict[str, Any]:
    return {"properties": {"observationStations": stations_url}}


def catalog_payload(features: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"type": "FeatureCollection", "features": features}


def default_catalog() -> Dict[str, Any]:
    return catalog_payload([
        station_feature("KGYH", "Donaldson Field Airport", 34.76, -82.38),
        station_feature("KGMU", "Greenville Downtown Airport", 34.85, -82.35),
        station_feature("KGSP", "Greenville-Spartanburg International Airport", 34.88, -82.22),
        station_feature("KAND", "Anderson Regional Airport", 34.50, -82.71),
        station_feature("KAVL", "Asheville Regional Airport", 35.43, -82.54),
    ])


def observation_payload(
    temperature_c: Optional[float] = 15.0,
    precipitation_mm: Optional[float] = 0.0,
    humidity_pct: Optional[float] = 60.0,
    wind_kmh: Optional[float] = 18.0,
    wind_direction_deg: Optional[float] = 200.0,
    text: Optional[str] = "Cloudy",
) -> Dict[str, Any]:
    """Latest-observation body as api.weather.gov returns it (WMO units)."""
    return {
        "properties": {
            "timestamp": "2026-10-19T11:53:00+00:00",
            "textDescription": text,
            "temperature": {"unitCode": "wmoUnit:degC", "value": temperature_c},
            "precipitationLastHour": {"unitCode": "wmoUnit:mm", "value": precipitation_mm},
            "relativeHumidity": {"unitCode": "wmoUnit:percent", "value": humidity_pct},
            "windSpeed": {"unitCode": "wmoUnit:km_h-1", "value": wind_kmh},
            "windDirection": {"unitCode": "wmoUnit:degree_(angle)", "value": wind_direction_deg},
        }
    }


# =============================================================================
# MOCK HTTP
# =============================================================================


def mock_response(payload: Any = None, status_code: int = 200, text: Optional[str] = None) -> MagicMock:
    """A requests.Response stand-in with json()/text/ok/raise_for_status."""
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.text = text if text is not None else json.dumps(payload)
    if payload is None and text is not None:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = payload
    if response.ok:
        response.raise_for_status.return_value = None
    else:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(
            f"{status_code} Error"
        )
    return response


def mock_session(*responses: Any) -> MagicMock:
    """Session whose get() returns (or raises) the given items in order."""
    session = MagicMock(spec=requests.Session)
    session.get.side_effect = list(responses)
    return session
