# =============================================================================
# RAIN ALERT ENGINE - GREAT-CIRCLE DISTANCE
# =============================================================================
#
# Haversine distance between two coordinates.
# Pure function, no I/O, no failure modes.
#
# =============================================================================

import math

from .station_models import Coordinate


EARTH_RADIUS_KM = 6371.0


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """
    Great-circle distance between two coordinates in kilometers.

    Args:
        a: First coordinate (decimal degrees)
        b: Second coordinate (decimal degrees)

    Returns:
        Distance in km (haversine, Earth radius 6371 km)
    """
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    d_lat = math.radians(b.latitude - a.latitude)
    d_lon = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return EARTH_RADIUS_KM * c
