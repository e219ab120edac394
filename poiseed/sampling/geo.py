"""Equirectangular helpers for converting between meters and degrees."""

import math

METERS_PER_DEGREE = 111320.0
EARTH_RADIUS_METERS = 6371000.0


def meters_to_lat_delta(meters: float) -> float:
    return meters / METERS_PER_DEGREE


def meters_to_lon_delta(meters: float, lat: float) -> float:
    """Longitude span of ``meters`` at latitude ``lat``; shrinks towards the poles."""
    return meters / (METERS_PER_DEGREE * math.cos(math.radians(lat)))


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_METERS * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
