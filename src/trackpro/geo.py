"""Geospatial helpers — pure functions over (lat, lng) pairs in degrees."""

import math
from datetime import timedelta
from typing import Sequence

EARTH_RADIUS_KM = 6371.0088

LatLng = tuple[float, float]


def haversine_km(a: LatLng, b: LatLng) -> float:
    """Great-circle distance between two points, in kilometres."""
    lat1, lng1 = map(math.radians, a)
    lat2, lng2 = map(math.radians, b)
    dlat = lat2 - lat1
    dlng = lng2 - lng1
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(h)))


def path_length_km(points: Sequence[LatLng]) -> float:
    """Sum of the legs along an ordered list of points."""
    return sum(haversine_km(points[i - 1], points[i]) for i in range(1, len(points)))


def within_radius(point: LatLng, center: LatLng, radius_m: float) -> bool:
    return haversine_km(point, center) * 1000.0 <= radius_m


def format_duration(elapsed: timedelta) -> str:
    """HH:MM:SS, clamped at zero."""
    total = max(0, int(elapsed.total_seconds()))
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
