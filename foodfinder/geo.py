from __future__ import annotations

import math

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometres between two WGS84 points."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def format_distance(distance_km: float | None) -> str:
    """Render a distance for display: ``150m``, ``1.2km``, ``12km`` or ``N/A``."""
    if distance_km is None or not math.isfinite(distance_km):
        return "N/A"
    if distance_km < 1:
        return f"{round(distance_km * 1000)}m"
    if distance_km < 10:
        return f"{distance_km:.1f}km"
    return f"{round(distance_km)}km"


def distance_score(
    distance_km: float | None,
    radius_km: float,
    *,
    floor: float = 0.3,
    beyond_radius: float = 0.1,
    unknown: float = 0.5,
) -> float:
    """Map a distance onto ``[0, 1]`` where closer is better.

    Step values near the caller, a linear decay from 0.9 at 1 km down to
    ``floor`` at the requested radius, and a flat ``beyond_radius`` score
    past it.
    """
    if distance_km is None or not math.isfinite(distance_km):
        return unknown
    if distance_km <= 0.3:
        return 1.0
    if distance_km <= 0.5:
        return 0.95
    if distance_km <= 1.0:
        return 0.9
    if distance_km > radius_km:
        return beyond_radius
    span = radius_km - 1.0
    if span <= 0:
        return floor
    fraction = (distance_km - 1.0) / span
    return 0.9 - (0.9 - floor) * fraction
