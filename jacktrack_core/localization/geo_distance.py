"""
Great-circle distance and bearing.

Haversine on a spherical Earth (mean radius 6371 km). Distances shown to the
golfer are rounded half-up to whole meters.

Preconditions: latitudes in [-90, 90], longitudes in [-180, 180]. Values
outside those ranges give an undefined (but finite or NaN) result; they are
not checked here.
"""

import math
from typing import Iterable
import numpy as np

from jacktrack_core.proto.coordinate import Coordinate

EARTH_RADIUS_M = 6371000.0
METERS_PER_YARD = 0.9144


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def distance_precise(a: Coordinate, b: Coordinate) -> float:
    """
    Unrounded great-circle distance in meters.

    The formula only uses |dlat|, |dlon| and the product cos(lat_a)*cos(lat_b),
    so swapping a and b yields bit-identical intermediate values.

    Args:
        a: First coordinate
        b: Second coordinate

    Returns:
        Distance in meters (>= 0)
    """
    lat_a = math.radians(a.latitude)
    lat_b = math.radians(b.latitude)
    dlat = abs(lat_b - lat_a)
    dlon = abs(math.radians(b.longitude) - math.radians(a.longitude))

    h = (
        math.sin(dlat / 2) ** 2
        + (math.cos(lat_a) * math.cos(lat_b)) * math.sin(dlon / 2) ** 2
    )
    # Guard against h drifting just above 1 for antipodal points
    h = min(1.0, max(0.0, h))
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_M * c


def distance(a: Coordinate, b: Coordinate) -> int:
    """
    Great-circle distance rounded to the nearest meter.

    Returns:
        Non-negative integer meters; 0 when a == b
    """
    return _round_half_up(distance_precise(a, b))


def distances_from(origin: Coordinate, points: Iterable[Coordinate]) -> np.ndarray:
    """
    Vectorized distance from origin to many points.

    Args:
        origin: Reference coordinate (usually the user)
        points: Target coordinates

    Returns:
        int64 array of rounded meters, same order as points
    """
    pts = list(points)
    if not pts:
        return np.zeros(0, dtype=np.int64)

    lat = np.radians(np.array([p.latitude for p in pts], dtype=float))
    lon = np.radians(np.array([p.longitude for p in pts], dtype=float))
    lat0 = math.radians(origin.latitude)
    lon0 = math.radians(origin.longitude)

    dlat = np.abs(lat - lat0)
    dlon = np.abs(lon - lon0)
    h = np.sin(dlat / 2) ** 2 + (math.cos(lat0) * np.cos(lat)) * np.sin(dlon / 2) ** 2
    h = np.clip(h, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(h), np.sqrt(1 - h))

    return np.floor(EARTH_RADIUS_M * c + 0.5).astype(np.int64)


def initial_bearing(a: Coordinate, b: Coordinate) -> float:
    """
    Initial great-circle bearing from a to b.

    Returns:
        Degrees clockwise from true north in [0, 360); 0.0 when a == b
    """
    lat_a = math.radians(a.latitude)
    lat_b = math.radians(b.latitude)
    dlon = math.radians(b.longitude - a.longitude)

    x = math.sin(dlon) * math.cos(lat_b)
    y = math.cos(lat_a) * math.sin(lat_b) - math.sin(lat_a) * math.cos(lat_b) * math.cos(dlon)
    if x == 0.0 and y == 0.0:
        return 0.0

    bearing = math.degrees(math.atan2(x, y)) % 360.0
    # -0.0 % 360 and values like 359.99999999999997 % 360 can round to 360
    return 0.0 if bearing >= 360.0 else bearing


def meters_to_yards(meters: float) -> int:
    """Convert meters to whole yards (half-up)."""
    return _round_half_up(meters / METERS_PER_YARD)


def yards_to_meters(yards: float) -> int:
    return _round_half_up(yards * METERS_PER_YARD)
