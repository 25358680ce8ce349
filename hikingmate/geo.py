"""Geographic utility functions.

Coordinates are decimal degrees. Inputs are not validated here: callers must
pass finite, in-range values (see ``hikingmate.ingest``).
"""

from __future__ import annotations

import itertools
import math
import time
from typing import TYPE_CHECKING

from .config import CONFIG

if TYPE_CHECKING:
    from .models import GeoPoint

COMPASS_POINTS = ["N", "NE", "E", "SE", "S", "SW", "W", "NW"]
COMPASS_POINTS_KO = ["북", "북동", "동", "남동", "남", "남서", "서", "북서"]


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate distance between two points in meters using Haversine formula"""
    R = CONFIG["earth_radius"]

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (math.sin(delta_phi / 2) ** 2 +
         math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return R * c


def bearing_between(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate bearing from point 1 to point 2 in degrees (0-360, 0=North)"""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_lambda = math.radians(lon2 - lon1)

    x = math.sin(delta_lambda) * math.cos(phi2)
    y = (math.cos(phi1) * math.sin(phi2) -
         math.sin(phi1) * math.cos(phi2) * math.cos(delta_lambda))

    bearing = math.degrees(math.atan2(x, y))
    return (bearing + 360) % 360


def distance(p1: "GeoPoint", p2: "GeoPoint") -> float:
    """Great-circle distance in meters between two points"""
    return haversine_distance(p1.latitude, p1.longitude, p2.latitude, p2.longitude)


def bearing(p1: "GeoPoint", p2: "GeoPoint") -> float:
    """Initial bearing from p1 to p2. Coincident points give 0."""
    return bearing_between(p1.latitude, p1.longitude, p2.latitude, p2.longitude)


def round_half_up(value: float) -> int:
    """Round .5 upward, the way stored values and compass labels were rounded"""
    return int(math.floor(value + 0.5))


def bearing_to_compass(bearing: float, directions: list[str] = COMPASS_POINTS) -> str:
    """One of 8 compass labels; a bearing on a bucket edge goes clockwise"""
    return directions[round_half_up(bearing / 45) % 8]


def interpolate(lat1: float, lon1: float, lat2: float, lon2: float,
                ratio: float) -> tuple[float, float]:
    """Linear interpolation in lat/lon space (fine for sub-kilometre spans)"""
    return lat1 + (lat2 - lat1) * ratio, lon1 + (lon2 - lon1) * ratio


def retry_with_backoff(func, max_time: float = 30.0, initial_delay: float = 1.0,
                       max_delay: float = 8.0, description: str = "GPS fix"):
    """Call func until it returns something truthy or max_time runs out.

    The wait doubles after each failed attempt, capped at max_delay and at
    the time left. Returns the first truthy result, or None.
    """
    deadline = time.time() + max_time
    delay = initial_delay

    for attempt in itertools.count(1):
        result = func()
        if result:
            return result

        remaining = deadline - time.time()
        if remaining <= 0:
            print(f"No {description} after {max_time:.0f}s ({attempt} attempts)")
            return None

        wait = min(delay, max_delay, remaining)
        print(f"Still waiting for {description}, next try in {wait:.1f}s (attempt {attempt})")
        time.sleep(wait)
        delay *= 2
