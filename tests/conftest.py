"""
Shared pytest fixtures for HikingMate tests.
"""

import math
import os
import sys

import pytest

# Add project root to path for imports
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from hikingmate.models import GeoPoint  # noqa: E402

BASE_LAT = 37.5
BASE_LON = 127.0
# Meters per degree of latitude for the 6,371 km sphere
M_PER_DEG = 2 * math.pi * 6371000 / 360


def offset_point(north_m: float, east_m: float = 0.0, altitude=None, timestamp: int = 0) -> GeoPoint:
    """Point at a metric offset from the base location"""
    lat = BASE_LAT + north_m / M_PER_DEG
    lon = BASE_LON + east_m / (M_PER_DEG * math.cos(math.radians(BASE_LAT)))
    return GeoPoint(latitude=lat, longitude=lon, altitude=altitude, timestamp=timestamp)


@pytest.fixture
def out_and_back_track():
    """200 points: 100 heading north every 0.0001 deg, then the same points in reverse."""
    out = [GeoPoint(latitude=BASE_LAT + i * 0.0001, longitude=BASE_LON, timestamp=i * 10000)
           for i in range(100)]
    return out + out[::-1]


@pytest.fixture
def straight_track():
    """200 points heading north every 0.0002 deg (~22m)."""
    return [GeoPoint(latitude=BASE_LAT + i * 0.0002, longitude=BASE_LON, timestamp=i * 10000)
            for i in range(200)]


@pytest.fixture
def loop_track():
    """60 points around a 500m-radius circle, open by one step."""
    return [offset_point(500 * math.cos(2 * math.pi * i / 60), 500 * math.sin(2 * math.pi * i / 60))
            for i in range(60)]


@pytest.fixture
def one_way_track():
    """60 points heading north every ~22m, ending about 1.3km from the start."""
    return [offset_point(i * 22.0, timestamp=i * 15000) for i in range(60)]


@pytest.fixture
def hike_track():
    """Short hike with altitude and timestamps: 3 legs of ~22m over 3 minutes."""
    return [
        GeoPoint(latitude=BASE_LAT, longitude=BASE_LON, altitude=100.0, timestamp=1_700_000_000_000),
        GeoPoint(latitude=BASE_LAT + 0.0002, longitude=BASE_LON, altitude=110.0, timestamp=1_700_000_060_000),
        GeoPoint(latitude=BASE_LAT + 0.0004, longitude=BASE_LON, altitude=105.0, timestamp=1_700_000_120_000),
        GeoPoint(latitude=BASE_LAT + 0.0006, longitude=BASE_LON, altitude=125.0, timestamp=1_700_000_180_000),
    ]
