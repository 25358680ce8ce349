"""HikingMate - hike metrics and trail shape classification."""

from .config import CONFIG, Settings
from .models import (
    GeoPoint,
    Waypoint,
    ElevationChange,
    TrailType,
    ReversePattern,
    ShapeAnalysis,
    OverlapInfo,
    Gap,
    GapReport,
    GapFill,
    TrailClassification,
    HikeSummary,
)
from .logger import Logger
from .geo import (
    haversine_distance,
    bearing_between,
    distance,
    bearing,
    bearing_to_compass,
    retry_with_backoff,
)
from .ingest import InvalidPointError, normalize_point, normalize_track
from .metrics import (
    total_distance,
    elevation_change,
    pace,
    calories,
    format_duration,
    format_pace,
    summarize_track,
    estimate_trail_duration,
    estimate_difficulty,
)
from .shape import (
    detect_reverse_pattern,
    analyze_shape,
    overlap_rate,
    detect_gaps,
    fill_largest_gap,
    smart_fill_gaps,
    classify_trail,
)
from .roads import KakaoRoadChecker, waypoint_near_road
from .gpx import parse_gpx, write_gpx
from .files import load_track
from .gps import GPS, TrackRecorder, TrackPlayback
from .history import HikeHistoryDB
from .catalog import CatalogError, TrailCatalog, classify_catalog
from .__main__ import main

__all__ = [
    "CONFIG",
    "Settings",
    "GeoPoint",
    "Waypoint",
    "ElevationChange",
    "TrailType",
    "ReversePattern",
    "ShapeAnalysis",
    "OverlapInfo",
    "Gap",
    "GapReport",
    "GapFill",
    "TrailClassification",
    "HikeSummary",
    "Logger",
    "haversine_distance",
    "bearing_between",
    "distance",
    "bearing",
    "bearing_to_compass",
    "retry_with_backoff",
    "InvalidPointError",
    "normalize_point",
    "normalize_track",
    "total_distance",
    "elevation_change",
    "pace",
    "calories",
    "format_duration",
    "format_pace",
    "summarize_track",
    "estimate_trail_duration",
    "estimate_difficulty",
    "detect_reverse_pattern",
    "analyze_shape",
    "overlap_rate",
    "detect_gaps",
    "fill_largest_gap",
    "smart_fill_gaps",
    "classify_trail",
    "KakaoRoadChecker",
    "waypoint_near_road",
    "parse_gpx",
    "write_gpx",
    "load_track",
    "GPS",
    "TrackRecorder",
    "TrackPlayback",
    "HikeHistoryDB",
    "CatalogError",
    "TrailCatalog",
    "classify_catalog",
    "main",
]
