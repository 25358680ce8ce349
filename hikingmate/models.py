"""Data classes for HikingMate."""

from dataclasses import dataclass, asdict, field
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class GeoPoint:
    """One location fix. Timestamp is epoch milliseconds."""
    latitude: float
    longitude: float
    altitude: Optional[float] = None
    timestamp: int = 0
    accuracy: Optional[float] = None
    altitude_accuracy: Optional[float] = None
    heading: Optional[float] = None
    speed: Optional[float] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "GeoPoint":
        return cls(**d)


@dataclass(frozen=True)
class Waypoint:
    """A named catalog point (trail entry, parking, transit stop, summit...)"""
    lat: float
    lon: float
    name: str = ""
    category: str = ""
    elevation: Optional[float] = None


@dataclass
class ElevationChange:
    gain: float = 0.0
    loss: float = 0.0


class TrailType(str, Enum):
    ROUNDTRIP = "ROUNDTRIP"                # out-and-back
    CIRCULAR_PARTIAL = "CIRCULAR_PARTIAL"  # loop with partial overlap
    CIRCULAR_UNIQUE = "CIRCULAR_UNIQUE"    # loop, no overlap
    ONEWAY_PARTIAL = "ONEWAY_PARTIAL"      # one-way with partial overlap
    ONEWAY_UNIQUE = "ONEWAY_UNIQUE"        # one-way, no overlap


@dataclass
class ReversePattern:
    """Result of comparing points either side of a track's midpoint"""
    has_reverse_pattern: bool
    match_rate: float
    midpoint_index: int
    checked_points: int


@dataclass
class ShapeAnalysis:
    reverse: ReversePattern
    start_end_distance: float
    is_closed_loop: bool

    @property
    def reversal_midpoint_index(self) -> Optional[int]:
        if self.reverse.has_reverse_pattern:
            return self.reverse.midpoint_index
        return None


@dataclass
class OverlapInfo:
    rate: float
    duplicate_points: int
    total_points: int
    unique_points: int


@dataclass
class Gap:
    index: int  # index of the point after the gap
    distance: float
    severity: str  # minor | major | critical


@dataclass
class GapReport:
    gaps: list[Gap] = field(default_factory=list)
    max_gap: float = 0.0
    total_points: int = 0

    @property
    def has_gap(self) -> bool:
        return bool(self.gaps)


@dataclass
class GapFill:
    """Outcome of a gap-repair pass over a track"""
    points: list[GeoPoint]
    gap_count: int = 0
    gaps_filled: int = 0
    max_gap: float = 0.0
    details: list[dict] = field(default_factory=list)

    @property
    def points_added(self) -> int:
        return sum(d["fill_points"] for d in self.details)


@dataclass
class TrailClassification:
    trail_type: TrailType
    overlap: OverlapInfo
    start_end_distance: float
    is_circular: bool
    end_near_road: bool
    needs_roundtrip_path: bool
    points: list[GeoPoint]
    gap_fill: GapFill
    road_info: Optional[dict] = None
    reversal_midpoint_index: Optional[int] = None

    @property
    def overlap_rate(self) -> float:
        return self.overlap.rate

    def to_dict(self) -> dict:
        return {
            "trail_type": self.trail_type.value,
            "overlap_rate": round(self.overlap.rate, 4),
            "start_end_distance_m": round(self.start_end_distance, 1),
            "is_circular": self.is_circular,
            "end_near_road": self.end_near_road,
            "needs_roundtrip_path": self.needs_roundtrip_path,
            "reversal_midpoint_index": self.reversal_midpoint_index,
            "points": len(self.points),
            "gaps": self.gap_fill.gap_count,
            "road_info": self.road_info,
        }


@dataclass
class HikeSummary:
    distance: float = 0.0       # meters
    duration: float = 0.0       # seconds
    pace: float = 0.0           # min/km, 0 = unavailable
    calories: int = 0
    elevation_gain: float = 0.0
    elevation_loss: float = 0.0
    max_altitude: Optional[float] = None
    avg_speed: float = 0.0      # km/h
    points: int = 0

    def to_dict(self) -> dict:
        return asdict(self)
