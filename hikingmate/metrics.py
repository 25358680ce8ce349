"""Aggregate metrics over recorded tracks.

All functions are pure. Tracks are sequences of ``GeoPoint`` in traversal
order; metrics are computed pairwise over consecutive points.
"""

import math
from typing import Optional, Sequence

from .config import CONFIG
from .geo import distance, round_half_up
from .models import ElevationChange, GeoPoint, HikeSummary


def total_distance(track: Sequence[GeoPoint]) -> float:
    """Total path length in meters"""
    if len(track) < 2:
        return 0.0
    return sum(distance(track[i - 1], track[i]) for i in range(1, len(track)))


def elevation_change(track: Sequence[GeoPoint], skip_missing: bool = False) -> ElevationChange:
    """Cumulative climb and descent in meters.

    By default a missing altitude counts as 0, which matches the values already
    stored for recorded hikes but turns intermittent altitude dropouts into
    large spikes. Pass ``skip_missing=True`` to ignore any pair where either
    altitude is missing.
    """
    result = ElevationChange()
    if len(track) < 2:
        return result

    for i in range(1, len(track)):
        prev_alt = track[i - 1].altitude
        curr_alt = track[i].altitude
        if skip_missing and (prev_alt is None or curr_alt is None):
            continue
        diff = (curr_alt or 0) - (prev_alt or 0)
        if diff > 0:
            result.gain += diff
        else:
            result.loss += abs(diff)

    return result


def pace(distance_m: float, duration_s: float) -> float:
    """Minutes per kilometre. 0 means no pace is available (zero distance)."""
    if distance_m == 0:
        return 0.0
    return (duration_s / 60) / (distance_m / 1000)


def calories(distance_m: float, duration_s: float,
             weight_kg: float = CONFIG["default_weight_kg"]) -> int:
    """MET-based energy estimate in kcal.

    Uses a fixed MET for moderate hiking, so distance and terrain do not
    contribute; ``distance_m`` is accepted for call-site symmetry with pace.
    """
    hours = duration_s / 3600
    return round_half_up(CONFIG["hiking_met"] * weight_kg * hours)


def format_duration(seconds: float) -> str:
    """H:MM:SS, or M:SS under an hour"""
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_pace(pace_min_per_km: float) -> str:
    """M'SS\" per km, or '-' when no pace is available"""
    if not math.isfinite(pace_min_per_km) or pace_min_per_km == 0:
        return "-"

    minutes = math.floor(pace_min_per_km)
    seconds = math.floor((pace_min_per_km - minutes) * 60)
    return f"{minutes}'{seconds:02d}\""


def format_distance(meters: float) -> str:
    if meters < 1000:
        return f"{meters:.0f}m"
    return f"{meters / 1000:.2f}km"


def track_duration(track: Sequence[GeoPoint]) -> float:
    """Seconds between the first and last fix"""
    if len(track) < 2:
        return 0.0
    return max(0.0, (track[-1].timestamp - track[0].timestamp) / 1000)


def summarize_track(track: Sequence[GeoPoint],
                    weight_kg: float = CONFIG["default_weight_kg"],
                    duration_s: Optional[float] = None,
                    skip_missing_altitude: bool = False) -> HikeSummary:
    """Everything the hike summary screen shows, in one pass over the track.

    ``duration_s`` overrides the timestamp span (e.g. a recorder that paused).
    """
    dist = total_distance(track)
    duration = track_duration(track) if duration_s is None else duration_s
    elevation = elevation_change(track, skip_missing=skip_missing_altitude)
    altitudes = [p.altitude for p in track if p.altitude is not None]

    avg_speed = 0.0
    if duration > 0:
        avg_speed = (dist / 1000) / (duration / 3600)

    return HikeSummary(
        distance=dist,
        duration=duration,
        pace=pace(dist, duration),
        calories=calories(dist, duration, weight_kg),
        elevation_gain=elevation.gain,
        elevation_loss=elevation.loss,
        max_altitude=max(altitudes) if altitudes else None,
        avg_speed=avg_speed,
        points=len(track),
    )


def estimate_trail_duration(distance_km: float, difficulty: Optional[str]) -> int:
    """Expected walking time in minutes at the recommended speed for a difficulty"""
    speed = CONFIG["difficulty_speeds"].get(difficulty, CONFIG["default_speed"])
    return round_half_up(distance_km / speed * 60)


def estimate_difficulty(distance_m: float, elevation_gain_m: float) -> str:
    """Rough difficulty from length and climb: easy / normal / hard / expert"""
    score = distance_m / 1000 + elevation_gain_m / 100

    if score < 5:
        return "easy"
    if score < 10:
        return "normal"
    if score < 15:
        return "hard"
    return "expert"
