"""Trail shape analysis: out-and-back detection, overlap, gap repair, classification.

These are heuristics tuned against the existing trail catalog. The thresholds
live in CONFIG and changing them changes how already-classified trails would
be labelled.
"""

from typing import Optional, Sequence

from .config import CONFIG
from .geo import distance, interpolate
from .models import (
    Gap,
    GapFill,
    GapReport,
    GeoPoint,
    OverlapInfo,
    ReversePattern,
    ShapeAnalysis,
    TrailClassification,
    TrailType,
    Waypoint,
)
from .roads import waypoint_near_road


def detect_reverse_pattern(track: Sequence[GeoPoint],
                           window_size: int = CONFIG["reverse_window_size"],
                           check_size: int = CONFIG["reverse_check_size"],
                           match_distance: float = CONFIG["reverse_match_distance"],
                           match_rate: float = CONFIG["reverse_match_rate"],
                           ) -> Optional[ReversePattern]:
    """Check whether the track retraces itself around its midpoint.

    The last points before the midpoint are paired with the first points
    after it, walking outward in both directions. Returns None when the
    track is shorter than two windows or there is nothing to compare.
    """
    if len(track) < window_size * 2:
        return None

    midpoint = len(track) // 2
    before_mid = track[max(0, midpoint - window_size):midpoint]
    after_mid = track[midpoint:min(len(track), midpoint + window_size)]

    checked = min(len(before_mid), len(after_mid), check_size)
    if checked <= 0:
        return None
    matches = 0
    for i in range(checked):
        if distance(before_mid[-1 - i], after_mid[i]) < match_distance:
            matches += 1

    rate = matches / checked
    return ReversePattern(
        has_reverse_pattern=rate > match_rate,
        match_rate=rate,
        midpoint_index=midpoint,
        checked_points=checked,
    )


def start_end_distance(track: Sequence[GeoPoint]) -> float:
    if len(track) < 2:
        return 0.0
    return distance(track[0], track[-1])


def analyze_shape(track: Sequence[GeoPoint],
                  window_size: int = CONFIG["reverse_window_size"],
                  closure_distance: float = CONFIG["loop_closure_distance"],
                  ) -> Optional[ShapeAnalysis]:
    """Reverse-pattern test plus loop closure, or None if the track is too short"""
    reverse = detect_reverse_pattern(track, window_size=window_size)
    if reverse is None:
        return None

    gap = start_end_distance(track)
    return ShapeAnalysis(
        reverse=reverse,
        start_end_distance=gap,
        is_closed_loop=gap < closure_distance,
    )


def overlap_rate(track: Sequence[GeoPoint],
                 precision: int = CONFIG["overlap_key_precision"]) -> OverlapInfo:
    """Share of points whose rounded position is visited more than once"""
    if not track:
        return OverlapInfo(rate=0.0, duplicate_points=0, total_points=0, unique_points=0)

    visit_count: dict[str, int] = {}
    for p in track:
        key = f"{p.latitude:.{precision}f},{p.longitude:.{precision}f}"
        visit_count[key] = visit_count.get(key, 0) + 1

    duplicates = sum(1 for count in visit_count.values() if count >= 2)
    return OverlapInfo(
        rate=duplicates / len(track),
        duplicate_points=duplicates,
        total_points=len(track),
        unique_points=len(visit_count),
    )


def remove_close_duplicates(track: Sequence[GeoPoint],
                            min_spacing: float = CONFIG["duplicate_spacing"]) -> list[GeoPoint]:
    """Drop points closer than min_spacing to the previously kept point"""
    if not track:
        return []

    result = [track[0]]
    for p in track[1:]:
        if distance(p, result[-1]) >= min_spacing:
            result.append(p)
    return result


def _gap_severity(dist: float, major: float, critical: float) -> str:
    if dist > critical:
        return "critical"
    if dist > major:
        return "major"
    return "minor"


def detect_gaps(track: Sequence[GeoPoint],
                thresholds: tuple[float, float, float] = (
                    CONFIG["gap_threshold"], CONFIG["gap_major"], CONFIG["gap_critical"]),
                ) -> GapReport:
    """Find consecutive points that are suspiciously far apart"""
    report = GapReport(total_points=len(track))
    minimum, major, critical = thresholds

    for i in range(1, len(track)):
        dist = distance(track[i - 1], track[i])
        if dist > minimum:
            report.gaps.append(Gap(index=i, distance=dist,
                                   severity=_gap_severity(dist, major, critical)))
            report.max_gap = max(report.max_gap, dist)

    return report


def fill_largest_gap(track: Sequence[GeoPoint],
                     gap_threshold: float = CONFIG["gap_threshold"]) -> GapFill:
    """Replace everything after the largest gap with the path walked back.

    [A, B, C, D | gap | E, F] -> [A, B, C, D, C, B, A]
    """
    report = detect_gaps(track, (gap_threshold, CONFIG["gap_major"], CONFIG["gap_critical"]))
    if not report.has_gap:
        return GapFill(points=list(track))

    largest = max(report.gaps, key=lambda g: g.distance)
    before_gap = list(track[:largest.index])
    walked_back = before_gap[:-1][::-1]

    return GapFill(
        points=before_gap + walked_back,
        gap_count=len(report.gaps),
        gaps_filled=1,
        max_gap=report.max_gap,
        details=[{
            "gap_index": largest.index - 1,
            "gap_distance": round(largest.distance),
            "fill_points": len(walked_back),
            "method": "reverse_prefix",
        }],
    )


def _interpolated_points(start: GeoPoint, end: GeoPoint, gap: float) -> list[GeoPoint]:
    steps = int(-(-gap // CONFIG["gap_interpolation_step"]))  # ceil
    points = []
    for i in range(1, steps):
        ratio = i / steps
        lat, lon = interpolate(start.latitude, start.longitude,
                               end.latitude, end.longitude, ratio)
        altitude = None
        if start.altitude is not None and end.altitude is not None:
            altitude = start.altitude + (end.altitude - start.altitude) * ratio
        timestamp = int(start.timestamp + (end.timestamp - start.timestamp) * ratio)
        points.append(GeoPoint(latitude=lat, longitude=lon,
                               altitude=altitude, timestamp=timestamp))
    return points


def smart_fill_gaps(track: Sequence[GeoPoint],
                    gap_threshold: float = CONFIG["gap_threshold"]) -> GapFill:
    """Bridge each gap by walking back to the point nearest the far side.

    For a gap between points i and i+1 the earlier point closest to i+1 is
    found by scanning backwards from i; the path from i back to it is inserted
    after i, simulating a hiker retracing their steps. Gaps with no closer
    earlier point and longer than the critical threshold are bridged with
    straight-line points instead.
    """
    report = detect_gaps(track, (gap_threshold, CONFIG["gap_major"], CONFIG["gap_critical"]))
    result = list(track)
    fill = GapFill(points=result, gap_count=len(report.gaps), max_gap=report.max_gap)
    offset = 0

    for gap in report.gaps:
        gap_start = gap.index - 1 + offset
        gap_end_point = result[gap_start + 1]

        closest_index = -1
        min_distance = float("inf")
        for i in range(gap_start, -1, -1):
            dist = distance(result[i], gap_end_point)
            if dist < min_distance:
                min_distance = dist
                closest_index = i
            if i < gap_start - 10 and dist > min_distance * 2:
                break

        if 0 <= closest_index < gap_start:
            fill_path = result[closest_index:gap_start + 1][::-1]
            method = "reverse_path"
        elif gap.distance > CONFIG["gap_critical"]:
            fill_path = _interpolated_points(result[gap_start], gap_end_point, gap.distance)
            method = "linear_interpolation"
            closest_index = None
            min_distance = None
        else:
            continue

        result[gap_start + 1:gap_start + 1] = fill_path
        offset += len(fill_path)
        fill.gaps_filled += 1
        fill.details.append({
            "gap_index": gap.index - 1,
            "gap_distance": round(gap.distance),
            "closest_index": closest_index,
            "closest_distance": round(min_distance) if min_distance is not None else None,
            "fill_points": len(fill_path),
            "method": method,
        })

    return fill


def classify_trail(track: Sequence[GeoPoint],
                   waypoints: Sequence[Waypoint] = (),
                   road_checker=None) -> Optional[TrailClassification]:
    """Label a catalog trail as round-trip, loop or one-way.

    ``road_checker`` is anything with ``check(lat, lon) -> Optional[dict]``
    (see ``hikingmate.roads.KakaoRoadChecker``); it is only consulted when no
    access waypoint lies near the end of the trail.
    """
    if len(track) < 2:
        return None

    points = remove_close_duplicates(track)
    gap_fill = fill_largest_gap(points)
    points = gap_fill.points

    end_gap = start_end_distance(points)
    is_circular = end_gap < CONFIG["circular_distance"]
    overlap = overlap_rate(points)

    end = points[-1]
    road_info = waypoint_near_road(end.latitude, end.longitude, waypoints)
    if road_info is None and road_checker is not None:
        road_info = road_checker.check(end.latitude, end.longitude)
    end_near_road = road_info is not None

    needs_roundtrip_path = False
    if is_circular:
        if overlap.rate >= CONFIG["overlap_roundtrip"]:
            trail_type = TrailType.ROUNDTRIP
        elif overlap.rate >= CONFIG["overlap_partial"]:
            trail_type = TrailType.CIRCULAR_PARTIAL
        else:
            trail_type = TrailType.CIRCULAR_UNIQUE
    elif end_near_road:
        if overlap.rate >= CONFIG["overlap_partial"]:
            trail_type = TrailType.ONEWAY_PARTIAL
        else:
            trail_type = TrailType.ONEWAY_UNIQUE
    else:
        # The trail ends away from any road, so the hiker has to walk back
        trail_type = TrailType.ROUNDTRIP
        needs_roundtrip_path = True
        points = points + points[:-1][::-1]
        end_gap = start_end_distance(points)
        is_circular = end_gap < CONFIG["circular_distance"]
        overlap = overlap_rate(points)

    reverse = detect_reverse_pattern(points)
    midpoint = reverse.midpoint_index if reverse and reverse.has_reverse_pattern else None

    return TrailClassification(
        trail_type=trail_type,
        overlap=overlap,
        start_end_distance=end_gap,
        is_circular=is_circular,
        end_near_road=end_near_road,
        needs_roundtrip_path=needs_roundtrip_path,
        points=points,
        gap_fill=gap_fill,
        road_info=road_info,
        reversal_midpoint_index=midpoint,
    )
