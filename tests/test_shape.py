"""Tests for hikingmate/shape.py - out-and-back detection, gaps and trail classification."""

from unittest.mock import Mock

import pytest

from conftest import M_PER_DEG, offset_point
from hikingmate.geo import distance
from hikingmate.models import TrailType, Waypoint
from hikingmate.shape import (
    analyze_shape,
    classify_trail,
    detect_gaps,
    detect_reverse_pattern,
    fill_largest_gap,
    overlap_rate,
    remove_close_duplicates,
    smart_fill_gaps,
    start_end_distance,
)


def _waypoint_at(point, category, north_m=0.0):
    return Waypoint(lat=point.latitude + north_m / M_PER_DEG, lon=point.longitude,
                    name=f"{category} stop", category=category)


class TestReversePattern:
    """Retrace detection around the track midpoint."""

    def test_out_and_back_matches(self, out_and_back_track):
        result = detect_reverse_pattern(out_and_back_track)
        assert result.has_reverse_pattern is True
        assert result.match_rate == pytest.approx(1.0)
        assert result.midpoint_index == 100
        assert result.checked_points == 10

    def test_straight_line_does_not_match(self, straight_track):
        result = detect_reverse_pattern(straight_track)
        assert result.has_reverse_pattern is False
        assert result.match_rate == 0

    def test_too_short(self, straight_track):
        assert detect_reverse_pattern(straight_track[:99]) is None
        assert detect_reverse_pattern(straight_track[:100]) is not None

    def test_nothing_to_compare(self, out_and_back_track):
        assert detect_reverse_pattern(out_and_back_track[:3], window_size=0) is None
        assert detect_reverse_pattern(out_and_back_track, check_size=0) is None
        assert detect_reverse_pattern(out_and_back_track, window_size=-5) is None
        assert analyze_shape([], window_size=0) is None

    def test_custom_window(self, out_and_back_track):
        short = out_and_back_track[90:110]
        result = detect_reverse_pattern(short, window_size=5)
        assert result.has_reverse_pattern is True
        assert result.checked_points == 5


class TestAnalyzeShape:

    def test_out_and_back(self, out_and_back_track):
        shape = analyze_shape(out_and_back_track)
        assert shape.reverse.has_reverse_pattern is True
        assert shape.is_closed_loop is True
        assert shape.start_end_distance == 0
        assert shape.reversal_midpoint_index == 100

    def test_straight_line(self, straight_track):
        shape = analyze_shape(straight_track)
        assert shape.is_closed_loop is False
        assert shape.start_end_distance == pytest.approx(199 * 22.24, rel=0.001)
        assert shape.reversal_midpoint_index is None

    def test_too_short(self, straight_track):
        assert analyze_shape(straight_track[:50]) is None

    def test_start_end_distance_short_tracks(self):
        assert start_end_distance([]) == 0
        assert start_end_distance([offset_point(0)]) == 0


class TestOverlap:

    def test_revisited_points(self):
        a, b = offset_point(0), offset_point(50)
        info = overlap_rate([a, b, a, b])
        assert info.rate == pytest.approx(0.5)
        assert info.duplicate_points == 2
        assert info.unique_points == 2
        assert info.total_points == 4

    def test_no_revisits(self, loop_track):
        assert overlap_rate(loop_track).rate == 0

    def test_empty(self):
        assert overlap_rate([]).rate == 0

    def test_remove_close_duplicates(self):
        points = [offset_point(m) for m in (0, 5, 12, 15, 30)]
        kept = remove_close_duplicates(points)
        assert kept == [points[0], points[2], points[4]]

    def test_remove_close_duplicates_empty(self):
        assert remove_close_duplicates([]) == []


class TestGaps:
    """Gap detection and repair."""

    def test_severity(self):
        track = [offset_point(m) for m in (0, 150, 450, 1050)]
        report = detect_gaps(track)
        assert report.has_gap
        assert [g.index for g in report.gaps] == [1, 2, 3]
        assert [g.severity for g in report.gaps] == ["minor", "major", "critical"]
        assert report.max_gap == pytest.approx(600)
        assert report.total_points == 4

    def test_no_gaps(self, one_way_track):
        report = detect_gaps(one_way_track)
        assert not report.has_gap
        assert report.max_gap == 0

    def test_fill_largest_gap_walks_back(self):
        track = [offset_point(m) for m in (0, 22, 44, 66, 88, 1088, 1110)]
        fill = fill_largest_gap(track)
        assert fill.points == track[:5] + [track[3], track[2], track[1], track[0]]
        assert fill.gap_count == 1
        assert fill.gaps_filled == 1
        assert fill.details[0]["gap_index"] == 4
        assert fill.details[0]["method"] == "reverse_prefix"
        assert fill.points_added == 4

    def test_fill_largest_gap_without_gap(self, one_way_track):
        fill = fill_largest_gap(one_way_track)
        assert fill.points == one_way_track
        assert fill.gaps_filled == 0

    def test_smart_fill_reverse_path(self):
        track = [offset_point(i * 22.0) for i in range(10)]
        side_trip = offset_point(110, 150)
        track.append(side_trip)

        fill = smart_fill_gaps(track)
        detail = fill.details[0]
        assert detail["method"] == "reverse_path"
        assert detail["closest_index"] == 5
        assert detail["closest_distance"] == 150
        assert detail["fill_points"] == 5
        assert len(fill.points) == 16
        assert fill.points[10:15] == [track[9], track[8], track[7], track[6], track[5]]
        assert fill.points[-1] == side_trip

    def test_smart_fill_linear_interpolation(self):
        start = offset_point(0, altitude=100.0, timestamp=0)
        end = offset_point(1010, altitude=200.0, timestamp=1_000_000)
        fill = smart_fill_gaps([start, end])

        assert fill.gaps_filled == 1
        assert fill.details[0]["method"] == "linear_interpolation"
        assert fill.details[0]["closest_index"] is None
        assert len(fill.points) == 22
        assert not detect_gaps(fill.points, (50, 200, 500)).has_gap
        assert 100 < fill.points[1].altitude < 200

    def test_smart_fill_leaves_unbridgeable_gap(self):
        fill = smart_fill_gaps([offset_point(0), offset_point(200)])
        assert fill.gap_count == 1
        assert fill.gaps_filled == 0
        assert len(fill.points) == 2


class TestClassifyTrail:
    """Trail type from loop closure, overlap and road access."""

    def test_loop(self, loop_track):
        result = classify_trail(loop_track)
        assert result.trail_type == TrailType.CIRCULAR_UNIQUE
        assert result.is_circular is True
        assert result.overlap_rate == 0
        assert result.needs_roundtrip_path is False

    def test_retraced_loop_is_partial(self, out_and_back_track):
        # Every point but the turnaround is visited twice: 99 of 199 points
        result = classify_trail(out_and_back_track)
        assert result.trail_type == TrailType.CIRCULAR_PARTIAL
        assert result.overlap_rate == pytest.approx(99 / 199)
        assert len(result.points) == 199

    def test_dead_end_becomes_roundtrip(self, one_way_track):
        result = classify_trail(one_way_track)
        assert result.trail_type == TrailType.ROUNDTRIP
        assert result.needs_roundtrip_path is True
        assert result.end_near_road is False
        assert len(result.points) == 119
        assert result.points[-1] == one_way_track[0]
        assert result.start_end_distance == 0
        assert result.is_circular is True

    def test_one_way_ending_at_parking(self, one_way_track):
        waypoints = [_waypoint_at(one_way_track[-1], "PARK", north_m=100)]
        result = classify_trail(one_way_track, waypoints)
        assert result.trail_type == TrailType.ONEWAY_UNIQUE
        assert result.end_near_road is True
        assert result.road_info["method"] == "waypoint"
        assert result.road_info["distance"] == 100
        assert result.points == one_way_track

    def test_non_access_waypoint_ignored(self, one_way_track):
        waypoints = [_waypoint_at(one_way_track[-1], "SUMMIT")]
        result = classify_trail(one_way_track, waypoints)
        assert result.trail_type == TrailType.ROUNDTRIP

    def test_one_way_partial(self):
        out = [offset_point(i * 22.0) for i in range(21)]
        back = out[19:1:-1]
        east = [offset_point(44, k * 22.0) for k in range(1, 11)]
        track = out + back + east
        waypoints = [_waypoint_at(east[-1], "TRANS")]

        result = classify_trail(track, waypoints)
        assert result.trail_type == TrailType.ONEWAY_PARTIAL
        assert result.overlap_rate == pytest.approx(18 / 49)
        assert result.is_circular is False

    def test_road_checker_consulted_without_waypoint(self, one_way_track):
        checker = Mock()
        checker.check.return_value = {"method": "kakao", "type": "parking", "name": "P", "distance": 80}
        result = classify_trail(one_way_track, road_checker=checker)

        end = one_way_track[-1]
        checker.check.assert_called_once_with(end.latitude, end.longitude)
        assert result.trail_type == TrailType.ONEWAY_UNIQUE
        assert result.road_info["method"] == "kakao"

    def test_road_checker_skipped_when_waypoint_near(self, one_way_track):
        checker = Mock()
        waypoints = [_waypoint_at(one_way_track[-1], "ENTRY")]
        classify_trail(one_way_track, waypoints, checker)
        checker.check.assert_not_called()

    def test_road_checker_no_result(self, one_way_track):
        checker = Mock()
        checker.check.return_value = None
        result = classify_trail(one_way_track, road_checker=checker)
        assert result.trail_type == TrailType.ROUNDTRIP

    def test_gap_repaired_before_classifying(self, one_way_track):
        jump = offset_point(5000)
        result = classify_trail(one_way_track + [jump], [_waypoint_at(one_way_track[-1], "PARK")])
        assert result.gap_fill.gaps_filled == 1
        assert jump not in result.points

    def test_too_few_points(self):
        assert classify_trail([]) is None
        assert classify_trail([offset_point(0)]) is None

    def test_to_dict(self, loop_track):
        data = classify_trail(loop_track).to_dict()
        assert data["trail_type"] == "CIRCULAR_UNIQUE"
        assert data["points"] == 60
        assert data["gaps"] == 0

    def test_points_are_spaced(self, one_way_track):
        result = classify_trail(one_way_track)
        assert all(distance(a, b) > 0 for a, b in zip(result.points, result.points[1:]))
