#!/usr/bin/env python3
"""
HikingMate - hike metrics and trail shape tools

Usage:
    python -m hikingmate <command> [options]

Commands:
    summary TRACK           Distance, time, pace, calories and climb of a track
    classify TRACK          Trail type (round-trip, loop, one-way) of a track
    gaps TRACK              List suspicious jumps between consecutive points
    map TRACK               Render the track to an HTML map
    record --out FILE       Record a hike from the phone's GPS
    playback FILE           Replay a recorded session
    history                 List saved hikes (--stats for totals)
    catalog-classify        Classify every trail in the hosted catalog
"""

import argparse
import json
import sys
from datetime import datetime
from pathlib import Path

from .catalog import CatalogError, TrailCatalog, classify_catalog
from .config import CONFIG, Settings
from .files import load_track
from .geo import bearing, bearing_to_compass
from .gps import GPS, TrackPlayback, TrackRecorder
from .gpx import write_gpx
from .history import HikeHistoryDB
from .ingest import InvalidPointError
from .logger import Logger
from .metrics import (
    estimate_difficulty,
    format_distance,
    format_duration,
    format_pace,
    summarize_track,
)
from .roads import KakaoRoadChecker
from .shape import analyze_shape, classify_trail, detect_gaps, smart_fill_gaps


def _load(path: str):
    if not Path(path).exists():
        print(f"Track file not found: {path}")
        return None
    try:
        return load_track(path)
    except (InvalidPointError, ValueError, KeyError) as e:
        print(f"Could not read {path}: {e}")
        return None


def _print_summary(track, weight_kg: float, skip_missing: bool):
    summary = summarize_track(track, weight_kg=weight_kg, skip_missing_altitude=skip_missing)
    print(f"Points:     {summary.points}")
    print(f"Distance:   {format_distance(summary.distance)}")
    print(f"Duration:   {format_duration(summary.duration)}")
    print(f"Pace:       {format_pace(summary.pace)}/km")
    print(f"Calories:   {summary.calories} kcal")
    print(f"Climb:      {summary.elevation_gain:.0f}m up, {summary.elevation_loss:.0f}m down")
    if summary.max_altitude is not None:
        print(f"Highest:    {summary.max_altitude:.0f}m")
    print(f"Difficulty: {estimate_difficulty(summary.distance, summary.elevation_gain)}")
    if len(track) >= 2:
        heading = bearing_to_compass(bearing(track[0], track[-1]))
        print(f"End point:  {heading} of start")


def cmd_summary(args) -> int:
    loaded = _load(args.track)
    if loaded is None:
        return 1
    track, _ = loaded
    _print_summary(track, args.weight, args.skip_missing_altitude)

    shape = analyze_shape(track)
    if shape is not None:
        print(f"Out-and-back: {'yes' if shape.reverse.has_reverse_pattern else 'no'} "
              f"({shape.reverse.match_rate * 100:.0f}% of points retraced)")
        print(f"Closed loop:  {'yes' if shape.is_closed_loop else 'no'} "
              f"(start-end {shape.start_end_distance:.0f}m)")
    return 0


def cmd_classify(args) -> int:
    loaded = _load(args.track)
    if loaded is None:
        return 1
    track, waypoints = loaded

    road_checker = None
    if args.kakao:
        road_checker = KakaoRoadChecker.from_settings(Settings.from_env())
        if road_checker is None:
            print("KAKAO_REST_API_KEY is not set; using waypoints only")

    classification = classify_trail(track, waypoints, road_checker)
    if classification is None:
        print("Track needs at least 2 points")
        return 1

    if args.json:
        print(json.dumps(classification.to_dict(), indent=2, ensure_ascii=False))
    else:
        print(f"Type:        {classification.trail_type.value}")
        print(f"Overlap:     {classification.overlap_rate * 100:.1f}%")
        print(f"Start-end:   {classification.start_end_distance:.0f}m")
        print(f"End at road: {'yes' if classification.end_near_road else 'no'}")
        if classification.gap_fill.gaps_filled:
            print(f"Gap repaired: {classification.gap_fill.max_gap:.0f}m")
        if classification.needs_roundtrip_path:
            print("Return path generated")

    if args.gpx:
        write_gpx(classification.points, args.gpx, name=Path(args.track).stem, waypoints=waypoints)
        print(f"Classified path written to {args.gpx}")
    return 0


def cmd_gaps(args) -> int:
    loaded = _load(args.track)
    if loaded is None:
        return 1
    track, waypoints = loaded

    report = detect_gaps(track)
    if not report.has_gap:
        print(f"No gaps over {CONFIG['gap_threshold']}m in {report.total_points} points")
        return 0

    print(f"{len(report.gaps)} gaps in {report.total_points} points (largest {report.max_gap:.0f}m)")
    for gap in report.gaps:
        print(f"  point {gap.index}: {gap.distance:.0f}m [{gap.severity}]")

    if args.fix:
        fill = smart_fill_gaps(track)
        write_gpx(fill.points, args.fix, name=Path(args.track).stem, waypoints=waypoints)
        print(f"Filled {fill.gaps_filled}/{fill.gap_count} gaps "
              f"(+{fill.points_added} points), written to {args.fix}")
    return 0


def cmd_map(args) -> int:
    from .track_map import create_track_map

    loaded = _load(args.track)
    if loaded is None:
        return 1
    track, waypoints = loaded
    if not track:
        print("No points to draw")
        return 1

    classification = classify_trail(track, waypoints) if args.classify else None
    m = create_track_map(track, classification, title=Path(args.track).stem,
                         show_points=args.points)
    m.save(args.output)
    print(f"Map saved to {args.output}")
    return 0


def _default_log_path() -> str:
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"hikingmate_{timestamp}.log"


def _finish_recording(recorder: TrackRecorder, args) -> int:
    recorder.save()
    _print_summary(recorder.track, args.weight, False)
    if args.save_history and recorder.track:
        db = HikeHistoryDB(Settings.from_env().db_path)
        hike_id = db.save_hike(recorder.track, trail_id=args.trail_id)
        db.close()
        print(f"Saved as hike #{hike_id}")
    return 0


def cmd_record(args) -> int:
    mode = "standby" if args.standby else "continuous"
    with Logger(args.log or _default_log_path()) as logger:
        recorder = TrackRecorder(GPS(), record_path=args.out, mode=mode, logger=logger)
        print(f"Waiting for GPS fix ({mode} mode, Ctrl+C to stop)...")
        if not recorder.start():
            print("Could not get a GPS fix")
            return 1
        recorder.run(max_duration=args.duration)
        return _finish_recording(recorder, args)


def cmd_playback(args) -> int:
    if not Path(args.file).exists():
        print(f"Playback file not found: {args.file}")
        return 1
    playback = TrackPlayback(args.file, args.speed)
    with (Logger(args.log) if args.log else Logger(echo=False)) as logger:
        recorder = TrackRecorder(playback, record_path=args.out, logger=logger)
        recorder.run()
        if args.out:
            return _finish_recording(recorder, args)
        _print_summary(recorder.track, args.weight, False)
        return 0


def cmd_history(args) -> int:
    db = HikeHistoryDB(args.db or Settings.from_env().db_path)
    try:
        if args.stats:
            stats = db.get_stats()
            print(f"Hikes:    {stats['total_hikes']}")
            print(f"Distance: {format_distance(stats['total_distance'])}")
            print(f"Time:     {format_duration(stats['total_duration'])}")
            print(f"Average:  {format_distance(stats['average_distance'])}, "
                  f"{format_duration(stats['average_duration'])}")
            print(f"Longest:  {format_distance(stats['longest_hike'])}")
            return 0

        hikes = db.list_hikes(limit=args.limit)
        if not hikes:
            print("No hikes recorded")
            return 0
        for hike in hikes:
            print(f"#{hike['id']:<4} {hike['started_at'][:16]}  "
                  f"{format_distance(hike['distance']):>8}  "
                  f"{format_duration(hike['duration']):>8}  "
                  f"{format_pace(hike['avg_pace'] or 0)}/km  {hike['status']}")
        return 0
    finally:
        db.close()


def cmd_catalog_classify(args) -> int:
    settings = Settings.from_env(args.env_file)
    try:
        catalog = TrailCatalog(settings)
    except CatalogError as e:
        print(f"Error: {e}")
        return 1

    road_checker = None if args.no_kakao else KakaoRoadChecker.from_settings(settings)
    try:
        with Logger(args.log) as logger:
            stats = classify_catalog(catalog, road_checker=road_checker, dry_run=args.dry_run,
                                     logger=logger, limit=args.limit)
    except CatalogError as e:
        print(f"Error: {e}")
        return 1

    print("\nClassification results:")
    for key, count in stats.items():
        print(f"  {key}: {count}")
    if road_checker is not None:
        print(f"Kakao requests: {road_checker.requests_made}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hikingmate",
        description="HikingMate - hike metrics and trail shape tools"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    p = subparsers.add_parser("summary", help="Show hike metrics for a track")
    p.add_argument("track", help="GPX or JSON track file")
    p.add_argument("--weight", type=float, default=CONFIG["default_weight_kg"],
                   help="Body weight in kg for calories (default: 70)")
    p.add_argument("--skip-missing-altitude", action="store_true",
                   help="Ignore point pairs without altitude when computing climb")
    p.set_defaults(func=cmd_summary)

    p = subparsers.add_parser("classify", help="Classify the shape of a trail")
    p.add_argument("track", help="GPX or JSON track file")
    p.add_argument("--kakao", action="store_true",
                   help="Check road access with Kakao Local when no waypoint is near the end")
    p.add_argument("--json", action="store_true", help="Print the full result as JSON")
    p.add_argument("--gpx", metavar="FILE", help="Write the classified path to a GPX file")
    p.set_defaults(func=cmd_classify)

    p = subparsers.add_parser("gaps", help="Find gaps between consecutive points")
    p.add_argument("track", help="GPX or JSON track file")
    p.add_argument("--fix", metavar="FILE", help="Write a gap-filled GPX file")
    p.set_defaults(func=cmd_gaps)

    p = subparsers.add_parser("map", help="Render a track to an HTML map")
    p.add_argument("track", help="GPX or JSON track file")
    p.add_argument("-o", "--output", default="track_map.html",
                   help="Output HTML file (default: track_map.html)")
    p.add_argument("--points", action="store_true", help="Show individual GPS points")
    p.add_argument("--classify", action="store_true", help="Colour the path by trail type")
    p.set_defaults(func=cmd_map)

    p = subparsers.add_parser("record", help="Record a hike from GPS")
    p.add_argument("--out", required=True, metavar="FILE", help="Session JSON file")
    p.add_argument("--standby", action="store_true",
                   help="Poll every 5 minutes instead of every second")
    p.add_argument("--duration", type=float, help="Stop after this many seconds")
    p.add_argument("--weight", type=float, default=CONFIG["default_weight_kg"])
    p.add_argument("--save-history", action="store_true", help="Add the hike to the history database")
    p.add_argument("--trail-id", help="Catalog trail ID of the hike")
    p.add_argument("--log", metavar="FILE", help="Log file path (default: hikingmate_TIMESTAMP.log)")
    p.set_defaults(func=cmd_record)

    p = subparsers.add_parser("playback", help="Replay a recorded session")
    p.add_argument("file", help="Session JSON file")
    p.add_argument("--speed", type=float, default=1.0,
                   help="Playback speed multiplier (default: 1.0)")
    p.add_argument("--out", metavar="FILE", help="Save the replayed session")
    p.add_argument("--weight", type=float, default=CONFIG["default_weight_kg"])
    p.add_argument("--save-history", action="store_true", help="Add the hike to the history database")
    p.add_argument("--trail-id", help="Catalog trail ID of the hike")
    p.add_argument("--log", metavar="FILE", help="Log file path")
    p.set_defaults(func=cmd_playback)

    p = subparsers.add_parser("history", help="List saved hikes")
    p.add_argument("--stats", action="store_true", help="Show totals instead of a list")
    p.add_argument("--limit", type=int, default=20)
    p.add_argument("--db", help="History database (default: $HIKINGMATE_DB or hikingmate_history.db)")
    p.set_defaults(func=cmd_history)

    p = subparsers.add_parser("catalog-classify", help="Classify all trails in the catalog")
    p.add_argument("--dry-run", action="store_true", help="Classify without writing back")
    p.add_argument("--limit", type=int, help="Only process this many trails")
    p.add_argument("--no-kakao", action="store_true", help="Use waypoints only for road checks")
    p.add_argument("--env-file", default=".env.local", help="Env file with API keys")
    p.add_argument("--log", metavar="FILE", help="Log file path")
    p.set_defaults(func=cmd_catalog_classify)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
