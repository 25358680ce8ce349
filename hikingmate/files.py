"""Loading tracks from the file formats the tools accept."""

import json
from pathlib import Path

from .gps import load_session
from .gpx import parse_gpx
from .ingest import normalize_track
from .models import GeoPoint, Waypoint


def _export_waypoints(raw) -> list[Waypoint]:
    return [Waypoint(lat=wp["lat"], lon=wp.get("lon", wp.get("lng")),
                     name=wp.get("name", ""), category=wp.get("category", ""))
            for wp in raw or []]


def load_track(path: str) -> tuple[list[GeoPoint], list[Waypoint]]:
    """Load a GPX file, a recorded session, or a JSON list of point records.

    A catalog trail export is read from its recorded ``gpx_data`` track;
    exports without one fall back to ``path_coordinates``.
    """
    if Path(path).suffix.lower() == ".gpx":
        return parse_gpx(path)

    with open(path, encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, list):
        return normalize_track(data), []
    if "trace" in data:
        return load_session(path), []
    gpx_data = data.get("gpx_data") or {}
    if gpx_data.get("trackPoints"):
        return normalize_track(gpx_data["trackPoints"]), _export_waypoints(gpx_data.get("waypoints"))
    if "path_coordinates" in data:
        return normalize_track(data["path_coordinates"]), _export_waypoints(data.get("waypoints"))
    raise ValueError(f"Unrecognised track file: {path}")
