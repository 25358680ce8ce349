"""GPX import and export."""

import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from typing import Optional, Sequence
from xml.sax.saxutils import escape

from .ingest import InvalidPointError, normalize_point
from .models import GeoPoint, Waypoint


def _child_text(element: ET.Element, tag: str) -> Optional[str]:
    child = element.find(f"{{*}}{tag}")
    if child is None or child.text is None:
        return None
    return child.text.strip()


def parse_gpx(path: str) -> tuple[list[GeoPoint], list[Waypoint]]:
    """Read all track points and waypoints from a GPX file"""
    root = ET.parse(path).getroot()

    track = []
    for pt in root.findall(".//{*}trk/{*}trkseg/{*}trkpt"):
        track.append(normalize_point({
            "lat": pt.get("lat"),
            "lon": pt.get("lon"),
            "ele": _child_text(pt, "ele"),
            "time": _child_text(pt, "time"),
        }))

    waypoints = []
    for wpt in root.findall("{*}wpt"):
        try:
            point = normalize_point({"lat": wpt.get("lat"), "lon": wpt.get("lon"),
                                     "ele": _child_text(wpt, "ele")})
        except InvalidPointError as e:
            print(f"Skipping waypoint: {e}")
            continue
        waypoints.append(Waypoint(
            lat=point.latitude,
            lon=point.longitude,
            name=_child_text(wpt, "name") or "",
            category=_child_text(wpt, "type") or _child_text(wpt, "sym") or "",
            elevation=point.altitude,
        ))

    return track, waypoints


def _iso_time(epoch_ms: int) -> str:
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def write_gpx(track: Sequence[GeoPoint], path: str, name: str = "HikingMate Track",
              waypoints: Sequence[Waypoint] = ()):
    """Write a GPX 1.1 file for use in other mapping apps"""
    gpx_lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<gpx version="1.1" creator="HikingMate"',
        '     xmlns="http://www.topografix.com/GPX/1/1"',
        '     xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"',
        '     xsi:schemaLocation="http://www.topografix.com/GPX/1/1 http://www.topografix.com/GPX/1/1/gpx.xsd">',
        '  <metadata>',
        f'    <name>{escape(name)}</name>',
        f'    <time>{datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")}</time>',
        '  </metadata>',
    ]

    for wp in waypoints:
        gpx_lines.append(f'  <wpt lat="{wp.lat:.6f}" lon="{wp.lon:.6f}">')
        if wp.elevation is not None:
            gpx_lines.append(f'    <ele>{wp.elevation:.1f}</ele>')
        gpx_lines.append(f'    <name>{escape(wp.name)}</name>')
        if wp.category:
            gpx_lines.append(f'    <type>{escape(wp.category)}</type>')
        gpx_lines.append('  </wpt>')

    gpx_lines.append('  <trk>')
    gpx_lines.append(f'    <name>{escape(name)}</name>')
    gpx_lines.append('    <trkseg>')
    for p in track:
        children = []
        if p.altitude is not None:
            children.append(f'<ele>{p.altitude:.1f}</ele>')
        if p.timestamp:
            children.append(f'<time>{_iso_time(p.timestamp)}</time>')
        if children:
            gpx_lines.append(f'      <trkpt lat="{p.latitude:.6f}" lon="{p.longitude:.6f}">'
                             f'{"".join(children)}</trkpt>')
        else:
            gpx_lines.append(f'      <trkpt lat="{p.latitude:.6f}" lon="{p.longitude:.6f}"/>')
    gpx_lines.append('    </trkseg>')
    gpx_lines.append('  </trk>')
    gpx_lines.append('</gpx>')

    with open(path, "w", encoding="utf-8") as f:
        f.write("\n".join(gpx_lines))

    print(f"GPX saved to: {path} ({len(waypoints)} waypoints, {len(track)} track points)")
