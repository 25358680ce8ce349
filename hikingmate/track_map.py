"""Render a hike or trail on an interactive map.

Usage:
    python -m hikingmate.track_map track.gpx [--output map.html]
"""

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

import folium
from folium import plugins

from .files import load_track
from .metrics import format_distance, format_duration, format_pace, summarize_track
from .models import GeoPoint, TrailClassification

TYPE_COLORS = {
    "ROUNDTRIP": "#ef4444",
    "CIRCULAR_PARTIAL": "#f97316",
    "CIRCULAR_UNIQUE": "#22c55e",
    "ONEWAY_PARTIAL": "#3b82f6",
    "ONEWAY_UNIQUE": "#8b5cf6",
}


def accuracy_color(accuracy: Optional[float]) -> str:
    if accuracy is None:
        return "gray"
    if accuracy < 10:
        return "green"
    if accuracy < 20:
        return "orange"
    return "red"


def create_track_map(track: Sequence[GeoPoint],
                     classification: Optional[TrailClassification] = None,
                     title: str = "Hike",
                     show_points: bool = False) -> folium.Map:
    """Create map with the path, start/end markers and a summary legend"""
    if not track:
        raise ValueError("No points to draw")

    center_lat = sum(p.latitude for p in track) / len(track)
    center_lon = sum(p.longitude for p in track) / len(track)

    m = folium.Map(location=[center_lat, center_lon], zoom_start=14)
    folium.TileLayer("OpenStreetMap", name="OpenStreetMap").add_to(m)
    folium.TileLayer("CartoDB positron", name="Light").add_to(m)

    path_color = "blue"
    if classification is not None:
        path_color = TYPE_COLORS.get(classification.trail_type.value, path_color)

    path_coords = [[p.latitude, p.longitude] for p in track]
    folium.PolyLine(path_coords, weight=4, color=path_color, opacity=0.8,
                    popup=title).add_to(m)

    if classification is not None and classification.needs_roundtrip_path:
        folium.PolyLine(
            [[p.latitude, p.longitude] for p in classification.points],
            weight=2, color="#111827", opacity=0.5, dash_array="6",
            popup="Generated return path"
        ).add_to(m)

    points_group = folium.FeatureGroup(name="GPS Points", show=show_points)
    for i, p in enumerate(track):
        altitude = f"{p.altitude:.0f}m" if p.altitude is not None else "unknown"
        accuracy = f"{p.accuracy:.0f}m" if p.accuracy is not None else "unknown"
        popup = f"""
            <b>Point {i + 1}</b><br>
            Lat: {p.latitude:.6f}<br>
            Lon: {p.longitude:.6f}<br>
            Altitude: {altitude}<br>
            Accuracy: {accuracy}
        """
        folium.CircleMarker(
            location=[p.latitude, p.longitude],
            radius=4,
            color=accuracy_color(p.accuracy),
            fill=True,
            popup=folium.Popup(popup, max_width=200)
        ).add_to(points_group)
    points_group.add_to(m)

    folium.Marker([track[0].latitude, track[0].longitude], popup="Start",
                  icon=folium.Icon(color="green", icon="play")).add_to(m)
    folium.Marker([track[-1].latitude, track[-1].longitude], popup="End",
                  icon=folium.Icon(color="red", icon="stop")).add_to(m)

    folium.LayerControl().add_to(m)

    summary = summarize_track(track)
    shape_html = ""
    if classification is not None:
        shape_html = f"""
        <hr style="margin: 5px 0">
        Type: <b>{classification.trail_type.value}</b><br>
        Overlap: {classification.overlap_rate * 100:.1f}%<br>
        Start-end: {classification.start_end_distance:.0f}m
        """
    legend_html = f"""
    <div style="
        position: fixed;
        bottom: 50px;
        left: 50px;
        z-index: 1000;
        background-color: white;
        padding: 10px;
        border-radius: 5px;
        border: 2px solid grey;
        font-family: Arial;
        font-size: 12px;
    ">
        <b>{title}</b><br>
        <hr style="margin: 5px 0">
        Distance: {format_distance(summary.distance)}<br>
        Duration: {format_duration(summary.duration)}<br>
        Pace: {format_pace(summary.pace)}/km<br>
        Climb: {summary.elevation_gain:.0f}m / Descent: {summary.elevation_loss:.0f}m<br>
        Points: {summary.points}
        {shape_html}
    </div>
    """
    m.get_root().html.add_child(folium.Element(legend_html))
    plugins.Fullscreen().add_to(m)
    return m


def main(argv=None):
    parser = argparse.ArgumentParser(description="Draw a track on a map")
    parser.add_argument("track", help="GPX or JSON track file")
    parser.add_argument("-o", "--output", default="track_map.html",
                        help="Output HTML file (default: track_map.html)")
    parser.add_argument("--points", action="store_true", help="Show individual GPS points")
    args = parser.parse_args(argv)

    if not Path(args.track).exists():
        print(f"Track file not found: {args.track}")
        return 1

    track, _ = load_track(args.track)
    m = create_track_map(track, title=Path(args.track).stem, show_points=args.points)
    m.save(args.output)
    print(f"Track map saved to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
