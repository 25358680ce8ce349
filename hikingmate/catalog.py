"""Trail catalog access through the hosted database's REST API (PostgREST)."""

from collections import Counter
from typing import Optional, Sequence

import requests

from .config import Settings
from .ingest import normalize_track
from .logger import Logger
from .models import TrailClassification, TrailType, Waypoint
from .shape import classify_trail

DEFAULT_COLUMNS = ("id", "name", "mountain", "difficulty", "gpx_data", "trail_type")


class CatalogError(Exception):
    """The trail catalog could not be read or updated"""


class TrailCatalog:
    """Read and tag trails in the hosted `trails` table"""

    TABLE = "trails"
    PAGE_SIZE = 1000

    def __init__(self, settings: Settings, timeout: float = 30.0):
        if not settings.has_catalog:
            raise CatalogError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
        self.base_url = f"{settings.supabase_url.rstrip('/')}/rest/v1/{self.TABLE}"
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "apikey": settings.supabase_key,
            "Authorization": f"Bearer {settings.supabase_key}",
            "Content-Type": "application/json",
        })

    def _request(self, method: str, params: dict, **kwargs) -> requests.Response:
        try:
            response = self.session.request(method, self.base_url, params=params,
                                            timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.RequestException as e:
            raise CatalogError(f"{method} {self.TABLE} failed: {e}") from e
        return response

    def fetch_trails(self, columns: Sequence[str] = DEFAULT_COLUMNS,
                     trail_type: Optional[str] = None,
                     limit: Optional[int] = None) -> list[dict]:
        """All matching trails ordered by name, fetched page by page"""
        trails: list[dict] = []
        offset = 0
        while True:
            page_size = self.PAGE_SIZE if limit is None else min(self.PAGE_SIZE, limit - len(trails))
            params = {
                "select": ",".join(columns),
                "order": "name",
                "limit": page_size,
                "offset": offset,
            }
            if trail_type is not None:
                params["trail_type"] = f"eq.{trail_type}"
            page = self._request("GET", params).json()
            trails.extend(page)
            offset += len(page)
            if len(page) < page_size or (limit is not None and len(trails) >= limit):
                break
        return trails

    def update_trail(self, trail_id: str, fields: dict):
        self._request("PATCH", {"id": f"eq.{trail_id}"}, json=fields,
                      headers={"Prefer": "return=minimal"})

    def count_by_type(self) -> dict:
        """Number of trails per type, with unclassified trails under None"""
        counts = Counter(t.get("trail_type") for t in self.fetch_trails(columns=("trail_type",)))
        result = {tt.value: counts.get(tt.value, 0) for tt in TrailType}
        result[None] = counts.get(None, 0)
        return result


def _waypoints(raw: Optional[list]) -> list[Waypoint]:
    waypoints = []
    for wp in raw or []:
        try:
            waypoints.append(Waypoint(
                lat=float(wp["lat"]),
                lon=float(wp.get("lon", wp.get("lng"))),
                name=wp.get("name", ""),
                category=wp.get("category", ""),
                elevation=wp.get("elevation", wp.get("ele")),
            ))
        except (KeyError, TypeError, ValueError):
            continue
    return waypoints


def trail_update(classification: TrailClassification) -> dict:
    """Columns written back for a classified trail.

    ``path_coordinates`` holds the repaired path, including any generated
    return leg, so the stored path always agrees with ``trail_type``.
    """
    points = classification.points
    return {
        "trail_type": classification.trail_type.value,
        "overlap_rate": round(classification.overlap_rate, 4),
        "path_coordinates": [{"lat": p.latitude, "lng": p.longitude} for p in points],
        "start_latitude": points[0].latitude,
        "start_longitude": points[0].longitude,
    }


def classify_catalog(catalog: TrailCatalog, road_checker=None, dry_run: bool = True,
                     logger: Optional[Logger] = None, limit: Optional[int] = None) -> dict:
    """Classify every trail in the catalog and write back its type and path.

    Trails are classified from the recorded GPX track in ``gpx_data``, never
    from ``path_coordinates``, which is this function's own output. Trails
    without recorded track points are skipped.
    """
    logger = logger or Logger()
    trails = catalog.fetch_trails(limit=limit)
    stats = {tt.value: 0 for tt in TrailType}
    stats.update({"skipped": 0, "updated": 0, "errors": 0})

    print(f"Classifying {len(trails)} trails{' (dry run)' if dry_run else ''}...")
    for i, trail in enumerate(trails, start=1):
        if i % 50 == 0:
            print(f"Progress: {i}/{len(trails)} ({round(i / len(trails) * 100)}%)")

        gpx_data = trail.get("gpx_data") or {}
        track = normalize_track(gpx_data.get("trackPoints") or [], skip_invalid=True)
        classification = classify_trail(track, _waypoints(gpx_data.get("waypoints")), road_checker)
        if classification is None:
            stats["skipped"] += 1
            continue

        stats[classification.trail_type.value] += 1
        if dry_run:
            continue
        try:
            catalog.update_trail(trail["id"], trail_update(classification))
            stats["updated"] += 1
        except CatalogError as e:
            stats["errors"] += 1
            logger.log("Trail update failed", {"id": trail.get("id"), "name": trail.get("name"),
                                               "error": str(e)})

    logger.log("Catalog classification finished", stats)
    return stats
