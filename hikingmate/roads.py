"""Road access checks for trail end points, via catalog waypoints or Kakao Local search."""

import hashlib
import json
import os
import time
from typing import Optional, Sequence

import requests

from .config import CONFIG, Settings
from .geo import haversine_distance
from .models import Waypoint


def waypoint_near_road(lat: float, lon: float, waypoints: Sequence[Waypoint],
                       threshold: float = CONFIG["road_proximity"]) -> Optional[dict]:
    """First access waypoint (entry, parking, transit) within threshold meters, if any"""
    for wp in waypoints:
        if wp.category not in CONFIG["road_waypoint_categories"]:
            continue
        dist = haversine_distance(lat, lon, wp.lat, wp.lon)
        if dist < threshold:
            return {
                "method": "waypoint",
                "name": wp.name,
                "category": wp.category,
                "distance": round(dist),
            }
    return None


class KakaoRoadChecker:
    """Look for parking lots or subway stations near a point using Kakao Local"""

    SEARCH_URL = "https://dapi.kakao.com/v2/local/search/category.json"
    CACHE_DIR = "kakao_cache"
    CACHE_MAX_AGE = 30 * 24 * 3600  # 30 days
    # category group code -> label
    CATEGORIES = [("PK6", "parking"), ("SW8", "transit")]

    def __init__(self, api_key: str, radius: float = CONFIG["road_proximity"],
                 request_interval: float = 0.1, cache_dir: Optional[str] = None):
        self.api_key = api_key
        self.radius = radius
        self.request_interval = request_interval
        self.cache_dir = cache_dir or self.CACHE_DIR
        self.requests_made = 0

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> Optional["KakaoRoadChecker"]:
        if not settings.kakao_api_key:
            return None
        return cls(settings.kakao_api_key, **kwargs)

    def _cache_path(self, lat: float, lon: float) -> str:
        key = f"{lat:.5f},{lon:.5f},{self.radius:.0f}"
        h = hashlib.md5(key.encode()).hexdigest()[:12]
        return os.path.join(self.cache_dir, f"road_{h}.json")

    def _read_cache(self, path: str) -> Optional[dict]:
        try:
            if time.time() - os.path.getmtime(path) > self.CACHE_MAX_AGE:
                return None
            with open(path) as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError):
            return None

    def _write_cache(self, path: str, result: Optional[dict]):
        os.makedirs(self.cache_dir, exist_ok=True)
        with open(path, "w") as f:
            json.dump({"result": result}, f)

    def _search(self, lat: float, lon: float, code: str) -> list[dict]:
        response = requests.get(
            self.SEARCH_URL,
            params={
                "category_group_code": code,
                "x": lon,
                "y": lat,
                "radius": int(self.radius),
                "sort": "distance",
            },
            headers={"Authorization": f"KakaoAK {self.api_key}"},
            timeout=10,
        )
        response.raise_for_status()
        self.requests_made += 1
        return response.json().get("documents", [])

    def check(self, lat: float, lon: float) -> Optional[dict]:
        """Nearest parking or transit place within the radius, or None.

        Network errors are reported and treated as "not near a road".
        """
        cache_path = self._cache_path(lat, lon)
        cached = self._read_cache(cache_path)
        if cached is not None:
            return cached["result"]

        try:
            for code, label in self.CATEGORIES:
                documents = self._search(lat, lon, code)
                if documents:
                    place = documents[0]
                    result = {
                        "method": "kakao",
                        "type": label,
                        "name": place.get("place_name", ""),
                        "distance": int(place.get("distance") or 0),
                    }
                    self._write_cache(cache_path, result)
                    return result
        except (requests.RequestException, ValueError) as e:
            print(f"Kakao local search error: {e}")
            return None
        finally:
            if self.request_interval:
                time.sleep(self.request_interval)

        self._write_cache(cache_path, None)
        return None
