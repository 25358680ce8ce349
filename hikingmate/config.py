"""Configuration settings for HikingMate."""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import dotenv_values

CONFIG = {
    "earth_radius": 6371000,  # meters
    # Live recording
    "continuous_poll_interval": 1,  # seconds - active hike
    "standby_poll_interval": 300,   # seconds - waiting mode (5 min)
    "gps_timeout": 5,               # seconds per fix
    # Metrics
    "hiking_met": 7.0,         # moderate-intensity hiking
    "default_weight_kg": 70,
    # Reverse-pattern detection
    "reverse_window_size": 50,       # points either side of the midpoint
    "reverse_check_size": 10,        # points compared across the midpoint
    "reverse_match_distance": 10,    # meters - "same place" within GPS noise
    "reverse_match_rate": 0.7,       # strictly greater than this
    "loop_closure_distance": 50,     # meters - first/last point
    # Catalog classification
    "duplicate_spacing": 10,         # meters - drop points closer than this
    "gap_threshold": 100,            # meters - consecutive points farther apart
    "gap_major": 200,
    "gap_critical": 500,
    "gap_interpolation_step": 50,    # meters between interpolated points
    "circular_distance": 100,        # meters - start/end for circular trails
    "overlap_roundtrip": 0.8,
    "overlap_partial": 0.3,
    "overlap_key_precision": 5,      # decimals (~1m)
    "road_proximity": 500,           # meters
    "road_waypoint_categories": {"ENTRY", "PARK", "TRANS"},
    # Recommended average speed per difficulty (km/h)
    "difficulty_speeds": {
        "초급": 2.50,
        "중급": 2.00,
        "고급": 1.55,
        "전문가": 1.49,
    },
    "default_speed": 2.0,
}


@dataclass
class Settings:
    """Deployment settings, read once at startup and passed to services."""

    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    kakao_api_key: Optional[str] = None
    db_path: str = "hikingmate_history.db"

    # field -> environment variable names, first match wins
    OPTIONS = {
        "supabase_url": ("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL"),
        "supabase_key": ("SUPABASE_SERVICE_ROLE_KEY",),
        "kakao_api_key": ("KAKAO_REST_API_KEY", "NEXT_PUBLIC_KAKAO_MAP_KEY"),
        "db_path": ("HIKINGMATE_DB",),
    }

    @classmethod
    def from_env(cls, env_file: Optional[str] = ".env.local",
                 environ: Optional[dict] = None) -> "Settings":
        """Build settings from an env file overlaid with the process environment."""
        values = {}
        if env_file and os.path.exists(env_file):
            values.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
        values.update(os.environ if environ is None else environ)

        kwargs = {}
        for field_name, names in cls.OPTIONS.items():
            for name in names:
                if values.get(name):
                    kwargs[field_name] = values[name].strip()
                    break
        return cls(**kwargs)

    @property
    def has_catalog(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    def describe(self) -> dict:
        """Recognised options and whether each is set (secrets hidden)."""
        return {
            "supabase_url": self.supabase_url or None,
            "supabase_key": "set" if self.supabase_key else None,
            "kakao_api_key": "set" if self.kakao_api_key else None,
            "db_path": self.db_path,
        }
