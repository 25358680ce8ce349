"""Local hike history database."""

import json
import sqlite3
from datetime import datetime
from typing import Optional, Sequence

from .geo import round_half_up
from .metrics import summarize_track
from .models import GeoPoint

STATUSES = ("active", "paused", "completed", "cancelled")


class HikeHistoryDB:
    """SQLite database of recorded hikes"""

    def __init__(self, db_path: str = "hikingmate_history.db"):
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self._init_schema()

    def _init_schema(self):
        """Create database tables"""
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS hikes (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                trail_id TEXT,
                started_at TEXT NOT NULL,
                ended_at TEXT,
                distance_meters INTEGER DEFAULT 0,
                duration_seconds INTEGER DEFAULT 0,
                avg_pace REAL,
                calories INTEGER,
                elevation_gain REAL,
                status TEXT NOT NULL DEFAULT 'completed',
                track_points TEXT NOT NULL DEFAULT '[]'
            )
        """)
        self.conn.commit()

    def save_hike(self, track: Sequence[GeoPoint], trail_id: Optional[str] = None,
                  started_at: Optional[str] = None, ended_at: Optional[str] = None,
                  status: str = "completed", duration: Optional[float] = None,
                  weight_kg: float = 70) -> int:
        """Store a hike with its computed metrics, return hike ID"""
        if status not in STATUSES:
            raise ValueError(f"Unknown hike status: {status}")
        summary = summarize_track(track, weight_kg=weight_kg, duration_s=duration)
        now = datetime.now().isoformat()
        cursor = self.conn.execute(
            """INSERT INTO hikes (trail_id, started_at, ended_at, distance_meters,
                                  duration_seconds, avg_pace, calories, elevation_gain,
                                  status, track_points)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (trail_id, started_at or now, ended_at or now,
             round_half_up(summary.distance), round_half_up(summary.duration),
             summary.pace, summary.calories, summary.elevation_gain, status,
             json.dumps([p.to_dict() for p in track]))
        )
        self.conn.commit()
        return cursor.lastrowid

    def _row_to_hike(self, row, with_track: bool = False) -> dict:
        hike = {
            "id": row[0],
            "trail_id": row[1],
            "started_at": row[2],
            "ended_at": row[3],
            "distance": row[4],
            "duration": row[5],
            "avg_pace": row[6],
            "calories": row[7],
            "elevation_gain": row[8],
            "status": row[9],
        }
        if with_track:
            hike["track"] = [GeoPoint.from_dict(d) for d in json.loads(row[10])]
        return hike

    def get_hike(self, hike_id: int) -> Optional[dict]:
        """Get one hike including its track points"""
        cursor = self.conn.execute("SELECT * FROM hikes WHERE id = ?", (hike_id,))
        row = cursor.fetchone()
        return self._row_to_hike(row, with_track=True) if row else None

    def list_hikes(self, limit: int = 20, offset: int = 0) -> list[dict]:
        """Most recent hikes first, without track points"""
        cursor = self.conn.execute(
            "SELECT * FROM hikes ORDER BY started_at DESC, id DESC LIMIT ? OFFSET ?",
            (limit, offset)
        )
        return [self._row_to_hike(row) for row in cursor.fetchall()]

    def update_status(self, hike_id: int, status: str):
        if status not in STATUSES:
            raise ValueError(f"Unknown hike status: {status}")
        self.conn.execute("UPDATE hikes SET status = ? WHERE id = ?", (status, hike_id))
        self.conn.commit()

    def delete_hike(self, hike_id: int):
        self.conn.execute("DELETE FROM hikes WHERE id = ?", (hike_id,))
        self.conn.commit()

    def get_stats(self) -> dict:
        """Totals and averages over completed hikes"""
        cursor = self.conn.execute("""
            SELECT COUNT(*), SUM(distance_meters), SUM(duration_seconds), MAX(distance_meters)
            FROM hikes WHERE status = 'completed'
        """)
        count, distance, duration, longest = cursor.fetchone()
        count = count or 0
        distance = distance or 0
        duration = duration or 0

        recent = self.conn.execute("""
            SELECT * FROM hikes WHERE status = 'completed'
            ORDER BY started_at DESC, id DESC LIMIT 5
        """).fetchall()

        return {
            "total_hikes": count,
            "total_distance": distance,
            "total_duration": duration,
            "average_distance": round_half_up(distance / count) if count else 0,
            "average_duration": round_half_up(duration / count) if count else 0,
            "longest_hike": longest or 0,
            "recent_hikes": [self._row_to_hike(row) for row in recent],
        }

    def close(self):
        self.conn.close()
