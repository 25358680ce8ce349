"""GPS access and hike recording/playback."""

import json
import subprocess
import time
from datetime import datetime
from typing import Optional

from .config import CONFIG
from .geo import retry_with_backoff
from .logger import Logger
from .metrics import summarize_track
from .models import GeoPoint, HikeSummary

MODES = ("continuous", "standby")


class GPS:
    """Location fixes from the Termux API (``termux-location``)"""

    def __init__(self, provider: str = "gps"):
        self.provider = provider
        self.last_location: Optional[GeoPoint] = None
        self.last_error: Optional[str] = None
        self.consecutive_failures = 0

    def _read_fix(self, timeout: int) -> dict:
        result = subprocess.run(
            ["termux-location", "-p", self.provider, "-r", "once"],
            capture_output=True, text=True, timeout=timeout,
        )
        if result.returncode != 0:
            raise ValueError(f"termux-location exited with {result.returncode}")
        if not (result.stdout or "").strip():
            raise ValueError("no location reported")
        return json.loads(result.stdout)

    @staticmethod
    def to_point(fix: dict) -> GeoPoint:
        """Termux fields to a GeoPoint stamped with the local clock"""
        return GeoPoint(
            latitude=fix["latitude"],
            longitude=fix["longitude"],
            altitude=fix.get("altitude"),
            timestamp=int(time.time() * 1000),
            accuracy=fix.get("accuracy"),
            altitude_accuracy=fix.get("vertical_accuracy"),
            heading=fix.get("bearing"),
            speed=fix.get("speed"),
        )

    def get_location(self, timeout: int = CONFIG["gps_timeout"]) -> Optional[GeoPoint]:
        """One fix, or None after counting the failure"""
        try:
            location = self.to_point(self._read_fix(timeout))
        except (subprocess.TimeoutExpired, OSError, ValueError, KeyError, TypeError) as e:
            # JSONDecodeError is a ValueError; a missing termux-location is an OSError
            self.consecutive_failures += 1
            self.last_error = str(e) or type(e).__name__
            return None
        self.last_location = location
        self.last_error = None
        self.consecutive_failures = 0
        return location

    def get_status(self) -> str:
        if self.consecutive_failures:
            return f"GPS: {self.consecutive_failures} consecutive failures"
        accuracy = self.last_location.accuracy if self.last_location else None
        return f"GPS OK, accuracy {accuracy:.0f}m" if accuracy else "GPS OK"


class TrackRecorder:
    """Records a hike from any location source.

    ``continuous`` mode samples every second while hiking; ``standby`` polls
    every five minutes while waiting to start.
    """

    def __init__(self, source, record_path: Optional[str] = None,
                 mode: str = "continuous", logger: Optional[Logger] = None):
        if mode not in MODES:
            raise ValueError(f"Unknown recording mode: {mode}")
        self.source = source
        self.record_path = record_path
        self.mode = mode
        self.logger = logger or Logger()
        self.track: list[GeoPoint] = []
        self.trace: list[dict] = []
        self.start_time = time.time()
        self.is_tracking = False

    @property
    def poll_interval(self) -> float:
        if self.mode == "continuous":
            return CONFIG["continuous_poll_interval"]
        return CONFIG["standby_poll_interval"]

    def set_mode(self, mode: str):
        if mode not in MODES:
            raise ValueError(f"Unknown recording mode: {mode}")
        if mode != self.mode:
            self.logger.log("Recording mode changed", {"from": self.mode, "to": mode})
            self.mode = mode

    def sample(self, timeout: int = CONFIG["gps_timeout"]) -> Optional[GeoPoint]:
        """Take one fix, append it to the track, and record the attempt"""
        location = self.source.get_location(timeout)

        # Record even failed attempts
        self.trace.append({
            "elapsed": time.time() - self.start_time,
            "timestamp": time.time(),
            "location": location.to_dict() if location else None,
            "status": self.get_status(),
        })
        if location:
            self.track.append(location)
        return location

    def start(self, max_wait: float = 30.0) -> bool:
        """Wait for a first fix, retrying with backoff"""
        def try_gps():
            loc = self.sample()
            if loc:
                self.logger.log("GPS fix obtained", {"lat": loc.latitude, "lon": loc.longitude,
                                                     "accuracy": loc.accuracy})
            else:
                self.logger.log("GPS attempt failed")
            return loc

        location = retry_with_backoff(try_gps, max_time=max_wait, initial_delay=1.0,
                                      max_delay=8.0, description="GPS fix")
        self.is_tracking = location is not None
        return self.is_tracking

    def run(self, max_duration: Optional[float] = None, max_samples: Optional[int] = None):
        """Sample until interrupted, a duration elapses, or the source runs dry"""
        self.is_tracking = True
        samples = 0
        try:
            while self.is_tracking:
                self.sample()
                samples += 1
                if max_samples is not None and samples >= max_samples:
                    break
                if max_duration is not None and time.time() - self.start_time >= max_duration:
                    break
                if getattr(self.source, "is_finished", lambda: False)():
                    break
                interval = self.poll_interval
                if hasattr(self.source, "get_poll_interval"):
                    interval = self.source.get_poll_interval()
                time.sleep(interval)
        except KeyboardInterrupt:
            print("\nRecording stopped")
        finally:
            self.is_tracking = False
        self.logger.log("Recording finished", self.summary().to_dict())

    def stop(self):
        self.is_tracking = False

    def summary(self, weight_kg: float = CONFIG["default_weight_kg"]) -> HikeSummary:
        return summarize_track(self.track, weight_kg=weight_kg)

    def get_status(self) -> str:
        if hasattr(self.source, "get_status"):
            return self.source.get_status()
        return "unknown"

    def save(self, path: Optional[str] = None):
        """Save session to file"""
        path = path or self.record_path
        if not path:
            raise ValueError("No record path given")
        with open(path, "w") as f:
            json.dump({
                "recorded_at": datetime.now().isoformat(),
                "mode": self.mode,
                "summary": self.summary().to_dict(),
                "trace": self.trace,
            }, f, indent=2)
        print(f"Hike saved to {path} ({len(self.track)} points, {len(self.trace)} fixes attempted)")


def load_session(path: str) -> list[GeoPoint]:
    """Track points from a saved recording session"""
    with open(path) as f:
        data = json.load(f)
    return [GeoPoint.from_dict(e["location"]) for e in data["trace"] if e.get("location")]


class TrackPlayback:
    """Plays back a saved recording session"""

    def __init__(self, playback_path: str, speed: float = 1.0):
        self.playback_path = playback_path
        self.speed = speed
        self.index = 0
        self.last_location: Optional[GeoPoint] = None
        self.consecutive_failures = 0

        with open(playback_path) as f:
            self.trace: list[dict] = json.load(f)["trace"]
        print(f"Loaded hike from {playback_path} ({len(self.trace)} entries)")

    def get_location(self, timeout: int = CONFIG["gps_timeout"]) -> Optional[GeoPoint]:
        """Get next location from trace sequentially"""
        if self.index >= len(self.trace):
            return None

        entry = self.trace[self.index]
        self.index += 1

        if entry["location"]:
            location = GeoPoint.from_dict(entry["location"])
            self.last_location = location
            self.consecutive_failures = 0
            return location
        self.consecutive_failures += 1
        return None

    def get_poll_interval(self) -> float:
        """Interval to wait between polls based on trace timing and speed"""
        if self.index <= 0 or self.index >= len(self.trace):
            return CONFIG["continuous_poll_interval"] / self.speed

        prev_elapsed = self.trace[self.index - 1].get("elapsed", 0)
        curr_elapsed = self.trace[self.index].get("elapsed", 0)
        interval = (curr_elapsed - prev_elapsed) / self.speed
        return max(0.0, min(interval, 5.0))

    def is_finished(self) -> bool:
        return self.index >= len(self.trace)

    def get_status(self) -> str:
        progress = f"{self.index}/{len(self.trace)}"
        if self.consecutive_failures == 0:
            return f"Playback OK ({progress})"
        return f"Playback: {self.consecutive_failures} failures ({progress})"
