"""Hike session log: one timestamped line per event."""

import json
from datetime import datetime
from pathlib import Path
from typing import Optional, Callable

RULE = "=" * 60


def format_event(message: str, data: Optional[dict] = None,
                 when: Optional[datetime] = None) -> str:
    """``[iso time] message | {json}``, keeping Korean place names readable"""
    stamp = (when or datetime.now()).isoformat()
    if not data:
        return f"[{stamp}] {message}"
    return f"[{stamp}] {message} | {json.dumps(data, ensure_ascii=False, default=str)}"


class Logger:
    """Echoes session events and appends them to an optional log file.

    Usable as a context manager; closing writes a footer with the number of
    events logged in the session.
    """

    def __init__(self, log_path: Optional[str] = None, callback: Optional[Callable] = None,
                 title: str = "HikingMate Log", echo: bool = True):
        self.log_path = log_path
        self.callback = callback
        self.echo = echo
        self.events = 0
        self.file = None
        if log_path:
            Path(log_path).parent.mkdir(parents=True, exist_ok=True)
            self.file = open(log_path, "a", encoding="utf-8")
            self._append(f"\n{RULE}\n{title} - {datetime.now().isoformat()}\n{RULE}\n")

    def _append(self, text: str):
        if self.file:
            self.file.write(text + "\n")
            self.file.flush()

    def log(self, message: str, data: Optional[dict] = None):
        """Record one event with optional structured data"""
        line = format_event(message, data)
        self.events += 1
        if self.echo:
            print(line)
        self._append(line)
        if self.callback:
            self.callback(message, data)

    def close(self):
        if self.file:
            self._append(f"-- {self.events} events --")
            self.file.close()
            self.file = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False
