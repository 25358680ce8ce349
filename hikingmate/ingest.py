"""Normalize raw location records into GeoPoints.

Stored path coordinates come in several shapes (``lat``/``lng``,
``latitude``/``longitude``, ``lon``; ``altitude``/``ele``/``elevation``;
epoch or ISO timestamps). Everything downstream assumes a single GeoPoint
schema, so records are mapped and validated here, once.
"""

import math
from datetime import datetime, timezone
from typing import Iterable, Optional

from .models import GeoPoint

LATITUDE_KEYS = ("latitude", "lat")
LONGITUDE_KEYS = ("longitude", "lng", "lon")
ALTITUDE_KEYS = ("altitude", "ele", "elevation")
TIMESTAMP_KEYS = ("timestamp", "time")
PASSTHROUGH_KEYS = ("accuracy", "altitude_accuracy", "heading", "speed")
# camelCase keys sent by browser geolocation
CAMEL_KEYS = {"altitudeAccuracy": "altitude_accuracy"}


class InvalidPointError(ValueError):
    """A record that cannot be turned into a usable GeoPoint"""


def _first(record: dict, keys: tuple) -> Optional[object]:
    for key in keys:
        value = record.get(key)
        if value is not None and value != "":
            return value
    return None


def _to_float(value, name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidPointError(f"{name} is not a number: {value!r}") from None
    if not math.isfinite(number):
        raise InvalidPointError(f"{name} is not finite: {value!r}")
    return number


def _optional_float(value, name: str) -> Optional[float]:
    if value is None or value == "":
        return None
    return _to_float(value, name)


def parse_timestamp(value) -> int:
    """Epoch milliseconds from epoch ms/seconds or an ISO-8601 string"""
    if value is None or value == "":
        return 0
    if isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            try:
                dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
            except ValueError:
                raise InvalidPointError(f"unrecognised timestamp: {value!r}") from None
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
            return int(dt.timestamp() * 1000)
    else:
        number = _to_float(value, "timestamp")
    # Values below 1e11 are epoch seconds (before 1973 in ms)
    if abs(number) < 1e11:
        number *= 1000
    return int(number)


def normalize_point(record: dict) -> GeoPoint:
    """Map one raw record onto the canonical GeoPoint, validating coordinates"""
    if isinstance(record, GeoPoint):
        return record
    if not isinstance(record, dict):
        raise InvalidPointError(f"expected a mapping, got {type(record).__name__}")

    lat_raw = _first(record, LATITUDE_KEYS)
    lon_raw = _first(record, LONGITUDE_KEYS)
    if lat_raw is None or lon_raw is None:
        raise InvalidPointError(f"missing coordinates in record: {sorted(record)}")

    lat = _to_float(lat_raw, "latitude")
    lon = _to_float(lon_raw, "longitude")
    if not -90 <= lat <= 90:
        raise InvalidPointError(f"latitude out of range: {lat}")
    if not -180 <= lon <= 180:
        raise InvalidPointError(f"longitude out of range: {lon}")

    extras = {}
    for key in PASSTHROUGH_KEYS:
        extras[key] = _optional_float(record.get(key), key)
    for camel, key in CAMEL_KEYS.items():
        if extras[key] is None:
            extras[key] = _optional_float(record.get(camel), key)

    return GeoPoint(
        latitude=lat,
        longitude=lon,
        altitude=_optional_float(_first(record, ALTITUDE_KEYS), "altitude"),
        timestamp=parse_timestamp(_first(record, TIMESTAMP_KEYS)),
        **extras,
    )


def normalize_track(records: Iterable[dict], skip_invalid: bool = False) -> list[GeoPoint]:
    """Normalize a whole track. With skip_invalid, bad records are dropped."""
    points = []
    skipped = 0
    for i, record in enumerate(records):
        try:
            points.append(normalize_point(record))
        except InvalidPointError as e:
            if not skip_invalid:
                raise InvalidPointError(f"point {i}: {e}") from e
            skipped += 1
    if skipped:
        print(f"Skipped {skipped} invalid points")
    return points
