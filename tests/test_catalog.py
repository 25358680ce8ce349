"""Tests for hikingmate/catalog.py - trail catalog REST client and batch classification."""

import math
from unittest.mock import MagicMock, patch

import pytest
import requests

from hikingmate.catalog import CatalogError, TrailCatalog, classify_catalog
from hikingmate.config import Settings
from hikingmate.logger import Logger

SETTINGS = Settings(supabase_url="https://example.supabase.co/", supabase_key="service-key")


def _response(payload=None):
    response = MagicMock()
    response.json.return_value = payload
    return response


def _loop_coords():
    return [{"lat": 37.5 + 0.0045 * math.cos(2 * math.pi * i / 60),
             "lon": 127.0 + 0.0057 * math.sin(2 * math.pi * i / 60)}
            for i in range(60)]


def _line_coords():
    return [{"lat": 37.5 + i * 0.0002, "lon": 127.0} for i in range(60)]


def _trail(trail_id, track_points, waypoints=None, **columns):
    trail = {"id": trail_id, "name": trail_id,
             "gpx_data": {"trackPoints": track_points, "waypoints": waypoints or []}}
    trail.update(columns)
    return trail


class FakeCatalog:
    def __init__(self, trails, fail_ids=()):
        self.trails = trails
        self.fail_ids = set(fail_ids)
        self.updates = []

    def fetch_trails(self, limit=None):
        return self.trails[:limit] if limit else self.trails

    def update_trail(self, trail_id, fields):
        if trail_id in self.fail_ids:
            raise CatalogError("PATCH trails failed: 500")
        self.updates.append((trail_id, fields))


class TestTrailCatalog:
    """PostgREST requests."""

    def test_requires_credentials(self):
        with pytest.raises(CatalogError):
            TrailCatalog(Settings())

    def test_headers_and_url(self):
        catalog = TrailCatalog(SETTINGS)
        assert catalog.base_url == "https://example.supabase.co/rest/v1/trails"
        assert catalog.session.headers["apikey"] == "service-key"
        assert catalog.session.headers["Authorization"] == "Bearer service-key"

    @patch("requests.Session.request")
    def test_fetch_pages(self, mock_request):
        mock_request.side_effect = [_response([{"id": 1}, {"id": 2}]), _response([{"id": 3}])]
        catalog = TrailCatalog(SETTINGS)
        with patch.object(TrailCatalog, "PAGE_SIZE", 2):
            trails = catalog.fetch_trails(trail_type="ROUNDTRIP")

        assert [t["id"] for t in trails] == [1, 2, 3]
        first_params = mock_request.call_args_list[0][1]["params"]
        second_params = mock_request.call_args_list[1][1]["params"]
        assert first_params["offset"] == 0
        assert first_params["order"] == "name"
        assert first_params["trail_type"] == "eq.ROUNDTRIP"
        assert second_params["offset"] == 2

    @patch("requests.Session.request")
    def test_fetch_limit(self, mock_request):
        mock_request.return_value = _response([{"id": 1}, {"id": 2}])
        trails = TrailCatalog(SETTINGS).fetch_trails(limit=2)
        assert len(trails) == 2
        assert mock_request.call_count == 1
        assert mock_request.call_args[1]["params"]["limit"] == 2

    @patch("requests.Session.request")
    def test_update(self, mock_request):
        mock_request.return_value = _response()
        TrailCatalog(SETTINGS).update_trail("abc", {"trail_type": "ROUNDTRIP"})

        args, kwargs = mock_request.call_args
        assert args[0] == "PATCH"
        assert kwargs["params"] == {"id": "eq.abc"}
        assert kwargs["json"] == {"trail_type": "ROUNDTRIP"}
        assert kwargs["headers"]["Prefer"] == "return=minimal"

    @patch("requests.Session.request")
    def test_http_error(self, mock_request):
        response = _response()
        response.raise_for_status.side_effect = requests.HTTPError("401 Unauthorized")
        mock_request.return_value = response
        with pytest.raises(CatalogError, match="401"):
            TrailCatalog(SETTINGS).fetch_trails()

    @patch("requests.Session.request")
    def test_count_by_type(self, mock_request):
        mock_request.return_value = _response([
            {"trail_type": "ROUNDTRIP"}, {"trail_type": "ROUNDTRIP"}, {"trail_type": None},
        ])
        counts = TrailCatalog(SETTINGS).count_by_type()
        assert counts["ROUNDTRIP"] == 2
        assert counts["ONEWAY_UNIQUE"] == 0
        assert counts[None] == 1


class TestClassifyCatalog:
    """Batch classification and write-back."""

    def test_classifies_and_updates(self):
        catalog = FakeCatalog([
            _trail("loop", _loop_coords()),
            _trail("empty", []),
            _trail("dot", [{"lat": 37.5, "lon": 127.0}]),
            {"id": "no-gpx", "name": "No GPX", "gpx_data": None},
        ])
        stats = classify_catalog(catalog, dry_run=False, logger=Logger(echo=False))

        assert stats["CIRCULAR_UNIQUE"] == 1
        assert stats["skipped"] == 3
        assert stats["updated"] == 1
        trail_id, fields = catalog.updates[0]
        assert trail_id == "loop"
        assert fields["trail_type"] == "CIRCULAR_UNIQUE"
        assert fields["overlap_rate"] == 0.0
        assert len(fields["path_coordinates"]) == 60
        assert fields["start_latitude"] == pytest.approx(37.5045)
        assert fields["start_longitude"] == pytest.approx(127.0)

    def test_stored_path_is_not_the_input(self):
        # path_coordinates already holds a generated return leg; only gpx_data counts
        line = _line_coords()
        stored = line + line[-2::-1]
        catalog = FakeCatalog([_trail("line", line, path_coordinates=stored, trail_type="ROUNDTRIP")])
        classify_catalog(catalog, dry_run=False, logger=Logger(echo=False))

        fields = catalog.updates[0][1]
        assert fields["trail_type"] == "ROUNDTRIP"
        assert len(fields["path_coordinates"]) == 119

    def test_dry_run_writes_nothing(self):
        catalog = FakeCatalog([_trail("loop", _loop_coords())])
        stats = classify_catalog(catalog, dry_run=True, logger=Logger(echo=False))
        assert stats["CIRCULAR_UNIQUE"] == 1
        assert stats["updated"] == 0
        assert catalog.updates == []

    def test_update_errors_are_counted(self):
        catalog = FakeCatalog([_trail("loop", _loop_coords())], fail_ids=["loop"])
        stats = classify_catalog(catalog, dry_run=False, logger=Logger(echo=False))
        assert stats["errors"] == 1
        assert stats["updated"] == 0

    def test_invalid_points_are_dropped(self):
        coords = _loop_coords()
        coords.insert(10, {"lat": "bad", "lon": 127.0})
        catalog = FakeCatalog([_trail("loop", coords)])
        stats = classify_catalog(catalog, logger=Logger(echo=False))
        assert stats["CIRCULAR_UNIQUE"] == 1

    def test_gpx_waypoints_used_for_road_access(self):
        line = _line_coords()
        end = line[-1]
        catalog = FakeCatalog([_trail("line", line, waypoints=[
            {"lat": end["lat"], "lon": end["lon"], "name": "Bus", "category": "TRANS"},
            {"name": "no coordinates"},
        ])])
        stats = classify_catalog(catalog, logger=Logger(echo=False))
        assert stats["ONEWAY_UNIQUE"] == 1

    def test_limit(self):
        catalog = FakeCatalog([_trail(str(i), _loop_coords()) for i in range(3)])
        stats = classify_catalog(catalog, logger=Logger(echo=False), limit=2)
        assert stats["CIRCULAR_UNIQUE"] == 2


class TestClassifyCatalogOverRest:
    """The batch run against a real client with the HTTP layer mocked."""

    @patch("requests.Session.request")
    def test_roundtrip_survives_a_second_run(self, mock_request):
        line = _line_coords()
        stored = [{"lat": p["lat"], "lng": p["lon"]} for p in line + line[-2::-1]]
        row = _trail("t1", line, path_coordinates=stored, trail_type="ROUNDTRIP")

        def respond(method, url, params=None, **kwargs):
            return _response([row] if method == "GET" else None)

        mock_request.side_effect = respond
        catalog = TrailCatalog(SETTINGS)
        for _ in range(2):
            classify_catalog(catalog, dry_run=False, logger=Logger(echo=False))

        gets = [c for c in mock_request.call_args_list if c[0][0] == "GET"]
        patches = [c for c in mock_request.call_args_list if c[0][0] == "PATCH"]
        select = gets[0][1]["params"]["select"].split(",")
        assert "gpx_data" in select
        assert "path_coordinates" not in select

        assert len(patches) == 2
        for call in patches:
            fields = call[1]["json"]
            assert call[1]["params"] == {"id": "eq.t1"}
            assert fields["trail_type"] == "ROUNDTRIP"
            assert len(fields["path_coordinates"]) == 119
            assert fields["path_coordinates"][-1] == {"lat": line[0]["lat"], "lng": 127.0}
            assert fields["start_latitude"] == line[0]["lat"]
