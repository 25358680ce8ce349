"""Tests for hikingmate/history.py - local hike history."""

import pytest

from hikingmate.history import HikeHistoryDB


@pytest.fixture
def db(tmp_path):
    history = HikeHistoryDB(str(tmp_path / "history.db"))
    yield history
    history.close()


class TestSaveAndGet:

    def test_metrics_computed_on_save(self, db, hike_track):
        hike_id = db.save_hike(hike_track, trail_id="trail-1", started_at="2024-05-01T08:00:00")
        hike = db.get_hike(hike_id)

        assert hike["trail_id"] == "trail-1"
        assert hike["distance"] == 67
        assert hike["duration"] == 180
        assert hike["calories"] == 25
        assert hike["elevation_gain"] == pytest.approx(30)
        assert hike["status"] == "completed"
        assert hike["track"] == hike_track

    def test_duration_override(self, db, hike_track):
        hike_id = db.save_hike(hike_track, duration=3600)
        hike = db.get_hike(hike_id)
        assert hike["duration"] == 3600
        assert hike["calories"] == 490

    def test_missing_hike(self, db):
        assert db.get_hike(999) is None

    def test_invalid_status(self, db, hike_track):
        with pytest.raises(ValueError):
            db.save_hike(hike_track, status="lost")

    def test_empty_track(self, db):
        hike = db.get_hike(db.save_hike([]))
        assert hike["distance"] == 0
        assert hike["avg_pace"] == 0
        assert hike["track"] == []


class TestListAndStats:
    """Listing order and aggregate statistics."""

    def test_most_recent_first(self, db, hike_track):
        first = db.save_hike(hike_track, started_at="2024-05-01T08:00:00")
        second = db.save_hike(hike_track, started_at="2024-05-02T08:00:00")
        hikes = db.list_hikes()
        assert [h["id"] for h in hikes] == [second, first]
        assert "track" not in hikes[0]

    def test_limit_and_offset(self, db, hike_track):
        for day in range(1, 6):
            db.save_hike(hike_track, started_at=f"2024-05-0{day}T08:00:00")
        page = db.list_hikes(limit=2, offset=1)
        assert [h["started_at"] for h in page] == ["2024-05-04T08:00:00", "2024-05-03T08:00:00"]

    def test_stats_count_completed_only(self, db, hike_track):
        db.save_hike(hike_track, duration=600)
        db.save_hike(hike_track[:2], duration=1200)
        cancelled = db.save_hike(hike_track, duration=9999)
        db.update_status(cancelled, "cancelled")

        stats = db.get_stats()
        assert stats["total_hikes"] == 2
        assert stats["total_distance"] == 67 + 22
        assert stats["total_duration"] == 1800
        assert stats["average_distance"] == 45
        assert stats["average_duration"] == 900
        assert stats["longest_hike"] == 67
        assert len(stats["recent_hikes"]) == 2

    def test_stats_empty(self, db):
        stats = db.get_stats()
        assert stats["total_hikes"] == 0
        assert stats["average_distance"] == 0
        assert stats["recent_hikes"] == []

    def test_delete(self, db, hike_track):
        hike_id = db.save_hike(hike_track)
        db.delete_hike(hike_id)
        assert db.get_hike(hike_id) is None

    def test_update_status_validates(self, db, hike_track):
        hike_id = db.save_hike(hike_track)
        with pytest.raises(ValueError):
            db.update_status(hike_id, "lost")
