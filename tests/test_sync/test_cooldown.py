"""Tests for the cooldown guard and the live-match time window.

Test Strategy:
1. check_cooldown(): only successful runs start the interval
2. wait_seconds is the remaining interval rounded up
3. is_any_match_in_window(): inclusive [now - 2h, now + 1h] window
"""
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models import SyncLog
from app.services.sync.cooldown import check_cooldown
from app.services.sync.schedule_filter import is_any_match_in_window, window_bounds

NOW = datetime(2025, 3, 1, 12, 0, 0)


def _log(db: Session, sync_type: str, status: str, at: datetime) -> None:
    db.add(SyncLog(sync_type=sync_type, status=status, details={}, synced_at=at))
    db.commit()


class TestCheckCooldown:

    def test_first_run_allowed(self, db_session: Session):
        result = check_cooldown(db_session, "news", 1800, now=NOW)

        assert result.can_run is True
        assert result.last_run is None

    def test_recent_success_blocks(self, db_session: Session):
        _log(db_session, "news", "success", NOW - timedelta(seconds=600))

        result = check_cooldown(db_session, "news", 1800, now=NOW)

        assert result.can_run is False
        assert result.wait_seconds == 1200
        assert result.last_run == NOW - timedelta(seconds=600)

    def test_wait_is_rounded_up(self, db_session: Session):
        _log(db_session, "news", "success", NOW - timedelta(seconds=10, milliseconds=500))

        result = check_cooldown(db_session, "news", 60, now=NOW)

        assert result.wait_seconds == 50

    def test_expired_interval_allows(self, db_session: Session):
        _log(db_session, "news", "success", NOW - timedelta(hours=1))

        assert check_cooldown(db_session, "news", 1800, now=NOW).can_run is True

    def test_partial_and_error_runs_do_not_count(self, db_session: Session):
        _log(db_session, "news", "partial", NOW - timedelta(seconds=30))
        _log(db_session, "news", "error", NOW - timedelta(seconds=10))

        assert check_cooldown(db_session, "news", 1800, now=NOW).can_run is True

    def test_other_sync_types_are_independent(self, db_session: Session):
        _log(db_session, "football_stats", "success", NOW - timedelta(seconds=30))

        assert check_cooldown(db_session, "news", 1800, now=NOW).can_run is True

    def test_zero_cooldown_always_allows(self, db_session: Session):
        _log(db_session, "live_matches", "success", NOW - timedelta(seconds=1))

        assert check_cooldown(db_session, "live_matches", 0, now=NOW).can_run is True

    def test_configured_intervals(self):
        assert settings.cooldown_for("news") == settings.COOLDOWN_NEWS
        assert settings.cooldown_for("live_matches") == 0


class TestScheduleFilter:

    def test_window_bounds(self):
        start, end = window_bounds(NOW)

        assert start == NOW - timedelta(hours=2)
        assert end == NOW + timedelta(hours=1)

    def test_match_in_progress(self):
        assert is_any_match_in_window(NOW, [NOW - timedelta(minutes=90)]) is True

    def test_match_about_to_start(self):
        assert is_any_match_in_window(NOW, [NOW + timedelta(minutes=45)]) is True

    def test_edges_are_inclusive(self):
        assert is_any_match_in_window(NOW, [NOW - timedelta(hours=2)]) is True
        assert is_any_match_in_window(NOW, [NOW + timedelta(hours=1)]) is True

    def test_outside_window(self):
        times = [NOW - timedelta(hours=3), NOW + timedelta(hours=4), None]

        assert is_any_match_in_window(NOW, times) is False

    def test_no_matches(self):
        assert is_any_match_in_window(NOW, []) is False
