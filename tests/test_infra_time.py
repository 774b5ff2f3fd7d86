"""Tests for time utilities."""

from datetime import datetime, timezone

from jengatrack.infra.time import utc_now, utc_today


class TestUtcNow:
    def test_returns_utc_datetime(self):
        assert utc_now().tzinfo == timezone.utc

    def test_returns_current_time(self):
        before = datetime.now(timezone.utc)
        now = utc_now()
        after = datetime.now(timezone.utc)

        assert before <= now <= after

    def test_today_is_utc_date(self):
        assert utc_today() == datetime.now(timezone.utc).date()
