"""
Unit tests for computed quote expiration.
"""

from datetime import date, datetime, timedelta, timezone

from praetor.models import is_quote_expired


class TestIsQuoteExpired:
    """Expiration is derived from status and the expiration day."""

    def test_confirmed_never_expires(self):
        assert is_quote_expired('confirmed', date(2000, 1, 1)) is False

    def test_without_expiration_date(self):
        assert is_quote_expired('quoted', None) is False

    def test_expired_yesterday(self):
        yesterday = datetime.now(timezone.utc).date() - timedelta(days=1)
        assert is_quote_expired('quoted', yesterday) is True

    def test_valid_through_end_of_today(self):
        now = datetime(2026, 3, 10, 23, 59, 59, tzinfo=timezone.utc)
        assert is_quote_expired('quoted', date(2026, 3, 10), now=now) is False

    def test_expired_right_after_midnight(self):
        now = datetime(2026, 3, 11, 0, 0, 0, tzinfo=timezone.utc)
        assert is_quote_expired('quoted', date(2026, 3, 10), now=now) is True

    def test_time_of_day_on_expiration_is_ignored(self):
        now = datetime(2026, 3, 10, 18, 0, tzinfo=timezone.utc)
        expiration = datetime(2026, 3, 10, 8, 0)
        assert is_quote_expired('quoted', expiration, now=now) is False

    def test_accepts_iso_strings(self):
        now = datetime(2026, 3, 12, tzinfo=timezone.utc)
        assert is_quote_expired('quoted', '2026-03-10T00:00:00.000Z', now=now) is True

    def test_naive_now_is_read_as_utc(self):
        assert is_quote_expired('quoted', date(2026, 3, 10), now=datetime(2026, 3, 10, 12)) is False
