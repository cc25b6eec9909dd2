"""
Unit tests for the betting window policy
"""

from datetime import datetime, timedelta, timezone

import pytest

from app.models.enums import RuleViolation
from app.services.betting_window import is_bettable, calculate_closes_at, calculate_opens_at

NOW = datetime(2026, 3, 11, 12, 0, tzinfo=timezone.utc)


class TestIsBettable:
    """Window from kickoff - 7 days (open) to kickoff - 10 minutes (closed)"""

    def test_match_in_three_days_is_open(self):
        result = is_bettable(NOW + timedelta(days=3), NOW)
        assert result.valid is True
        assert result.reason is None

    def test_exactly_seven_days_before_is_open(self):
        result = is_bettable(NOW + timedelta(days=7), NOW)
        assert result.valid is True

    def test_exactly_ten_minutes_before_is_closed(self):
        result = is_bettable(NOW + timedelta(minutes=10), NOW)
        assert result.valid is False
        assert result.reason == RuleViolation.WINDOW_CLOSED
        assert result.closes_at == NOW

    def test_eleven_minutes_before_is_open(self):
        assert is_bettable(NOW + timedelta(minutes=11), NOW).valid is True

    def test_match_starting_in_five_minutes_is_closed(self):
        result = is_bettable(NOW + timedelta(minutes=5), NOW)
        assert result.reason == RuleViolation.WINDOW_CLOSED

    def test_started_match_is_closed(self):
        result = is_bettable(NOW - timedelta(hours=1), NOW)
        assert result.reason == RuleViolation.WINDOW_CLOSED

    def test_one_second_too_early_reports_one_day(self):
        """Remaining time is rounded up to whole days"""
        result = is_bettable(NOW + timedelta(days=7, seconds=1), NOW)
        assert result.valid is False
        assert result.reason == RuleViolation.TOO_EARLY
        assert result.days_until_open == 1
        assert result.opens_at == NOW + timedelta(seconds=1)

    @pytest.mark.parametrize("days_out, expected", [
        (8, 1),
        (10, 3),
        (14, 7),
        (30, 23),
    ])
    def test_days_until_open(self, days_out, expected):
        result = is_bettable(NOW + timedelta(days=days_out), NOW)
        assert result.reason == RuleViolation.TOO_EARLY
        assert result.days_until_open == expected

    def test_naive_kickoff_is_read_as_utc(self):
        kickoff = (NOW + timedelta(days=2)).replace(tzinfo=None)
        assert is_bettable(kickoff, NOW).valid is True


class TestWindowBounds:

    def test_bounds(self):
        kickoff = datetime(2026, 3, 14, 20, 45, tzinfo=timezone.utc)
        assert calculate_opens_at(kickoff) == datetime(2026, 3, 7, 20, 45, tzinfo=timezone.utc)
        assert calculate_closes_at(kickoff) == datetime(2026, 3, 14, 20, 35, tzinfo=timezone.utc)
