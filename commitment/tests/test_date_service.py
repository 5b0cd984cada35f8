"""
Tests for DateService.

Tests cover:
1. Evaluated-date resolution (server clock vs client date)
2. Weekday indexing with Sunday = 0
3. Week start and elapsed days
4. Time parsing
"""
import pytest
from datetime import date, datetime
from unittest.mock import patch

from commitment.services.date_service import DateService
from commitment.exceptions import ValidationException


class TestEvaluationDate:
    """Tests for get_yesterday and resolve_evaluation_date"""

    def test_yesterday_from_reference_time(self):
        """Yesterday is the calendar day before now"""
        assert DateService.get_yesterday(datetime(2026, 3, 1, 0, 5)) == date(2026, 2, 28)

    def test_yesterday_uses_server_clock(self):
        """Without a reference time the server clock is used"""
        with patch('commitment.services.date_service.datetime') as mock_dt:
            mock_dt.now.return_value = datetime(2026, 1, 30, 10, 0, 0)
            result = DateService.get_yesterday()

        assert result == date(2026, 1, 29)

    def test_client_date_wins(self):
        """A client-supplied date overrides the server clock"""
        result = DateService.resolve_evaluation_date("2026-01-10", datetime(2026, 1, 30, 10, 0))
        assert result == date(2026, 1, 10)

    def test_missing_client_date_falls_back(self):
        """No client date means server-side yesterday"""
        result = DateService.resolve_evaluation_date(None, datetime(2026, 1, 30, 10, 0))
        assert result == date(2026, 1, 29)

    def test_invalid_client_date(self):
        """Garbage dates are rejected"""
        with pytest.raises(ValidationException):
            DateService.resolve_evaluation_date("30/01/2026")


class TestWeekdays:
    """Tests for weekday_index and get_week_start"""

    @pytest.mark.parametrize("day,expected", [
        (date(2026, 1, 11), 0),  # Sunday
        (date(2026, 1, 12), 1),  # Monday
        (date(2026, 1, 16), 5),  # Friday
        (date(2026, 1, 17), 6),  # Saturday
    ])
    def test_sunday_is_zero(self, day, expected):
        """Weekday index follows Sunday = 0 ... Saturday = 6"""
        assert DateService.weekday_index(day) == expected

    def test_week_starts_on_monday(self):
        """Sunday belongs to the week that started the Monday before"""
        assert DateService.get_week_start(date(2026, 1, 18)) == date(2026, 1, 12)
        assert DateService.get_week_start(date(2026, 1, 12)) == date(2026, 1, 12)


class TestElapsedDays:
    """Tests for days_since_start"""

    def test_days_since_start(self):
        """Start date itself is day 0"""
        assert DateService.days_since_start(date(2026, 1, 1), date(2026, 1, 1)) == 0
        assert DateService.days_since_start(date(2026, 1, 1), date(2026, 2, 1)) == 31

    def test_before_start_is_negative(self):
        """Dates before the start are negative (the target clamps them)"""
        assert DateService.days_since_start(date(2026, 1, 10), date(2026, 1, 8)) == -2


class TestParseTime:
    """Tests for parse_time"""

    def test_valid_time(self):
        assert DateService.parse_time("00:05") == (0, 5)

    @pytest.mark.parametrize("value", ["24:00", "12:60", "noon"])
    def test_invalid_time(self, value):
        """Out-of-range or malformed times raise ValueError"""
        with pytest.raises(ValueError):
            DateService.parse_time(value)
