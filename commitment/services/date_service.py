"""
Date calculation service.
Handles evaluated-date resolution, weekday indexing and elapsed-day arithmetic.
"""
from datetime import datetime, timedelta, date
from typing import Optional

from commitment.exceptions import ValidationException


class DateService:
    """Service for date-related operations"""

    @staticmethod
    def get_yesterday(now: Optional[datetime] = None) -> date:
        """Get the calendar day before now (server clock)"""
        now = now or datetime.now()
        return now.date() - timedelta(days=1)

    @staticmethod
    def resolve_evaluation_date(
        client_date: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> date:
        """
        Resolve the date a penalty check evaluates.

        The app sends its own "yesterday" so a member's local day is used
        instead of the server's UTC day. Falls back to the server clock.

        Args:
            client_date: Optional ISO date string (YYYY-MM-DD)
            now: Optional reference time

        Returns:
            Date to evaluate

        Raises:
            ValidationException: If client_date is not a valid ISO date
        """
        if not client_date:
            return DateService.get_yesterday(now)
        try:
            return date.fromisoformat(client_date)
        except ValueError:
            raise ValidationException("yesterdayDate", f"Invalid date {client_date!r}. Use YYYY-MM-DD")

    @staticmethod
    def weekday_index(target_date: date) -> int:
        """
        Get weekday index with Sunday = 0 ... Saturday = 6.

        Group rest/recovery days are stored in this convention.
        """
        return target_date.isoweekday() % 7

    @staticmethod
    def days_since_start(start_date: date, target_date: date) -> int:
        """Whole days elapsed between a group's start date and target_date"""
        return (target_date - start_date).days

    @staticmethod
    def get_week_start(target_date: date) -> date:
        """Get the Monday of target_date's week"""
        return target_date - timedelta(days=target_date.weekday())

    @staticmethod
    def parse_time(time_str: str) -> tuple[int, int]:
        """
        Parse time string into hour and minute.

        Args:
            time_str: Time string in "HH:MM" format

        Returns:
            Tuple of (hour, minute)

        Raises:
            ValueError: If time string is invalid
        """
        parts = time_str.split(":")
        hour = int(parts[0])
        minute = int(parts[1])
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            raise ValueError(f"Invalid time: {time_str}")
        return hour, minute
