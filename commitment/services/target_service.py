"""
Daily target calculation.
Pure functions: elapsed days, week mode and calendar exceptions in, target points out.
"""
import math
from typing import Iterable

from commitment.constants import (
    SANE_FREEZE_THRESHOLD_DAYS,
    SANE_WEEKLY_STEP_DAYS,
    REST_DAY_MULTIPLIER,
    RECOVERY_DAY_TARGET_FACTOR,
    WEEK_MODE_SANE,
)


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, halves away from zero for non-negative values.

    Used for every fractional target in the engine (recovery-day target and
    recovery cap) so all call sites agree. Python's round() would send 2.5 to 2.
    """
    return int(math.floor(value + 0.5))


class TargetService:
    """Service for daily target calculation"""

    @staticmethod
    def calculate_base_target(days_since_start: int, week_mode: str) -> int:
        """
        Calculate the target before calendar exceptions.

        Target grows by one point per day. In sane mode growth slows to one
        point per week once the group is 448 days old; insane mode never slows.

        Args:
            days_since_start: Days since group start (negative clamps to 0)
            week_mode: "sane" or "insane"

        Returns:
            Base target points
        """
        days = max(0, days_since_start)
        base = 1 + days

        if days >= SANE_FREEZE_THRESHOLD_DAYS and week_mode == WEEK_MODE_SANE:
            base = SANE_FREEZE_THRESHOLD_DAYS + (days - SANE_FREEZE_THRESHOLD_DAYS) // SANE_WEEKLY_STEP_DAYS

        return base

    @staticmethod
    def calculate_daily_target(
        days_since_start: int,
        week_mode: str,
        rest_days: Iterable[int],
        recovery_days: Iterable[int],
        day_of_week: int
    ) -> int:
        """
        Calculate the daily target for a day.

        Exceptions are applied to the (possibly frozen) base:
        - rest day: base x 2
        - recovery day: round(base x 0.25)
        - otherwise: base

        Args:
            days_since_start: Days since group start
            week_mode: "sane" or "insane"
            rest_days: Weekday indices (Sunday=0) that are rest days
            recovery_days: Weekday indices that are recovery days
            day_of_week: Weekday index of the evaluated day

        Returns:
            Target points (non-negative)
        """
        base = TargetService.calculate_base_target(days_since_start, week_mode)

        if day_of_week in set(rest_days):
            return base * REST_DAY_MULTIPLIER
        if day_of_week in set(recovery_days):
            return round_half_up(base * RECOVERY_DAY_TARGET_FACTOR)
        return base
