"""
Flex rest day evaluation.
A flagged member earns a rest day by scoring double the prior day's target.
"""
from dataclasses import dataclass
from typing import Dict, Iterable

from commitment.models import ExerciseLog
from commitment.services.points_service import PointsService
from commitment.services.target_service import TargetService
from commitment.constants import FLEX_REST_MULTIPLIER, WEEK_MODE_SANE


@dataclass
class FlexRestResult:
    qualified: bool
    prior_points: int
    prior_target: int

    @property
    def required_points(self) -> int:
        return self.prior_target * FLEX_REST_MULTIPLIER


class FlexRestService:
    """Service for flex rest day qualification"""

    @staticmethod
    def evaluate(
        days_since_start: int,
        rest_day_of_week: int,
        rest_days: Iterable[int],
        recovery_days: Iterable[int],
        prior_day_logs: Iterable[ExerciseLog],
        exercise_types: Dict[str, str]
    ) -> FlexRestResult:
        """
        Check whether the day before a rest day qualifies it as a flex rest day.

        The prior day's target uses sane mode, the same basis as penalty
        evaluation, and its points go through the normal recovery cap.

        Args:
            days_since_start: Days since group start for the rest day itself
            rest_day_of_week: Weekday index (Sunday=0) of the rest day
            rest_days: Group rest weekdays
            recovery_days: Group recovery weekdays
            prior_day_logs: The member's logs from the day before
            exercise_types: Exercise ID -> category

        Returns:
            FlexRestResult (qualified when prior points >= 2 x prior target)
        """
        prior_target = TargetService.calculate_daily_target(
            days_since_start=days_since_start - 1,
            week_mode=WEEK_MODE_SANE,
            rest_days=rest_days,
            recovery_days=recovery_days,
            day_of_week=(rest_day_of_week - 1) % 7
        )
        prior = PointsService.aggregate(prior_target, prior_day_logs, exercise_types)

        return FlexRestResult(
            qualified=prior.effective_points >= prior_target * FLEX_REST_MULTIPLIER,
            prior_points=prior.effective_points,
            prior_target=prior_target
        )
