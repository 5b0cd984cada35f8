"""
Points aggregation service.
Combines a day's exercise logs into effective points, applying the recovery cap.
"""
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, Optional
from sqlalchemy.orm import Session

from commitment.models import ExerciseLog, Member, RecoveryDayActivation
from commitment.repositories.group_repository import GroupRepository
from commitment.repositories.log_repository import ExerciseLogRepository, ExerciseRepository
from commitment.repositories.recovery_repository import RecoveryDayRepository
from commitment.services.date_service import DateService
from commitment.services.target_service import TargetService, round_half_up
from commitment.services.settings_service import resolve_group_settings
from commitment.exceptions import GroupNotFoundException, MemberNotInGroupException, GroupConfigurationException
from commitment.constants import (
    EXERCISE_TYPE_RECOVERY,
    RECOVERY_CAP_FACTOR,
    RECOVERY_DAY_TARGET_MINUTES,
)


@dataclass
class PointsResult:
    """Effective points for one member on one day"""
    target: int
    effective_points: int
    regular_points: int = 0
    recovery_points: int = 0
    recovery_cap: int = 0
    is_recovery_day: bool = False

    @property
    def met_target(self) -> bool:
        return self.effective_points >= self.target

    def to_dict(self) -> dict:
        return {
            "target": self.target,
            "effectivePoints": self.effective_points,
            "regularPoints": self.regular_points,
            "recoveryPoints": self.recovery_points,
            "recoveryCap": self.recovery_cap,
            "isRecoveryDay": self.is_recovery_day,
            "metTarget": self.met_target,
        }


class PointsService:
    """Service for points aggregation"""

    def __init__(self, db: Session):
        self.db = db
        self.group_repo = GroupRepository()
        self.log_repo = ExerciseLogRepository()
        self.exercise_repo = ExerciseRepository()
        self.recovery_repo = RecoveryDayRepository()
        self.date_service = DateService()

    @staticmethod
    def calculate_recovery_cap(target: int) -> int:
        """Maximum points recovery exercises may contribute towards target"""
        return round_half_up(target * RECOVERY_CAP_FACTOR)

    @staticmethod
    def aggregate(
        target: int,
        logs: Iterable[ExerciseLog],
        exercise_types: Dict[str, str],
        recovery_day: Optional[RecoveryDayActivation] = None
    ) -> PointsResult:
        """
        Aggregate a day's logs into effective points.

        An activated recovery day replaces normal aggregation: its logged
        minutes are measured against the fixed recovery-day target.

        Otherwise: effective = regular + min(recovery, round(target x 0.25)).
        Exercises missing from the lookup count as regular.

        Args:
            target: Computed daily target
            logs: The member's logs for the day
            exercise_types: Exercise ID -> category
            recovery_day: Active recovery day for the date, if any

        Returns:
            PointsResult
        """
        if recovery_day is not None:
            return PointsResult(
                target=RECOVERY_DAY_TARGET_MINUTES,
                effective_points=recovery_day.recovery_minutes or 0,
                is_recovery_day=True
            )

        regular = 0
        recovery = 0
        for log in logs:
            if exercise_types.get(log.exercise_id) == EXERCISE_TYPE_RECOVERY:
                recovery += log.points or 0
            else:
                regular += log.points or 0

        cap = PointsService.calculate_recovery_cap(target)
        return PointsResult(
            target=target,
            effective_points=regular + min(recovery, cap),
            regular_points=regular,
            recovery_points=recovery,
            recovery_cap=cap
        )

    def get_daily_progress(self, member: Member, target_date: date) -> PointsResult:
        """
        Get a member's progress for a date, for display.

        Uses the member's own week mode (penalty evaluation always uses sane).

        Raises:
            MemberNotInGroupException: Member has no group
            GroupNotFoundException: Member's group does not exist
            GroupConfigurationException: Group has no start date
        """
        if member.group_id is None:
            raise MemberNotInGroupException(member.id)

        group = self.group_repo.get_by_id(self.db, member.group_id)
        if not group:
            raise GroupNotFoundException(member.group_id)
        if group.start_date is None:
            raise GroupConfigurationException(group.id, "start_date is not set")

        settings = resolve_group_settings(self.db, group)
        target = TargetService.calculate_daily_target(
            days_since_start=self.date_service.days_since_start(group.start_date, target_date),
            week_mode=member.week_mode,
            rest_days=settings.rest_days,
            recovery_days=settings.recovery_days,
            day_of_week=self.date_service.weekday_index(target_date)
        )

        logs = self.log_repo.get_for_user(self.db, member.id, target_date)
        recovery_day = self.recovery_repo.get_for_date(self.db, member.id, target_date)
        return self.aggregate(target, logs, self.exercise_repo.get_type_map(self.db), recovery_day)
