"""
Recovery day service.
A member may swap the current day (once per week, Monday excluded) for a short recovery session.
"""
import logging
from datetime import date, datetime
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from commitment.models import Member, RecoveryDayActivation
from commitment.repositories.recovery_repository import RecoveryDayRepository
from commitment.services.date_service import DateService
from commitment.exceptions import (
    RecoveryDayUnavailableException,
    RecoveryDayNotFoundException,
    ValidationException,
)
from commitment.constants import MONDAY, RECOVERY_DAY_TARGET_MINUTES

logger = logging.getLogger("commitment.recovery_days")


class RecoveryDayService:
    """Service for recovery day activation and progress"""

    def __init__(self, db: Session):
        self.db = db
        self.recovery_repo = RecoveryDayRepository()
        self.date_service = DateService()

    def get_for_date(self, member: Member, target_date: Optional[date] = None) -> Optional[RecoveryDayActivation]:
        """Get the member's activation for a date (today by default)"""
        target_date = target_date or datetime.now().date()
        return self.recovery_repo.get_for_date(self.db, member.id, target_date)

    def activate(self, member: Member, now: Optional[datetime] = None) -> RecoveryDayActivation:
        """
        Activate today as the member's recovery day.

        Only the current day can be activated.

        Args:
            member: Member activating
            now: Optional reference time

        Returns:
            New activation with 0 minutes logged

        Raises:
            RecoveryDayUnavailableException: Monday, or already used this week
        """
        today = (now or datetime.now()).date()

        if self.date_service.weekday_index(today) == MONDAY:
            raise RecoveryDayUnavailableException("recovery days cannot be used on Mondays")

        week_start = self.date_service.get_week_start(today)
        if self.recovery_repo.get_for_week(self.db, member.id, week_start):
            raise RecoveryDayUnavailableException("recovery day already used this week")

        try:
            activation = self.recovery_repo.create(self.db, RecoveryDayActivation(
                user_id=member.id,
                used_date=today,
                week_start_date=week_start,
                recovery_minutes=0,
                is_complete=False
            ))
        except IntegrityError:
            self.db.rollback()
            raise RecoveryDayUnavailableException("recovery day already used this week")

        logger.info(f"{member.username} activated recovery day on {today}")
        return activation

    def update_progress(
        self,
        member: Member,
        minutes: int,
        now: Optional[datetime] = None
    ) -> RecoveryDayActivation:
        """
        Record minutes logged on today's recovery day.

        Raises:
            ValidationException: Negative minutes
            RecoveryDayNotFoundException: No activation for today
        """
        if minutes < 0:
            raise ValidationException("minutes", "Must be zero or greater")

        today = (now or datetime.now()).date()
        activation = self.recovery_repo.get_for_date(self.db, member.id, today)
        if not activation:
            raise RecoveryDayNotFoundException(today)

        activation.recovery_minutes = minutes
        activation.is_complete = minutes >= RECOVERY_DAY_TARGET_MINUTES
        return self.recovery_repo.update(self.db, activation)

    def cancel(self, member: Member, now: Optional[datetime] = None) -> None:
        """
        Undo today's recovery day activation.

        Raises:
            RecoveryDayNotFoundException: No activation for today
        """
        today = (now or datetime.now()).date()
        activation = self.recovery_repo.get_for_date(self.db, member.id, today)
        if not activation:
            raise RecoveryDayNotFoundException(today)

        self.recovery_repo.delete(self.db, activation)
        logger.info(f"{member.username} cancelled recovery day on {today}")
