"""
Recovery repository - Data access layer for recovery-day activations and sick records.
"""
from datetime import date
from typing import Dict, List, Optional, Set
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from commitment.models import RecoveryDayActivation, SickRecord


class RecoveryDayRepository:
    """Repository for RecoveryDayActivation data access"""

    @staticmethod
    def get_for_date(db: Session, user_id: int, used_date: date) -> Optional[RecoveryDayActivation]:
        """Get a member's activation for a date"""
        return db.query(RecoveryDayActivation).filter(
            RecoveryDayActivation.user_id == user_id,
            RecoveryDayActivation.used_date == used_date
        ).first()

    @staticmethod
    def get_for_week(db: Session, user_id: int, week_start: date) -> Optional[RecoveryDayActivation]:
        """Get a member's activation for the week starting on week_start"""
        return db.query(RecoveryDayActivation).filter(
            RecoveryDayActivation.user_id == user_id,
            RecoveryDayActivation.week_start_date == week_start
        ).first()

    @staticmethod
    def get_map_for_date(db: Session, user_ids: List[int], used_date: date) -> Dict[int, RecoveryDayActivation]:
        """Map member ID to activation for a date"""
        if not user_ids:
            return {}
        activations = db.query(RecoveryDayActivation).filter(
            RecoveryDayActivation.used_date == used_date,
            RecoveryDayActivation.user_id.in_(user_ids)
        ).all()
        return {a.user_id: a for a in activations}

    @staticmethod
    def create(db: Session, activation: RecoveryDayActivation) -> RecoveryDayActivation:
        """Create new activation"""
        db.add(activation)
        db.commit()
        db.refresh(activation)
        return activation

    @staticmethod
    def update(db: Session, activation: RecoveryDayActivation) -> RecoveryDayActivation:
        """Update existing activation"""
        db.commit()
        db.refresh(activation)
        return activation

    @staticmethod
    def delete(db: Session, activation: RecoveryDayActivation) -> None:
        """Delete an activation"""
        db.delete(activation)
        db.commit()


class SickRecordRepository:
    """Repository for SickRecord data access"""

    @staticmethod
    def get_user_ids_for_date(db: Session, user_ids: List[int], sick_date: date) -> Set[int]:
        """Get IDs of members with a sick record for a date"""
        if not user_ids:
            return set()
        rows = db.query(SickRecord.user_id).filter(
            SickRecord.date == sick_date,
            SickRecord.user_id.in_(user_ids)
        ).all()
        return {row[0] for row in rows}

    @staticmethod
    def exists(db: Session, user_id: int, sick_date: date) -> bool:
        """Check if a member has a sick record for a date"""
        return db.query(SickRecord.id).filter(
            SickRecord.user_id == user_id,
            SickRecord.date == sick_date
        ).first() is not None

    @staticmethod
    def ensure(db: Session, user_id: int, sick_date: date) -> bool:
        """
        Record a sick day if not already recorded.

        Returns:
            True if a new record was written
        """
        if SickRecordRepository.exists(db, user_id, sick_date):
            return False
        try:
            db.add(SickRecord(user_id=user_id, date=sick_date))
            db.commit()
        except IntegrityError:
            # Written concurrently by another sweep
            db.rollback()
            return False
        return True
