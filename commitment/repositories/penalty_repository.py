"""
Penalty repository - Data access layer for pending penalties and the payment ledger.
"""
from datetime import date, datetime
from typing import List, Optional
from sqlalchemy.orm import Session

from commitment.models import PendingPenalty, PaymentTransaction
from commitment.constants import PENALTY_STATUS_PENDING


class PendingPenaltyRepository:
    """Repository for PendingPenalty data access"""

    @staticmethod
    def get_by_id(db: Session, penalty_id: int) -> Optional[PendingPenalty]:
        """Get penalty by ID"""
        return db.query(PendingPenalty).filter(PendingPenalty.id == penalty_id).first()

    @staticmethod
    def get_for_user_and_date(db: Session, user_id: int, penalty_date: date) -> Optional[PendingPenalty]:
        """Get the penalty for (user, date), if any"""
        return db.query(PendingPenalty).filter(
            PendingPenalty.user_id == user_id,
            PendingPenalty.date == penalty_date
        ).first()

    @staticmethod
    def get_user_ids_for_date(db: Session, group_id: int, penalty_date: date) -> set:
        """Get IDs of members in a group that already have a penalty for the date"""
        rows = db.query(PendingPenalty.user_id).filter(
            PendingPenalty.group_id == group_id,
            PendingPenalty.date == penalty_date
        ).all()
        return {row[0] for row in rows}

    @staticmethod
    def get_pending_for_user(db: Session, user_id: int) -> List[PendingPenalty]:
        """Get a member's pending penalties, oldest first"""
        return db.query(PendingPenalty).filter(
            PendingPenalty.user_id == user_id,
            PendingPenalty.status == PENALTY_STATUS_PENDING
        ).order_by(PendingPenalty.date.asc()).all()

    @staticmethod
    def get_expired(db: Session, now: datetime, group_id: Optional[int] = None) -> List[PendingPenalty]:
        """Get pending penalties whose deadline has passed"""
        query = db.query(PendingPenalty).filter(
            PendingPenalty.status == PENALTY_STATUS_PENDING,
            PendingPenalty.deadline < now
        )
        if group_id is not None:
            query = query.filter(PendingPenalty.group_id == group_id)
        return query.order_by(PendingPenalty.deadline.asc()).all()

    @staticmethod
    def create(db: Session, penalty: PendingPenalty) -> PendingPenalty:
        """Create new penalty"""
        db.add(penalty)
        db.commit()
        db.refresh(penalty)
        return penalty

    @staticmethod
    def transition_from_pending(db: Session, penalty_id: int, values: dict) -> bool:
        """
        Apply values only if the penalty is still pending.

        Does not commit.

        Returns:
            True if this call moved the penalty out of pending
        """
        updated = db.query(PendingPenalty).filter(
            PendingPenalty.id == penalty_id,
            PendingPenalty.status == PENALTY_STATUS_PENDING
        ).update(values, synchronize_session=False)
        return updated == 1


class PaymentTransactionRepository:
    """Repository for the append-only payment ledger"""

    @staticmethod
    def add(db: Session, transaction: PaymentTransaction) -> PaymentTransaction:
        """Stage a ledger entry in the current transaction. Does not commit."""
        db.add(transaction)
        db.flush()
        return transaction
