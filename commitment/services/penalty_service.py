"""
Penalty ledger service.
Handles the penalty lifecycle: creation, member responses, deadline
auto-acceptance and posting accepted penalties to the payment ledger.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Tuple
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from commitment.models import Member, PendingPenalty, PaymentTransaction
from commitment.repositories.member_repository import MemberRepository
from commitment.repositories.penalty_repository import (
    PendingPenaltyRepository, PaymentTransactionRepository
)
from commitment.services.messaging_service import ChatMessagingService
from commitment.exceptions import (
    PenaltyNotFoundException,
    PenaltyAlreadyRespondedException,
    DisputeDeadlinePassedException,
    ValidationException,
    DatabaseException,
)
from commitment.constants import (
    PENALTY_STATUS_PENDING,
    PENALTY_STATUS_ACCEPTED,
    PENALTY_STATUS_DISPUTED,
    PENALTY_DEADLINE_HOURS,
    PENALTY_ACTION_ACCEPT,
    PENALTY_ACTION_DISPUTE,
    REASON_CATEGORIES,
    REASON_LABELS,
    TRANSACTION_TYPE_PENALTY,
)

logger = logging.getLogger("commitment.penalties")


def enrich_penalty(penalty: PendingPenalty, now: Optional[datetime] = None) -> dict:
    """Penalty fields plus hours_remaining (never negative) and is_expired"""
    now = now or datetime.now()
    remaining = (penalty.deadline - now).total_seconds() / 3600
    return {
        "id": penalty.id,
        "user_id": penalty.user_id,
        "group_id": penalty.group_id,
        "date": penalty.date,
        "target_points": penalty.target_points,
        "actual_points": penalty.actual_points,
        "penalty_amount": penalty.penalty_amount,
        "status": penalty.status,
        "reason_category": penalty.reason_category,
        "reason_message": penalty.reason_message,
        "created_at": penalty.created_at,
        "responded_at": penalty.responded_at,
        "deadline": penalty.deadline,
        "auto_accepted_at": penalty.auto_accepted_at,
        "hours_remaining": max(0.0, remaining),
        "is_expired": penalty.deadline < now,
    }


class PenaltyService:
    """Service for the penalty lifecycle"""

    def __init__(self, db: Session, messaging: Optional[ChatMessagingService] = None):
        self.db = db
        self.penalty_repo = PendingPenaltyRepository()
        self.transaction_repo = PaymentTransactionRepository()
        self.member_repo = MemberRepository()
        self.messaging = messaging or ChatMessagingService(db)

    def create_penalty(
        self,
        member: Member,
        group_id: int,
        penalty_date: date,
        target_points: int,
        actual_points: int,
        penalty_amount: int,
        now: Optional[datetime] = None
    ) -> Tuple[PendingPenalty, bool]:
        """
        Create a pending penalty unless one already exists for (member, date).

        The unique (user_id, date) constraint backs the existence check, so a
        concurrent insert is reported as "already exists".

        Returns:
            Tuple of (penalty, created)
        """
        existing = self.penalty_repo.get_for_user_and_date(self.db, member.id, penalty_date)
        if existing:
            return existing, False

        now = now or datetime.now()
        penalty = PendingPenalty(
            user_id=member.id,
            group_id=group_id,
            date=penalty_date,
            target_points=target_points,
            actual_points=actual_points,
            penalty_amount=penalty_amount,
            status=PENALTY_STATUS_PENDING,
            created_at=now,
            deadline=now + timedelta(hours=PENALTY_DEADLINE_HOURS)
        )
        try:
            penalty = self.penalty_repo.create(self.db, penalty)
        except IntegrityError:
            self.db.rollback()
            existing = self.penalty_repo.get_for_user_and_date(self.db, member.id, penalty_date)
            if existing is None:
                raise
            return existing, False

        logger.info(f"Penalty created for {member.username} on {penalty_date} ({actual_points}/{target_points} pts)")
        return penalty, True

    def auto_accept_expired(self, now: Optional[datetime] = None, group_id: Optional[int] = None) -> int:
        """
        Accept every pending penalty whose deadline has passed.

        Args:
            now: Reference time for the deadline comparison
            group_id: Restrict the sweep to one group

        Returns:
            Number of penalties accepted by this call
        """
        return sum(self.auto_accept_expired_by_group(now, group_id).values())

    def auto_accept_expired_by_group(
        self,
        now: Optional[datetime] = None,
        group_id: Optional[int] = None
    ) -> Dict[int, int]:
        """
        Accept expired pending penalties and count them per group.

        Each penalty is posted in its own transaction. A failure is logged,
        leaves the penalty pending for the next sweep and is not counted.
        Penalties are selected by deadline alone, so a penalty whose member
        has left the group is still accepted.

        Returns:
            Accepted counts keyed by the penalty's group ID
        """
        now = now or datetime.now()
        accepted: Dict[int, int] = {}

        for penalty in self.penalty_repo.get_expired(self.db, now, group_id):
            penalty_id, penalty_group_id = penalty.id, penalty.group_id
            try:
                posted = self._post_acceptance(
                    penalty,
                    {
                        PendingPenalty.status: PENALTY_STATUS_ACCEPTED,
                        PendingPenalty.auto_accepted_at: now,
                    },
                    f"Auto-accepted penalty: Missed target on {penalty.date}"
                )
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Failed to auto-accept penalty {penalty_id}: {e}")
                continue

            if posted:
                accepted[penalty_group_id] = accepted.get(penalty_group_id, 0) + 1

        total = sum(accepted.values())
        if total:
            logger.info(f"Auto-accepted {total} expired penalties")
        return accepted

    def accept(self, member: Member, penalty_id: int, now: Optional[datetime] = None) -> PendingPenalty:
        """
        Accept a penalty. Allowed after the deadline.

        Raises:
            PenaltyNotFoundException: Unknown penalty or not the member's
            PenaltyAlreadyRespondedException: Penalty is no longer pending
            DatabaseException: Ledger posting failed
        """
        now = now or datetime.now()
        penalty = self._get_pending_for_member(member, penalty_id)

        try:
            posted = self._post_acceptance(
                penalty,
                {
                    PendingPenalty.status: PENALTY_STATUS_ACCEPTED,
                    PendingPenalty.responded_at: now,
                },
                f"Penalty accepted: Missed target "
                f"({penalty.actual_points}/{penalty.target_points} pts) on {penalty.date}"
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to accept penalty {penalty_id}: {e}")
            raise DatabaseException("accept penalty", str(e))

        self.db.refresh(penalty)
        if not posted:
            raise PenaltyAlreadyRespondedException(penalty_id, penalty.status)

        logger.info(f"{member.username} accepted penalty {penalty_id}")
        self.messaging.post_system_message(
            penalty.group_id,
            f"{member.username} accepted penalty: €{penalty.penalty_amount} added to pot"
        )
        return penalty

    def dispute(
        self,
        member: Member,
        penalty_id: int,
        reason_category: Optional[str],
        reason_message: Optional[str],
        now: Optional[datetime] = None
    ) -> PendingPenalty:
        """
        Dispute a penalty before its deadline. No ledger effect.

        Raises:
            PenaltyNotFoundException: Unknown penalty or not the member's
            PenaltyAlreadyRespondedException: Penalty is no longer pending
            DisputeDeadlinePassedException: Deadline has passed
            ValidationException: Missing or unknown reason
        """
        now = now or datetime.now()
        penalty = self._get_pending_for_member(member, penalty_id)

        if penalty.deadline < now:
            raise DisputeDeadlinePassedException(penalty_id)

        message = (reason_message or "").strip()
        if not reason_category or not message:
            raise ValidationException("reason", "Reason category and message required for disputes")
        if reason_category not in REASON_CATEGORIES:
            raise ValidationException("reason_category", f"Must be one of {', '.join(REASON_CATEGORIES)}")

        moved = self.penalty_repo.transition_from_pending(self.db, penalty_id, {
            PendingPenalty.status: PENALTY_STATUS_DISPUTED,
            PendingPenalty.responded_at: now,
            PendingPenalty.reason_category: reason_category,
            PendingPenalty.reason_message: message,
        })
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseException("dispute penalty", str(e))

        self.db.refresh(penalty)
        if not moved:
            raise PenaltyAlreadyRespondedException(penalty_id, penalty.status)

        logger.info(f"{member.username} disputed penalty {penalty_id} ({reason_category})")
        label = REASON_LABELS.get(reason_category, reason_category)
        self.messaging.post_system_message(
            penalty.group_id,
            f'{member.username} disputed penalty ({label}): "{message}"'
        )
        return penalty

    def respond(
        self,
        member: Member,
        penalty_id: int,
        action: str,
        reason_category: Optional[str] = None,
        reason_message: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> dict:
        """Dispatch a member response to accept or dispute"""
        if action == PENALTY_ACTION_ACCEPT:
            self.accept(member, penalty_id, now)
            return {"success": True, "action": PENALTY_STATUS_ACCEPTED, "message": "Penalty accepted"}
        if action == PENALTY_ACTION_DISPUTE:
            self.dispute(member, penalty_id, reason_category, reason_message, now)
            return {"success": True, "action": PENALTY_STATUS_DISPUTED, "message": "Reason submitted to group"}
        raise ValidationException("action", f"Invalid action {action!r}")

    def get_pending_for_member(self, member_id: int, now: Optional[datetime] = None) -> List[dict]:
        """Get a member's pending penalties ordered by date, with deadline info"""
        now = now or datetime.now()
        return [enrich_penalty(p, now) for p in self.penalty_repo.get_pending_for_user(self.db, member_id)]

    def _get_pending_for_member(self, member: Member, penalty_id: int) -> PendingPenalty:
        penalty = self.penalty_repo.get_by_id(self.db, penalty_id)
        if not penalty or penalty.user_id != member.id:
            raise PenaltyNotFoundException(penalty_id)
        if penalty.status != PENALTY_STATUS_PENDING:
            raise PenaltyAlreadyRespondedException(penalty_id, penalty.status)
        return penalty

    def _post_acceptance(self, penalty: PendingPenalty, values: dict, description: str) -> bool:
        """
        Move a penalty to accepted and post it to the ledger in one transaction.

        The ledger entry and balance increment happen only if this call won
        the pending -> accepted transition.

        Returns:
            True if posted, False if the penalty was no longer pending
        """
        if not self.penalty_repo.transition_from_pending(self.db, penalty.id, values):
            self.db.rollback()
            return False

        self.transaction_repo.add(self.db, PaymentTransaction(
            user_id=penalty.user_id,
            group_id=penalty.group_id,
            penalty_id=penalty.id,
            amount=penalty.penalty_amount,
            transaction_type=TRANSACTION_TYPE_PENALTY,
            description=description
        ))
        self.member_repo.increment_penalty_owed(self.db, penalty.user_id, penalty.penalty_amount)
        self.db.commit()
        return True
