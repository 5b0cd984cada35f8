"""
Tests for PenaltyService.

Tests cover:
1. Creation and deduplication
2. Deadline auto-acceptance and ledger posting
3. Manual accept / dispute rules
4. Pending listing with deadline info
"""
import pytest
from datetime import datetime, timedelta
from unittest.mock import MagicMock

from sqlalchemy.exc import SQLAlchemyError

from commitment.models import ChatMessage, Member, PaymentTransaction, PendingPenalty
from commitment.services.penalty_service import PenaltyService
from commitment.exceptions import (
    PenaltyNotFoundException,
    PenaltyAlreadyRespondedException,
    DisputeDeadlinePassedException,
    ValidationException,
)
from commitment.constants import (
    PENALTY_STATUS_PENDING, PENALTY_STATUS_ACCEPTED, PENALTY_STATUS_DISPUTED
)
from commitment.tests.conftest import WEDNESDAY, create_group, create_member, create_penalty, noon

NOW = noon(WEDNESDAY)


@pytest.fixture
def member(db_session):
    group = create_group(db_session, WEDNESDAY - timedelta(days=100), rest_days=[1])
    return create_member(db_session, group)


def _balance(db, member):
    db.expire_all()
    return db.query(Member).filter(Member.id == member.id).one().total_penalty_owed


class TestCreatePenalty:
    """Tests for create_penalty"""

    def test_creates_with_24h_deadline(self, db_session, member):
        """New penalty is pending and due a day after creation"""
        service = PenaltyService(db_session)

        penalty, created = service.create_penalty(member, member.group_id, WEDNESDAY, 100, 65, 10, NOW)

        assert created
        assert penalty.status == PENALTY_STATUS_PENDING
        assert penalty.deadline == NOW + timedelta(hours=24)
        assert penalty.target_points == 100
        assert penalty.actual_points == 65

    def test_second_create_returns_existing(self, db_session, member):
        """At most one penalty per member and date"""
        service = PenaltyService(db_session)
        first, _ = service.create_penalty(member, member.group_id, WEDNESDAY, 100, 65, 10, NOW)

        second, created = service.create_penalty(member, member.group_id, WEDNESDAY, 100, 0, 10, NOW)

        assert not created
        assert second.id == first.id
        assert db_session.query(PendingPenalty).count() == 1

    def test_unique_constraint_reported_as_existing(self, db_session, member):
        """A concurrent insert that wins the race is returned, not raised"""
        service = PenaltyService(db_session)
        existing = create_penalty(db_session, member, WEDNESDAY, NOW + timedelta(hours=24))
        service.penalty_repo = MagicMock(wraps=service.penalty_repo)
        service.penalty_repo.get_for_user_and_date.side_effect = [None, existing]

        penalty, created = service.create_penalty(member, member.group_id, WEDNESDAY, 100, 65, 10, NOW)

        assert not created
        assert penalty.id == existing.id


class TestAutoAccept:
    """Tests for auto_accept_expired and auto_accept_expired_by_group"""

    def test_expired_penalty_posted_once(self, db_session, member):
        """Expired pending penalty is accepted with exactly one ledger entry"""
        penalty = create_penalty(db_session, member, WEDNESDAY, NOW - timedelta(minutes=1), amount=10)
        service = PenaltyService(db_session)

        assert service.auto_accept_expired(NOW) == 1
        assert service.auto_accept_expired(NOW) == 0

        db_session.refresh(penalty)
        assert penalty.status == PENALTY_STATUS_ACCEPTED
        assert penalty.auto_accepted_at == NOW
        transactions = db_session.query(PaymentTransaction).all()
        assert len(transactions) == 1
        assert transactions[0].penalty_id == penalty.id
        assert transactions[0].amount == 10
        assert _balance(db_session, member) == 10

    def test_not_expired_left_pending(self, db_session, member):
        """Deadline in the future is not touched"""
        penalty = create_penalty(db_session, member, WEDNESDAY, NOW + timedelta(hours=1))

        assert PenaltyService(db_session).auto_accept_expired(NOW) == 0

        db_session.refresh(penalty)
        assert penalty.status == PENALTY_STATUS_PENDING
        assert _balance(db_session, member) == 0

    def test_disputed_penalty_never_accepted(self, db_session, member):
        """Only pending penalties are swept"""
        create_penalty(db_session, member, WEDNESDAY, NOW - timedelta(hours=1), status=PENALTY_STATUS_DISPUTED)

        assert PenaltyService(db_session).auto_accept_expired(NOW) == 0
        assert db_session.query(PaymentTransaction).count() == 0

    def test_group_filter(self, db_session, member):
        """Sweep can be limited to one group"""
        other_group = create_group(db_session, WEDNESDAY, name="Other", rest_days=[])
        other = create_member(db_session, other_group, username="bob")
        create_penalty(db_session, member, WEDNESDAY, NOW - timedelta(hours=1))
        create_penalty(db_session, other, WEDNESDAY, NOW - timedelta(hours=1))

        assert PenaltyService(db_session).auto_accept_expired(NOW, group_id=member.group_id) == 1
        assert _balance(db_session, other) == 0

    def test_counts_by_group(self, db_session, member):
        """Per-group counts follow the penalty's group, not the member's current one"""
        other_group = create_group(db_session, WEDNESDAY, name="Other", rest_days=[])
        old_group_id = member.group_id
        create_penalty(db_session, member, WEDNESDAY, NOW - timedelta(hours=1))
        create_penalty(db_session, member, WEDNESDAY - timedelta(days=1), NOW - timedelta(hours=2))
        member.group_id = other_group.id
        db_session.commit()

        accepted = PenaltyService(db_session).auto_accept_expired_by_group(NOW)

        assert accepted == {old_group_id: 2}
        assert _balance(db_session, member) == 20

    def test_ledger_failure_leaves_pending(self, db_session, member):
        """A failed posting is rolled back and not counted"""
        penalty = create_penalty(db_session, member, WEDNESDAY, NOW - timedelta(hours=1))
        service = PenaltyService(db_session)
        service.member_repo = MagicMock()
        service.member_repo.increment_penalty_owed.side_effect = SQLAlchemyError("disk full")

        assert service.auto_accept_expired(NOW) == 0

        db_session.refresh(penalty)
        assert penalty.status == PENALTY_STATUS_PENDING
        assert db_session.query(PaymentTransaction).count() == 0


class TestRespond:
    """Tests for accept, dispute and respond"""

    def test_accept_posts_to_ledger_and_chat(self, db_session, member):
        """Manual accept posts once and announces it"""
        penalty = create_penalty(db_session, member, WEDNESDAY, NOW + timedelta(hours=5), amount=15)

        result = PenaltyService(db_session).respond(member, penalty.id, "accept", now=NOW)

        assert result["action"] == PENALTY_STATUS_ACCEPTED
        assert penalty.status == PENALTY_STATUS_ACCEPTED
        assert penalty.responded_at == NOW
        assert _balance(db_session, member) == 15
        message = db_session.query(ChatMessage).one()
        assert message.is_system_message
        assert message.message == "alice accepted penalty: €15 added to pot"

    def test_accept_allowed_after_deadline(self, db_session, member):
        """Paying is always possible"""
        penalty = create_penalty(db_session, member, WEDNESDAY, NOW - timedelta(hours=5))

        PenaltyService(db_session).accept(member, penalty.id, NOW)

        assert penalty.status == PENALTY_STATUS_ACCEPTED
        assert db_session.query(PaymentTransaction).count() == 1

    def test_dispute_records_reason(self, db_session, member):
        """Dispute flips status without touching the ledger"""
        penalty = create_penalty(db_session, member, WEDNESDAY, NOW + timedelta(hours=5))

        PenaltyService(db_session).dispute(member, penalty.id, "work", "  Double shift  ", NOW)

        assert penalty.status == PENALTY_STATUS_DISPUTED
        assert penalty.reason_category == "work"
        assert penalty.reason_message == "Double shift"
        assert db_session.query(PaymentTransaction).count() == 0
        assert _balance(db_session, member) == 0
        message = db_session.query(ChatMessage).one()
        assert message.message == 'alice disputed penalty (Work Emergency): "Double shift"'

    def test_dispute_after_deadline_rejected(self, db_session, member):
        """Disputes close at the deadline"""
        penalty = create_penalty(db_session, member, WEDNESDAY, NOW - timedelta(minutes=1))

        with pytest.raises(DisputeDeadlinePassedException):
            PenaltyService(db_session).dispute(member, penalty.id, "sick", "Flu", NOW)

    @pytest.mark.parametrize("category,message", [(None, "Flu"), ("sick", "   "), ("bored", "Meh")])
    def test_dispute_needs_valid_reason(self, db_session, member, category, message):
        """Category must be known and message non-empty"""
        penalty = create_penalty(db_session, member, WEDNESDAY, NOW + timedelta(hours=5))

        with pytest.raises(ValidationException):
            PenaltyService(db_session).dispute(member, penalty.id, category, message, NOW)

        db_session.refresh(penalty)
        assert penalty.status == PENALTY_STATUS_PENDING

    def test_cannot_respond_twice(self, db_session, member):
        """Terminal states are final"""
        penalty = create_penalty(db_session, member, WEDNESDAY, NOW + timedelta(hours=5))
        service = PenaltyService(db_session)
        service.accept(member, penalty.id, NOW)

        with pytest.raises(PenaltyAlreadyRespondedException):
            service.dispute(member, penalty.id, "sick", "Flu", NOW)
        with pytest.raises(PenaltyAlreadyRespondedException):
            service.accept(member, penalty.id, NOW)
        assert db_session.query(PaymentTransaction).count() == 1

    def test_other_members_penalty_not_found(self, db_session, member):
        """Members can only respond to their own penalties"""
        penalty = create_penalty(db_session, member, WEDNESDAY, NOW + timedelta(hours=5))
        other = create_member(db_session, None, username="mallory")

        with pytest.raises(PenaltyNotFoundException):
            PenaltyService(db_session).accept(other, penalty.id, NOW)

    def test_invalid_action(self, db_session, member):
        penalty = create_penalty(db_session, member, WEDNESDAY, NOW + timedelta(hours=5))

        with pytest.raises(ValidationException):
            PenaltyService(db_session).respond(member, penalty.id, "waive", now=NOW)

    def test_chat_failure_does_not_undo_accept(self, db_session, member):
        """Chat messages are best-effort"""
        penalty = create_penalty(db_session, member, WEDNESDAY, NOW + timedelta(hours=5))
        messaging = MagicMock()
        messaging.post_system_message.return_value = False

        PenaltyService(db_session, messaging).accept(member, penalty.id, NOW)

        assert penalty.status == PENALTY_STATUS_ACCEPTED
        messaging.post_system_message.assert_called_once()


class TestPendingListing:
    """Tests for get_pending_for_member"""

    def test_ordered_and_enriched(self, db_session, member):
        """Oldest first, with hours remaining and expiry"""
        create_penalty(db_session, member, WEDNESDAY, NOW + timedelta(hours=6))
        create_penalty(db_session, member, WEDNESDAY - timedelta(days=1), NOW - timedelta(hours=2))
        create_penalty(db_session, member, WEDNESDAY - timedelta(days=2), NOW - timedelta(hours=30),
                       status=PENALTY_STATUS_ACCEPTED)

        penalties = PenaltyService(db_session).get_pending_for_member(member.id, NOW)

        assert [p["date"] for p in penalties] == [WEDNESDAY - timedelta(days=1), WEDNESDAY]
        assert penalties[0]["is_expired"] is True
        assert penalties[0]["hours_remaining"] == 0
        assert penalties[1]["is_expired"] is False
        assert penalties[1]["hours_remaining"] == pytest.approx(6)
