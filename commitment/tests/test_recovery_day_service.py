"""
Tests for RecoveryDayService.
"""
import pytest
from datetime import timedelta

from commitment.models import RecoveryDayActivation
from commitment.services.recovery_day_service import RecoveryDayService
from commitment.exceptions import (
    RecoveryDayUnavailableException, RecoveryDayNotFoundException, ValidationException
)
from commitment.tests.conftest import WEDNESDAY, create_group, create_member, noon

MONDAY = WEDNESDAY - timedelta(days=2)


@pytest.fixture
def member(db_session):
    group = create_group(db_session, WEDNESDAY - timedelta(days=30), rest_days=[])
    return create_member(db_session, group)


class TestActivate:
    """Tests for activate"""

    def test_activates_with_zero_minutes(self, db_session, member):
        activation = RecoveryDayService(db_session).activate(member, noon(WEDNESDAY))

        assert activation.used_date == WEDNESDAY
        assert activation.week_start_date == MONDAY
        assert activation.recovery_minutes == 0
        assert activation.is_complete is False

    def test_refused_on_monday(self, db_session, member):
        """Mondays are excluded"""
        with pytest.raises(RecoveryDayUnavailableException):
            RecoveryDayService(db_session).activate(member, noon(MONDAY))

    def test_one_per_week(self, db_session, member):
        """Second activation in the same Monday-start week is refused"""
        service = RecoveryDayService(db_session)
        service.activate(member, noon(WEDNESDAY))

        with pytest.raises(RecoveryDayUnavailableException):
            service.activate(member, noon(WEDNESDAY + timedelta(days=2)))

    def test_next_week_allowed(self, db_session, member):
        """Sunday belongs to the same week, the Tuesday after does not"""
        service = RecoveryDayService(db_session)
        service.activate(member, noon(WEDNESDAY))

        with pytest.raises(RecoveryDayUnavailableException):
            service.activate(member, noon(WEDNESDAY + timedelta(days=4)))
        service.activate(member, noon(WEDNESDAY + timedelta(days=6)))

        assert db_session.query(RecoveryDayActivation).count() == 2

    def test_always_activates_current_day(self, db_session, member):
        """The activation lands on the reference day, never an earlier one"""
        thursday = WEDNESDAY + timedelta(days=1)

        activation = RecoveryDayService(db_session).activate(member, noon(thursday))

        assert activation.used_date == thursday
        assert RecoveryDayService(db_session).get_for_date(member, WEDNESDAY) is None


class TestProgress:
    """Tests for update_progress and cancel"""

    def test_complete_at_fifteen_minutes(self, db_session, member):
        service = RecoveryDayService(db_session)
        service.activate(member, noon(WEDNESDAY))

        assert service.update_progress(member, 14, noon(WEDNESDAY)).is_complete is False
        activation = service.update_progress(member, 15, noon(WEDNESDAY))

        assert activation.recovery_minutes == 15
        assert activation.is_complete is True

    def test_progress_without_activation(self, db_session, member):
        with pytest.raises(RecoveryDayNotFoundException):
            RecoveryDayService(db_session).update_progress(member, 10, noon(WEDNESDAY))

    def test_yesterdays_activation_cannot_be_completed(self, db_session, member):
        """Minutes logged the next day do not reach the previous day's activation"""
        service = RecoveryDayService(db_session)
        service.activate(member, noon(WEDNESDAY))

        with pytest.raises(RecoveryDayNotFoundException):
            service.update_progress(member, 15, noon(WEDNESDAY + timedelta(days=1)))

        assert service.get_for_date(member, WEDNESDAY).is_complete is False

    def test_negative_minutes(self, db_session, member):
        with pytest.raises(ValidationException):
            RecoveryDayService(db_session).update_progress(member, -1, noon(WEDNESDAY))

    def test_cancel_frees_the_week(self, db_session, member):
        """After cancelling, another day in the week can be used"""
        service = RecoveryDayService(db_session)
        service.activate(member, noon(WEDNESDAY))

        service.cancel(member, noon(WEDNESDAY))
        service.activate(member, noon(WEDNESDAY + timedelta(days=1)))

        assert service.get_for_date(member, WEDNESDAY) is None
        assert service.get_for_date(member, WEDNESDAY + timedelta(days=1)) is not None

    def test_cancel_missing(self, db_session, member):
        with pytest.raises(RecoveryDayNotFoundException):
            RecoveryDayService(db_session).cancel(member, noon(WEDNESDAY))
