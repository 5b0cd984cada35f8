from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Date, ForeignKey, UniqueConstraint
)
from datetime import datetime
import json

from commitment.database import Base
from commitment.constants import (
    WEEK_MODE_SANE, EXERCISE_TYPE_REGULAR, PENALTY_STATUS_PENDING,
    MESSAGE_TYPE_TEXT, TRANSACTION_TYPE_PENALTY
)


def _parse_weekdays(raw) -> list[int]:
    """Parse a JSON weekday array like "[0,6]" (Sunday=0)"""
    if not raw:
        return []
    try:
        days = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return []
    if not isinstance(days, list):
        return []
    return [int(d) for d in days if d is not None]


class Group(Base):
    __tablename__ = "groups"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    start_date = Column(Date, nullable=True)  # Anchors all elapsed-day arithmetic

    # Legacy per-group columns, used when no group_settings row exists
    rest_day_1 = Column(Integer, nullable=True)
    rest_day_2 = Column(Integer, nullable=True)
    penalty_amount = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=datetime.now)

    def legacy_rest_days(self) -> list[int]:
        return [d for d in (self.rest_day_1, self.rest_day_2) if d is not None]


class GroupSettings(Base):
    __tablename__ = "group_settings"

    id = Column(Integer, primary_key=True, index=True)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=False, unique=True, index=True)
    rest_days = Column(String, nullable=True)      # JSON array: "[1]" (Monday)
    recovery_days = Column(String, nullable=True)  # JSON array: "[5]" (Friday)
    penalty_amount = Column(Integer, nullable=True)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    def rest_day_list(self) -> list[int]:
        return _parse_weekdays(self.rest_days)

    def recovery_day_list(self) -> list[int]:
        return _parse_weekdays(self.recovery_days)


class Member(Base):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, nullable=False)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=True, index=True)
    week_mode = Column(String, default=WEEK_MODE_SANE)  # sane, insane
    is_sick_mode = Column(Boolean, default=False)
    has_flexible_rest_day = Column(Boolean, default=False)
    total_penalty_owed = Column(Integer, default=0)  # Running balance
    last_penalty_check = Column(Date, nullable=True)  # Last date evaluated by the sweep
    api_token = Column(String, nullable=True, unique=True, index=True)  # Member session token
    created_at = Column(DateTime, default=datetime.now)


class Exercise(Base):
    __tablename__ = "exercises"

    id = Column(String, primary_key=True)  # e.g. "pushups", "recovery_yoga"
    name = Column(String, nullable=False)
    type = Column(String, default=EXERCISE_TYPE_REGULAR)  # regular, recovery


class ExerciseLog(Base):
    __tablename__ = "logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    exercise_id = Column(String, nullable=False)
    points = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.now)


class RecoveryDayActivation(Base):
    __tablename__ = "user_recovery_days"
    __table_args__ = (
        UniqueConstraint("user_id", "used_date", name="uq_recovery_day_user_date"),
        UniqueConstraint("user_id", "week_start_date", name="uq_recovery_day_user_week"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)
    used_date = Column(Date, nullable=False, index=True)
    week_start_date = Column(Date, nullable=False)  # Monday of the week
    recovery_minutes = Column(Integer, default=0)
    is_complete = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


class SickRecord(Base):
    __tablename__ = "sick_mode"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_sick_mode_user_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.now)


class PendingPenalty(Base):
    __tablename__ = "pending_penalties"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_pending_penalty_user_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)  # Day the target was missed
    target_points = Column(Integer, nullable=False)
    actual_points = Column(Integer, nullable=False)
    penalty_amount = Column(Integer, nullable=False)
    status = Column(String, default=PENALTY_STATUS_PENDING, index=True)  # pending, disputed, accepted
    reason_category = Column(String, nullable=True)
    reason_message = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    responded_at = Column(DateTime, nullable=True)
    deadline = Column(DateTime, nullable=False)
    auto_accepted_at = Column(DateTime, nullable=True)


class PaymentTransaction(Base):
    __tablename__ = "payment_transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=False)
    # One ledger entry per accepted penalty
    penalty_id = Column(Integer, ForeignKey("pending_penalties.id"), nullable=True, unique=True)
    amount = Column(Integer, nullable=False)
    transaction_type = Column(String, default=TRANSACTION_TYPE_PENALTY)
    description = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.now)


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, index=True)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=False, index=True)
    user_id = Column(Integer, nullable=True)  # None for system messages
    message = Column(String, nullable=False)
    message_type = Column(String, default=MESSAGE_TYPE_TEXT)
    is_system_message = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.now)


class PushSubscription(Base):
    __tablename__ = "push_subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)
    subscription = Column(String, nullable=False)  # JSON web-push subscription object
    created_at = Column(DateTime, default=datetime.now)
