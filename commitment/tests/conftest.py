"""
Shared fixtures for the commitment test suite.
"""
import os
import tempfile

# Configure the app before any commitment module reads its environment
os.environ.setdefault("COMMITMENT_DATABASE_URL", "sqlite://")
os.environ.setdefault("COMMITMENT_LOG_DIR", os.path.join(tempfile.gettempdir(), "commitment-tests"))
os.environ.setdefault("CRON_SECRET", "test-cron-secret")
os.environ.setdefault("PUSH_GATEWAY_URL", "")

import json
import pytest
from datetime import date, datetime, timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from commitment.database import Base
from commitment.models import (
    Group, GroupSettings, Member, Exercise, ExerciseLog, PendingPenalty,
    RecoveryDayActivation, PushSubscription
)
from commitment.constants import (
    EXERCISE_TYPE_REGULAR, EXERCISE_TYPE_RECOVERY, PENALTY_STATUS_PENDING, WEEK_MODE_SANE
)

# A Wednesday; Sunday = 0 so its weekday index is 3
WEDNESDAY = date(2026, 1, 14)


@pytest.fixture
def db_session():
    """Fresh in-memory database per test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def today():
    return date.today()


@pytest.fixture
def yesterday(today):
    return today - timedelta(days=1)


@pytest.fixture
def exercises(db_session):
    """Category lookup: one regular and one recovery exercise"""
    db_session.add_all([
        Exercise(id="pushups", name="Push-ups", type=EXERCISE_TYPE_REGULAR),
        Exercise(id="yoga", name="Yoga", type=EXERCISE_TYPE_RECOVERY),
    ])
    db_session.commit()
    return {"regular": "pushups", "recovery": "yoga"}


def create_group(db, start_date, name="Squad", rest_days=None, recovery_days=None,
                 penalty_amount=None, legacy_rest_days=None, legacy_penalty=None):
    """Create a group, with a settings row unless only legacy columns are given"""
    legacy = legacy_rest_days or []
    group = Group(
        name=name,
        start_date=start_date,
        rest_day_1=legacy[0] if len(legacy) > 0 else None,
        rest_day_2=legacy[1] if len(legacy) > 1 else None,
        penalty_amount=legacy_penalty
    )
    db.add(group)
    db.commit()

    if rest_days is not None or recovery_days is not None or penalty_amount is not None:
        db.add(GroupSettings(
            group_id=group.id,
            rest_days=json.dumps(rest_days) if rest_days is not None else None,
            recovery_days=json.dumps(recovery_days or []),
            penalty_amount=penalty_amount
        ))
        db.commit()

    db.refresh(group)
    return group


def create_member(db, group, username="alice", token=None, **kwargs):
    member = Member(
        username=username,
        group_id=group.id if group is not None else None,
        week_mode=kwargs.pop("week_mode", WEEK_MODE_SANE),
        api_token=token,
        **kwargs
    )
    db.add(member)
    db.commit()
    db.refresh(member)
    return member


def add_log(db, member, log_date, points, exercise_id="pushups"):
    log = ExerciseLog(user_id=member.id, date=log_date, exercise_id=exercise_id, points=points)
    db.add(log)
    db.commit()
    return log


def add_recovery_day(db, member, used_date, minutes=0, is_complete=False):
    activation = RecoveryDayActivation(
        user_id=member.id,
        used_date=used_date,
        week_start_date=used_date - timedelta(days=used_date.weekday()),
        recovery_minutes=minutes,
        is_complete=is_complete
    )
    db.add(activation)
    db.commit()
    return activation


def create_penalty(db, member, penalty_date, deadline, amount=10, status=PENALTY_STATUS_PENDING,
                   target=100, actual=50):
    penalty = PendingPenalty(
        user_id=member.id,
        group_id=member.group_id,
        date=penalty_date,
        target_points=target,
        actual_points=actual,
        penalty_amount=amount,
        status=status,
        created_at=deadline - timedelta(hours=24),
        deadline=deadline
    )
    db.add(penalty)
    db.commit()
    db.refresh(penalty)
    return penalty


def add_push_subscription(db, member, endpoint="https://push.example.com/abc"):
    sub = PushSubscription(user_id=member.id, subscription=json.dumps({"endpoint": endpoint, "keys": {}}))
    db.add(sub)
    db.commit()
    return sub


def start_date_for(target_date, days_since_start):
    """Group start date that puts target_date at the given elapsed-day count"""
    return target_date - timedelta(days=days_since_start)


def noon(target_date):
    return datetime.combine(target_date, datetime.min.time()) + timedelta(hours=12)
