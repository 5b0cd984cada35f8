"""
Member outcome classification.
Runs an ordered chain of guards over one member's day; the first guard that
returns an outcome wins.
"""
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Callable, Dict, List, Optional

from commitment.models import ExerciseLog, Member, RecoveryDayActivation
from commitment.services.flex_rest_service import FlexRestService
from commitment.services.points_service import PointsService
from commitment.services.settings_service import ResolvedGroupSettings
from commitment.services.target_service import TargetService
from commitment.constants import (
    RECOVERY_DAY_TARGET_MINUTES,
    REASON_SICK,
    REASON_REST_DAY,
    REASON_RECOVERY_COMPLETE,
    REASON_MET_TARGET,
    REASON_FLEX_REST,
    WEEK_MODE_SANE,
)


class OutcomeKind(str, Enum):
    SICK = "sick"
    RECOVERY_COMPLETE = "recovery_complete"
    REST_DAY = "rest_day"
    FLEX_REST = "flex_rest"
    MET_TARGET = "met_target"
    MISSED_TARGET = "missed_target"


@dataclass
class MemberOutcome:
    """Result of classifying one member for one day"""
    kind: OutcomeKind
    reason: Optional[str] = None
    target: int = 0
    actual: int = 0
    penalty_created: bool = False

    @property
    def needs_penalty(self) -> bool:
        return self.kind == OutcomeKind.MISSED_TARGET

    @property
    def is_exempt(self) -> bool:
        return self.kind in (
            OutcomeKind.SICK,
            OutcomeKind.RECOVERY_COMPLETE,
            OutcomeKind.REST_DAY,
            OutcomeKind.FLEX_REST,
        )


@dataclass
class MemberContext:
    """Everything the guards need to classify one member's day"""
    member: Member
    evaluation_date: date
    days_since_start: int
    day_of_week: int
    settings: ResolvedGroupSettings
    logs: List[ExerciseLog] = field(default_factory=list)
    prior_day_logs: List[ExerciseLog] = field(default_factory=list)
    exercise_types: Dict[str, str] = field(default_factory=dict)
    has_sick_record: bool = False
    recovery_day: Optional[RecoveryDayActivation] = None

    @property
    def is_rest_day(self) -> bool:
        return self.day_of_week in self.settings.rest_days


Guard = Callable[[MemberContext], Optional[MemberOutcome]]


def sick_guard(ctx: MemberContext) -> Optional[MemberOutcome]:
    """Historical sick record or current flag"""
    if ctx.member.is_sick_mode or ctx.has_sick_record:
        return MemberOutcome(OutcomeKind.SICK, REASON_SICK)
    return None


def recovery_complete_guard(ctx: MemberContext) -> Optional[MemberOutcome]:
    activation = ctx.recovery_day
    if activation is None:
        return None
    minutes = activation.recovery_minutes or 0
    if activation.is_complete or minutes >= RECOVERY_DAY_TARGET_MINUTES:
        return MemberOutcome(
            OutcomeKind.RECOVERY_COMPLETE,
            REASON_RECOVERY_COMPLETE,
            target=RECOVERY_DAY_TARGET_MINUTES,
            actual=minutes
        )
    return None


def rest_day_guard(ctx: MemberContext) -> Optional[MemberOutcome]:
    """
    Rest days exempt members without the flex flag outright.

    Flagged members are exempt only if the prior day reached double its
    target; otherwise they fall through to the doubled rest-day target.
    """
    if not ctx.is_rest_day:
        return None
    if not ctx.member.has_flexible_rest_day:
        return MemberOutcome(OutcomeKind.REST_DAY, REASON_REST_DAY)

    flex = FlexRestService.evaluate(
        days_since_start=ctx.days_since_start,
        rest_day_of_week=ctx.day_of_week,
        rest_days=ctx.settings.rest_days,
        recovery_days=ctx.settings.recovery_days,
        prior_day_logs=ctx.prior_day_logs,
        exercise_types=ctx.exercise_types
    )
    if flex.qualified:
        return MemberOutcome(
            OutcomeKind.FLEX_REST,
            REASON_FLEX_REST,
            target=flex.required_points,
            actual=flex.prior_points
        )
    return None


def recovery_incomplete_guard(ctx: MemberContext) -> Optional[MemberOutcome]:
    """An activated but unfinished recovery day is judged on minutes alone"""
    if ctx.recovery_day is None:
        return None
    result = PointsService.aggregate(0, ctx.logs, ctx.exercise_types, ctx.recovery_day)
    return _judge(result.target, result.effective_points)


def standard_guard(ctx: MemberContext) -> Optional[MemberOutcome]:
    """Penalty evaluation always uses sane mode"""
    target = TargetService.calculate_daily_target(
        days_since_start=ctx.days_since_start,
        week_mode=WEEK_MODE_SANE,
        rest_days=ctx.settings.rest_days,
        recovery_days=ctx.settings.recovery_days,
        day_of_week=ctx.day_of_week
    )
    result = PointsService.aggregate(target, ctx.logs, ctx.exercise_types)
    return _judge(result.target, result.effective_points)


def _judge(target: int, actual: int) -> MemberOutcome:
    if actual >= target:
        return MemberOutcome(OutcomeKind.MET_TARGET, REASON_MET_TARGET, target=target, actual=actual)
    return MemberOutcome(OutcomeKind.MISSED_TARGET, target=target, actual=actual)


GUARD_CHAIN: List[Guard] = [
    sick_guard,
    recovery_complete_guard,
    rest_day_guard,
    recovery_incomplete_guard,
    standard_guard,
]


def classify_member(ctx: MemberContext, guards: Optional[List[Guard]] = None) -> MemberOutcome:
    """Run the guard chain; the first outcome returned wins"""
    for guard in guards or GUARD_CHAIN:
        outcome = guard(ctx)
        if outcome is not None:
            return outcome
    # standard_guard always returns
    raise RuntimeError("Guard chain produced no outcome")
