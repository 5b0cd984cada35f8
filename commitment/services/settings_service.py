"""
Group settings resolution.
A dedicated group_settings row wins; legacy per-group columns are the fallback.
"""
from dataclasses import dataclass, field
from typing import List
from sqlalchemy.orm import Session

from commitment.models import Group
from commitment.repositories.group_repository import GroupSettingsRepository
from commitment.constants import DEFAULT_PENALTY_AMOUNT


@dataclass
class ResolvedGroupSettings:
    rest_days: List[int] = field(default_factory=list)
    recovery_days: List[int] = field(default_factory=list)
    penalty_amount: int = DEFAULT_PENALTY_AMOUNT
    from_settings_row: bool = False


def resolve_group_settings(db: Session, group: Group) -> ResolvedGroupSettings:
    """
    Resolve rest days, recovery days and penalty amount for a group.

    Missing settings row is recovered locally from the legacy columns
    (rest_day_1/rest_day_2, penalty_amount); recovery days default to none.
    """
    settings = GroupSettingsRepository.get_by_group(db, group.id)

    if settings is None:
        return ResolvedGroupSettings(
            rest_days=group.legacy_rest_days(),
            recovery_days=[],
            penalty_amount=group.penalty_amount or DEFAULT_PENALTY_AMOUNT,
            from_settings_row=False
        )

    rest_days = settings.rest_day_list() if settings.rest_days is not None else group.legacy_rest_days()
    return ResolvedGroupSettings(
        rest_days=rest_days,
        recovery_days=settings.recovery_day_list(),
        penalty_amount=settings.penalty_amount or group.penalty_amount or DEFAULT_PENALTY_AMOUNT,
        from_settings_row=True
    )
