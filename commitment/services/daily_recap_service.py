"""
Daily recap service.
The once-a-day sweep: classifies every grouped member for the evaluated day,
creates penalties for missed targets, auto-accepts expired penalties and
posts a summary to each group's chat.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Set
from sqlalchemy.orm import Session

from commitment.models import ExerciseLog, Group, Member, PendingPenalty, RecoveryDayActivation
from commitment.repositories.group_repository import GroupRepository
from commitment.repositories.member_repository import MemberRepository
from commitment.repositories.log_repository import ExerciseLogRepository, ExerciseRepository
from commitment.repositories.penalty_repository import PendingPenaltyRepository
from commitment.repositories.recovery_repository import RecoveryDayRepository, SickRecordRepository
from commitment.services.classification_service import (
    MemberContext, MemberOutcome, OutcomeKind, classify_member
)
from commitment.services.date_service import DateService
from commitment.services.messaging_service import ChatMessagingService
from commitment.services.penalty_service import PenaltyService
from commitment.services.settings_service import ResolvedGroupSettings, resolve_group_settings
from commitment.services.target_service import round_half_up
from commitment.exceptions import (
    GroupNotFoundException, MemberNotInGroupException, GroupConfigurationException
)

logger = logging.getLogger("commitment.daily_recap")


@dataclass
class GroupDayState:
    """Group data for one evaluated day, loaded once and shared by all members"""
    group: Group
    evaluation_date: date
    settings: ResolvedGroupSettings
    members: List[Member]
    days_since_start: int
    day_of_week: int
    logs: Dict[int, List[ExerciseLog]] = field(default_factory=dict)
    prior_day_logs: Dict[int, List[ExerciseLog]] = field(default_factory=dict)
    exercise_types: Dict[str, str] = field(default_factory=dict)
    penalized_user_ids: Set[int] = field(default_factory=set)
    sick_user_ids: Set[int] = field(default_factory=set)
    recovery_days: Dict[int, RecoveryDayActivation] = field(default_factory=dict)

    def context_for(self, member: Member) -> MemberContext:
        return MemberContext(
            member=member,
            evaluation_date=self.evaluation_date,
            days_since_start=self.days_since_start,
            day_of_week=self.day_of_week,
            settings=self.settings,
            logs=self.logs.get(member.id, []),
            prior_day_logs=self.prior_day_logs.get(member.id, []),
            exercise_types=self.exercise_types,
            has_sick_record=member.id in self.sick_user_ids,
            recovery_day=self.recovery_days.get(member.id)
        )


@dataclass
class MemberCheckResult:
    """Outcome of checking one member on demand"""
    penalty_exists: bool = False
    penalty_created: bool = False
    penalty: Optional[PendingPenalty] = None
    outcome: Optional[MemberOutcome] = None


class DailyRecapService:
    """Service for the daily penalty sweep"""

    def __init__(
        self,
        db: Session,
        messaging: Optional[ChatMessagingService] = None,
        penalty_service: Optional[PenaltyService] = None
    ):
        self.db = db
        self.messaging = messaging or ChatMessagingService(db)
        self.penalty_service = penalty_service or PenaltyService(db, self.messaging)
        self.group_repo = GroupRepository()
        self.member_repo = MemberRepository()
        self.log_repo = ExerciseLogRepository()
        self.exercise_repo = ExerciseRepository()
        self.penalty_repo = PendingPenaltyRepository()
        self.recovery_repo = RecoveryDayRepository()
        self.sick_repo = SickRecordRepository()
        self.date_service = DateService()

    def run(self, target_date: Optional[date] = None, now: Optional[datetime] = None) -> dict:
        """
        Run the sweep for every group with members.

        Groups are classified first. Expired penalties are then accepted
        across all groups in one pass, including groups that failed or no
        longer have members, and each classified group gets its summary.

        Safe to run more than once for the same date: existing penalties are
        never duplicated and accepted penalties are never posted twice.

        Args:
            target_date: Day to evaluate (yesterday on the server clock by default)
            now: Reference time for deadlines

        Returns:
            Dictionary with date, groupsProcessed, penaltiesAutoAccepted and per-group results
        """
        now = now or datetime.now()
        target_date = target_date or self.date_service.get_yesterday(now)
        logger.info(f"Starting daily recap for {target_date} (day {self.date_service.weekday_index(target_date)})")

        groups = self.group_repo.get_with_members(self.db)
        results = []
        processed = []
        for group in groups:
            group_id, group_name = group.id, group.name
            try:
                result = self.process_group(group, target_date, now)
            except Exception as e:
                self.db.rollback()
                logger.error(f"Error processing group {group_name} ({group_id}): {e}")
                results.append({"groupId": group_id, "groupName": group_name, "error": str(e)})
                continue
            processed.append(result)
            results.append(result)

        accepted = self.penalty_service.auto_accept_expired_by_group(now)
        for result in processed:
            result["penaltiesAutoAccepted"] = accepted.get(result["groupId"], 0)
            self._post_summary(result, target_date)

        logger.info(f"Daily recap completed for {target_date}: {len(groups)} groups")
        return {
            "message": "Daily recap completed",
            "date": target_date.isoformat(),
            "groupsProcessed": len(groups),
            "penaltiesAutoAccepted": sum(accepted.values()),
            "results": results,
        }

    def process_group(self, group: Group, target_date: date, now: datetime) -> dict:
        """Classify every member of one group"""
        state = self._load_group_day(group, target_date)
        result = self._empty_group_result(group)

        for member in state.members:
            username = member.username
            try:
                outcome = self._evaluate(state, member, now)
                self._record_outcome(result, username, outcome)
                self.member_repo.mark_checked(self.db, member, target_date)
                self.db.commit()
            except Exception as e:
                self.db.rollback()
                logger.error(f"Error evaluating {username} in group {group.name}: {e}")
                result["errors"].append(f"{username}: {e}")

        return result

    def _post_summary(self, result: dict, target_date: date) -> None:
        result["summaryPosted"] = self.messaging.post_system_message(
            result["groupId"], self.build_summary_message(result, target_date)
        )
        logger.info(
            f"Group {result['groupName']}: {result['completed']} completed, {result['exempt']} exempt, "
            f"{result['penalized']} penalized, {result['penaltiesCreated']} created, "
            f"{result['penaltiesAutoAccepted']} auto-accepted"
        )

    def check_member(self, member: Member, target_date: date, now: Optional[datetime] = None) -> MemberCheckResult:
        """
        Evaluate a single member for a date, as the app does when it opens.

        Raises:
            MemberNotInGroupException: Member has no group
            GroupNotFoundException: Member's group does not exist
            GroupConfigurationException: Group has no start date
        """
        now = now or datetime.now()
        if member.group_id is None:
            raise MemberNotInGroupException(member.id)

        group = self.group_repo.get_by_id(self.db, member.group_id)
        if not group:
            raise GroupNotFoundException(member.group_id)

        existing = self.penalty_repo.get_for_user_and_date(self.db, member.id, target_date)
        if existing:
            return MemberCheckResult(penalty_exists=True, penalty=existing)

        state = self._load_group_day(group, target_date, [member])
        outcome = classify_member(state.context_for(member))
        self._record_sick_day(member, outcome, target_date)
        if not outcome.needs_penalty:
            return MemberCheckResult(outcome=outcome)

        penalty, created = self.penalty_service.create_penalty(
            member, group.id, target_date, outcome.target, outcome.actual,
            state.settings.penalty_amount, now
        )
        return MemberCheckResult(
            penalty_exists=not created,
            penalty_created=created,
            penalty=penalty,
            outcome=outcome
        )

    @staticmethod
    def build_summary_message(result: dict, target_date: date) -> str:
        """Build the chat recap for one group"""
        lines = [f"📊 **Daily Recap - {target_date.strftime('%A, %b')} {target_date.day}**", ""]

        sections = [
            (f"✅ **Made It** ({len(result['completedMembers'])})", result["completedMembers"]),
            ("🧘 **Recovery Day**", result["recoveryDayMembers"]),
            ("😴 **Rest Day**", result["restDayMembers"]),
            ("⚡ **Flex Rest**", result["flexRestMembers"]),
            ("🤒 **Sick**", result["sickMembers"]),
        ]
        for title, usernames in sections:
            if usernames:
                lines.append(title)
                lines.extend(f"• {u}" for u in usernames)
                lines.append("")

        failed = result["failedMembers"]
        if failed:
            lines.append(f"⚠️ **Pending Response** ({len(failed)})")
            lines.extend(f"• {m['username']} ({m['actual']}/{m['target']} pts)" for m in failed)
            lines.append("")

        if result["penaltiesCreated"] > 0 or result["penaltiesAutoAccepted"] > 0:
            stats = f"📌 {result['penaltiesCreated']} new penalties created"
            if result["penaltiesAutoAccepted"] > 0:
                stats += f", {result['penaltiesAutoAccepted']} auto-accepted"
            lines.append(stats)

        successful = result["completed"] + result["exempt"]
        total = successful + result["penalized"]
        success_rate = round_half_up(successful / total * 100) if total > 0 else 0
        lines.append("")
        lines.append(f"💪 Group success rate: {success_rate}%")
        return "\n".join(lines)

    def _evaluate(self, state: GroupDayState, member: Member, now: datetime) -> MemberOutcome:
        outcome = classify_member(state.context_for(member))
        self._record_sick_day(member, outcome, state.evaluation_date)

        if outcome.needs_penalty and member.id not in state.penalized_user_ids:
            _, created = self.penalty_service.create_penalty(
                member, state.group.id, state.evaluation_date,
                outcome.target, outcome.actual, state.settings.penalty_amount, now
            )
            state.penalized_user_ids.add(member.id)
            if created:
                outcome.penalty_created = True
        return outcome

    def _record_sick_day(self, member: Member, outcome: MemberOutcome, sick_date: date) -> None:
        """Keep a dated record for members exempted by the current sick flag"""
        if outcome.kind == OutcomeKind.SICK and member.is_sick_mode:
            self.sick_repo.ensure(self.db, member.id, sick_date)

    def _load_group_day(
        self,
        group: Group,
        target_date: date,
        members: Optional[List[Member]] = None
    ) -> GroupDayState:
        if group.start_date is None:
            raise GroupConfigurationException(group.id, "start_date is not set")

        if members is None:
            members = self.member_repo.get_by_group(self.db, group.id)
        member_ids = [m.id for m in members]

        return GroupDayState(
            group=group,
            evaluation_date=target_date,
            settings=resolve_group_settings(self.db, group),
            members=members,
            days_since_start=self.date_service.days_since_start(group.start_date, target_date),
            day_of_week=self.date_service.weekday_index(target_date),
            logs=self.log_repo.get_for_users(self.db, member_ids, target_date),
            prior_day_logs=self.log_repo.get_for_users(self.db, member_ids, target_date - timedelta(days=1)),
            exercise_types=self.exercise_repo.get_type_map(self.db),
            penalized_user_ids=self.penalty_repo.get_user_ids_for_date(self.db, group.id, target_date),
            sick_user_ids=self.sick_repo.get_user_ids_for_date(self.db, member_ids, target_date),
            recovery_days=self.recovery_repo.get_map_for_date(self.db, member_ids, target_date)
        )

    @staticmethod
    def _empty_group_result(group: Group) -> dict:
        return {
            "groupId": group.id,
            "groupName": group.name,
            "completedMembers": [],
            "restDayMembers": [],
            "flexRestMembers": [],
            "sickMembers": [],
            "recoveryDayMembers": [],
            "failedMembers": [],
            "penaltiesCreated": 0,
            "penaltiesAutoAccepted": 0,
            "exempt": 0,
            "completed": 0,
            "penalized": 0,
            "errors": [],
            "summaryPosted": False,
        }

    @staticmethod
    def _record_outcome(result: dict, username: str, outcome: MemberOutcome) -> None:
        buckets = {
            OutcomeKind.SICK: "sickMembers",
            OutcomeKind.RECOVERY_COMPLETE: "recoveryDayMembers",
            OutcomeKind.REST_DAY: "restDayMembers",
            OutcomeKind.FLEX_REST: "flexRestMembers",
            OutcomeKind.MET_TARGET: "completedMembers",
        }
        if outcome.needs_penalty:
            result["failedMembers"].append({
                "username": username,
                "actual": outcome.actual,
                "target": outcome.target,
            })
            result["penalized"] += 1
            if outcome.penalty_created:
                result["penaltiesCreated"] += 1
            return

        result[buckets[outcome.kind]].append(username)
        if outcome.is_exempt:
            result["exempt"] += 1
        else:
            result["completed"] += 1
