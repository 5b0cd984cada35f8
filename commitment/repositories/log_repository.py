"""
Exercise log repository - Data access layer for logged exercise and categories.
"""
from datetime import date
from typing import Dict, List
from sqlalchemy.orm import Session

from commitment.models import Exercise, ExerciseLog


class ExerciseLogRepository:
    """Repository for ExerciseLog data access (read-only)"""

    @staticmethod
    def get_for_user(db: Session, user_id: int, log_date: date) -> List[ExerciseLog]:
        """Get one member's logs for a date"""
        return db.query(ExerciseLog).filter(
            ExerciseLog.user_id == user_id,
            ExerciseLog.date == log_date
        ).all()

    @staticmethod
    def get_for_users(db: Session, user_ids: List[int], log_date: date) -> Dict[int, List[ExerciseLog]]:
        """Get logs for a date grouped by member ID"""
        grouped: Dict[int, List[ExerciseLog]] = {user_id: [] for user_id in user_ids}
        if not user_ids:
            return grouped

        logs = db.query(ExerciseLog).filter(
            ExerciseLog.date == log_date,
            ExerciseLog.user_id.in_(user_ids)
        ).all()
        for log in logs:
            grouped.setdefault(log.user_id, []).append(log)
        return grouped


class ExerciseRepository:
    """Repository for the exercise category lookup"""

    @staticmethod
    def get_type_map(db: Session) -> Dict[str, str]:
        """Map exercise ID to its category"""
        return {exercise_id: exercise_type for exercise_id, exercise_type in db.query(Exercise.id, Exercise.type).all()}
