"""
Member repository - Data access layer for member profiles.
"""
from datetime import date
from typing import List, Optional
from sqlalchemy.orm import Session

from commitment.models import Member


class MemberRepository:
    """Repository for Member data access"""

    @staticmethod
    def get_by_id(db: Session, member_id: int) -> Optional[Member]:
        """Get member by ID"""
        return db.query(Member).filter(Member.id == member_id).first()

    @staticmethod
    def get_by_token(db: Session, token: str) -> Optional[Member]:
        """Get member by session token"""
        return db.query(Member).filter(Member.api_token == token).first()

    @staticmethod
    def get_by_group(db: Session, group_id: int) -> List[Member]:
        """Get all members of a group"""
        return db.query(Member).filter(Member.group_id == group_id).order_by(Member.id).all()

    @staticmethod
    def increment_penalty_owed(db: Session, member_id: int, amount: int) -> int:
        """
        Add amount to the member's running balance.

        The increment happens in SQL so concurrent sweeps cannot lose an update.
        Does not commit.

        Returns:
            Number of rows updated
        """
        return db.query(Member).filter(Member.id == member_id).update(
            {Member.total_penalty_owed: Member.total_penalty_owed + amount},
            synchronize_session=False
        )

    @staticmethod
    def mark_checked(db: Session, member: Member, checked_date: date) -> None:
        """Record the last date the sweep evaluated this member. Does not commit."""
        if member.last_penalty_check is None or member.last_penalty_check < checked_date:
            member.last_penalty_check = checked_date
