"""
Group repository - Data access layer for groups and their settings.
"""
from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.orm import Session

from commitment.models import Group, GroupSettings, Member


class GroupRepository:
    """Repository for Group data access"""

    @staticmethod
    def get_by_id(db: Session, group_id: int) -> Optional[Group]:
        """Get group by ID"""
        return db.query(Group).filter(Group.id == group_id).first()

    @staticmethod
    def get_with_members(db: Session) -> List[Group]:
        """Get groups that have at least one member"""
        return db.query(Group).filter(
            Group.id.in_(select(Member.group_id).where(Member.group_id.isnot(None)))
        ).order_by(Group.id).all()


class GroupSettingsRepository:
    """Repository for GroupSettings data access"""

    @staticmethod
    def get_by_group(db: Session, group_id: int) -> Optional[GroupSettings]:
        """Get settings row for a group (may not exist)"""
        return db.query(GroupSettings).filter(GroupSettings.group_id == group_id).first()
