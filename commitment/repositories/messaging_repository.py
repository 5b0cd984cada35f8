"""
Messaging repository - Data access layer for chat messages and push subscriptions.
"""
from typing import List
from sqlalchemy.orm import Session

from commitment.models import ChatMessage, PushSubscription


class ChatMessageRepository:
    """Repository for ChatMessage data access"""

    @staticmethod
    def create(db: Session, message: ChatMessage) -> ChatMessage:
        """Create new chat message"""
        db.add(message)
        db.commit()
        db.refresh(message)
        return message


class PushSubscriptionRepository:
    """Repository for PushSubscription data access"""

    @staticmethod
    def get_for_user(db: Session, user_id: int) -> List[PushSubscription]:
        """Get all push subscriptions of a member"""
        return db.query(PushSubscription).filter(PushSubscription.user_id == user_id).all()
