"""
Group chat sink for system messages.
"""
import logging
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from commitment.models import ChatMessage
from commitment.repositories.messaging_repository import ChatMessageRepository
from commitment.constants import MESSAGE_TYPE_TEXT

logger = logging.getLogger("commitment.messaging")


class ChatMessagingService:
    """Writes system messages into a group's chat"""

    def __init__(self, db: Session):
        self.db = db
        self.message_repo = ChatMessageRepository()

    def post_system_message(self, group_id: int, message: str) -> bool:
        """
        Post a system message to a group chat.

        Best-effort: a failed write is logged and reported, never raised.

        Returns:
            True if the message was stored
        """
        try:
            self.message_repo.create(self.db, ChatMessage(
                group_id=group_id,
                user_id=None,
                message=message,
                message_type=MESSAGE_TYPE_TEXT,
                is_system_message=True
            ))
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to post system message to group {group_id}: {e}")
            return False
        return True
