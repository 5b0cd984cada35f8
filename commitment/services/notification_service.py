"""
Push notification dispatch.
Hands web-push payloads to an external push gateway over HTTP.
"""
import json
import logging
from typing import Optional
import requests
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from commitment import config
from commitment.models import PendingPenalty
from commitment.repositories.messaging_repository import PushSubscriptionRepository
from commitment.constants import (
    PENALTY_NOTIFICATION_TITLE,
    PENALTY_NOTIFICATION_ICON,
    PENALTY_NOTIFICATION_TAG,
    PENALTY_NOTIFICATION_URL,
    PUSH_TTL_SECONDS,
)

logger = logging.getLogger("commitment.notifications")


class NotificationService:
    """Service for member push notifications"""

    def __init__(self, db: Session, gateway_url: Optional[str] = None, timeout: Optional[float] = None):
        self.db = db
        self.subscription_repo = PushSubscriptionRepository()
        self.gateway_url = gateway_url if gateway_url is not None else config.PUSH_GATEWAY_URL
        self.timeout = timeout if timeout is not None else config.PUSH_GATEWAY_TIMEOUT

    @staticmethod
    def build_penalty_payload(penalty: PendingPenalty) -> dict:
        """Build the notification shown when a penalty is created"""
        return {
            "title": PENALTY_NOTIFICATION_TITLE,
            "body": (
                f"You missed yesterday's target ({penalty.actual_points}/{penalty.target_points} pts). "
                f"Respond within 24h or penalty auto-accepts."
            ),
            "icon": PENALTY_NOTIFICATION_ICON,
            "badge": PENALTY_NOTIFICATION_ICON,
            "tag": PENALTY_NOTIFICATION_TAG,
            "requireInteraction": True,
            "data": {
                "type": PENALTY_NOTIFICATION_TAG,
                "url": PENALTY_NOTIFICATION_URL,
                "penaltyId": penalty.id,
            },
        }

    def notify_penalty_created(self, penalty: PendingPenalty) -> dict:
        """
        Send the penalty alert to every subscription of the penalized member.

        Best-effort: gateway errors are logged and counted, never raised.

        Returns:
            Dictionary with sent/failed counts
        """
        result = {"sent": 0, "failed": 0}

        if not self.gateway_url:
            logger.warning("PUSH_GATEWAY_URL is not configured, skipping penalty notification")
            return result

        try:
            subscriptions = self.subscription_repo.get_for_user(self.db, penalty.user_id)
        except SQLAlchemyError as e:
            logger.error(f"Error fetching push subscriptions for member {penalty.user_id}: {e}")
            return result
        if not subscriptions:
            logger.info(f"No push subscriptions found for member {penalty.user_id}")
            return result

        payload = self.build_penalty_payload(penalty)
        for sub in subscriptions:
            if self._send(sub.subscription, payload):
                result["sent"] += 1
            else:
                result["failed"] += 1

        logger.info(
            f"Penalty {penalty.id} notification results: "
            f"{result['sent']} sent, {result['failed']} failed"
        )
        return result

    def _send(self, raw_subscription: str, payload: dict) -> bool:
        try:
            subscription = json.loads(raw_subscription)
        except (json.JSONDecodeError, TypeError) as e:
            logger.error(f"Invalid push subscription: {e}")
            return False

        try:
            response = requests.post(
                self.gateway_url,
                json={
                    "subscription": subscription,
                    "payload": payload,
                    "options": {"TTL": PUSH_TTL_SECONDS, "urgency": "high"},
                },
                timeout=self.timeout
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Failed to send push notification: {e}")
            return False
        return True
