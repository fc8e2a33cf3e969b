"""
Mock Notification Dispatcher Implementation.

This simulates notifications for testing and demos.
"""
from typing import List, Optional
import logging
import uuid

from core.application.interfaces import INotificationDispatcher
from core.domain.notifications import NotificationPayload, render_notification


logger = logging.getLogger(__name__)


class MockNotificationDispatcher(INotificationDispatcher):
    """
    Mock implementation of notification dispatcher.

    Logs notifications instead of actually sending them.
    Useful for testing and demos.
    """

    def __init__(self, fail_with: Optional[Exception] = None):
        """
        Initialize mock notification dispatcher.

        Args:
            fail_with: Exception raised by every ``send`` call (for testing)
        """
        self.notifications_sent: List[NotificationPayload] = []
        self.fail_with = fail_with
        logger.info("MockNotificationDispatcher initialized (console logging)")

    async def send(self, payloads: List[NotificationPayload]) -> List[str]:
        """
        Simulate dispatch of each payload.

        Args:
            payloads: Notifications to deliver

        Returns:
            Generated notification IDs
        """
        if self.fail_with is not None:
            raise self.fail_with

        ids = []
        for payload in payloads:
            rendered = render_notification(payload)
            self.notifications_sent.append(payload)
            ids.append(f"notif_{uuid.uuid4().hex[:12]}")
            logger.info(
                f"NOTIFICATION {payload.type.value} -> "
                f"{payload.recipient_kind.value}:{payload.recipient_id} "
                f"[{', '.join(c.value for c in payload.channels)}]: {rendered.title}"
            )
        return ids

    def get_notifications(self) -> List[NotificationPayload]:
        """Get all sent notifications (for testing)."""
        return self.notifications_sent

    def clear(self) -> None:
        """Clear notifications (for testing)."""
        self.notifications_sent.clear()
