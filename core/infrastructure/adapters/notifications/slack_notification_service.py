"""
Slack Notification Dispatcher Implementation.

Sends notifications via Slack Webhook API.
"""
from typing import List
import logging
import aiohttp

from core.application.interfaces import INotificationDispatcher
from core.domain.notifications import NotificationPayload, NotificationPriority, render_notification
from core.settings.modules.integrations_settings import SlackSettings


logger = logging.getLogger(__name__)


_COLORS = {
    NotificationPriority.LOW: "good",
    NotificationPriority.NORMAL: "warning",
    NotificationPriority.HIGH: "danger",
}


class SlackNotificationDispatcher(INotificationDispatcher):
    """
    Slack implementation of notification dispatcher.

    Posts one webhook message per payload.
    """

    def __init__(self, settings: SlackSettings):
        """
        Initialize Slack notification dispatcher.

        Args:
            settings: Slack settings with webhook URL
        """
        self.settings = settings
        self.webhook_url = settings.webhook_url
        self.prefix = settings.prefix
        logger.info("SlackNotificationDispatcher initialized")

    def format_message(self, payload: NotificationPayload) -> dict:
        """Build the webhook body for a payload."""
        rendered = render_notification(payload)
        text = (
            f"{self.prefix} *{rendered.title}*\n"
            f"{rendered.body}\n"
            f"Recipient: `{payload.recipient_kind.value}:{payload.recipient_id}`"
        )
        return {
            "attachments": [
                {
                    "color": _COLORS[payload.priority],
                    "text": text,
                    "mrkdwn_in": ["text"],
                }
            ]
        }

    async def send(self, payloads: List[NotificationPayload]) -> List[str]:
        """
        Send payloads to Slack.

        Raises:
            aiohttp.ClientError: If the webhook is unreachable
            RuntimeError: If Slack rejects a message
        """
        if not self.settings.enabled or not self.webhook_url:
            logger.warning("Slack webhook_url not configured, skipping notification")
            return []

        ids: List[str] = []
        async with aiohttp.ClientSession() as session:
            for payload in payloads:
                async with session.post(self.webhook_url, json=self.format_message(payload)) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise RuntimeError(f"Slack API error: {response.status} - {error_text}")
                ids.append(f"slack:{payload.type.value}:{payload.recipient_id}")

        logger.info(f"Slack notification(s) sent: {len(ids)}")
        return ids
