"""
Telegram Notification Dispatcher Implementation.

Sends notifications via Telegram Bot API.
"""
from typing import List
import logging
import aiohttp

from core.application.interfaces import INotificationDispatcher
from core.domain.notifications import NotificationPayload, NotificationPriority, render_notification
from core.settings.modules.integrations_settings import TelegramSettings


logger = logging.getLogger(__name__)


_PRIORITY_RANK = {
    NotificationPriority.LOW: 0,
    NotificationPriority.NORMAL: 1,
    NotificationPriority.HIGH: 2,
}


class TelegramNotificationDispatcher(INotificationDispatcher):
    """
    Telegram implementation of notification dispatcher.

    Forwards payloads at or above ``settings.min_priority`` to one chat.
    """

    def __init__(self, settings: TelegramSettings):
        """
        Initialize Telegram notification dispatcher.

        Args:
            settings: Telegram settings with bot token and chat ID
        """
        self.settings = settings
        self.chat_id = settings.chat_id
        self.prefix = settings.prefix
        self.min_priority = NotificationPriority(settings.min_priority)
        self.api_url = f"{settings.api_base_url}/bot{settings.token}/sendMessage"
        logger.info("TelegramNotificationDispatcher initialized")

    def format_message(self, payload: NotificationPayload) -> str:
        rendered = render_notification(payload)
        emoji = {"high": "🔴", "normal": "🟡", "low": "🟢"}[payload.priority.value]
        return f"{self.prefix} {emoji} *{rendered.title}*\n{rendered.body}"

    async def send(self, payloads: List[NotificationPayload]) -> List[str]:
        """
        Send payloads to Telegram.

        Raises:
            aiohttp.ClientError: If the Bot API is unreachable
            RuntimeError: If Telegram rejects a message
        """
        if not self.settings.enabled or not self.settings.token or not self.chat_id:
            logger.warning("Telegram bot_token or chat_id not configured, skipping notification")
            return []

        selected = [
            p for p in payloads
            if _PRIORITY_RANK[p.priority] >= _PRIORITY_RANK[self.min_priority]
        ]
        if len(selected) < len(payloads):
            logger.debug(
                f"Skipping {len(payloads) - len(selected)} notification(s) below {self.min_priority.value}"
            )

        ids: List[str] = []
        async with aiohttp.ClientSession() as session:
            for payload in selected:
                body = {
                    "chat_id": self.chat_id,
                    "text": self.format_message(payload),
                    "parse_mode": "Markdown",
                }
                async with session.post(self.api_url, json=body) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise RuntimeError(f"Telegram API error: {response.status} - {error_text}")
                    data = await response.json()
                ids.append(f"telegram:{data.get('result', {}).get('message_id', payload.recipient_id)}")

        logger.info(f"Telegram notification(s) sent: {len(ids)}")
        return ids
