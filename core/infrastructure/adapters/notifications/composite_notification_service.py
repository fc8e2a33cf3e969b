"""
Composite Notification Dispatcher.

Fans payloads out to several channel dispatchers.
"""
from typing import List, Sequence
import logging

from core.application.interfaces import INotificationDispatcher
from core.domain.notifications import NotificationPayload


logger = logging.getLogger(__name__)


class CompositeNotificationDispatcher(INotificationDispatcher):
    """
    Sends every payload through each configured dispatcher.

    A failing channel is logged and the others still run; ``send``
    raises only when every channel failed.
    """

    def __init__(self, dispatchers: Sequence[INotificationDispatcher]):
        self.dispatchers = list(dispatchers)

    async def send(self, payloads: List[NotificationPayload]) -> List[str]:
        ids: List[str] = []
        errors: List[Exception] = []

        for dispatcher in self.dispatchers:
            try:
                ids.extend(await dispatcher.send(payloads))
            except Exception as e:
                logger.error(
                    f"Notification channel {type(dispatcher).__name__} failed: {e}",
                    exc_info=True,
                )
                errors.append(e)

        if self.dispatchers and len(errors) == len(self.dispatchers):
            raise RuntimeError(f"All notification channels failed: {errors[-1]}") from errors[-1]
        return ids
