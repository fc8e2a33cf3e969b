"""Application layer interfaces."""
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from core.domain.audit import AuditEvent
    from core.domain.notifications import NotificationPayload


class IAuditSink(ABC):
    """
    Interface for audit trail persistence.

    Called once per successful workflow completion. Implementations
    signal failure by raising; the workflow engine logs and continues.
    """

    @abstractmethod
    async def record(self, events: List["AuditEvent"]) -> List[str]:
        """
        Persist audit events.

        Args:
            events: Audit events to persist

        Returns:
            IDs of the stored events

        Raises:
            Exception: If the events could not be stored
        """
        pass


class INotificationDispatcher(ABC):
    """
    Interface for notification dispatch.

    This interface defines the contract for sending notifications,
    allowing different implementations (Slack, Telegram, in-app, etc.)
    """

    @abstractmethod
    async def send(self, payloads: List["NotificationPayload"]) -> List[str]:
        """
        Dispatch notification payloads.

        Args:
            payloads: Notifications to deliver

        Returns:
            IDs of the dispatched notifications

        Raises:
            Exception: If dispatch failed
        """
        pass


__all__ = ["IAuditSink", "INotificationDispatcher"]
