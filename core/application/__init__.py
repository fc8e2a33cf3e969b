"""Application layer - interfaces and lifecycle workflows."""

from .interfaces import IAuditSink, INotificationDispatcher

__all__ = [
    "IAuditSink",
    "INotificationDispatcher",
]
