"""
In-Memory Audit Sink Implementation.

Keeps audit events in a list for testing and demos.
"""
from typing import List, Optional
import logging

from core.application.interfaces import IAuditSink
from core.domain.audit import AuditEvent


logger = logging.getLogger(__name__)


class AuditSinkError(RuntimeError):
    """Raised when the sink is configured to fail."""


class InMemoryAuditSink(IAuditSink):
    """
    In-memory implementation of IAuditSink.

    ``fail_with`` forces every ``record`` call to raise, which lets
    tests exercise the engine's best-effort handling.
    """

    def __init__(self, fail_with: Optional[Exception] = None):
        self.events: List[AuditEvent] = []
        self.fail_with = fail_with
        self.calls = 0

    async def record(self, events: List[AuditEvent]) -> List[str]:
        self.calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        self.events.extend(events)
        logger.info(f"Recorded {len(events)} audit event(s) in memory")
        return [event.event_id for event in events]

    def for_entity(self, entity_id: str) -> List[AuditEvent]:
        """Events about one entity (for testing)."""
        return [e for e in self.events if e.entity_id == entity_id]

    def clear(self) -> None:
        self.events.clear()
        self.calls = 0
