"""
Audit Store Implementation.

Append-only storage for workflow audit events using SQLAlchemy.

Architecture:
- Implements IAuditSink for the workflow engine
- One transaction per batch (all events of a run or none)
- Queryable trail for out-of-band inspection of orphaned side effects
"""
import asyncio
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from core.application.interfaces import IAuditSink
from core.domain.audit import AuditEvent
from core.infrastructure.database.config import init_database
from core.infrastructure.database.models import AuditEventModel


logger = logging.getLogger(__name__)


class SqlAlchemyAuditSink(IAuditSink):
    """
    Audit sink backed by the ``audit_events`` table.

    Usage:
        factory = create_session_factory(engine)
        sink = SqlAlchemyAuditSink(factory)
        ids = await sink.record(events)

    When ``engine`` is given the tables are created on first use.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        engine: Optional[AsyncEngine] = None,
    ):
        """
        Initialize audit store.

        Args:
            session_factory: Factory producing async sessions
            engine: Engine whose schema is created lazily (None if managed elsewhere)
        """
        self._session_factory = session_factory
        self._engine = engine
        self._schema_ready = engine is None
        self._schema_lock = asyncio.Lock()

    @property
    def engine(self) -> Optional[AsyncEngine]:
        return self._engine

    async def record(self, events: List[AuditEvent]) -> List[str]:
        """
        Append events in a single transaction.

        Args:
            events: Audit events to append

        Returns:
            Event IDs in insertion order

        Raises:
            SQLAlchemyError: If the batch could not be stored (nothing is kept)
        """
        if not events:
            return []

        await self._ensure_schema()
        async with self._session_factory() as session:
            async with session.begin():
                session.add_all([self._to_model(event) for event in events])

        logger.info(f"Stored {len(events)} audit event(s)")
        return [event.event_id for event in events]

    async def list_events(
        self,
        scope_id: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        limit: int = 100,
    ) -> List[AuditEventModel]:
        """
        Query the audit trail of a scope, oldest first.

        Args:
            scope_id: Workspace/tenant-scope to read
            entity_type: Optional entity type filter
            entity_id: Optional entity ID filter
            limit: Maximum number of rows

        Returns:
            Matching audit rows
        """
        await self._ensure_schema()
        stmt = select(AuditEventModel).where(AuditEventModel.scope_id == scope_id)
        if entity_type is not None:
            stmt = stmt.where(AuditEventModel.entity_type == entity_type)
        if entity_id is not None:
            stmt = stmt.where(AuditEventModel.entity_id == entity_id)
        stmt = stmt.order_by(AuditEventModel.occurred_at, AuditEventModel.id).limit(limit)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def _ensure_schema(self) -> None:
        if self._schema_ready:
            return
        async with self._schema_lock:
            if not self._schema_ready:
                await init_database(self._engine)
                self._schema_ready = True

    @staticmethod
    def _to_model(event: AuditEvent) -> AuditEventModel:
        return AuditEventModel(
            event_id=event.event_id,
            entity_type=event.entity_type.value,
            entity_id=event.entity_id,
            action=event.action.value,
            actor_id=event.actor_id,
            actor_kind=event.actor_kind.value,
            scope_id=event.scope_id,
            changes=event.changes.to_dict() if event.changes else None,
            event_metadata=event.metadata or None,
            occurred_at=event.occurred_at,
        )
