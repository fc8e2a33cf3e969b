"""
SQLAlchemy ORM Models.

Maps the audit trail to database tables.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Integer, Index, JSON
from sqlalchemy.orm import declarative_base


Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# AUDIT EVENT MODEL
# =============================================================================

class AuditEventModel(Base):
    """
    Audit event database model.

    Append-only: rows are inserted once per successful workflow and
    never updated.
    """

    __tablename__ = "audit_events"

    # Primary key
    id = Column(Integer, primary_key=True, autoincrement=True)

    # Event identity
    event_id = Column(String(36), unique=True, nullable=False, index=True)

    # Changed entity
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(255), nullable=False)
    action = Column(String(50), nullable=False)

    # Acting identity
    actor_id = Column(String(255), nullable=False)
    actor_kind = Column(String(20), nullable=False)
    scope_id = Column(String(255), nullable=False, index=True)

    # Payload
    changes = Column(JSON, nullable=True)
    event_metadata = Column("metadata", JSON, nullable=True)

    # Timestamps
    occurred_at = Column(DateTime(timezone=True), nullable=False)
    recorded_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    # Indexes
    __table_args__ = (
        Index("ix_audit_events_entity", "entity_type", "entity_id"),
        Index("ix_audit_events_scope_occurred", "scope_id", "occurred_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<AuditEventModel(event_id={self.event_id}, "
            f"entity={self.entity_type}:{self.entity_id}, action={self.action})>"
        )
