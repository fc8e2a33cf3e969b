"""
Audit Event Types.

Immutable records of what a workflow changed, derived after a
successful run and handed to the audit sink.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
import json
import uuid

from orchestration.models import ActorKind, ExecutionContext


class AuditAction(str, Enum):
    """Audit actions."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    STATUS_CHANGE = "status_change"
    APPROVE = "approve"
    REJECT = "reject"
    ASSIGN = "assign"
    COMPLETE = "complete"
    CANCEL = "cancel"


class EntityType(str, Enum):
    """Entity types that appear in the audit trail."""

    TENANT = "tenant"
    PROPERTY = "property"
    ROOM = "room"
    BED = "bed"
    BILL = "bill"
    PAYMENT = "payment"
    EXIT_CLEARANCE = "exit_clearance"
    ROOM_TRANSFER = "room_transfer"


@dataclass(frozen=True)
class AuditChanges:
    """Before/after snapshot of an entity change."""

    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None
    fields_changed: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            key: value
            for key, value in (
                ("before", self.before),
                ("after", self.after),
                ("fields_changed", self.fields_changed),
            )
            if value is not None
        }


@dataclass(frozen=True)
class AuditEvent:
    """
    A single audit trail record.

    Built by a workflow's audit derivation and persisted by an audit sink.
    """

    entity_type: EntityType
    entity_id: str
    action: AuditAction
    actor_id: str
    actor_kind: ActorKind
    scope_id: str
    changes: Optional[AuditChanges] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to a JSON-friendly dictionary."""
        return {
            "event_id": self.event_id,
            "entity_type": self.entity_type.value,
            "entity_id": self.entity_id,
            "action": self.action.value,
            "actor_id": self.actor_id,
            "actor_kind": self.actor_kind.value,
            "scope_id": self.scope_id,
            "changes": self.changes.to_dict() if self.changes else None,
            "metadata": self.metadata,
            "occurred_at": self.occurred_at.isoformat(),
        }


def _fields_changed(before: Dict[str, Any], after: Dict[str, Any]) -> List[str]:
    """Keys of ``after`` whose serialized value differs from ``before``."""
    return [
        key
        for key in after
        if json.dumps(before.get(key), default=str, sort_keys=True)
        != json.dumps(after.get(key), default=str, sort_keys=True)
    ]


def create_audit_event(
    entity_type: EntityType,
    entity_id: str,
    action: AuditAction,
    context: ExecutionContext,
    before: Optional[Dict[str, Any]] = None,
    after: Optional[Dict[str, Any]] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditEvent:
    """
    Create an audit event for the acting identity in ``context``.

    Args:
        entity_type: Type of the changed entity
        entity_id: ID of the changed entity
        action: What happened
        context: Execution context supplying actor and scope
        before: Snapshot before the change
        after: Snapshot after the change
        metadata: Free-form extra data

    Returns:
        AuditEvent with ``fields_changed`` computed when both snapshots exist
    """
    changes = None
    if before is not None or after is not None:
        changes = AuditChanges(
            before=before,
            after=after,
            fields_changed=(
                _fields_changed(before, after)
                if before is not None and after is not None
                else None
            ),
        )

    return AuditEvent(
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        actor_id=context.actor_id,
        actor_kind=context.actor_kind,
        scope_id=context.scope_id,
        changes=changes,
        metadata=dict(metadata or {}),
    )
