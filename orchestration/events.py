"""Orchestration events - Event, EventMetadata."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class EventMetadata:
    """Metadata for a workflow lifecycle event."""

    workflow_id: str
    workflow_name: str
    scope_id: str
    actor_id: str
    timestamp: datetime


@dataclass(frozen=True)
class Event:
    """Lifecycle event published by the workflow engine."""

    name: str
    payload: dict[str, object]
    metadata: EventMetadata
