"""Tests for EventBus."""

from datetime import datetime, timezone

import pytest

from orchestration.bus import WILDCARD, InMemoryEventBus
from orchestration.events import Event, EventMetadata


def _event(name: str = "workflow.started") -> Event:
    metadata = EventMetadata(
        workflow_id="wf_test123",
        workflow_name="test_workflow",
        scope_id="ws-1",
        actor_id="owner-1",
        timestamp=datetime.now(timezone.utc),
    )
    return Event(name=name, payload={"step_count": 2}, metadata=metadata)


@pytest.mark.asyncio
async def test_event_bus_subscribe_and_publish():
    """Test subscribing and publishing events."""
    bus = InMemoryEventBus()
    events_received: list[Event] = []

    async def handler(event: Event) -> None:
        events_received.append(event)

    bus.subscribe("workflow.started", handler)
    await bus.publish(_event())

    assert len(events_received) == 1
    assert events_received[0].name == "workflow.started"
    assert events_received[0].payload == {"step_count": 2}
    assert events_received[0].metadata.workflow_id == "wf_test123"
    assert events_received[0].metadata.scope_id == "ws-1"


@pytest.mark.asyncio
async def test_event_bus_multiple_handlers():
    """Test multiple handlers for the same event."""
    bus = InMemoryEventBus()
    events_1: list[Event] = []
    events_2: list[Event] = []

    async def handler1(event: Event) -> None:
        events_1.append(event)

    async def handler2(event: Event) -> None:
        events_2.append(event)

    bus.subscribe("workflow.started", handler1)
    bus.subscribe("workflow.started", handler2)
    await bus.publish(_event())

    assert len(events_1) == 1
    assert len(events_2) == 1


@pytest.mark.asyncio
async def test_event_bus_no_handlers():
    """Publishing without subscribers is a no-op."""
    bus = InMemoryEventBus()
    await bus.publish(_event("workflow.finished"))


@pytest.mark.asyncio
async def test_event_bus_wildcard_receives_everything():
    bus = InMemoryEventBus()
    names: list[str] = []

    async def handler(event: Event) -> None:
        names.append(event.name)

    bus.subscribe(WILDCARD, handler)
    await bus.publish(_event("workflow.started"))
    await bus.publish(_event("workflow.step.succeeded"))

    assert names == ["workflow.started", "workflow.step.succeeded"]


@pytest.mark.asyncio
async def test_event_bus_handler_failure_is_isolated():
    """A failing handler neither raises nor stops later handlers."""
    bus = InMemoryEventBus()
    received: list[Event] = []

    async def broken(event: Event) -> None:
        raise RuntimeError("boom")

    async def healthy(event: Event) -> None:
        received.append(event)

    bus.subscribe("workflow.started", broken)
    bus.subscribe("workflow.started", healthy)
    await bus.publish(_event())

    assert len(received) == 1


@pytest.mark.asyncio
async def test_event_bus_unsubscribe():
    bus = InMemoryEventBus()
    received: list[Event] = []

    async def handler(event: Event) -> None:
        received.append(event)

    bus.subscribe("workflow.started", handler)
    bus.unsubscribe("workflow.started", handler)
    bus.unsubscribe("workflow.started", handler)
    await bus.publish(_event())

    assert received == []
