"""Shared fixtures: a seeded property store, an engine and collaborators."""

from datetime import date
from decimal import Decimal

import pytest

from core.domain.entities.tenancy import Bed, Bill, BillLineItem, Property, Room, Tenant
from core.infrastructure.adapters.audit.in_memory_audit_sink import InMemoryAuditSink
from core.infrastructure.adapters.notifications.mock_notification_service import (
    MockNotificationDispatcher,
)
from core.infrastructure.adapters.persistence.in_memory_property_store import (
    InMemoryPropertyStore,
)
from orchestration.bus import InMemoryEventBus
from orchestration.idempotency import InMemoryIdempotencyCache
from orchestration.models import ActorKind, ExecutionContext
from orchestration.orchestrator import WorkflowEngine


OWNER_ID = "owner-1"


@pytest.fixture
def context() -> ExecutionContext:
    return ExecutionContext(actor_id=OWNER_ID, actor_kind=ActorKind.OWNER, scope_id="ws-1")


@pytest.fixture
def store() -> InMemoryPropertyStore:
    """Store with one property: a free double room, a full single room and a seated tenant."""
    store = InMemoryPropertyStore()
    store.seed(
        Property(id="prop-1", name="Sunrise PG", owner_id=OWNER_ID),
        Room(
            id="room-101",
            property_id="prop-1",
            room_number="101",
            total_beds=2,
            occupied_beds=0,
            monthly_rent=Decimal("8000"),
        ),
        Room(
            id="room-102",
            property_id="prop-1",
            room_number="102",
            total_beds=1,
            occupied_beds=1,
            monthly_rent=Decimal("9000"),
        ),
        Room(
            id="room-103",
            property_id="prop-1",
            room_number="103",
            total_beds=3,
            occupied_beds=1,
            monthly_rent=Decimal("7000"),
        ),
        Bed(id="bed-101-a", room_id="room-101"),
        Tenant(
            id="tenant-existing",
            owner_id=OWNER_ID,
            name="Asha Rao",
            phone="9000000001",
            property_id="prop-1",
            room_id="room-103",
            monthly_rent=Decimal("7000"),
            check_in_date=date(2024, 1, 1),
            security_deposit=Decimal("14000"),
            user_id="user-asha",
        ),
        Bill(
            id="bill-old",
            owner_id=OWNER_ID,
            tenant_id="tenant-existing",
            property_id="prop-1",
            bill_number="BILL-00001",
            bill_month="May 2024",
            due_date=date(2024, 6, 5),
            line_items=[BillLineItem("rent", "Monthly Rent - May 2024", Decimal("7000"))],
            paid_amount=Decimal("2000"),
        ),
    )
    return store


@pytest.fixture
def audit_sink() -> InMemoryAuditSink:
    return InMemoryAuditSink()


@pytest.fixture
def dispatcher() -> MockNotificationDispatcher:
    return MockNotificationDispatcher()


@pytest.fixture
def engine(audit_sink, dispatcher) -> WorkflowEngine:
    return WorkflowEngine(
        audit_sink=audit_sink,
        notification_dispatcher=dispatcher,
        idempotency_cache=InMemoryIdempotencyCache(),
        event_bus=InMemoryEventBus(),
    )
