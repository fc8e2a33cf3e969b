"""Tests for the room transfer workflow."""

from decimal import Decimal

import pytest

from core.application.workflows.room_transfer import build_room_transfer_workflow, transfer_room
from core.domain.entities.tenancy import RoomStatus
from core.domain.notifications import NotificationType
from core.infrastructure.adapters.persistence.in_memory_property_store import (
    InMemoryPropertyStore,
)
from orchestration.models import ErrorKind


def _input(**overrides) -> dict:
    data = {
        "tenant_id": "tenant-existing",
        "new_room_id": "room-101",
        "transfer_date": "2024-06-15",
        "reason": "Wants a quieter room",
    }
    data.update(overrides)
    return data


@pytest.mark.asyncio
async def test_transfer_moves_tenant(engine, store, context, audit_sink, dispatcher):
    result = await transfer_room(
        engine, store, _input(adjust_rent=True, new_rent="8000"), context
    )

    assert result.success is True
    assert result.failed_steps == ()
    assert result.data.old_room_id == "room-103"
    assert result.data.new_room_id == "room-101"
    assert result.data.rent_adjusted is True
    assert result.data.transfer_id in store.transfers

    tenant = store.tenants["tenant-existing"]
    assert tenant.room_id == "room-101"
    assert tenant.monthly_rent == Decimal("8000")
    assert store.rooms["room-103"].occupied_beds == 0
    assert store.rooms["room-103"].status is RoomStatus.AVAILABLE
    assert store.rooms["room-101"].occupied_beds == 1

    (event,) = audit_sink.events
    assert event.changes.before["room_number"] == "103"
    assert event.changes.after["room_number"] == "101"
    assert set(event.changes.fields_changed) == {"room_id", "room_number", "monthly_rent"}
    assert event.metadata == {"action": "room_transfer", "reason": "Wants a quieter room"}

    (notification,) = dispatcher.get_notifications()
    assert notification.type is NotificationType.ROOM_TRANSFERRED
    assert notification.recipient_id == "user-asha"


@pytest.mark.asyncio
async def test_full_destination_room_is_rejected(engine, store, context):
    result = await transfer_room(engine, store, _input(new_room_id="room-102"), context)

    assert result.success is False
    assert result.error.kind is ErrorKind.CAPACITY_EXCEEDED
    assert store.tenants["tenant-existing"].room_id == "room-103"
    assert store.calls("set_room_occupancy") == []


@pytest.mark.asyncio
async def test_unknown_tenant_is_not_found(engine, store, context):
    result = await transfer_room(engine, store, _input(tenant_id="nobody"), context)

    assert result.success is False
    assert result.error.kind is ErrorKind.NOT_FOUND
    assert result.error.details["step"] == "validate"


@pytest.mark.asyncio
async def test_transfer_to_current_room_is_rejected(engine, store, context):
    result = await transfer_room(engine, store, _input(new_room_id="room-103"), context)

    assert result.success is False
    assert result.error.kind is ErrorKind.VALIDATION_FAILED


@pytest.mark.asyncio
async def test_assign_failure_leaves_old_room_released(engine, store, context):
    """release_old_room has no rollback, so its effect survives the abort."""
    store.fail_on.add("set_room_occupancy:room-101")

    result = await transfer_room(engine, store, _input(), context)

    assert result.success is False
    assert result.error.details["step"] == "assign_new_room"
    assert result.compensated_steps == ()
    assert store.rooms["room-103"].occupied_beds == 0
    assert store.tenants["tenant-existing"].room_id == "room-103"
    # The optional transfer record is not rolled back either
    assert len(store.transfers) == 1


@pytest.mark.asyncio
async def test_tenant_update_failure_rolls_back_new_room(engine, store, context):
    store.fail_on.add("update_tenant")

    result = await transfer_room(engine, store, _input(), context)

    assert result.success is False
    assert result.error.details["step"] == "update_tenant"
    assert result.compensated_steps == ("assign_new_room",)
    assert store.rooms["room-101"].occupied_beds == 0
    assert store.rooms["room-101"].status is RoomStatus.AVAILABLE


@pytest.mark.asyncio
async def test_transfer_record_failure_is_tolerated(engine, store, context):
    store.fail_on.add("add_transfer")

    result = await transfer_room(engine, store, _input(), context)

    assert result.success is True
    assert result.failed_steps == ("create_transfer_record",)
    assert result.data.transfer_id is None
    assert result.data.rent_adjusted is False
    assert store.tenants["tenant-existing"].room_id == "room-101"


@pytest.mark.asyncio
async def test_adjust_rent_requires_new_rent(engine, store, context):
    result = await transfer_room(engine, store, _input(adjust_rent=True), context)

    assert result.success is False
    assert result.error.kind is ErrorKind.VALIDATION_FAILED
    assert store.operations == []


def test_transfer_definition_flags_uncompensated_optional_steps():
    definition = build_room_transfer_workflow(InMemoryPropertyStore())

    assert definition.step_names == [
        "validate",
        "create_transfer_record",
        "release_old_room",
        "assign_new_room",
        "update_tenant",
    ]
    assert [s.optional for s in definition.steps] == [False, True, True, False, False]
    assert len(definition.warnings) == 2
