"""Tests for the in-memory property store."""

from datetime import date
from decimal import Decimal

import pytest

from core.domain.entities.tenancy import (
    Bill,
    BillStatus,
    ClearanceStatus,
    ExitClearance,
    RoomStatus,
    Settlement,
    Tenant,
    TenantStay,
)
from core.infrastructure.adapters.persistence.in_memory_property_store import (
    InMemoryPropertyStore,
)
from orchestration.models import ErrorKind


def _tenant(tenant_id: str = "t-new") -> Tenant:
    return Tenant(
        id=tenant_id,
        owner_id="owner-1",
        name="Ravi",
        phone="9000000002",
        property_id="prop-1",
        room_id="room-101",
        monthly_rent=Decimal("8000"),
        check_in_date=date(2024, 6, 1),
    )


def test_new_ids_are_prefixed_and_sequential():
    store = InMemoryPropertyStore()

    assert store.new_id("tenant") == "tenant_0001"
    assert store.new_id("bill") == "bill_0002"


@pytest.mark.asyncio
async def test_missing_records_are_not_found(store):
    for result in (
        await store.get_property("nope"),
        await store.get_room("nope"),
        await store.get_tenant("nope"),
        await store.update_tenant("nope", name="X"),
        await store.set_room_occupancy("nope", 1),
        await store.assign_bed("nope", "t"),
        await store.get_bill("nope"),
        await store.update_bill("nope", paid_amount=Decimal("1")),
        await store.get_payment("nope"),
        await store.get_clearance("nope"),
        await store.update_clearance("nope", notes="x"),
        await store.update_stay("nope", status="completed"),
    ):
        assert result.is_err
        assert result.error.kind is ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_reads_return_copies(store):
    room = (await store.get_room("room-101")).value
    room.occupied_beds = 2

    assert store.rooms["room-101"].occupied_beds == 0


@pytest.mark.asyncio
async def test_add_tenant_rejects_duplicate_id(store):
    assert (await store.add_tenant(_tenant())).is_ok

    duplicate = await store.add_tenant(_tenant())

    assert duplicate.error.kind is ErrorKind.CONFLICT


@pytest.mark.asyncio
async def test_update_and_delete_tenant(store):
    updated = await store.update_tenant("tenant-existing", room_id="room-101")
    deleted = await store.delete_tenant("tenant-existing")

    assert updated.value.room_id == "room-101"
    assert deleted.is_ok
    assert "tenant-existing" not in store.tenants
    assert (await store.delete_tenant("tenant-existing")).is_ok


@pytest.mark.asyncio
async def test_room_occupancy_sets_status_and_never_goes_negative(store):
    partial = await store.set_room_occupancy("room-101", 1)
    full = await store.set_room_occupancy("room-101", 2)
    empty = await store.set_room_occupancy("room-101", -1)

    assert partial.value.status is RoomStatus.PARTIALLY_OCCUPIED
    assert full.value.status is RoomStatus.OCCUPIED
    assert empty.value.occupied_beds == 0
    assert empty.value.status is RoomStatus.AVAILABLE


@pytest.mark.asyncio
async def test_bed_held_by_another_tenant_conflicts(store):
    assert (await store.assign_bed("bed-101-a", "t-1")).is_ok
    assert (await store.assign_bed("bed-101-a", "t-1")).is_ok

    taken = await store.assign_bed("bed-101-a", "t-2")
    released = await store.assign_bed("bed-101-a", None)

    assert taken.error.kind is ErrorKind.CONFLICT
    assert released.value.current_tenant_id is None


@pytest.mark.asyncio
async def test_unpaid_bills_and_bill_count(store):
    store.seed(
        Bill(
            id="bill-paid",
            owner_id="owner-1",
            tenant_id="tenant-existing",
            property_id="prop-1",
            bill_number="BILL-00002",
            bill_month="June 2024",
            due_date=date(2024, 7, 5),
            status=BillStatus.PAID,
        )
    )

    unpaid = (await store.list_unpaid_bills("tenant-existing")).value
    count = (await store.count_bills("owner-1")).value

    assert [bill.id for bill in unpaid] == ["bill-old"]
    assert count == 2


@pytest.mark.asyncio
async def test_find_open_clearance_ignores_closed_ones(store):
    settlement = Settlement(Decimal("0"), Decimal("0"), Decimal("0"))
    closed = ExitClearance(
        id="c-1",
        tenant_id="tenant-existing",
        property_id="prop-1",
        room_id="room-103",
        initiated_by="owner-1",
        requested_exit_date=date(2024, 7, 1),
        exit_reason="moving",
        settlement=settlement,
        status=ClearanceStatus.COMPLETED,
    )
    store.seed(closed)

    assert (await store.find_open_clearance("tenant-existing")).value is None

    await store.add_clearance(
        ExitClearance(
            id="c-2",
            tenant_id="tenant-existing",
            property_id="prop-1",
            room_id="room-103",
            initiated_by="owner-1",
            requested_exit_date=date(2024, 8, 1),
            exit_reason="moving",
            settlement=settlement,
        )
    )

    assert (await store.find_open_clearance("tenant-existing")).value.id == "c-2"

    await store.delete_clearance("c-2")
    assert "c-2" not in store.clearances


@pytest.mark.asyncio
async def test_failure_injection_by_method_and_key(store):
    store.fail_on.add("set_room_occupancy:room-102")

    other = await store.set_room_occupancy("room-101", 1)
    failed = await store.set_room_occupancy("room-102", 0)

    assert other.is_ok
    assert failed.error.kind is ErrorKind.UNKNOWN
    assert failed.error.message == "set_room_occupancy failed"
    assert store.rooms["room-102"].occupied_beds == 1
    assert store.calls("set_room_occupancy") == ["room-101", "room-102"]


@pytest.mark.asyncio
async def test_failure_injection_for_every_call_of_method():
    store = InMemoryPropertyStore(fail_on=["get_property"])

    result = await store.get_property("prop-1")

    assert result.error.details == {"operation": "get_property"}


@pytest.mark.asyncio
async def test_seed_bypasses_log_and_clear_resets(store):
    assert store.operations == []

    await store.get_room("room-101")
    store.clear()

    assert store.operations == []
    assert store.rooms == {}


@pytest.mark.asyncio
async def test_update_bill_returns_copy(store):
    updated = await store.update_bill("bill-old", paid_amount=Decimal("7000"), status=BillStatus.PAID)
    updated.value.paid_amount = Decimal("1")

    assert store.bills["bill-old"].paid_amount == Decimal("7000")
    assert store.bills["bill-old"].status is BillStatus.PAID


@pytest.mark.asyncio
async def test_find_active_stay_skips_completed_stays(store):
    stay = TenantStay(
        id="stay-1",
        tenant_id="tenant-existing",
        owner_id="owner-1",
        property_id="prop-1",
        room_id="room-103",
        join_date=date(2024, 1, 1),
        monthly_rent=Decimal("7000"),
    )
    store.seed(stay)

    assert (await store.find_active_stay("tenant-existing")).value.id == "stay-1"

    await store.update_stay("stay-1", status="completed")

    assert (await store.find_active_stay("tenant-existing")).value is None
