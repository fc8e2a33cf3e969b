"""Tests for tenancy entity helpers."""

from datetime import date
from decimal import Decimal

from core.domain.entities.tenancy import Bed, Bill, BillLineItem, Room, RoomStatus, Settlement


def test_room_status_for_occupancy():
    room = Room(id="r", property_id="p", room_number="1", total_beds=3)

    assert room.status_for(0) is RoomStatus.AVAILABLE
    assert room.status_for(2) is RoomStatus.PARTIALLY_OCCUPIED
    assert room.status_for(3) is RoomStatus.OCCUPIED


def test_room_without_bed_count_holds_one_tenant():
    room = Room(id="r", property_id="p", room_number="1", total_beds=0)

    assert room.has_capacity is True
    room.occupied_beds = 1
    assert room.has_capacity is False


def test_bed_occupied():
    assert Bed(id="b", room_id="r").occupied is False
    assert Bed(id="b", room_id="r", current_tenant_id="t").occupied is True


def test_bill_totals():
    bill = Bill(
        id="b",
        owner_id="o",
        tenant_id="t",
        property_id="p",
        bill_number="BILL-00001",
        bill_month="June 2024",
        due_date=date(2024, 7, 5),
        line_items=[
            BillLineItem("rent", "Rent", Decimal("8000")),
            BillLineItem("deposit", "Deposit", Decimal("16000")),
        ],
        paid_amount=Decimal("10000"),
    )

    assert bill.total_amount == Decimal("24000")
    assert bill.balance_due == Decimal("14000")


def test_settlement_refund_and_additional_payment():
    refund = Settlement(total_dues=Decimal("100"), deposit_amount=Decimal("500"), deductions=Decimal("50"))
    owed = Settlement(total_dues=Decimal("700"), deposit_amount=Decimal("500"), deductions=Decimal("0"))

    assert refund.refund_amount == Decimal("350")
    assert refund.additional_payment == Decimal("0")
    assert owed.refund_amount == Decimal("0")
    assert owed.additional_payment == Decimal("200")
    assert owed.to_dict()["additional_payment"] == "200"
