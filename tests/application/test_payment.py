"""Tests for the payment record and refund workflows."""

from datetime import date
from decimal import Decimal

import pytest

from core.application.workflows.payment import record_payment, refund_payment
from core.domain.audit import AuditAction, EntityType
from core.domain.entities.tenancy import BillStatus, Payment, PaymentMethod
from core.domain.notifications import NotificationType, render_notification
from orchestration.models import ErrorKind


def _payment(**overrides) -> dict:
    data = {
        "tenant_id": "tenant-existing",
        "property_id": "prop-1",
        "bill_id": "bill-old",
        "amount": "3000",
        "payment_date": "2024-06-03",
        "payment_method": "upi",
        "reference_number": "UPI-778",
    }
    data.update(overrides)
    return data


def _seeded_payment(amount: str = "2000", bill_id: str = "bill-old") -> Payment:
    return Payment(
        id="payment-seeded",
        owner_id="owner-1",
        tenant_id="tenant-existing",
        property_id="prop-1",
        bill_id=bill_id,
        amount=Decimal(amount),
        payment_date=date(2024, 5, 20),
        method=PaymentMethod.CASH,
        receipt_number="RCP-000001",
    )


# -- payment_record -----------------------------------------------------


@pytest.mark.asyncio
async def test_partial_payment_updates_bill(engine, store, context, audit_sink, dispatcher):
    result = await record_payment(engine, store, _payment(), context)

    assert result.success is True
    assert result.data.receipt_number == "RCP-000001"
    assert result.data.bill_status == "partial"
    assert result.data.remaining_balance == Decimal("2000")
    assert result.data.advance_credited is False

    payment = store.payments[result.data.payment_id]
    assert payment.method is PaymentMethod.UPI
    assert payment.owner_id == "owner-1"

    bill = store.bills["bill-old"]
    assert bill.paid_amount == Decimal("5000")
    assert bill.status is BillStatus.PARTIAL
    assert bill.last_payment_date == date(2024, 6, 3)

    assert [(e.entity_type, e.action) for e in audit_sink.events] == [
        (EntityType.PAYMENT, AuditAction.CREATE),
        (EntityType.BILL, AuditAction.UPDATE),
    ]
    assert audit_sink.events[1].metadata == {"payment_id": payment.id}
    assert dispatcher.get_notifications() == []


@pytest.mark.asyncio
async def test_full_payment_sends_receipt(engine, store, context, dispatcher):
    result = await record_payment(
        engine, store, _payment(amount="5000", send_receipt=True), context
    )

    assert result.data.bill_status == "paid"
    assert result.data.remaining_balance == Decimal("0")

    [sent] = dispatcher.get_notifications()
    assert sent.type is NotificationType.PAYMENT_RECEIVED
    assert sent.recipient_id == "user-asha"
    rendered = render_notification(sent)
    assert rendered.body == "We received your payment of 5,000.00 for bill #BILL-00001. Thank you!"
    assert rendered.action_url == f"/tenant/payments/{result.data.payment_id}"


@pytest.mark.asyncio
async def test_receipt_skipped_for_unreachable_tenant(engine, store, context, dispatcher):
    store.tenants["tenant-existing"].user_id = None

    result = await record_payment(engine, store, _payment(send_receipt=True), context)

    assert result.success is True
    assert dispatcher.get_notifications() == []


@pytest.mark.asyncio
async def test_receipt_numbers_follow_owner_payment_count(engine, store, context):
    first = await record_payment(engine, store, _payment(amount="1000"), context)
    second = await record_payment(engine, store, _payment(amount="1000"), context)

    assert first.data.receipt_number == "RCP-000001"
    assert second.data.receipt_number == "RCP-000002"


@pytest.mark.asyncio
async def test_overpayment_rejected_unless_advance(engine, store, context):
    rejected = await record_payment(engine, store, _payment(amount="6000"), context)

    assert rejected.success is False
    assert rejected.error.kind is ErrorKind.VALIDATION_FAILED
    assert rejected.error.details["step"] == "validate"
    assert store.payments == {}

    advance = await record_payment(
        engine, store, _payment(amount="6000", is_advance=True), context
    )

    assert advance.success is True
    assert advance.data.bill_status == "paid"
    assert advance.data.remaining_balance == Decimal("0")
    assert advance.data.advance_credited is True
    assert store.tenants["tenant-existing"].advance_balance == Decimal("6000")


@pytest.mark.asyncio
async def test_paid_bill_conflicts(engine, store, context):
    store.bills["bill-old"].status = BillStatus.PAID

    result = await record_payment(engine, store, _payment(), context)

    assert result.error.kind is ErrorKind.CONFLICT
    assert result.error.message == "Bill is already fully paid"


@pytest.mark.asyncio
async def test_bill_of_another_tenant_is_rejected(engine, store, context):
    store.bills["bill-old"].tenant_id = "someone-else"

    result = await record_payment(engine, store, _payment(), context)

    assert result.error.kind is ErrorKind.VALIDATION_FAILED
    assert store.calls("add_payment") == []


@pytest.mark.asyncio
async def test_missing_bill_is_not_found(engine, store, context):
    result = await record_payment(engine, store, _payment(bill_id="bill-nope"), context)

    assert result.error.kind is ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_bill_update_failure_deletes_payment(engine, store, context, audit_sink, dispatcher):
    store.fail_on.add("update_bill")

    result = await record_payment(engine, store, _payment(send_receipt=True), context)

    assert result.success is False
    assert result.error.details["step"] == "update_bill"
    assert result.steps_completed == 3
    assert result.compensated_steps == ("create_payment",)
    assert len(store.calls("delete_payment")) == 1
    assert store.payments == {}
    assert store.bills["bill-old"].paid_amount == Decimal("2000")
    assert audit_sink.events == []
    assert dispatcher.get_notifications() == []


@pytest.mark.asyncio
async def test_advance_credit_failure_is_tolerated(engine, store, context):
    store.fail_on.add("update_tenant")

    result = await record_payment(
        engine, store, _payment(amount="6000", is_advance=True), context
    )

    assert result.success is True
    assert result.partial is True
    assert result.failed_steps == ("update_advance_balance",)
    assert result.data.advance_credited is False
    assert store.bills["bill-old"].status is BillStatus.PAID


@pytest.mark.asyncio
async def test_late_payment_clears_overdue_bill(engine, store, context):
    store.bills["bill-old"].status = BillStatus.OVERDUE

    result = await record_payment(engine, store, _payment(amount="5000"), context)

    assert result.success is True
    assert result.failed_steps == ()
    assert store.bills["bill-old"].status is BillStatus.PAID


@pytest.mark.asyncio
async def test_non_positive_amount_is_rejected_before_any_step(engine, store, context):
    result = await record_payment(engine, store, _payment(amount="0"), context)

    assert result.success is False
    assert result.error.kind is ErrorKind.VALIDATION_FAILED
    assert result.steps_total == 6
    assert store.operations == []


# -- payment_refund -----------------------------------------------------


@pytest.mark.asyncio
async def test_refund_lowers_paid_amount(engine, store, context, audit_sink):
    paid = await record_payment(engine, store, _payment(amount="5000"), context)
    audit_sink.events.clear()

    result = await refund_payment(
        engine,
        store,
        {
            "payment_id": paid.data.payment_id,
            "refund_amount": "2000",
            "refund_reason": "Double charged",
            "refund_method": "bank_transfer",
        },
        context,
    )

    assert result.success is True
    assert result.data.original_payment_id == paid.data.payment_id
    assert result.data.bill_updated is True

    refund = store.refunds[result.data.refund_id]
    assert refund.method is PaymentMethod.BANK_TRANSFER
    assert refund.processed_by == "owner-1"

    bill = store.bills["bill-old"]
    assert bill.paid_amount == Decimal("5000")
    assert bill.status is BillStatus.PARTIAL

    [event] = audit_sink.events
    assert (event.entity_type, event.action) == (EntityType.PAYMENT, AuditAction.UPDATE)
    assert event.entity_id == paid.data.payment_id
    assert event.metadata == {"action": "refund"}


@pytest.mark.asyncio
async def test_refunding_everything_reopens_bill(engine, store, context):
    store.seed(_seeded_payment())

    result = await refund_payment(
        engine,
        store,
        {
            "payment_id": "payment-seeded",
            "refund_amount": "2000",
            "refund_reason": "Cancelled booking",
            "refund_method": "cash",
        },
        context,
    )

    assert result.success is True
    assert store.bills["bill-old"].paid_amount == Decimal("0")
    assert store.bills["bill-old"].status is BillStatus.PENDING


@pytest.mark.asyncio
async def test_refund_above_payment_is_rejected(engine, store, context):
    store.seed(_seeded_payment())

    result = await refund_payment(
        engine,
        store,
        {
            "payment_id": "payment-seeded",
            "refund_amount": "2500",
            "refund_reason": "Too much",
            "refund_method": "upi",
        },
        context,
    )

    assert result.error.kind is ErrorKind.VALIDATION_FAILED
    assert store.refunds == {}


@pytest.mark.asyncio
async def test_refund_without_bill_skips_bill_update(engine, store, context):
    store.seed(_seeded_payment(bill_id="bill-archived"))

    result = await refund_payment(
        engine,
        store,
        {
            "payment_id": "payment-seeded",
            "refund_amount": "500",
            "refund_reason": "Goodwill",
            "refund_method": "upi",
        },
        context,
    )

    assert result.success is True
    assert result.data.bill_updated is False
    assert store.calls("update_bill") == []


@pytest.mark.asyncio
async def test_refund_bill_update_failure_keeps_refund(engine, store, context):
    store.seed(_seeded_payment())
    store.fail_on.add("update_bill")

    result = await refund_payment(
        engine,
        store,
        {
            "payment_id": "payment-seeded",
            "refund_amount": "500",
            "refund_reason": "Goodwill",
            "refund_method": "cash",
        },
        context,
    )

    assert result.success is True
    assert result.failed_steps == ("update_bill",)
    assert result.data.bill_updated is False
    assert len(store.refunds) == 1


@pytest.mark.asyncio
async def test_card_refunds_are_not_supported(engine, store, context):
    result = await refund_payment(
        engine,
        store,
        {
            "payment_id": "payment-seeded",
            "refund_amount": "500",
            "refund_reason": "Goodwill",
            "refund_method": "card",
        },
        context,
    )

    assert result.error.kind is ErrorKind.VALIDATION_FAILED
    assert result.steps_total == 3
