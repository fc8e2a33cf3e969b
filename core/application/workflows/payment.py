"""
Payment Workflows.

payment_record takes money against a bill: it issues a receipt number,
stores the payment and moves the bill towards paid. If the bill update
fails the stored payment is deleted again, so a payment never exists
without the bill reflecting it. Crediting an advance and clearing an
overdue flag are best effort.

payment_refund hands money back for an earlier payment and lowers the
bill's paid amount when the bill is still around.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from core.domain.audit import AuditAction, AuditEvent, EntityType, create_audit_event
from core.domain.entities.tenancy import (
    Bill,
    BillStatus,
    Payment,
    PaymentMethod,
    PaymentRefund,
    Tenant,
)
from core.domain.notifications import NotificationPayload, build_payment_notification
from core.domain.repositories.property_repository import PropertyRepository
from core.infrastructure.logging import get_logger
from orchestration.models import ErrorKind, ExecutionContext, Result, WorkflowResult, err, ok
from orchestration.orchestrator import WorkflowEngine
from orchestration.workflow import Step, StepResults, WorkflowDefinition

from .common import format_amount, parse_input, rejected_input

RECORD_WORKFLOW_NAME = "payment_record"
REFUND_WORKFLOW_NAME = "payment_refund"

logger = get_logger(__name__)


class PaymentInput(BaseModel):
    """Input for recording a payment against a bill."""

    model_config = ConfigDict(frozen=True)

    tenant_id: str = Field(..., min_length=1)
    property_id: str = Field(..., min_length=1)
    bill_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    payment_date: date
    payment_method: PaymentMethod
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    is_advance: bool = False
    send_receipt: bool = False


class RefundInput(BaseModel):
    """Input for refunding (part of) a payment."""

    model_config = ConfigDict(frozen=True)

    payment_id: str = Field(..., min_length=1)
    refund_amount: Decimal = Field(..., gt=0)
    refund_reason: str = Field(..., min_length=1)
    refund_method: Literal["cash", "upi", "bank_transfer"]
    refund_reference: Optional[str] = None


@dataclass(frozen=True)
class PaymentOutput:
    payment_id: str
    receipt_number: str
    bill_status: str
    remaining_balance: Decimal
    advance_credited: bool


@dataclass(frozen=True)
class RefundOutput:
    refund_id: str
    original_payment_id: str
    bill_updated: bool


@dataclass(frozen=True)
class _PaymentTarget:
    tenant: Tenant
    bill: Bill


@dataclass(frozen=True)
class _RefundTarget:
    payment: Payment
    bill: Optional[Bill]


def _status_after_payment(bill: Bill, paid_amount: Decimal) -> BillStatus:
    if bill.total_amount - paid_amount <= 0:
        return BillStatus.PAID
    if paid_amount > 0:
        return BillStatus.PARTIAL
    return bill.status


def _status_after_refund(bill: Bill, paid_amount: Decimal) -> BillStatus:
    if paid_amount <= 0:
        return BillStatus.PENDING
    if bill.total_amount - paid_amount > 0:
        return BillStatus.PARTIAL
    return bill.status


def build_payment_workflow(
    repository: PropertyRepository,
) -> WorkflowDefinition[PaymentInput, PaymentOutput]:
    """Build the payment_record definition bound to ``repository``."""

    async def validate(
        context: ExecutionContext, data: PaymentInput, results: StepResults
    ) -> Result[_PaymentTarget]:
        bill = await repository.get_bill(data.bill_id)
        if bill.is_err:
            return bill
        if bill.value.tenant_id != data.tenant_id:
            return err(
                ErrorKind.VALIDATION_FAILED,
                "Bill does not belong to this tenant",
                bill_id=data.bill_id,
                tenant_id=data.tenant_id,
            )
        if bill.value.status is BillStatus.PAID:
            return err(ErrorKind.CONFLICT, "Bill is already fully paid", bill_id=data.bill_id)
        if data.amount > bill.value.balance_due and not data.is_advance:
            return err(
                ErrorKind.VALIDATION_FAILED,
                f"Payment amount ({data.amount}) exceeds remaining balance "
                f"({bill.value.balance_due})",
                bill_id=data.bill_id,
            )
        tenant = await repository.get_tenant(data.tenant_id)
        if tenant.is_err:
            return tenant
        return ok(_PaymentTarget(tenant=tenant.value, bill=bill.value))

    async def generate_receipt_number(
        context: ExecutionContext, data: PaymentInput, results: StepResults
    ) -> Result[str]:
        target: _PaymentTarget = results.require("validate")
        count = await repository.count_payments(target.bill.owner_id)
        if count.is_err:
            return count
        return ok(f"RCP-{count.value + 1:06d}")

    async def create_payment(
        context: ExecutionContext, data: PaymentInput, results: StepResults
    ) -> Result[Payment]:
        target: _PaymentTarget = results.require("validate")
        payment = Payment(
            id=repository.new_id("payment"),
            owner_id=target.bill.owner_id,
            tenant_id=data.tenant_id,
            property_id=data.property_id,
            bill_id=data.bill_id,
            amount=data.amount,
            payment_date=data.payment_date,
            method=data.payment_method,
            receipt_number=results.require("generate_receipt_number"),
            reference_number=data.reference_number,
            notes=data.notes,
            is_advance=data.is_advance,
        )
        return await repository.add_payment(payment)

    async def delete_payment(
        context: ExecutionContext, data: PaymentInput, payment: Payment
    ) -> Result[None]:
        return await repository.delete_payment(payment.id)

    async def update_bill(
        context: ExecutionContext, data: PaymentInput, results: StepResults
    ) -> Result[Bill]:
        bill = results.require("validate").bill
        paid_amount = bill.paid_amount + data.amount
        return await repository.update_bill(
            bill.id,
            paid_amount=paid_amount,
            status=_status_after_payment(bill, paid_amount),
            last_payment_date=data.payment_date,
        )

    async def update_advance_balance(
        context: ExecutionContext, data: PaymentInput, results: StepResults
    ) -> Result[Optional[Tenant]]:
        if not data.is_advance:
            return ok(None)
        tenant = results.require("validate").tenant
        return await repository.update_tenant(
            tenant.id, advance_balance=tenant.advance_balance + data.amount
        )

    async def clear_overdue(
        context: ExecutionContext, data: PaymentInput, results: StepResults
    ) -> Result[bool]:
        before = results.require("validate").bill
        after: Bill = results.require("update_bill")
        if before.status is BillStatus.OVERDUE and after.status is BillStatus.PAID:
            logger.info(f"Overdue bill {after.bill_number} settled by late payment")
            return ok(True)
        return ok(False)

    def audit_events(
        context: ExecutionContext, data: PaymentInput, results: StepResults
    ) -> List[AuditEvent]:
        before = results.require("validate").bill
        payment: Payment = results.require("create_payment")
        after: Bill = results.require("update_bill")
        return [
            create_audit_event(
                EntityType.PAYMENT,
                payment.id,
                AuditAction.CREATE,
                context,
                after={
                    "amount": str(payment.amount),
                    "payment_method": payment.method.value,
                    "bill_id": payment.bill_id,
                    "receipt_number": payment.receipt_number,
                },
            ),
            create_audit_event(
                EntityType.BILL,
                after.id,
                AuditAction.UPDATE,
                context,
                before={"status": before.status.value, "paid_amount": str(before.paid_amount)},
                after={"status": after.status.value, "paid_amount": str(after.paid_amount)},
                metadata={"payment_id": payment.id},
            ),
        ]

    def notifications(
        context: ExecutionContext, data: PaymentInput, results: StepResults
    ) -> List[NotificationPayload]:
        if not data.send_receipt:
            return []
        target: _PaymentTarget = results.require("validate")
        tenant = target.tenant
        if not (tenant.user_id or tenant.email):
            return []
        payment: Payment = results.require("create_payment")
        return [
            build_payment_notification(
                tenant.user_id or tenant.id,
                payment.id,
                format_amount(payment.amount),
                target.bill.bill_number,
                payment.receipt_number,
            )
        ]

    def build_output(results: StepResults) -> PaymentOutput:
        payment: Payment = results.require("create_payment")
        bill: Bill = results.require("update_bill")
        return PaymentOutput(
            payment_id=payment.id,
            receipt_number=payment.receipt_number,
            bill_status=bill.status.value,
            remaining_balance=max(bill.balance_due, Decimal("0")),
            advance_credited=results.get("update_advance_balance") is not None,
        )

    return WorkflowDefinition(
        name=RECORD_WORKFLOW_NAME,
        steps=[
            Step("validate", validate),
            Step("generate_receipt_number", generate_receipt_number),
            Step("create_payment", create_payment, rollback=delete_payment),
            Step("update_bill", update_bill),
            Step("update_advance_balance", update_advance_balance, optional=True),
            Step("clear_overdue", clear_overdue, optional=True),
        ],
        build_output=build_output,
        audit_events=audit_events,
        notifications=notifications,
    )


def build_refund_workflow(
    repository: PropertyRepository,
) -> WorkflowDefinition[RefundInput, RefundOutput]:
    """Build the payment_refund definition bound to ``repository``."""

    async def validate_payment(
        context: ExecutionContext, data: RefundInput, results: StepResults
    ) -> Result[_RefundTarget]:
        payment = await repository.get_payment(data.payment_id)
        if payment.is_err:
            return payment
        if data.refund_amount > payment.value.amount:
            return err(
                ErrorKind.VALIDATION_FAILED,
                "Refund amount exceeds payment amount",
                payment_id=data.payment_id,
            )
        bill = await repository.get_bill(payment.value.bill_id)
        if bill.is_err and bill.error.kind is not ErrorKind.NOT_FOUND:
            return bill
        return ok(_RefundTarget(payment=payment.value, bill=bill.value if bill.is_ok else None))

    async def create_refund(
        context: ExecutionContext, data: RefundInput, results: StepResults
    ) -> Result[PaymentRefund]:
        refund = PaymentRefund(
            id=repository.new_id("refund"),
            payment_id=data.payment_id,
            amount=data.refund_amount,
            reason=data.refund_reason,
            method=PaymentMethod(data.refund_method),
            processed_by=context.actor_id,
            reference_number=data.refund_reference,
        )
        return await repository.add_refund(refund)

    async def update_bill(
        context: ExecutionContext, data: RefundInput, results: StepResults
    ) -> Result[Optional[Bill]]:
        bill = results.require("validate_payment").bill
        if bill is None:
            return ok(None)
        paid_amount = max(bill.paid_amount - data.refund_amount, Decimal("0"))
        return await repository.update_bill(
            bill.id, paid_amount=paid_amount, status=_status_after_refund(bill, paid_amount)
        )

    def audit_events(
        context: ExecutionContext, data: RefundInput, results: StepResults
    ) -> List[AuditEvent]:
        refund: PaymentRefund = results.require("create_refund")
        return [
            create_audit_event(
                EntityType.PAYMENT,
                data.payment_id,
                AuditAction.UPDATE,
                context,
                after={
                    "refund_amount": str(refund.amount),
                    "refund_reason": refund.reason,
                    "refund_id": refund.id,
                },
                metadata={"action": "refund"},
            )
        ]

    def build_output(results: StepResults) -> RefundOutput:
        refund: PaymentRefund = results.require("create_refund")
        return RefundOutput(
            refund_id=refund.id,
            original_payment_id=refund.payment_id,
            bill_updated=results.get("update_bill") is not None,
        )

    return WorkflowDefinition(
        name=REFUND_WORKFLOW_NAME,
        steps=[
            Step("validate_payment", validate_payment),
            Step("create_refund", create_refund),
            Step("update_bill", update_bill, optional=True),
        ],
        build_output=build_output,
        audit_events=audit_events,
    )


async def record_payment(
    engine: WorkflowEngine,
    repository: PropertyRepository,
    data: Union[PaymentInput, Mapping[str, Any]],
    context: ExecutionContext,
) -> WorkflowResult[PaymentOutput]:
    """Record a payment against a bill."""
    definition = build_payment_workflow(repository)
    try:
        parsed = parse_input(PaymentInput, data)
    except ValidationError as e:
        return rejected_input(RECORD_WORKFLOW_NAME, len(definition.steps), e)
    return await engine.execute(definition, parsed, context)


async def refund_payment(
    engine: WorkflowEngine,
    repository: PropertyRepository,
    data: Union[RefundInput, Mapping[str, Any]],
    context: ExecutionContext,
) -> WorkflowResult[RefundOutput]:
    """Refund (part of) an earlier payment."""
    definition = build_refund_workflow(repository)
    try:
        parsed = parse_input(RefundInput, data)
    except ValidationError as e:
        return rejected_input(REFUND_WORKFLOW_NAME, len(definition.steps), e)
    return await engine.execute(definition, parsed, context)
