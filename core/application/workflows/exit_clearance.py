"""
Exit Clearance Workflows.

exit_clearance starts a tenant's exit: computes the deposit settlement,
moves the tenant into the notice period and opens a clearance record.
Every step is required; a failed clearance insert puts the tenant back
to active.

complete_exit closes an open clearance on the day the tenant leaves.
The tenant is checked out and the clearance completed first; ending the
stay and freeing the room and bed afterwards are best effort.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from core.domain.audit import AuditAction, AuditEvent, EntityType, create_audit_event
from core.domain.entities.tenancy import (
    ClearanceStatus,
    ExitClearance,
    Room,
    Settlement,
    Tenant,
    TenantStatus,
    TenantStay,
)
from core.domain.notifications import (
    NotificationPayload,
    RecipientKind,
    build_exit_clearance_notification,
)
from core.domain.repositories.property_repository import PropertyRepository
from orchestration.models import ErrorKind, ExecutionContext, Result, WorkflowResult, err, ok
from orchestration.orchestrator import WorkflowEngine
from orchestration.workflow import Step, StepResults, WorkflowDefinition

from .common import format_amount, parse_input, rejected_input

WORKFLOW_NAME = "exit_clearance"
COMPLETE_WORKFLOW_NAME = "complete_exit"


class DeductionInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    description: str = Field(..., min_length=1)
    amount: Decimal = Field(..., ge=0)


class ExitClearanceInput(BaseModel):
    """Input for initiating a tenant's exit."""

    model_config = ConfigDict(frozen=True)

    tenant_id: str = Field(..., min_length=1)
    requested_exit_date: date
    exit_reason: str = Field(..., min_length=1)
    notice_date: Optional[date] = None
    deductions: List[DeductionInput] = Field(default_factory=list)
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_dates(self) -> "ExitClearanceInput":
        if self.notice_date and self.notice_date > self.requested_exit_date:
            raise ValueError("notice_date must not be after requested_exit_date")
        return self


@dataclass(frozen=True)
class ExitClearanceOutput:
    clearance_id: str
    tenant_id: str
    settlement: Dict[str, str]
    status: str


@dataclass(frozen=True)
class _StatusChange:
    before: Tenant
    after: Tenant


def build_exit_clearance_workflow(
    repository: PropertyRepository,
) -> WorkflowDefinition[ExitClearanceInput, ExitClearanceOutput]:
    """Build the exit clearance definition bound to ``repository``."""

    async def validate_tenant(
        context: ExecutionContext, data: ExitClearanceInput, results: StepResults
    ) -> Result[Tenant]:
        tenant = await repository.get_tenant(data.tenant_id)
        if tenant.is_err:
            return tenant
        if tenant.value.status is TenantStatus.CHECKED_OUT:
            return err(
                ErrorKind.CONFLICT, "Tenant has already exited", tenant_id=data.tenant_id
            )
        existing = await repository.find_open_clearance(data.tenant_id)
        if existing.is_err:
            return existing
        if existing.value is not None:
            return err(
                ErrorKind.CONFLICT,
                "Exit clearance already initiated",
                tenant_id=data.tenant_id,
                clearance_id=existing.value.id,
            )
        return tenant

    async def calculate_settlement(
        context: ExecutionContext, data: ExitClearanceInput, results: StepResults
    ) -> Result[Settlement]:
        tenant: Tenant = results.require("validate_tenant")
        bills = await repository.list_unpaid_bills(tenant.id)
        if bills.is_err:
            return bills
        return ok(
            Settlement(
                total_dues=sum((bill.balance_due for bill in bills.value), Decimal("0")),
                deposit_amount=tenant.security_deposit,
                deductions=sum((d.amount for d in data.deductions), Decimal("0")),
            )
        )

    async def update_tenant_status(
        context: ExecutionContext, data: ExitClearanceInput, results: StepResults
    ) -> Result[_StatusChange]:
        tenant: Tenant = results.require("validate_tenant")
        updated = await repository.update_tenant(
            tenant.id,
            status=TenantStatus.NOTICE_PERIOD,
            notice_date=data.notice_date or date.today(),
            expected_exit_date=data.requested_exit_date,
        )
        if updated.is_err:
            return updated
        return ok(_StatusChange(before=tenant, after=updated.value))

    async def restore_tenant_status(
        context: ExecutionContext, data: ExitClearanceInput, change: _StatusChange
    ) -> Result[Tenant]:
        return await repository.update_tenant(
            change.before.id,
            status=change.before.status,
            notice_date=change.before.notice_date,
            expected_exit_date=change.before.expected_exit_date,
        )

    async def create_clearance_record(
        context: ExecutionContext, data: ExitClearanceInput, results: StepResults
    ) -> Result[ExitClearance]:
        tenant: Tenant = results.require("validate_tenant")
        clearance = ExitClearance(
            id=repository.new_id("clearance"),
            tenant_id=tenant.id,
            property_id=tenant.property_id,
            room_id=tenant.room_id,
            bed_id=tenant.bed_id,
            initiated_by=context.actor_id,
            notice_date=data.notice_date or date.today(),
            requested_exit_date=data.requested_exit_date,
            exit_reason=data.exit_reason,
            settlement=results.require("calculate_settlement"),
            notes=data.notes,
        )
        return await repository.add_clearance(clearance)

    async def delete_clearance_record(
        context: ExecutionContext, data: ExitClearanceInput, clearance: ExitClearance
    ) -> Result[None]:
        return await repository.delete_clearance(clearance.id)

    def audit_events(
        context: ExecutionContext, data: ExitClearanceInput, results: StepResults
    ) -> List[AuditEvent]:
        tenant: Tenant = results.require("validate_tenant")
        clearance: ExitClearance = results.require("create_clearance_record")
        return [
            create_audit_event(
                EntityType.EXIT_CLEARANCE,
                clearance.id,
                AuditAction.CREATE,
                context,
                after={
                    "tenant_id": tenant.id,
                    "exit_reason": data.exit_reason,
                    "requested_exit_date": data.requested_exit_date.isoformat(),
                    "settlement": clearance.settlement.to_dict(),
                },
            ),
            create_audit_event(
                EntityType.TENANT,
                tenant.id,
                AuditAction.STATUS_CHANGE,
                context,
                before={"status": tenant.status.value},
                after={"status": TenantStatus.NOTICE_PERIOD.value},
                metadata={"clearance_id": clearance.id},
            ),
        ]

    def notifications(
        context: ExecutionContext, data: ExitClearanceInput, results: StepResults
    ) -> List[NotificationPayload]:
        tenant: Tenant = results.require("validate_tenant")
        clearance: ExitClearance = results.require("create_clearance_record")
        details = {
            "clearance_id": clearance.id,
            "tenant_name": tenant.name,
            "exit_date": data.requested_exit_date.isoformat(),
        }
        payloads = [
            build_exit_clearance_notification(tenant.owner_id, RecipientKind.OWNER, False, details)
        ]
        if tenant.user_id:
            payloads.append(
                build_exit_clearance_notification(tenant.user_id, RecipientKind.TENANT, False, details)
            )
        return payloads

    def build_output(results: StepResults) -> ExitClearanceOutput:
        clearance: ExitClearance = results.require("create_clearance_record")
        return ExitClearanceOutput(
            clearance_id=clearance.id,
            tenant_id=clearance.tenant_id,
            settlement=clearance.settlement.to_dict(),
            status=clearance.status.value,
        )

    return WorkflowDefinition(
        name=WORKFLOW_NAME,
        steps=[
            Step("validate_tenant", validate_tenant),
            Step("calculate_settlement", calculate_settlement),
            Step("update_tenant_status", update_tenant_status, rollback=restore_tenant_status),
            Step("create_clearance_record", create_clearance_record, rollback=delete_clearance_record),
        ],
        build_output=build_output,
        audit_events=audit_events,
        notifications=notifications,
    )


async def initiate_exit(
    engine: WorkflowEngine,
    repository: PropertyRepository,
    data: Union[ExitClearanceInput, Mapping[str, Any]],
    context: ExecutionContext,
) -> WorkflowResult[ExitClearanceOutput]:
    """Initiate exit clearance for a tenant."""
    definition = build_exit_clearance_workflow(repository)
    try:
        parsed = parse_input(ExitClearanceInput, data)
    except ValidationError as e:
        return rejected_input(WORKFLOW_NAME, len(definition.steps), e)
    return await engine.execute(definition, parsed, context)


class CompleteExitInput(BaseModel):
    """Input for closing an exit clearance."""

    model_config = ConfigDict(frozen=True)

    clearance_id: str = Field(..., min_length=1)
    actual_exit_date: date
    final_settlement_mode: Optional[Literal["cash", "bank_transfer", "upi", "adjustment"]] = None
    settlement_reference: Optional[str] = None
    final_notes: Optional[str] = None


@dataclass(frozen=True)
class CompleteExitOutput:
    clearance_id: str
    tenant_id: str
    room_released: bool
    tenant_status: str


@dataclass(frozen=True)
class _ExitPlan:
    clearance: ExitClearance
    tenant: Tenant
    room: Optional[Room]


def build_complete_exit_workflow(
    repository: PropertyRepository,
) -> WorkflowDefinition[CompleteExitInput, CompleteExitOutput]:
    """Build the complete_exit definition bound to ``repository``."""

    async def validate_clearance(
        context: ExecutionContext, data: CompleteExitInput, results: StepResults
    ) -> Result[_ExitPlan]:
        clearance = await repository.get_clearance(data.clearance_id)
        if clearance.is_err:
            return clearance
        if clearance.value.status is ClearanceStatus.COMPLETED:
            return err(
                ErrorKind.CONFLICT,
                "Exit clearance already completed",
                clearance_id=data.clearance_id,
            )
        tenant = await repository.get_tenant(clearance.value.tenant_id)
        if tenant.is_err:
            return tenant
        room = await repository.get_room(clearance.value.room_id)
        if room.is_err and room.error.kind is not ErrorKind.NOT_FOUND:
            return room
        return ok(
            _ExitPlan(
                clearance=clearance.value,
                tenant=tenant.value,
                room=room.value if room.is_ok else None,
            )
        )

    async def update_tenant_status(
        context: ExecutionContext, data: CompleteExitInput, results: StepResults
    ) -> Result[_StatusChange]:
        tenant = results.require("validate_clearance").tenant
        updated = await repository.update_tenant(
            tenant.id,
            status=TenantStatus.CHECKED_OUT,
            check_out_date=data.actual_exit_date,
            room_id=None,
            bed_id=None,
        )
        if updated.is_err:
            return updated
        return ok(_StatusChange(before=tenant, after=updated.value))

    async def restore_tenant(
        context: ExecutionContext, data: CompleteExitInput, change: _StatusChange
    ) -> Result[Tenant]:
        return await repository.update_tenant(
            change.before.id,
            status=change.before.status,
            check_out_date=change.before.check_out_date,
            room_id=change.before.room_id,
            bed_id=change.before.bed_id,
        )

    async def complete_clearance(
        context: ExecutionContext, data: CompleteExitInput, results: StepResults
    ) -> Result[ExitClearance]:
        return await repository.update_clearance(
            data.clearance_id,
            status=ClearanceStatus.COMPLETED,
            actual_exit_date=data.actual_exit_date,
            settlement_mode=data.final_settlement_mode,
            settlement_reference=data.settlement_reference,
            final_notes=data.final_notes,
            completed_by=context.actor_id,
        )

    async def complete_tenant_stay(
        context: ExecutionContext, data: CompleteExitInput, results: StepResults
    ) -> Result[Optional[TenantStay]]:
        plan: _ExitPlan = results.require("validate_clearance")
        stay = await repository.find_active_stay(plan.tenant.id)
        if stay.is_err or stay.value is None:
            return stay
        return await repository.update_stay(
            stay.value.id,
            status="completed",
            exit_date=data.actual_exit_date,
            exit_reason=plan.clearance.exit_reason,
        )

    async def release_room(
        context: ExecutionContext, data: CompleteExitInput, results: StepResults
    ) -> Result[Optional[Room]]:
        room = results.require("validate_clearance").room
        if room is None:
            return ok(None)
        return await repository.set_room_occupancy(room.id, room.occupied_beds - 1)

    async def release_bed(
        context: ExecutionContext, data: CompleteExitInput, results: StepResults
    ) -> Result[Any]:
        clearance = results.require("validate_clearance").clearance
        if not clearance.bed_id:
            return ok(None)
        return await repository.assign_bed(clearance.bed_id, None)

    def audit_events(
        context: ExecutionContext, data: CompleteExitInput, results: StepResults
    ) -> List[AuditEvent]:
        plan: _ExitPlan = results.require("validate_clearance")
        events = [
            create_audit_event(
                EntityType.EXIT_CLEARANCE,
                plan.clearance.id,
                AuditAction.COMPLETE,
                context,
                after={
                    "actual_exit_date": data.actual_exit_date.isoformat(),
                    "settlement_mode": data.final_settlement_mode,
                },
            ),
            create_audit_event(
                EntityType.TENANT,
                plan.tenant.id,
                AuditAction.STATUS_CHANGE,
                context,
                before={"status": plan.tenant.status.value},
                after={"status": TenantStatus.CHECKED_OUT.value},
                metadata={"clearance_id": plan.clearance.id},
            ),
        ]
        room: Optional[Room] = results.get("release_room")
        if room is not None:
            events.append(
                create_audit_event(
                    EntityType.ROOM,
                    room.id,
                    AuditAction.UPDATE,
                    context,
                    before={"occupied_beds": plan.room.occupied_beds},
                    after={"occupied_beds": room.occupied_beds},
                    metadata={"action": "tenant_exit", "tenant_id": plan.tenant.id},
                )
            )
        return events

    def notifications(
        context: ExecutionContext, data: CompleteExitInput, results: StepResults
    ) -> List[NotificationPayload]:
        plan: _ExitPlan = results.require("validate_clearance")
        if not plan.tenant.user_id:
            return []
        return [
            build_exit_clearance_notification(
                plan.tenant.user_id,
                RecipientKind.TENANT,
                True,
                {
                    "clearance_id": plan.clearance.id,
                    "tenant_name": plan.tenant.name,
                    "settlement_amount": format_amount(plan.clearance.settlement.net_amount),
                },
            )
        ]

    def build_output(results: StepResults) -> CompleteExitOutput:
        clearance: ExitClearance = results.require("complete_clearance")
        change: _StatusChange = results.require("update_tenant_status")
        return CompleteExitOutput(
            clearance_id=clearance.id,
            tenant_id=clearance.tenant_id,
            room_released=results.get("release_room") is not None,
            tenant_status=change.after.status.value,
        )

    return WorkflowDefinition(
        name=COMPLETE_WORKFLOW_NAME,
        steps=[
            Step("validate_clearance", validate_clearance),
            Step("update_tenant_status", update_tenant_status, rollback=restore_tenant),
            Step("complete_clearance", complete_clearance),
            Step("complete_tenant_stay", complete_tenant_stay, optional=True),
            Step("release_room", release_room, optional=True),
            Step("release_bed", release_bed, optional=True),
        ],
        build_output=build_output,
        audit_events=audit_events,
        notifications=notifications,
    )


async def complete_exit(
    engine: WorkflowEngine,
    repository: PropertyRepository,
    data: Union[CompleteExitInput, Mapping[str, Any]],
    context: ExecutionContext,
) -> WorkflowResult[CompleteExitOutput]:
    """Close an exit clearance and check the tenant out."""
    definition = build_complete_exit_workflow(repository)
    try:
        parsed = parse_input(CompleteExitInput, data)
    except ValidationError as e:
        return rejected_input(COMPLETE_WORKFLOW_NAME, len(definition.steps), e)
    return await engine.execute(definition, parsed, context)
