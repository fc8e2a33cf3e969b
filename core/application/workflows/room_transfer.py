"""
Room Transfer Workflow.

Moves an existing tenant to another room.

Knowing where the tenant currently lives (update_tenant) matters more
than the transfer's paper trail, so the tenant update is required and
the transfer record is optional. release_old_room has no rollback: if
assigning the new room fails afterwards the old room stays released.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from core.domain.audit import AuditAction, AuditEvent, EntityType, create_audit_event
from core.domain.entities.tenancy import Room, RoomTransfer, Tenant
from core.domain.notifications import NotificationPayload, build_room_transfer_notification
from core.domain.repositories.property_repository import PropertyRepository
from orchestration.models import ErrorKind, ExecutionContext, Result, WorkflowResult, err, ok
from orchestration.orchestrator import WorkflowEngine
from orchestration.workflow import Step, StepResults, WorkflowDefinition

from .common import parse_input, rejected_input

WORKFLOW_NAME = "room_transfer"


class RoomTransferInput(BaseModel):
    """Input for moving a tenant to another room."""

    model_config = ConfigDict(frozen=True)

    tenant_id: str = Field(..., min_length=1)
    new_room_id: str = Field(..., min_length=1)
    new_bed_id: Optional[str] = None
    transfer_date: date
    reason: Optional[str] = None
    adjust_rent: bool = False
    new_rent: Optional[Decimal] = Field(None, gt=0)

    @model_validator(mode="after")
    def check_rent(self) -> "RoomTransferInput":
        if self.adjust_rent and self.new_rent is None:
            raise ValueError("new_rent is required when adjust_rent is set")
        return self


@dataclass(frozen=True)
class RoomTransferOutput:
    transfer_id: Optional[str]
    old_room_id: Optional[str]
    new_room_id: str
    rent_adjusted: bool


@dataclass(frozen=True)
class _TransferPlan:
    tenant: Tenant
    old_room: Optional[Room]
    new_room: Room


def build_room_transfer_workflow(
    repository: PropertyRepository,
) -> WorkflowDefinition[RoomTransferInput, RoomTransferOutput]:
    """Build the room transfer definition bound to ``repository``."""

    async def validate(
        context: ExecutionContext, data: RoomTransferInput, results: StepResults
    ) -> Result[_TransferPlan]:
        tenant = await repository.get_tenant(data.tenant_id)
        if tenant.is_err:
            return tenant
        if tenant.value.room_id == data.new_room_id:
            return err(
                ErrorKind.VALIDATION_FAILED,
                "Tenant is already in this room",
                tenant_id=data.tenant_id,
                room_id=data.new_room_id,
            )

        new_room = await repository.get_room(data.new_room_id)
        if new_room.is_err:
            return new_room
        if not new_room.value.has_capacity:
            return err(
                ErrorKind.CAPACITY_EXCEEDED,
                "New room is at full capacity",
                room_id=data.new_room_id,
            )

        # A tenant whose old room no longer exists can still be moved
        old_room: Optional[Room] = None
        if tenant.value.room_id:
            found = await repository.get_room(tenant.value.room_id)
            if found.is_ok:
                old_room = found.value
            elif found.error.kind is not ErrorKind.NOT_FOUND:
                return found

        return ok(_TransferPlan(tenant=tenant.value, old_room=old_room, new_room=new_room.value))

    async def create_transfer_record(
        context: ExecutionContext, data: RoomTransferInput, results: StepResults
    ) -> Result[RoomTransfer]:
        plan: _TransferPlan = results.require("validate")
        transfer = RoomTransfer(
            id=repository.new_id("transfer"),
            tenant_id=data.tenant_id,
            old_room_id=plan.old_room.id if plan.old_room else None,
            new_room_id=data.new_room_id,
            old_bed_id=plan.tenant.bed_id,
            new_bed_id=data.new_bed_id,
            transfer_date=data.transfer_date,
            reason=data.reason,
            old_rent=plan.tenant.monthly_rent,
            new_rent=data.new_rent or plan.tenant.monthly_rent,
            created_by=context.actor_id,
        )
        return await repository.add_transfer(transfer)

    async def release_old_room(
        context: ExecutionContext, data: RoomTransferInput, results: StepResults
    ) -> Result[Optional[Room]]:
        plan: _TransferPlan = results.require("validate")
        if plan.old_room is None:
            return ok(None)
        return await repository.set_room_occupancy(
            plan.old_room.id, plan.old_room.occupied_beds - 1
        )

    async def assign_new_room(
        context: ExecutionContext, data: RoomTransferInput, results: StepResults
    ) -> Result[Room]:
        room = results.require("validate").new_room
        return await repository.set_room_occupancy(room.id, room.occupied_beds + 1)

    async def restore_new_room(
        context: ExecutionContext, data: RoomTransferInput, room: Room
    ) -> Result[Room]:
        return await repository.set_room_occupancy(room.id, room.occupied_beds - 1)

    async def update_tenant(
        context: ExecutionContext, data: RoomTransferInput, results: StepResults
    ) -> Result[Tenant]:
        changes: dict = {"room_id": data.new_room_id, "bed_id": data.new_bed_id}
        if data.adjust_rent and data.new_rent is not None:
            changes["monthly_rent"] = data.new_rent
        return await repository.update_tenant(data.tenant_id, **changes)

    def audit_events(
        context: ExecutionContext, data: RoomTransferInput, results: StepResults
    ) -> List[AuditEvent]:
        plan: _TransferPlan = results.require("validate")
        updated: Tenant = results.require("update_tenant")
        return [
            create_audit_event(
                EntityType.TENANT,
                data.tenant_id,
                AuditAction.UPDATE,
                context,
                before={
                    "room_id": plan.old_room.id if plan.old_room else None,
                    "room_number": plan.old_room.room_number if plan.old_room else None,
                    "monthly_rent": str(plan.tenant.monthly_rent),
                },
                after={
                    "room_id": plan.new_room.id,
                    "room_number": plan.new_room.room_number,
                    "monthly_rent": str(updated.monthly_rent),
                },
                metadata={"action": "room_transfer", "reason": data.reason},
            ),
        ]

    def notifications(
        context: ExecutionContext, data: RoomTransferInput, results: StepResults
    ) -> List[NotificationPayload]:
        plan: _TransferPlan = results.require("validate")
        if not plan.tenant.user_id:
            return []
        return [
            build_room_transfer_notification(
                plan.tenant.user_id,
                plan.old_room.room_number if plan.old_room else None,
                plan.new_room.room_number,
            )
        ]

    def build_output(results: StepResults) -> RoomTransferOutput:
        plan: _TransferPlan = results.require("validate")
        updated: Tenant = results.require("update_tenant")
        transfer: Optional[RoomTransfer] = results.get("create_transfer_record")
        return RoomTransferOutput(
            transfer_id=transfer.id if transfer else None,
            old_room_id=plan.old_room.id if plan.old_room else None,
            new_room_id=plan.new_room.id,
            rent_adjusted=updated.monthly_rent != plan.tenant.monthly_rent,
        )

    return WorkflowDefinition(
        name=WORKFLOW_NAME,
        steps=[
            Step("validate", validate),
            Step("create_transfer_record", create_transfer_record, optional=True),
            Step("release_old_room", release_old_room, optional=True),
            Step("assign_new_room", assign_new_room, rollback=restore_new_room),
            Step("update_tenant", update_tenant),
        ],
        build_output=build_output,
        audit_events=audit_events,
        notifications=notifications,
    )


async def transfer_room(
    engine: WorkflowEngine,
    repository: PropertyRepository,
    data: Union[RoomTransferInput, Mapping[str, Any]],
    context: ExecutionContext,
) -> WorkflowResult[RoomTransferOutput]:
    """Move a tenant to another room."""
    definition = build_room_transfer_workflow(repository)
    try:
        parsed = parse_input(RoomTransferInput, data)
    except ValidationError as e:
        return rejected_input(WORKFLOW_NAME, len(definition.steps), e)
    return await engine.execute(definition, parsed, context)
