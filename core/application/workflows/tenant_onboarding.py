"""
Tenant Onboarding Workflow.

Creates a tenant together with the records that follow from it.

Flow:
1. validate_capacity (required) - room exists and has a free bed
2. create_tenant_record (required, rolled back by deleting the tenant)
3. create_stay_record (optional)
4. update_room_occupancy (optional)
5. assign_bed (optional)
6. save_documents (optional)
7. generate_initial_bill (optional)

A billing or document failure never undoes the tenant; a capacity or
record failure aborts before occupancy is touched.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from core.domain.audit import AuditAction, AuditEvent, EntityType, create_audit_event
from core.domain.entities.tenancy import (
    Bill,
    BillLineItem,
    Property,
    Room,
    Tenant,
    TenantDocument,
    TenantStay,
)
from core.domain.notifications import (
    NotificationPayload,
    build_bill_notification,
    build_welcome_notification,
)
from core.domain.repositories.property_repository import PropertyRepository
from orchestration.models import ErrorKind, ExecutionContext, Result, WorkflowResult, err, ok
from orchestration.orchestrator import WorkflowEngine
from orchestration.workflow import Step, StepResults, WorkflowDefinition

from .common import format_amount, parse_input, rejected_input

WORKFLOW_NAME = "tenant_onboarding"


# =============================================================================
# INPUT / OUTPUT
# =============================================================================

class DocumentInput(BaseModel):
    """Identity document supplied at onboarding."""

    model_config = ConfigDict(frozen=True)

    document_type: str = Field(..., min_length=1, description="e.g. aadhaar, passport")
    number: Optional[str] = Field(None, description="Document number")
    file_url: Optional[str] = Field(None, description="Uploaded scan location")


class TenantOnboardingInput(BaseModel):
    """Input for onboarding a tenant into a room."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Tenant full name")
    phone: str = Field(..., min_length=5, description="Primary phone number")
    email: Optional[str] = Field(None, description="E-mail; required for notifications")
    property_id: str = Field(..., min_length=1)
    room_id: str = Field(..., min_length=1)
    bed_id: Optional[str] = None
    check_in_date: date
    monthly_rent: Decimal = Field(..., gt=0)
    security_deposit: Decimal = Field(Decimal("0"), ge=0)
    advance_amount: Decimal = Field(Decimal("0"), ge=0)
    documents: List[DocumentInput] = Field(default_factory=list)
    generate_initial_bill: bool = True
    send_welcome_notification: bool = True


@dataclass(frozen=True)
class TenantOnboardingOutput:
    tenant_id: str
    stay_id: Optional[str]
    initial_bill_id: Optional[str]
    bed_assigned: bool
    documents_saved: int


@dataclass(frozen=True)
class _Placement:
    room: Room
    property: Property


def _bill_month(day: date) -> str:
    return day.strftime("%B %Y")


def _due_date(day: date) -> date:
    """5th of the month after ``day``."""
    if day.month == 12:
        return date(day.year + 1, 1, 5)
    return date(day.year, day.month + 1, 5)


# =============================================================================
# DEFINITION
# =============================================================================

def build_tenant_onboarding_workflow(
    repository: PropertyRepository,
) -> WorkflowDefinition[TenantOnboardingInput, TenantOnboardingOutput]:
    """Build the onboarding definition bound to ``repository``."""

    async def validate_capacity(
        context: ExecutionContext, data: TenantOnboardingInput, results: StepResults
    ) -> Result[_Placement]:
        room = await repository.get_room(data.room_id)
        if room.is_err:
            return room
        if room.value.property_id != data.property_id:
            return err(
                ErrorKind.VALIDATION_FAILED,
                "Room does not belong to property",
                room_id=data.room_id,
                property_id=data.property_id,
            )
        if not room.value.has_capacity:
            return err(
                ErrorKind.CAPACITY_EXCEEDED,
                "Room is at full capacity",
                room_id=data.room_id,
                occupied_beds=room.value.occupied_beds,
                total_beds=room.value.total_beds,
            )
        prop = await repository.get_property(data.property_id)
        if prop.is_err:
            return prop
        return ok(_Placement(room=room.value, property=prop.value))

    async def create_tenant_record(
        context: ExecutionContext, data: TenantOnboardingInput, results: StepResults
    ) -> Result[Tenant]:
        placement: _Placement = results.require("validate_capacity")
        tenant = Tenant(
            id=repository.new_id("tenant"),
            owner_id=placement.property.owner_id,
            name=data.name,
            phone=data.phone,
            email=data.email,
            property_id=data.property_id,
            room_id=data.room_id,
            bed_id=data.bed_id,
            monthly_rent=data.monthly_rent,
            security_deposit=data.security_deposit,
            advance_amount=data.advance_amount,
            check_in_date=data.check_in_date,
        )
        return await repository.add_tenant(tenant)

    async def delete_tenant_record(
        context: ExecutionContext, data: TenantOnboardingInput, tenant: Tenant
    ) -> Result[None]:
        return await repository.delete_tenant(tenant.id)

    async def create_stay_record(
        context: ExecutionContext, data: TenantOnboardingInput, results: StepResults
    ) -> Result[TenantStay]:
        tenant: Tenant = results.require("create_tenant_record")
        stay = TenantStay(
            id=repository.new_id("stay"),
            tenant_id=tenant.id,
            owner_id=tenant.owner_id,
            property_id=data.property_id,
            room_id=data.room_id,
            bed_id=data.bed_id,
            join_date=data.check_in_date,
            monthly_rent=data.monthly_rent,
        )
        return await repository.add_stay(stay)

    async def update_room_occupancy(
        context: ExecutionContext, data: TenantOnboardingInput, results: StepResults
    ) -> Result[Room]:
        room = results.require("validate_capacity").room
        return await repository.set_room_occupancy(room.id, room.occupied_beds + 1)

    async def assign_bed(
        context: ExecutionContext, data: TenantOnboardingInput, results: StepResults
    ) -> Result[Any]:
        if not data.bed_id:
            return ok(None)
        tenant: Tenant = results.require("create_tenant_record")
        return await repository.assign_bed(data.bed_id, tenant.id)

    async def save_documents(
        context: ExecutionContext, data: TenantOnboardingInput, results: StepResults
    ) -> Result[List[TenantDocument]]:
        if not data.documents:
            return ok([])
        tenant: Tenant = results.require("create_tenant_record")
        documents = [
            TenantDocument(
                id=repository.new_id("doc"),
                tenant_id=tenant.id,
                document_type=doc.document_type,
                number=doc.number,
                file_url=doc.file_url,
            )
            for doc in data.documents
        ]
        return await repository.add_documents(documents)

    async def generate_initial_bill(
        context: ExecutionContext, data: TenantOnboardingInput, results: StepResults
    ) -> Result[Optional[Bill]]:
        if not data.generate_initial_bill:
            return ok(None)
        tenant: Tenant = results.require("create_tenant_record")

        count = await repository.count_bills(tenant.owner_id)
        if count.is_err:
            return count

        month = _bill_month(data.check_in_date)
        line_items = [BillLineItem("rent", f"Monthly Rent - {month}", data.monthly_rent)]
        if data.security_deposit > 0:
            line_items.append(BillLineItem("deposit", "Security Deposit", data.security_deposit))
        if data.advance_amount > 0:
            line_items.append(BillLineItem("advance", "Advance Payment", data.advance_amount))

        bill = Bill(
            id=repository.new_id("bill"),
            owner_id=tenant.owner_id,
            tenant_id=tenant.id,
            property_id=data.property_id,
            bill_number=f"BILL-{count.value + 1:05d}",
            bill_month=month,
            due_date=_due_date(data.check_in_date),
            line_items=line_items,
        )
        return await repository.add_bill(bill)

    def audit_events(
        context: ExecutionContext, data: TenantOnboardingInput, results: StepResults
    ) -> List[AuditEvent]:
        tenant: Tenant = results.require("create_tenant_record")
        events = [
            create_audit_event(
                EntityType.TENANT,
                tenant.id,
                AuditAction.CREATE,
                context,
                after={
                    "name": data.name,
                    "phone": data.phone,
                    "room_id": data.room_id,
                    "monthly_rent": str(data.monthly_rent),
                },
            ),
        ]
        if results.succeeded("update_room_occupancy"):
            room: Room = results["update_room_occupancy"]
            events.append(
                create_audit_event(
                    EntityType.ROOM,
                    room.id,
                    AuditAction.UPDATE,
                    context,
                    metadata={
                        "action": "tenant_assigned",
                        "tenant_id": tenant.id,
                        "occupied_beds": room.occupied_beds,
                        "status": room.status.value,
                    },
                )
            )
        return events

    def notifications(
        context: ExecutionContext, data: TenantOnboardingInput, results: StepResults
    ) -> List[NotificationPayload]:
        if not data.email:
            return []
        tenant: Tenant = results.require("create_tenant_record")
        placement: _Placement = results.require("validate_capacity")

        payloads: List[NotificationPayload] = []
        if data.send_welcome_notification:
            payloads.append(
                build_welcome_notification(tenant.id, placement.property.name, data.name)
            )
        bill: Optional[Bill] = results.get("generate_initial_bill")
        if bill is not None:
            payloads.append(
                build_bill_notification(
                    tenant.id,
                    bill_id=bill.id,
                    bill_number=bill.bill_number,
                    amount=format_amount(bill.total_amount),
                    month=bill.bill_month,
                )
            )
        return payloads

    def build_output(results: StepResults) -> TenantOnboardingOutput:
        tenant: Tenant = results.require("create_tenant_record")
        stay: Optional[TenantStay] = results.get("create_stay_record")
        bill: Optional[Bill] = results.get("generate_initial_bill")
        return TenantOnboardingOutput(
            tenant_id=tenant.id,
            stay_id=stay.id if stay else None,
            initial_bill_id=bill.id if bill else None,
            bed_assigned=results.get("assign_bed") is not None,
            documents_saved=len(results.get("save_documents", [])),
        )

    return WorkflowDefinition(
        name=WORKFLOW_NAME,
        steps=[
            Step("validate_capacity", validate_capacity),
            Step("create_tenant_record", create_tenant_record, rollback=delete_tenant_record),
            Step("create_stay_record", create_stay_record, optional=True),
            Step("update_room_occupancy", update_room_occupancy, optional=True),
            Step("assign_bed", assign_bed, optional=True),
            Step("save_documents", save_documents, optional=True),
            Step("generate_initial_bill", generate_initial_bill, optional=True),
        ],
        build_output=build_output,
        audit_events=audit_events,
        notifications=notifications,
    )


async def onboard_tenant(
    engine: WorkflowEngine,
    repository: PropertyRepository,
    data: Union[TenantOnboardingInput, Mapping[str, Any]],
    context: ExecutionContext,
) -> WorkflowResult[TenantOnboardingOutput]:
    """
    Onboard a tenant.

    Args:
        engine: Engine executing the workflow
        repository: System of record
        data: Onboarding input (model or raw mapping)
        context: Acting identity and idempotency key

    Returns:
        WorkflowResult; invalid input yields ``validation_failed`` without
        running any step
    """
    definition = build_tenant_onboarding_workflow(repository)
    try:
        parsed = parse_input(TenantOnboardingInput, data)
    except ValidationError as e:
        return rejected_input(WORKFLOW_NAME, len(definition.steps), e)
    return await engine.execute(definition, parsed, context)
