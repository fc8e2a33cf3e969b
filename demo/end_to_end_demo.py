"""
End-to-End Demo: Tenant Lifecycle

This demonstrates the complete lifecycle of one tenant:
1. Onboard the tenant (record, stay, occupancy, bed, documents, first bill)
2. Pay the first bill
3. Transfer the tenant to another room with a rent change
4. Initiate exit clearance, compute the settlement and complete the exit
5. Show compensation when a required step fails

Uses in-memory implementations (no database or chat channel needed).
"""
import asyncio
import logging
from datetime import date
from decimal import Decimal

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

from core.application.workflows import (
    complete_exit,
    initiate_exit,
    onboard_tenant,
    record_payment,
    transfer_room,
)
from core.domain.entities.tenancy import Bed, Property, Room
from core.infrastructure.adapters.audit import InMemoryAuditSink
from core.infrastructure.adapters.notifications.mock_notification_service import MockNotificationDispatcher
from core.infrastructure.adapters.persistence import InMemoryPropertyStore
from orchestration import ActorKind, ExecutionContext, WorkflowResult, create_workflow_engine


def seed_store() -> InMemoryPropertyStore:
    store = InMemoryPropertyStore()
    store.seed(
        Property(id="prop-1", name="Sunrise PG", owner_id="owner-1"),
        Room(id="room-101", property_id="prop-1", room_number="101", total_beds=2, monthly_rent=Decimal("8000")),
        Room(id="room-201", property_id="prop-1", room_number="201", total_beds=1, monthly_rent=Decimal("9500")),
        Bed(id="bed-101-a", room_id="room-101"),
    )
    return store


def print_result(title: str, result: WorkflowResult) -> None:
    print(f"\n📊 {title}:")
    print(f"   Success: {result.success}")
    print(f"   Workflow ID: {result.workflow_id}")
    print(f"   Steps: {result.steps_completed}/{result.steps_total}")
    if result.data is not None:
        print(f"   Output: {result.data}")
    if result.failed_steps:
        print(f"   Failed optional steps: {', '.join(result.failed_steps)}")
    for error in result.errors:
        print(f"   Error [{error.kind.value}]: {error.message} {error.details or ''}")
    if result.compensated_steps:
        print(f"   Compensated: {', '.join(result.compensated_steps)}")


async def demo_lifecycle():
    """Demo: onboard, bill, transfer and exit one tenant."""

    print("\n" + "="*80)
    print("DEMO: Tenant Lifecycle")
    print("="*80 + "\n")

    store = seed_store()
    audit_sink = InMemoryAuditSink()
    dispatcher = MockNotificationDispatcher()
    engine = create_workflow_engine(audit_sink=audit_sink, notification_dispatcher=dispatcher)
    context = ExecutionContext(
        actor_id="owner-1",
        actor_kind=ActorKind.OWNER,
        scope_id="ws-1",
        idempotency_key="onboard-ravi",
    )

    request = {
        "name": "Ravi Kumar",
        "phone": "9876543210",
        "email": "ravi@example.com",
        "property_id": "prop-1",
        "room_id": "room-101",
        "bed_id": "bed-101-a",
        "check_in_date": date.today().isoformat(),
        "monthly_rent": "8000",
        "security_deposit": "16000",
        "documents": [{"document_type": "aadhaar", "number": "1234-5678"}],
    }
    onboarded = await onboard_tenant(engine, store, request, context)
    print_result("ONBOARDING", onboarded)

    # Same key: served from the idempotency cache
    replay = await onboard_tenant(engine, store, request, context)
    print(f"\n🔁 Replay returned cached result: {replay is onboarded}")

    tenant_id = onboarded.data.tenant_id
    plain = ExecutionContext(actor_id="owner-1", actor_kind=ActorKind.OWNER, scope_id="ws-1")

    paid = await record_payment(
        engine,
        store,
        {
            "tenant_id": tenant_id,
            "property_id": "prop-1",
            "bill_id": onboarded.data.initial_bill_id,
            "amount": "24000",
            "payment_date": date.today().isoformat(),
            "payment_method": "upi",
            "send_receipt": True,
        },
        plain,
    )
    print_result("PAYMENT", paid)

    transferred = await transfer_room(
        engine,
        store,
        {
            "tenant_id": tenant_id,
            "new_room_id": "room-201",
            "transfer_date": date.today().isoformat(),
            "reason": "Prefers a single room",
            "adjust_rent": True,
            "new_rent": "9500",
        },
        plain,
    )
    print_result("ROOM TRANSFER", transferred)

    exit_result = await initiate_exit(
        engine,
        store,
        {
            "tenant_id": tenant_id,
            "requested_exit_date": date.today().isoformat(),
            "exit_reason": "Relocating",
            "deductions": [{"description": "Key replacement", "amount": "500"}],
        },
        plain,
    )
    print_result("EXIT CLEARANCE", exit_result)

    completed = await complete_exit(
        engine,
        store,
        {
            "clearance_id": exit_result.data.clearance_id,
            "actual_exit_date": date.today().isoformat(),
            "final_settlement_mode": "bank_transfer",
        },
        plain,
    )
    print_result("EXIT COMPLETED", completed)

    print(f"\n📝 Audit events recorded: {len(audit_sink.events)}")
    print(f"📨 Notifications sent: {len(dispatcher.get_notifications())}")

    print("\n" + "="*80)
    print("✅ Lifecycle demo completed!")
    print("="*80 + "\n")


async def demo_compensation():
    """Demo: a failing required step undoes earlier work."""

    print("\n" + "="*80)
    print("DEMO: Compensation on Failure")
    print("="*80 + "\n")

    store = seed_store()
    store.fail_on.add("update_tenant")
    engine = create_workflow_engine(notification_dispatcher=MockNotificationDispatcher())
    context = ExecutionContext(actor_id="owner-1", actor_kind=ActorKind.OWNER, scope_id="ws-1")

    onboarded = await onboard_tenant(
        engine,
        store,
        {
            "name": "Meera Shah",
            "phone": "9123456780",
            "property_id": "prop-1",
            "room_id": "room-101",
            "check_in_date": date.today().isoformat(),
            "monthly_rent": "8000",
        },
        context,
    )
    tenant_id = onboarded.data.tenant_id

    print("🚀 Transferring with a failing tenant update...\n")
    print("-" * 80)
    transferred = await transfer_room(
        engine,
        store,
        {"tenant_id": tenant_id, "new_room_id": "room-201", "transfer_date": date.today().isoformat()},
        context,
    )
    print("-" * 80)
    print_result("ROOM TRANSFER", transferred)
    print(f"   Room 201 occupancy after rollback: {store.rooms['room-201'].occupied_beds}")

    print("\n" + "="*80)
    print("✅ Compensation demo completed!")
    print("="*80 + "\n")


async def main():
    """Run all demos."""

    print("\n" + "🏠 " * 20)
    print("HOSTELFLOW - END-TO-END DEMO")
    print("Tenant lifecycle workflows with compensation")
    print("🏠 " * 20 + "\n")

    try:
        await demo_lifecycle()
        await demo_compensation()

        print("\n✅ All demos completed successfully!")

    except Exception as e:
        logger.error(f"Demo failed: {e}", exc_info=True)
        print(f"\n❌ Demo failed: {e}")


if __name__ == "__main__":
    asyncio.run(main())
