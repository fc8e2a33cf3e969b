"""Tenant lifecycle workflows run by the orchestration engine."""

from .exit_clearance import (
    CompleteExitInput,
    CompleteExitOutput,
    ExitClearanceInput,
    ExitClearanceOutput,
    build_complete_exit_workflow,
    build_exit_clearance_workflow,
    complete_exit,
    initiate_exit,
)
from .payment import (
    PaymentInput,
    PaymentOutput,
    RefundInput,
    RefundOutput,
    build_payment_workflow,
    build_refund_workflow,
    record_payment,
    refund_payment,
)
from .room_transfer import (
    RoomTransferInput,
    RoomTransferOutput,
    build_room_transfer_workflow,
    transfer_room,
)
from .tenant_onboarding import (
    DocumentInput,
    TenantOnboardingInput,
    TenantOnboardingOutput,
    build_tenant_onboarding_workflow,
    onboard_tenant,
)

__all__ = [
    "CompleteExitInput",
    "CompleteExitOutput",
    "DocumentInput",
    "ExitClearanceInput",
    "ExitClearanceOutput",
    "PaymentInput",
    "PaymentOutput",
    "RefundInput",
    "RefundOutput",
    "RoomTransferInput",
    "RoomTransferOutput",
    "TenantOnboardingInput",
    "TenantOnboardingOutput",
    "build_complete_exit_workflow",
    "build_exit_clearance_workflow",
    "build_payment_workflow",
    "build_refund_workflow",
    "build_room_transfer_workflow",
    "build_tenant_onboarding_workflow",
    "complete_exit",
    "initiate_exit",
    "onboard_tenant",
    "record_payment",
    "refund_payment",
    "transfer_room",
]
