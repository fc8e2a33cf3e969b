"""
Notification Types.

Payloads derived by workflows after a successful run, plus the
templates used to render them for a delivery channel.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


class NotificationChannel(str, Enum):
    """Delivery channels a payload may request."""

    EMAIL = "email"
    WHATSAPP = "whatsapp"
    IN_APP = "in_app"
    PUSH = "push"


class NotificationType(str, Enum):
    """Notification types with a registered template."""

    BILL_GENERATED = "bill_generated"
    EXIT_CLEARANCE_INITIATED = "exit_clearance_initiated"
    EXIT_CLEARANCE_COMPLETED = "exit_clearance_completed"
    PAYMENT_RECEIVED = "payment_received"
    ROOM_TRANSFERRED = "room_transferred"
    WELCOME = "welcome"


class RecipientKind(str, Enum):
    OWNER = "owner"
    STAFF = "staff"
    TENANT = "tenant"


class NotificationPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


@dataclass(frozen=True)
class NotificationPayload:
    """A notification to be delivered to one recipient."""

    type: NotificationType
    recipient_id: str
    recipient_kind: RecipientKind
    channels: List[NotificationChannel]
    data: Dict[str, Any] = field(default_factory=dict)
    priority: NotificationPriority = NotificationPriority.NORMAL
    scheduled_at: Optional[datetime] = None


@dataclass(frozen=True)
class RenderedNotification:
    """Channel-independent rendering of a payload."""

    title: str
    body: str
    subject: Optional[str] = None
    action_url: Optional[str] = None
    action_label: Optional[str] = None


_TEMPLATES: Dict[NotificationType, Callable[[Dict[str, Any]], RenderedNotification]] = {
    NotificationType.BILL_GENERATED: lambda d: RenderedNotification(
        subject=f"New Bill Generated - {d.get('bill_number')}",
        title="New Bill Generated",
        body=(
            f"Your bill #{d.get('bill_number')} for {d.get('month')} has been generated. "
            f"Amount: {d.get('amount')}"
        ),
        action_url=f"/tenant/bills/{d.get('bill_id')}",
        action_label="View Bill",
    ),
    NotificationType.EXIT_CLEARANCE_INITIATED: lambda d: RenderedNotification(
        subject=f"Exit Clearance Initiated - {d.get('tenant_name')}",
        title="Exit Clearance Started",
        body=(
            f"Exit clearance has been initiated for {d.get('tenant_name')}. "
            f"Expected exit: {d.get('exit_date')}"
        ),
        action_url=f"/exit-clearance/{d.get('clearance_id')}",
        action_label="View Clearance",
    ),
    NotificationType.EXIT_CLEARANCE_COMPLETED: lambda d: RenderedNotification(
        subject=f"Exit Clearance Completed - {d.get('tenant_name')}",
        title="Exit Clearance Complete",
        body=(
            f"Exit clearance for {d.get('tenant_name')} has been completed. "
            f"Final settlement: {d.get('settlement_amount')}"
        ),
        action_url=f"/exit-clearance/{d.get('clearance_id')}",
        action_label="View Summary",
    ),
    NotificationType.PAYMENT_RECEIVED: lambda d: RenderedNotification(
        subject=f"Payment Received - {d.get('amount')}",
        title="Payment Confirmed",
        body=(
            f"We received your payment of {d.get('amount')} for bill "
            f"#{d.get('bill_number')}. Thank you!"
        ),
        action_url=f"/tenant/payments/{d.get('payment_id')}",
        action_label="View Receipt",
    ),
    NotificationType.ROOM_TRANSFERRED: lambda d: RenderedNotification(
        subject=f"Room Transfer - {d.get('new_room_number')}",
        title="Room Transferred",
        body=f"Your room has been changed from {d.get('old_room_number')} to {d.get('new_room_number')}.",
        action_url="/tenant/dashboard",
        action_label="View Details",
    ),
    NotificationType.WELCOME: lambda d: RenderedNotification(
        subject=f"Welcome to {d.get('property_name')}!",
        title="Welcome!",
        body=(
            f"Welcome to {d.get('property_name')}, {d.get('tenant_name')}! "
            "Your tenant portal is now active."
        ),
        action_url="/tenant/dashboard",
        action_label="Get Started",
    ),
}


def render_notification(payload: NotificationPayload) -> RenderedNotification:
    """
    Render a payload with its type's template.

    Missing data keys render as ``None`` instead of failing.
    """
    return _TEMPLATES[payload.type](payload.data)


def build_welcome_notification(tenant_id: str, property_name: str, tenant_name: str) -> NotificationPayload:
    """Welcome message for a newly onboarded tenant."""
    return NotificationPayload(
        type=NotificationType.WELCOME,
        recipient_id=tenant_id,
        recipient_kind=RecipientKind.TENANT,
        channels=[NotificationChannel.EMAIL, NotificationChannel.IN_APP],
        data={"property_name": property_name, "tenant_name": tenant_name},
    )


def build_bill_notification(
    tenant_id: str,
    bill_id: str,
    bill_number: str,
    amount: str,
    month: str,
) -> NotificationPayload:
    """Bill generated message for a tenant."""
    return NotificationPayload(
        type=NotificationType.BILL_GENERATED,
        recipient_id=tenant_id,
        recipient_kind=RecipientKind.TENANT,
        channels=[NotificationChannel.EMAIL, NotificationChannel.IN_APP],
        data={
            "bill_id": bill_id,
            "bill_number": bill_number,
            "amount": amount,
            "month": month,
        },
    )


def build_exit_clearance_notification(
    recipient_id: str,
    recipient_kind: RecipientKind,
    completed: bool,
    data: Dict[str, Any],
) -> NotificationPayload:
    """Exit clearance initiated/completed message."""
    return NotificationPayload(
        type=(
            NotificationType.EXIT_CLEARANCE_COMPLETED
            if completed
            else NotificationType.EXIT_CLEARANCE_INITIATED
        ),
        recipient_id=recipient_id,
        recipient_kind=recipient_kind,
        channels=[NotificationChannel.IN_APP, NotificationChannel.EMAIL],
        data=dict(data),
        priority=NotificationPriority.HIGH,
    )


def build_room_transfer_notification(
    tenant_id: str,
    old_room_number: Optional[str],
    new_room_number: str,
) -> NotificationPayload:
    """Room changed message for a tenant with a portal account."""
    return NotificationPayload(
        type=NotificationType.ROOM_TRANSFERRED,
        recipient_id=tenant_id,
        recipient_kind=RecipientKind.TENANT,
        channels=[NotificationChannel.IN_APP],
        data={"old_room_number": old_room_number, "new_room_number": new_room_number},
    )


def build_payment_notification(
    recipient_id: str,
    payment_id: str,
    amount: str,
    bill_number: str,
    receipt_number: str,
) -> NotificationPayload:
    """Payment receipt for a tenant."""
    return NotificationPayload(
        type=NotificationType.PAYMENT_RECEIVED,
        recipient_id=recipient_id,
        recipient_kind=RecipientKind.TENANT,
        channels=[NotificationChannel.EMAIL, NotificationChannel.IN_APP],
        data={
            "payment_id": payment_id,
            "amount": amount,
            "bill_number": bill_number,
            "receipt_number": receipt_number,
        },
    )
