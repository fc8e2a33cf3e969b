"""
Tenancy entities.

Properties, rooms, beds and the tenants that occupy them, plus the
records the lifecycle workflows create (stays, bills, payments,
refunds, transfers, exit clearances).

CRITICAL: This file must contain ZERO imports from:
- sqlalchemy
- pydantic
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional


class RoomStatus(str, Enum):
    AVAILABLE = "available"
    PARTIALLY_OCCUPIED = "partially_occupied"
    OCCUPIED = "occupied"


class TenantStatus(str, Enum):
    ACTIVE = "active"
    NOTICE_PERIOD = "notice_period"
    CHECKED_OUT = "checked_out"


class BillStatus(str, Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"


class ClearanceStatus(str, Enum):
    INITIATED = "initiated"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class PaymentMethod(str, Enum):
    CASH = "cash"
    UPI = "upi"
    BANK_TRANSFER = "bank_transfer"
    CARD = "card"
    CHEQUE = "cheque"
    OTHER = "other"


@dataclass
class Property:
    id: str
    name: str
    owner_id: str


@dataclass
class Room:
    """A room with a fixed number of beds."""

    id: str
    property_id: str
    room_number: str
    total_beds: int = 1
    occupied_beds: int = 0
    monthly_rent: Decimal = Decimal("0")
    status: RoomStatus = RoomStatus.AVAILABLE

    @property
    def has_capacity(self) -> bool:
        return self.occupied_beds < max(self.total_beds, 1)

    def status_for(self, occupied_beds: int) -> RoomStatus:
        """Status the room would have with ``occupied_beds`` taken."""
        if occupied_beds <= 0:
            return RoomStatus.AVAILABLE
        if occupied_beds >= max(self.total_beds, 1):
            return RoomStatus.OCCUPIED
        return RoomStatus.PARTIALLY_OCCUPIED


@dataclass
class Bed:
    id: str
    room_id: str
    current_tenant_id: Optional[str] = None

    @property
    def occupied(self) -> bool:
        return self.current_tenant_id is not None


@dataclass
class Tenant:
    """A person renting a bed or room."""

    id: str
    owner_id: str
    name: str
    phone: str
    property_id: str
    room_id: Optional[str]
    monthly_rent: Decimal
    check_in_date: date
    email: Optional[str] = None
    bed_id: Optional[str] = None
    security_deposit: Decimal = Decimal("0")
    advance_amount: Decimal = Decimal("0")
    status: TenantStatus = TenantStatus.ACTIVE
    user_id: Optional[str] = None
    notice_date: Optional[date] = None
    expected_exit_date: Optional[date] = None
    check_out_date: Optional[date] = None
    advance_balance: Decimal = Decimal("0")


@dataclass
class TenantStay:
    id: str
    tenant_id: str
    owner_id: str
    property_id: str
    room_id: str
    join_date: date
    monthly_rent: Decimal
    bed_id: Optional[str] = None
    status: str = "active"
    exit_date: Optional[date] = None
    exit_reason: Optional[str] = None


@dataclass
class TenantDocument:
    id: str
    tenant_id: str
    document_type: str
    number: Optional[str] = None
    file_url: Optional[str] = None


@dataclass
class BillLineItem:
    charge_type: str
    description: str
    amount: Decimal


@dataclass
class Bill:
    """A bill issued to a tenant."""

    id: str
    owner_id: str
    tenant_id: str
    property_id: str
    bill_number: str
    bill_month: str
    due_date: date
    line_items: List[BillLineItem] = field(default_factory=list)
    paid_amount: Decimal = Decimal("0")
    status: BillStatus = BillStatus.PENDING
    last_payment_date: Optional[date] = None

    @property
    def total_amount(self) -> Decimal:
        return sum((item.amount for item in self.line_items), Decimal("0"))

    @property
    def balance_due(self) -> Decimal:
        return self.total_amount - self.paid_amount


@dataclass
class Payment:
    """Money received against a bill."""

    id: str
    owner_id: str
    tenant_id: str
    property_id: str
    bill_id: str
    amount: Decimal
    payment_date: date
    method: PaymentMethod
    receipt_number: str
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    is_advance: bool = False
    status: str = "completed"


@dataclass
class PaymentRefund:
    id: str
    payment_id: str
    amount: Decimal
    reason: str
    method: PaymentMethod
    processed_by: str
    reference_number: Optional[str] = None


@dataclass
class RoomTransfer:
    id: str
    tenant_id: str
    old_room_id: Optional[str]
    new_room_id: str
    transfer_date: date
    created_by: str
    old_bed_id: Optional[str] = None
    new_bed_id: Optional[str] = None
    old_rent: Optional[Decimal] = None
    new_rent: Optional[Decimal] = None
    reason: Optional[str] = None


@dataclass
class Settlement:
    """Money owed either way when a tenant leaves."""

    total_dues: Decimal
    deposit_amount: Decimal
    deductions: Decimal

    @property
    def net_amount(self) -> Decimal:
        return self.deposit_amount - self.total_dues - self.deductions

    @property
    def refund_amount(self) -> Decimal:
        return max(self.net_amount, Decimal("0"))

    @property
    def additional_payment(self) -> Decimal:
        return max(-self.net_amount, Decimal("0"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_dues": str(self.total_dues),
            "deposit_amount": str(self.deposit_amount),
            "deductions": str(self.deductions),
            "refund_amount": str(self.refund_amount),
            "additional_payment": str(self.additional_payment),
        }


@dataclass
class ExitClearance:
    id: str
    tenant_id: str
    property_id: str
    room_id: str
    initiated_by: str
    requested_exit_date: date
    exit_reason: str
    settlement: Settlement
    notice_date: Optional[date] = None
    bed_id: Optional[str] = None
    notes: Optional[str] = None
    status: ClearanceStatus = ClearanceStatus.INITIATED
    actual_exit_date: Optional[date] = None
    settlement_mode: Optional[str] = None
    settlement_reference: Optional[str] = None
    final_notes: Optional[str] = None
    completed_by: Optional[str] = None
