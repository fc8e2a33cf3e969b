"""Domain entities."""

from .tenancy import (
    Bed,
    Bill,
    BillLineItem,
    BillStatus,
    ClearanceStatus,
    ExitClearance,
    Property,
    Room,
    RoomStatus,
    RoomTransfer,
    Settlement,
    Tenant,
    TenantDocument,
    TenantStatus,
    TenantStay,
)

__all__ = [
    "Bed",
    "Bill",
    "BillLineItem",
    "BillStatus",
    "ClearanceStatus",
    "ExitClearance",
    "Property",
    "Room",
    "RoomStatus",
    "RoomTransfer",
    "Settlement",
    "Tenant",
    "TenantDocument",
    "TenantStatus",
    "TenantStay",
]
