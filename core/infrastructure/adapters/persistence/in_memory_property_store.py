"""
In-Memory Property Store Implementation.

Dictionary-backed PropertyRepository for tests and demos.
"""
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional, Tuple
import itertools
import logging

from core.domain.entities.tenancy import (
    Bed,
    Bill,
    BillStatus,
    ClearanceStatus,
    ExitClearance,
    Payment,
    PaymentRefund,
    Property,
    Room,
    RoomTransfer,
    Tenant,
    TenantDocument,
    TenantStay,
)
from core.domain.repositories.property_repository import PropertyRepository
from orchestration.models import ErrorKind, Result, err, ok


logger = logging.getLogger(__name__)


_UNPAID = (BillStatus.PENDING, BillStatus.PARTIAL, BillStatus.OVERDUE)
_OPEN_CLEARANCE = (ClearanceStatus.INITIATED, ClearanceStatus.IN_PROGRESS)


class InMemoryPropertyStore(PropertyRepository):
    """
    In-memory implementation of PropertyRepository.

    Every call is appended to ``operations`` as ``(method, key)``. A call
    matching an entry of ``fail_on``, either ``"method"`` or
    ``"method:key"``, returns ``Err(UNKNOWN)`` instead of touching storage,
    which lets tests force a specific step to fail.
    """

    def __init__(self, fail_on: Optional[Iterable[str]] = None):
        """Initialize empty storage."""
        self.properties: Dict[str, Property] = {}
        self.rooms: Dict[str, Room] = {}
        self.beds: Dict[str, Bed] = {}
        self.tenants: Dict[str, Tenant] = {}
        self.stays: Dict[str, TenantStay] = {}
        self.documents: Dict[str, TenantDocument] = {}
        self.bills: Dict[str, Bill] = {}
        self.transfers: Dict[str, RoomTransfer] = {}
        self.payments: Dict[str, Payment] = {}
        self.refunds: Dict[str, PaymentRefund] = {}
        self.clearances: Dict[str, ExitClearance] = {}
        self.fail_on = set(fail_on or ())
        self.operations: List[Tuple[str, Optional[str]]] = []
        self._counter = itertools.count(1)
        logger.info("InMemoryPropertyStore initialized (in-memory storage)")

    def new_id(self, prefix: str) -> str:
        return f"{prefix}_{next(self._counter):04d}"

    def _enter(self, method: str, key: Optional[str]) -> Optional[Result[Any]]:
        self.operations.append((method, key))
        if method in self.fail_on or f"{method}:{key}" in self.fail_on:
            logger.warning(f"Injected failure for {method} ({key})")
            return err(ErrorKind.UNKNOWN, f"{method} failed", operation=method)
        return None

    def calls(self, method: str) -> List[Optional[str]]:
        """Keys passed to ``method`` in call order."""
        return [key for name, key in self.operations if name == method]

    # -- seeding (tests / demo) ----------------------------------------

    def seed(self, *records: Any) -> None:
        """Insert entities directly, bypassing the operation log."""
        tables = {
            Property: self.properties,
            Room: self.rooms,
            Bed: self.beds,
            Tenant: self.tenants,
            Bill: self.bills,
            Payment: self.payments,
            TenantStay: self.stays,
            ExitClearance: self.clearances,
        }
        for record in records:
            tables[type(record)][record.id] = record

    # -- reads ---------------------------------------------------------

    async def get_property(self, property_id: str) -> Result[Property]:
        failure = self._enter("get_property", property_id)
        if failure:
            return failure
        found = self.properties.get(property_id)
        if found is None:
            return err(ErrorKind.NOT_FOUND, "Property not found", property_id=property_id)
        return ok(found)

    async def get_room(self, room_id: str) -> Result[Room]:
        failure = self._enter("get_room", room_id)
        if failure:
            return failure
        found = self.rooms.get(room_id)
        if found is None:
            return err(ErrorKind.NOT_FOUND, "Room not found", room_id=room_id)
        return ok(replace(found))

    async def get_tenant(self, tenant_id: str) -> Result[Tenant]:
        failure = self._enter("get_tenant", tenant_id)
        if failure:
            return failure
        found = self.tenants.get(tenant_id)
        if found is None:
            return err(ErrorKind.NOT_FOUND, "Tenant not found", tenant_id=tenant_id)
        return ok(replace(found))

    async def get_bill(self, bill_id: str) -> Result[Bill]:
        failure = self._enter("get_bill", bill_id)
        if failure:
            return failure
        found = self.bills.get(bill_id)
        if found is None:
            return err(ErrorKind.NOT_FOUND, "Bill not found", bill_id=bill_id)
        return ok(replace(found))

    async def count_bills(self, owner_id: str) -> Result[int]:
        failure = self._enter("count_bills", owner_id)
        if failure:
            return failure
        return ok(sum(1 for bill in self.bills.values() if bill.owner_id == owner_id))

    async def list_unpaid_bills(self, tenant_id: str) -> Result[List[Bill]]:
        failure = self._enter("list_unpaid_bills", tenant_id)
        if failure:
            return failure
        return ok([
            bill for bill in self.bills.values()
            if bill.tenant_id == tenant_id and bill.status in _UNPAID
        ])

    async def get_payment(self, payment_id: str) -> Result[Payment]:
        failure = self._enter("get_payment", payment_id)
        if failure:
            return failure
        found = self.payments.get(payment_id)
        if found is None:
            return err(ErrorKind.NOT_FOUND, "Payment not found", payment_id=payment_id)
        return ok(replace(found))

    async def count_payments(self, owner_id: str) -> Result[int]:
        failure = self._enter("count_payments", owner_id)
        if failure:
            return failure
        return ok(sum(1 for payment in self.payments.values() if payment.owner_id == owner_id))

    async def get_clearance(self, clearance_id: str) -> Result[ExitClearance]:
        failure = self._enter("get_clearance", clearance_id)
        if failure:
            return failure
        found = self.clearances.get(clearance_id)
        if found is None:
            return err(ErrorKind.NOT_FOUND, "Exit clearance not found", clearance_id=clearance_id)
        return ok(replace(found))

    async def find_open_clearance(self, tenant_id: str) -> Result[Optional[ExitClearance]]:
        failure = self._enter("find_open_clearance", tenant_id)
        if failure:
            return failure
        for clearance in self.clearances.values():
            if clearance.tenant_id == tenant_id and clearance.status in _OPEN_CLEARANCE:
                return ok(clearance)
        return ok(None)

    async def find_active_stay(self, tenant_id: str) -> Result[Optional[TenantStay]]:
        failure = self._enter("find_active_stay", tenant_id)
        if failure:
            return failure
        for stay in self.stays.values():
            if stay.tenant_id == tenant_id and stay.status == "active":
                return ok(replace(stay))
        return ok(None)

    # -- writes --------------------------------------------------------

    async def add_tenant(self, tenant: Tenant) -> Result[Tenant]:
        failure = self._enter("add_tenant", tenant.id)
        if failure:
            return failure
        if tenant.id in self.tenants:
            return err(ErrorKind.CONFLICT, "Tenant already exists", tenant_id=tenant.id)
        self.tenants[tenant.id] = tenant
        logger.info(f"Tenant saved: {tenant.id}")
        return ok(replace(tenant))

    async def update_tenant(self, tenant_id: str, **changes: Any) -> Result[Tenant]:
        failure = self._enter("update_tenant", tenant_id)
        if failure:
            return failure
        current = self.tenants.get(tenant_id)
        if current is None:
            return err(ErrorKind.NOT_FOUND, "Tenant not found", tenant_id=tenant_id)
        updated = replace(current, **changes)
        self.tenants[tenant_id] = updated
        return ok(replace(updated))

    async def delete_tenant(self, tenant_id: str) -> Result[None]:
        failure = self._enter("delete_tenant", tenant_id)
        if failure:
            return failure
        if self.tenants.pop(tenant_id, None) is None:
            logger.warning(f"Tenant not found for deletion: {tenant_id}")
        else:
            logger.info(f"Tenant deleted: {tenant_id}")
        return ok()

    async def add_stay(self, stay: TenantStay) -> Result[TenantStay]:
        failure = self._enter("add_stay", stay.id)
        if failure:
            return failure
        self.stays[stay.id] = stay
        return ok(stay)

    async def update_stay(self, stay_id: str, **changes: Any) -> Result[TenantStay]:
        failure = self._enter("update_stay", stay_id)
        if failure:
            return failure
        current = self.stays.get(stay_id)
        if current is None:
            return err(ErrorKind.NOT_FOUND, "Stay not found", stay_id=stay_id)
        updated = replace(current, **changes)
        self.stays[stay_id] = updated
        return ok(replace(updated))

    async def set_room_occupancy(self, room_id: str, occupied_beds: int) -> Result[Room]:
        failure = self._enter("set_room_occupancy", room_id)
        if failure:
            return failure
        room = self.rooms.get(room_id)
        if room is None:
            return err(ErrorKind.NOT_FOUND, "Room not found", room_id=room_id)
        occupied_beds = max(occupied_beds, 0)
        room.occupied_beds = occupied_beds
        room.status = room.status_for(occupied_beds)
        return ok(replace(room))

    async def assign_bed(self, bed_id: str, tenant_id: Optional[str]) -> Result[Bed]:
        failure = self._enter("assign_bed", bed_id)
        if failure:
            return failure
        bed = self.beds.get(bed_id)
        if bed is None:
            return err(ErrorKind.NOT_FOUND, "Bed not found", bed_id=bed_id)
        if tenant_id is not None and bed.current_tenant_id not in (None, tenant_id):
            return err(ErrorKind.CONFLICT, "Bed already occupied", bed_id=bed_id)
        bed.current_tenant_id = tenant_id
        return ok(replace(bed))

    async def add_documents(self, documents: List[TenantDocument]) -> Result[List[TenantDocument]]:
        failure = self._enter("add_documents", documents[0].tenant_id if documents else None)
        if failure:
            return failure
        for document in documents:
            self.documents[document.id] = document
        return ok(list(documents))

    async def add_bill(self, bill: Bill) -> Result[Bill]:
        failure = self._enter("add_bill", bill.id)
        if failure:
            return failure
        self.bills[bill.id] = bill
        logger.info(f"Bill saved: {bill.bill_number} ({bill.total_amount})")
        return ok(bill)

    async def update_bill(self, bill_id: str, **changes: Any) -> Result[Bill]:
        failure = self._enter("update_bill", bill_id)
        if failure:
            return failure
        current = self.bills.get(bill_id)
        if current is None:
            return err(ErrorKind.NOT_FOUND, "Bill not found", bill_id=bill_id)
        updated = replace(current, **changes)
        self.bills[bill_id] = updated
        return ok(replace(updated))

    async def add_payment(self, payment: Payment) -> Result[Payment]:
        failure = self._enter("add_payment", payment.id)
        if failure:
            return failure
        if payment.id in self.payments:
            return err(ErrorKind.CONFLICT, "Payment already exists", payment_id=payment.id)
        self.payments[payment.id] = payment
        logger.info(f"Payment saved: {payment.receipt_number} ({payment.amount})")
        return ok(replace(payment))

    async def delete_payment(self, payment_id: str) -> Result[None]:
        failure = self._enter("delete_payment", payment_id)
        if failure:
            return failure
        if self.payments.pop(payment_id, None) is not None:
            logger.info(f"Payment deleted: {payment_id}")
        return ok()

    async def add_refund(self, refund: PaymentRefund) -> Result[PaymentRefund]:
        failure = self._enter("add_refund", refund.id)
        if failure:
            return failure
        self.refunds[refund.id] = refund
        logger.info(f"Refund saved: {refund.id} for payment {refund.payment_id}")
        return ok(refund)

    async def add_transfer(self, transfer: RoomTransfer) -> Result[RoomTransfer]:
        failure = self._enter("add_transfer", transfer.id)
        if failure:
            return failure
        self.transfers[transfer.id] = transfer
        return ok(transfer)

    async def add_clearance(self, clearance: ExitClearance) -> Result[ExitClearance]:
        failure = self._enter("add_clearance", clearance.id)
        if failure:
            return failure
        self.clearances[clearance.id] = clearance
        return ok(clearance)

    async def update_clearance(self, clearance_id: str, **changes: Any) -> Result[ExitClearance]:
        failure = self._enter("update_clearance", clearance_id)
        if failure:
            return failure
        current = self.clearances.get(clearance_id)
        if current is None:
            return err(ErrorKind.NOT_FOUND, "Exit clearance not found", clearance_id=clearance_id)
        updated = replace(current, **changes)
        self.clearances[clearance_id] = updated
        return ok(replace(updated))

    async def delete_clearance(self, clearance_id: str) -> Result[None]:
        failure = self._enter("delete_clearance", clearance_id)
        if failure:
            return failure
        self.clearances.pop(clearance_id, None)
        return ok()

    def clear(self) -> None:
        """Clear all records and the operation log."""
        for table in (
            self.properties, self.rooms, self.beds, self.tenants, self.stays,
            self.documents, self.bills, self.payments, self.refunds,
            self.transfers, self.clearances,
        ):
            table.clear()
        self.operations.clear()
        logger.info("In-memory property store cleared")
