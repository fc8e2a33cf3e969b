"""Repository interface for the tenancy system of record.

Every operation returns a Result so step bodies can propagate a
failure without raising.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional

from orchestration.models import Result

from ..entities.tenancy import (
    Bed,
    Bill,
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


class PropertyRepository(ABC):
    """Abstract persistence boundary used by the lifecycle workflows."""

    @abstractmethod
    def new_id(self, prefix: str) -> str:
        """Generate an identifier for a new record."""
        pass

    # -- reads ---------------------------------------------------------

    @abstractmethod
    async def get_property(self, property_id: str) -> Result[Property]:
        pass

    @abstractmethod
    async def get_room(self, room_id: str) -> Result[Room]:
        pass

    @abstractmethod
    async def get_tenant(self, tenant_id: str) -> Result[Tenant]:
        pass

    @abstractmethod
    async def get_bill(self, bill_id: str) -> Result[Bill]:
        pass

    @abstractmethod
    async def count_bills(self, owner_id: str) -> Result[int]:
        pass

    @abstractmethod
    async def list_unpaid_bills(self, tenant_id: str) -> Result[List[Bill]]:
        pass

    @abstractmethod
    async def get_payment(self, payment_id: str) -> Result[Payment]:
        pass

    @abstractmethod
    async def count_payments(self, owner_id: str) -> Result[int]:
        pass

    @abstractmethod
    async def get_clearance(self, clearance_id: str) -> Result[ExitClearance]:
        pass

    @abstractmethod
    async def find_open_clearance(self, tenant_id: str) -> Result[Optional[ExitClearance]]:
        """Initiated or in-progress clearance for a tenant, if any."""
        pass

    @abstractmethod
    async def find_active_stay(self, tenant_id: str) -> Result[Optional[TenantStay]]:
        pass

    # -- writes --------------------------------------------------------

    @abstractmethod
    async def add_tenant(self, tenant: Tenant) -> Result[Tenant]:
        pass

    @abstractmethod
    async def update_tenant(self, tenant_id: str, **changes: Any) -> Result[Tenant]:
        pass

    @abstractmethod
    async def delete_tenant(self, tenant_id: str) -> Result[None]:
        pass

    @abstractmethod
    async def add_stay(self, stay: TenantStay) -> Result[TenantStay]:
        pass

    @abstractmethod
    async def update_stay(self, stay_id: str, **changes: Any) -> Result[TenantStay]:
        pass

    @abstractmethod
    async def set_room_occupancy(self, room_id: str, occupied_beds: int) -> Result[Room]:
        """Set occupied beds and derive the room status."""
        pass

    @abstractmethod
    async def assign_bed(self, bed_id: str, tenant_id: Optional[str]) -> Result[Bed]:
        pass

    @abstractmethod
    async def add_documents(self, documents: List[TenantDocument]) -> Result[List[TenantDocument]]:
        pass

    @abstractmethod
    async def add_bill(self, bill: Bill) -> Result[Bill]:
        pass

    @abstractmethod
    async def update_bill(self, bill_id: str, **changes: Any) -> Result[Bill]:
        pass

    @abstractmethod
    async def add_payment(self, payment: Payment) -> Result[Payment]:
        pass

    @abstractmethod
    async def delete_payment(self, payment_id: str) -> Result[None]:
        pass

    @abstractmethod
    async def add_refund(self, refund: PaymentRefund) -> Result[PaymentRefund]:
        pass

    @abstractmethod
    async def add_transfer(self, transfer: RoomTransfer) -> Result[RoomTransfer]:
        pass

    @abstractmethod
    async def add_clearance(self, clearance: ExitClearance) -> Result[ExitClearance]:
        pass

    @abstractmethod
    async def update_clearance(self, clearance_id: str, **changes: Any) -> Result[ExitClearance]:
        pass

    @abstractmethod
    async def delete_clearance(self, clearance_id: str) -> Result[None]:
        pass
