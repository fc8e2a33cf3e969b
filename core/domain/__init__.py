"""Domain layer - pure domain models and interfaces."""

from .entities import Bed, Bill, ExitClearance, Property, Room, RoomTransfer, Tenant
from .repositories import PropertyRepository

__all__ = [
    "Bed",
    "Bill",
    "ExitClearance",
    "Property",
    "PropertyRepository",
    "Room",
    "RoomTransfer",
    "Tenant",
]
