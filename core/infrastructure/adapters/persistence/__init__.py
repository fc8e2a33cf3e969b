"""Persistence adapters."""

from .in_memory_property_store import InMemoryPropertyStore

__all__ = ["InMemoryPropertyStore"]
