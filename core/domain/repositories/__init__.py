"""Repository interfaces."""

from .property_repository import PropertyRepository

__all__ = ["PropertyRepository"]
