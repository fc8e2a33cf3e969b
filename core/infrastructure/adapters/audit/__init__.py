"""Audit sink adapters."""

from core.infrastructure.adapters.audit.in_memory_audit_sink import InMemoryAuditSink

__all__ = ["InMemoryAuditSink"]
