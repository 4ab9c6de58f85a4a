"""Audit logging package."""

from finance_sync.audit.logger import (
    AuditLogger,
    configure_logging,
    create_correlation_id,
)
from finance_sync.audit.sink import AuditSink, InMemoryAuditSink

__all__ = [
    "AuditLogger",
    "AuditSink",
    "InMemoryAuditSink",
    "configure_logging",
    "create_correlation_id",
]
