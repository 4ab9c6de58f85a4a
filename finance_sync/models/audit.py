"""
Audit Models for Finance Sync

Every call through the layer leaves a trail of events.
This provides:
1. Traceability of each mutation from validation to cache sync
2. Visibility into cache-sync failures, which never reach the caller
3. Debugging information when the two API generations disagree

DESIGN DECISION: Events are immutable once built. The cache may be silently
inconsistent after a sync failure; the audit trail is where that shows up.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class SyncEventType(str, Enum):
    """Types of events we audit."""
    # Mutations
    MUTATION_STARTED = "mutation_started"
    MUTATION_SUCCEEDED = "mutation_succeeded"
    MUTATION_FAILED = "mutation_failed"
    VALIDATION_FAILED = "validation_failed"
    IDENTIFIER_MINTED = "identifier_minted"

    # Cache
    CACHE_SYNCED = "cache_synced"
    CACHE_SYNC_FAILED = "cache_sync_failed"

    # Reads
    LIST_FETCHED = "list_fetched"
    LIST_FAILED = "list_failed"


class SyncSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class SyncEvent(BaseModel):
    """
    A single audit event.

    Every significant step of a call creates one of these.
    """
    model_config = ConfigDict(frozen=True)

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Classification
    event_type: SyncEventType
    severity: SyncSeverity = SyncSeverity.INFO

    # Context - which resource and operation is this about?
    resource: Optional[str] = None
    operation: Optional[str] = None
    entity_key: Optional[str] = None

    # Correlation - all events of one call share this
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    # Error information (if applicable)
    error_kind: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "resource": self.resource,
            "operation": self.operation,
            "entity_key": self.entity_key,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_kind": self.error_kind,
            "error_message": self.error_message,
        }


class SyncEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = SyncEventBuilder.mutation_started("category", "create", None, cid)
        event = SyncEventBuilder.cache_sync_failed("account", "update", "x", msg, cid)
    """

    @staticmethod
    def mutation_started(
        resource: str,
        operation: str,
        entity_key: Optional[str],
        correlation_id: UUID,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.MUTATION_STARTED,
            severity=SyncSeverity.DEBUG,
            resource=resource,
            operation=operation,
            entity_key=entity_key,
            correlation_id=correlation_id,
            description=f"{operation} {resource} started",
        )

    @staticmethod
    def mutation_succeeded(
        resource: str,
        operation: str,
        entity_key: Optional[str],
        status: int,
        correlation_id: UUID,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.MUTATION_SUCCEEDED,
            resource=resource,
            operation=operation,
            entity_key=entity_key,
            correlation_id=correlation_id,
            description=f"{operation} {resource} succeeded with HTTP {status}",
            details={"status": status},
        )

    @staticmethod
    def mutation_failed(
        resource: str,
        operation: str,
        entity_key: Optional[str],
        error_kind: str,
        error_message: str,
        status: int,
        correlation_id: UUID,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.MUTATION_FAILED,
            severity=SyncSeverity.ERROR,
            resource=resource,
            operation=operation,
            entity_key=entity_key,
            correlation_id=correlation_id,
            description=f"{operation} {resource} failed ({error_kind})",
            details={"status": status},
            error_kind=error_kind,
            error_message=error_message,
        )

    @staticmethod
    def validation_failed(
        resource: str,
        operation: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.VALIDATION_FAILED,
            severity=SyncSeverity.WARNING,
            resource=resource,
            operation=operation,
            correlation_id=correlation_id,
            description=f"Validation failed with {len(issues)} issues",
            details={"issues": issues},
            error_kind="validation",
        )

    @staticmethod
    def identifier_minted(
        resource: str,
        field: str,
        identifier: str,
        correlation_id: UUID,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.IDENTIFIER_MINTED,
            severity=SyncSeverity.DEBUG,
            resource=resource,
            operation="create",
            entity_key=identifier,
            correlation_id=correlation_id,
            description=f"Minted {field} for new {resource}",
            details={"field": field},
        )

    @staticmethod
    def cache_synced(
        resource: str,
        operation: str,
        entity_key: Optional[str],
        touched: list[str],
        correlation_id: UUID,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.CACHE_SYNCED,
            severity=SyncSeverity.DEBUG,
            resource=resource,
            operation=operation,
            entity_key=entity_key,
            correlation_id=correlation_id,
            description=f"Cache synchronized after {operation} {resource}",
            details={"touched": touched},
        )

    @staticmethod
    def cache_sync_failed(
        resource: str,
        operation: str,
        entity_key: Optional[str],
        error_message: str,
        correlation_id: UUID,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.CACHE_SYNC_FAILED,
            severity=SyncSeverity.ERROR,
            resource=resource,
            operation=operation,
            entity_key=entity_key,
            correlation_id=correlation_id,
            description=f"Cache sync failed after {operation} {resource}",
            error_message=error_message,
        )

    @staticmethod
    def list_fetched(
        resource: str,
        cache_key: str,
        count: int,
        correlation_id: UUID,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.LIST_FETCHED,
            severity=SyncSeverity.DEBUG,
            resource=resource,
            operation="list",
            correlation_id=correlation_id,
            description=f"Fetched {count} {resource} rows",
            details={"cache_key": cache_key, "count": count},
        )

    @staticmethod
    def list_failed(
        resource: str,
        cache_key: str,
        error_kind: str,
        error_message: str,
        correlation_id: UUID,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.LIST_FAILED,
            severity=SyncSeverity.ERROR,
            resource=resource,
            operation="list",
            correlation_id=correlation_id,
            description=f"Fetching {resource} failed ({error_kind})",
            details={"cache_key": cache_key},
            error_kind=error_kind,
            error_message=error_message,
        )
