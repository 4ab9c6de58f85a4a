"""
Audit Sinks

DESIGN DECISION: Where audit events end up is pluggable. The layer ships an
in-memory sink for inspection and tests; a persistent sink can be added by
implementing AuditSink without touching the executors.

Sinks are append-only - events are never modified or deleted.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from finance_sync.models.audit import SyncEvent, SyncEventType


class AuditSink(ABC):
    """Abstract destination for audit events."""

    @abstractmethod
    async def append_event(self, event: SyncEvent) -> bool:
        """
        Append an audit event.

        Args:
            event: The event to record

        Returns:
            True if recorded successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[SyncEvent]:
        """
        Get all events of one call, in the order they were appended.
        """
        pass


class InMemoryAuditSink(AuditSink):
    """Keeps every event in a list."""

    def __init__(self):
        self.events: list[SyncEvent] = []

    async def append_event(self, event: SyncEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[SyncEvent]:
        return [e for e in self.events if e.correlation_id == correlation_id]

    def of_type(self, event_type: SyncEventType) -> list[SyncEvent]:
        return [e for e in self.events if e.event_type == event_type]

    def last(self) -> Optional[SyncEvent]:
        return self.events[-1] if self.events else None
