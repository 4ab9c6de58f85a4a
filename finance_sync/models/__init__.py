"""
Data Models Package

This package contains all Pydantic models used by Finance Sync.
All data flowing between the stages of a call conforms to these schemas.
"""

from finance_sync.models.audit import (
    SyncEvent,
    SyncEventBuilder,
    SyncEventType,
    SyncSeverity,
)
from finance_sync.models.cache import CacheEntry, CacheKey, CacheKind
from finance_sync.models.entities import (
    SCHEMAS,
    AccountPayload,
    CategoryPayload,
    DescriptionPayload,
    EntityPayload,
    ParameterPayload,
    TotalsPayload,
    TransactionPayload,
)
from finance_sync.models.errors import CanonicalError, ErrorKind, kind_for_status
from finance_sync.models.resources import (
    RESOURCES,
    AggregatePlacement,
    DependentCache,
    Generation,
    KeyKind,
    ListPlacement,
    ListScope,
    Operation,
    ResourceDescriptor,
    ResourceKind,
    get_descriptor,
)
from finance_sync.models.results import Endpoint, FieldIssue, ValidationResult

__all__ = [
    # Resource models
    "AggregatePlacement",
    "DependentCache",
    "Generation",
    "KeyKind",
    "ListPlacement",
    "ListScope",
    "Operation",
    "RESOURCES",
    "ResourceDescriptor",
    "ResourceKind",
    "get_descriptor",
    # Entity schemas
    "AccountPayload",
    "CategoryPayload",
    "DescriptionPayload",
    "EntityPayload",
    "ParameterPayload",
    "SCHEMAS",
    "TotalsPayload",
    "TransactionPayload",
    # Errors
    "CanonicalError",
    "ErrorKind",
    "kind_for_status",
    # Results
    "Endpoint",
    "FieldIssue",
    "ValidationResult",
    # Cache models
    "CacheEntry",
    "CacheKey",
    "CacheKind",
    # Audit models
    "SyncEvent",
    "SyncEventBuilder",
    "SyncEventType",
    "SyncSeverity",
]
