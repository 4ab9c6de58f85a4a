"""Services package."""

from finance_sync.services.cache import (
    CacheKeys,
    CacheSyncError,
    CacheSynchronizer,
    QueryCache,
)
from finance_sync.services.http import ApiClient, ResponseNormalizer
from finance_sync.services.identifier import IdentifierGenerator, is_valid_identifier

__all__ = [
    # Cache services
    "CacheKeys",
    "CacheSyncError",
    "CacheSynchronizer",
    "QueryCache",
    # HTTP services
    "ApiClient",
    "ResponseNormalizer",
    # Identifier services
    "IdentifierGenerator",
    "is_valid_identifier",
]
