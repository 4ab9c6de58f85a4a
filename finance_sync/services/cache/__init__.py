"""
Cache Services Package

The shared query cache, its key builders and the post-mutation synchronizer.
"""

from finance_sync.services.cache.keys import CacheKeys
from finance_sync.services.cache.store import QueryCache
from finance_sync.services.cache.synchronizer import (
    TOTALS_BUCKETS,
    CacheSyncError,
    CacheSynchronizer,
)

__all__ = [
    "CacheKeys",
    "CacheSyncError",
    "CacheSynchronizer",
    "QueryCache",
    "TOTALS_BUCKETS",
]
