"""
Query Cache

In-memory mapping from CacheKey to CacheEntry, shared by every reader.

DESIGN DECISION: Callers never hold a reference into the cache. `get`
returns a deep copy and `set` stores one, so a rendering layer that mutates
what it read cannot corrupt the mirror. All operations are synchronous;
two synchronization passes never interleave.
"""

import copy
from typing import Any, Iterator, Optional

from finance_sync.models.cache import CacheEntry, CacheKey


class QueryCache:
    """Key-addressed store for lists, detail records and aggregates."""

    def __init__(self):
        self._entries: dict[CacheKey, CacheEntry] = {}

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CacheKey]:
        return iter(list(self._entries))

    def get(self, key: CacheKey, default: Any = None) -> Any:
        """Copy of the cached value, or `default` when absent."""
        entry = self._entries.get(key)
        if entry is None:
            return default
        return copy.deepcopy(entry.value)

    def entry(self, key: CacheKey) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        return entry.model_copy(deep=True) if entry is not None else None

    def set(self, key: CacheKey, value: Any, stale: bool = False) -> None:
        """Store a value. Writing fresh data clears the stale flag."""
        self._entries[key] = CacheEntry(value=copy.deepcopy(value), stale=stale)

    def invalidate(self, key: CacheKey) -> bool:
        """Mark an entry stale. Returns False if nothing is cached there."""
        entry = self._entries.get(key)
        if entry is None:
            return False
        entry.stale = True
        return True

    def remove(self, key: CacheKey) -> bool:
        return self._entries.pop(key, None) is not None

    def is_stale(self, key: CacheKey) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.stale

    def keys(self, resource: Optional[str] = None) -> list[CacheKey]:
        """All keys, optionally only those of one resource."""
        return [
            key for key in self._entries
            if resource is None or key.resource == resource
        ]

    def clear(self) -> None:
        self._entries.clear()

    def snapshot(self) -> dict[tuple[str, ...], Any]:
        """Every cached value keyed by its tuple form, for inspection."""
        return {
            key.as_tuple(): copy.deepcopy(entry.value)
            for key, entry in self._entries.items()
        }
