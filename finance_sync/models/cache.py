"""
Cache Models

The cache is a mapping from a structured composite key to a value.
Keys render to the array form used by the rendering layer,
e.g. ("totals", "chase_brian") or ("transaction", "category", "groceries").
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class CacheKind(str, Enum):
    """What a cache entry holds."""
    LIST = "list"            # Entity list, e.g. all active categories
    DETAIL = "detail"        # One entity addressed by its key
    AGGREGATE = "aggregate"  # Server-computed summary, e.g. totals


class CacheKey(BaseModel):
    """Composite cache key: resource plus optional parent key parts."""
    model_config = ConfigDict(frozen=True)

    resource: str
    kind: CacheKind = CacheKind.LIST
    parts: tuple[str, ...] = ()

    @classmethod
    def list_of(cls, resource: str, *parts: str) -> "CacheKey":
        return cls(resource=resource, kind=CacheKind.LIST, parts=tuple(parts))

    @classmethod
    def detail_of(cls, resource: str, key: str) -> "CacheKey":
        return cls(resource=resource, kind=CacheKind.DETAIL, parts=(key,))

    @classmethod
    def aggregate_of(cls, resource: str, *parts: str) -> "CacheKey":
        return cls(resource=resource, kind=CacheKind.AGGREGATE, parts=tuple(parts))

    def as_tuple(self) -> tuple[str, ...]:
        if self.kind == CacheKind.DETAIL:
            return (self.resource, "detail", *self.parts)
        return (self.resource, *self.parts)

    def __str__(self) -> str:
        return "/".join(self.as_tuple())


class CacheEntry(BaseModel):
    """A cached value plus its staleness flag."""

    value: Any
    stale: bool = False
