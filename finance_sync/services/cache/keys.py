"""
Cache Key Builders

Derives every cache key an entity can appear under from its
ResourceDescriptor. Bound to one API generation because the modern
generation canonicalizes the account name in the totals key.
"""

from typing import Any, Optional

from finance_sync.models.cache import CacheKey
from finance_sync.models.resources import (
    DependentCache,
    Generation,
    ResourceKind,
    get_descriptor,
)
from finance_sync.validation.sanitization import InputSanitizer


class CacheKeys:
    """Key builders for one generation."""

    def __init__(self, generation: Generation):
        self.generation = Generation(generation)

    def _aggregate_part(self, resource: ResourceKind, value: Any) -> str:
        text = str(value)
        descriptor = get_descriptor(resource)
        if descriptor.canonical_modern_key and self.generation == Generation.MODERN:
            return InputSanitizer.canonicalize_account_name(text)
        return text

    def aggregate_key(self, resource: ResourceKind | str, value: Any) -> CacheKey:
        """e.g. ("totals", "chase_brian")"""
        resource = ResourceKind(resource)
        return CacheKey.aggregate_of(
            resource.value,
            self._aggregate_part(resource, value),
        )

    def totals_key(self, account_name: str) -> CacheKey:
        return self.aggregate_key(ResourceKind.TOTALS, account_name)

    def active_list_key(self, resource: ResourceKind | str) -> CacheKey:
        """Key of the unscoped list of a resource, e.g. ("category",)."""
        return CacheKey.list_of(ResourceKind(resource).value)

    def scoped_list_key(
        self,
        resource: ResourceKind | str,
        prefix: tuple[str, ...],
        value: Any,
    ) -> CacheKey:
        return CacheKey.list_of(ResourceKind(resource).value, *prefix, str(value))

    def list_keys(self, resource: ResourceKind | str, entity: dict) -> list[CacheKey]:
        """
        Every list the entity belongs to, in placement order.

        The first key is the resource's primary list. Placements whose
        field is missing from the entity are skipped.
        """
        descriptor = get_descriptor(resource)
        keys: list[CacheKey] = []
        for placement in descriptor.lists:
            if placement.field is None:
                keys.append(CacheKey.list_of(descriptor.kind.value, *placement.prefix))
                continue
            value = entity.get(placement.field)
            if value is None or value == "":
                continue
            keys.append(self.scoped_list_key(descriptor.kind, placement.prefix, value))
        return keys

    def primary_list_key(
        self,
        resource: ResourceKind | str,
        entity: dict,
    ) -> Optional[CacheKey]:
        descriptor = get_descriptor(resource)
        if not descriptor.lists:
            return None
        placement = descriptor.lists[0]
        if placement.field is None:
            return CacheKey.list_of(descriptor.kind.value, *placement.prefix)
        value = entity.get(placement.field)
        if value is None or value == "":
            return None
        return self.scoped_list_key(descriptor.kind, placement.prefix, value)

    def detail_key(self, resource: ResourceKind | str, key: Any) -> CacheKey:
        return CacheKey.detail_of(ResourceKind(resource).value, str(key))

    def aggregate_keys(self, resource: ResourceKind | str, entity: dict) -> list[CacheKey]:
        """Aggregates summarizing this entity, e.g. its account's totals."""
        descriptor = get_descriptor(resource)
        keys: list[CacheKey] = []
        for placement in descriptor.aggregates:
            value = entity.get(placement.field)
            if value is None or value == "":
                continue
            keys.append(self.aggregate_key(placement.resource, value))
        return keys

    def dependent_key(self, dependent: DependentCache, natural_value: Any) -> CacheKey:
        """Key of a cache owned by another resource that embeds this natural key."""
        if dependent.aggregate:
            return self.aggregate_key(dependent.resource, natural_value)
        return self.scoped_list_key(dependent.resource, dependent.prefix, natural_value)
