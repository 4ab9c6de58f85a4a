"""
Cache Synchronizer

Brings every affected cache entry in line with a mutation the server has
already accepted. Runs synchronously and never touches the network.

Rules per operation:

CREATE
- Insert the server's entity into every cached list it belongs to, at the
  resource's insert position ("start" = newest first). The primary list is
  created if nothing is cached yet.
- Cached aggregates that can be adjusted in place (transaction totals) are
  adjusted; others are marked stale.

UPDATE (natural key unchanged)
- Replace the entity in every list and detail entry by key equality.

UPDATE (natural key changed, e.g. a category rename)
- Every entry addressed by the old key is removed and re-created under the
  new key, including caches owned by other resources whose key embeds the
  name (("transaction", "category", old) and ("totals", old)).
- Lists the entity moved INTO are marked stale, lists it moved OUT OF lose it.

DELETE
- Remove the entity from every list and detail entry.
- Child lists keyed by it are dropped; aggregates over it are marked stale,
  because recomputing them needs data this layer does not hold.

CREATE_FUTURE
- Same as CREATE.

UPDATE_STATE (transaction state change)
- Replace the row in place wherever it is cached.
- Cached totals move the amount from the old state's bucket to the new one.

DEACTIVATE (account)
- Replace the row in place wherever it is cached.
- Every cached entry of the cascade resources (transactions, totals) is
  marked stale.
"""

from typing import Any, Optional

import structlog

from finance_sync.models.cache import CacheKey
from finance_sync.models.resources import (
    Generation,
    Operation,
    ResourceDescriptor,
    ResourceKind,
    get_descriptor,
)
from finance_sync.services.cache.keys import CacheKeys
from finance_sync.services.cache.store import QueryCache


# transactionState -> totals bucket adjusted on insert and state change
TOTALS_BUCKETS = {
    "cleared": "totalsCleared",
    "outstanding": "totalsOutstanding",
    "future": "totalsFuture",
}


class CacheSyncError(Exception):
    """The cache could not be brought in line with a successful mutation."""
    pass


class CacheSynchronizer:
    """Applies mutation transitions to a QueryCache."""

    def __init__(self, cache: QueryCache, generation: Generation):
        self.cache = cache
        self.keys = CacheKeys(generation)
        self._logger = structlog.get_logger(__name__)

    # =========================================================================
    # ROW HELPERS
    # =========================================================================

    @staticmethod
    def _same_entity(
        descriptor: ResourceDescriptor,
        row: Any,
        natural_value: Any,
        id_value: Any = None,
    ) -> bool:
        if not isinstance(row, dict):
            return False
        if natural_value is not None and row.get(descriptor.natural_key) == natural_value:
            return True
        return (
            descriptor.id_field is not None
            and id_value is not None
            and row.get(descriptor.id_field) == id_value
        )

    def _rows(self, key: CacheKey) -> list:
        rows = self.cache.get(key)
        if not isinstance(rows, list):
            raise CacheSyncError(f"cache entry {key} is not a list")
        return rows

    def _write(self, key: CacheKey, value: Any) -> None:
        entry = self.cache.entry(key)
        self.cache.set(key, value, stale=entry.stale if entry else False)

    # =========================================================================
    # CREATE
    # =========================================================================

    def _adjust_totals(self, key: CacheKey, entity: dict) -> None:
        """Add a new transaction's amount to its account's cached totals."""
        totals = self.cache.get(key)
        if not isinstance(totals, dict):
            self.cache.invalidate(key)
            return
        try:
            amount = float(entity.get("amount") or 0)
        except (TypeError, ValueError):
            self.cache.invalidate(key)
            return
        totals["totals"] = round(float(totals.get("totals") or 0) + amount, 2)
        bucket = TOTALS_BUCKETS.get(entity.get("transactionState"))
        if bucket:
            totals[bucket] = round(float(totals.get(bucket) or 0) + amount, 2)
        self._write(key, totals)

    def _on_create(self, descriptor: ResourceDescriptor, after: dict) -> list[CacheKey]:
        touched: list[CacheKey] = []
        natural_value = after.get(descriptor.natural_key)
        id_value = after.get(descriptor.id_field) if descriptor.id_field else None
        primary = self.keys.primary_list_key(descriptor.kind, after)

        for key in self.keys.list_keys(descriptor.kind, after):
            if key not in self.cache:
                if key != primary:
                    continue
                rows = []
            else:
                rows = self._rows(key)
            rows = [
                row for row in rows
                if not self._same_entity(descriptor, row, natural_value, id_value)
            ]
            if descriptor.insert_position == "start":
                rows.insert(0, after)
            else:
                rows.append(after)
            self._write(key, rows)
            touched.append(key)

        for key in self.keys.aggregate_keys(descriptor.kind, after):
            if key not in self.cache:
                continue
            if descriptor.kind == ResourceKind.TRANSACTION:
                self._adjust_totals(key, after)
            else:
                self.cache.invalidate(key)
            touched.append(key)

        return touched

    # =========================================================================
    # UPDATE
    # =========================================================================

    def _rekey_dependents(
        self,
        descriptor: ResourceDescriptor,
        old_value: Any,
        new_value: Any,
    ) -> list[CacheKey]:
        """Move caches whose key embeds the old natural key to the new one."""
        touched: list[CacheKey] = []
        for dependent in descriptor.dependents:
            old_key = self.keys.dependent_key(dependent, old_value)
            new_key = self.keys.dependent_key(dependent, new_value)
            if old_key == new_key or old_key not in self.cache:
                continue

            entry = self.cache.entry(old_key)
            value = entry.value
            if dependent.child_field and isinstance(value, list):
                value = [
                    {**row, dependent.child_field: new_value}
                    if isinstance(row, dict) else row
                    for row in value
                ]
            self.cache.remove(old_key)
            self.cache.set(new_key, value, stale=entry.stale)
            touched.extend([old_key, new_key])
        return touched

    def _on_update(
        self,
        descriptor: ResourceDescriptor,
        before: dict,
        after: dict,
    ) -> list[CacheKey]:
        touched: list[CacheKey] = []
        old_value = before.get(descriptor.natural_key)
        new_value = after.get(descriptor.natural_key, old_value)
        if descriptor.natural_key not in after and old_value is not None:
            after = {**after, descriptor.natural_key: old_value}
        id_value = after.get(descriptor.id_field) if descriptor.id_field else None
        if id_value is None and descriptor.id_field:
            id_value = before.get(descriptor.id_field)

        old_lists = self.keys.list_keys(descriptor.kind, before)
        new_lists = self.keys.list_keys(descriptor.kind, after)

        for key in dict.fromkeys(old_lists + new_lists):
            if key not in self.cache:
                continue
            rows = self._rows(key)

            if key in old_lists and key in new_lists:
                position: Optional[int] = None
                kept = []
                for row in rows:
                    if (
                        self._same_entity(descriptor, row, old_value, id_value)
                        or self._same_entity(descriptor, row, new_value)
                    ):
                        if position is None:
                            position = len(kept)
                        continue
                    kept.append(row)
                if position is None:
                    position = 0 if descriptor.insert_position == "start" else len(kept)
                kept.insert(position, after)
                self._write(key, kept)
            elif key in old_lists:
                kept = [
                    row for row in rows
                    if not self._same_entity(descriptor, row, old_value, id_value)
                ]
                self._write(key, kept)
            else:
                # Moved into a list whose ordering and contents we cannot see
                self.cache.invalidate(key)
            touched.append(key)

        old_detail = self.keys.detail_key(descriptor.kind, old_value)
        new_detail = self.keys.detail_key(descriptor.kind, new_value)
        had_detail = old_detail in self.cache or new_detail in self.cache
        if old_detail != new_detail and self.cache.remove(old_detail):
            touched.append(old_detail)
        if had_detail:
            self.cache.set(new_detail, after)
            touched.append(new_detail)

        if old_value != new_value:
            touched.extend(self._rekey_dependents(descriptor, old_value, new_value))

        for key in dict.fromkeys(
            self.keys.aggregate_keys(descriptor.kind, before)
            + self.keys.aggregate_keys(descriptor.kind, after)
        ):
            if self.cache.invalidate(key):
                touched.append(key)

        return touched

    # =========================================================================
    # DELETE
    # =========================================================================

    def _on_delete(self, descriptor: ResourceDescriptor, before: dict) -> list[CacheKey]:
        touched: list[CacheKey] = []
        natural_value = before.get(descriptor.natural_key)
        id_value = before.get(descriptor.id_field) if descriptor.id_field else None

        for key in self.keys.list_keys(descriptor.kind, before):
            if key not in self.cache:
                continue
            rows = [
                row for row in self._rows(key)
                if not self._same_entity(descriptor, row, natural_value, id_value)
            ]
            self._write(key, rows)
            touched.append(key)

        if natural_value is not None:
            detail = self.keys.detail_key(descriptor.kind, natural_value)
            if self.cache.remove(detail):
                touched.append(detail)

            for dependent in descriptor.dependents:
                key = self.keys.dependent_key(dependent, natural_value)
                if dependent.aggregate:
                    changed = self.cache.invalidate(key)
                else:
                    changed = self.cache.remove(key)
                if changed:
                    touched.append(key)

        for key in self.keys.aggregate_keys(descriptor.kind, before):
            if self.cache.invalidate(key):
                touched.append(key)

        return touched

    # =========================================================================
    # RESOURCE ACTIONS
    # =========================================================================

    def _replace_in_lists(
        self,
        descriptor: ResourceDescriptor,
        entity: dict,
    ) -> list[CacheKey]:
        """Swap the cached row for `entity` where it is already present."""
        touched: list[CacheKey] = []
        natural_value = entity.get(descriptor.natural_key)
        id_value = entity.get(descriptor.id_field) if descriptor.id_field else None

        for key in self.keys.list_keys(descriptor.kind, entity):
            if key not in self.cache:
                continue
            rows = self._rows(key)
            replaced = [
                entity if self._same_entity(descriptor, row, natural_value, id_value)
                else row
                for row in rows
            ]
            if replaced != rows:
                self._write(key, replaced)
                touched.append(key)

        if natural_value is not None:
            detail = self.keys.detail_key(descriptor.kind, natural_value)
            if detail in self.cache:
                self._write(detail, entity)
                touched.append(detail)
        return touched

    def _move_between_buckets(
        self,
        key: CacheKey,
        amount: Any,
        old_state: Any,
        new_state: Any,
    ) -> None:
        """Shift an amount from one totals bucket to another; the grand total holds."""
        totals = self.cache.get(key)
        old_bucket = TOTALS_BUCKETS.get(old_state)
        new_bucket = TOTALS_BUCKETS.get(new_state)
        try:
            amount = float(amount)
        except (TypeError, ValueError):
            amount = None
        if not isinstance(totals, dict) or not old_bucket or not new_bucket or amount is None:
            self.cache.invalidate(key)
            return
        totals[old_bucket] = round(float(totals.get(old_bucket) or 0) - amount, 2)
        totals[new_bucket] = round(float(totals.get(new_bucket) or 0) + amount, 2)
        self._write(key, totals)

    def _on_state_update(
        self,
        descriptor: ResourceDescriptor,
        before: dict,
        after: dict,
    ) -> list[CacheKey]:
        state_field = descriptor.state_field
        entity = {**before, **after}
        touched = self._replace_in_lists(descriptor, entity)

        old_state = before.get(state_field)
        new_state = entity.get(state_field)
        if old_state != new_state:
            for key in self.keys.aggregate_keys(descriptor.kind, entity):
                if key not in self.cache:
                    continue
                self._move_between_buckets(key, entity.get("amount"), old_state, new_state)
                touched.append(key)
        return touched

    def _on_deactivate(
        self,
        descriptor: ResourceDescriptor,
        before: dict,
        after: dict,
    ) -> list[CacheKey]:
        touched = self._replace_in_lists(descriptor, {**before, **after})
        # The server cascades deactivation to data this layer cannot recompute
        for resource in descriptor.deactivate_cascade:
            for key in self.cache.keys(resource=resource.value):
                if self.cache.invalidate(key):
                    touched.append(key)
        return touched

    # =========================================================================
    # ENTRY POINT
    # =========================================================================

    def sync(
        self,
        kind: ResourceKind | str,
        operation: Operation | str,
        before: Optional[dict] = None,
        after: Optional[dict] = None,
    ) -> list[str]:
        """
        Apply the transition for one successful mutation.

        Args:
            kind: Mutated resource
            operation: create / update / delete, or a resource action
            before: Entity as it was before the mutation (all but create)
            after: Entity as the server returned it (all but delete)

        Returns:
            The touched cache keys, rendered as strings

        Raises:
            CacheSyncError: If the transition cannot be applied
        """
        descriptor = get_descriptor(kind)
        operation = Operation(operation)

        if operation in (Operation.CREATE, Operation.CREATE_FUTURE):
            if not isinstance(after, dict):
                raise CacheSyncError("create requires the created entity")
            touched = self._on_create(descriptor, after)
        elif operation == Operation.UPDATE:
            if not isinstance(before, dict) or not isinstance(after, dict):
                raise CacheSyncError("update requires both before and after")
            touched = self._on_update(descriptor, before, after)
        elif operation == Operation.DELETE:
            if not isinstance(before, dict):
                raise CacheSyncError("delete requires the deleted entity")
            touched = self._on_delete(descriptor, before)
        elif operation == Operation.UPDATE_STATE and descriptor.state_field:
            if not isinstance(before, dict) or not isinstance(after, dict):
                raise CacheSyncError("update_state requires both before and after")
            touched = self._on_state_update(descriptor, before, after)
        elif operation == Operation.DEACTIVATE and descriptor.deactivatable:
            if not isinstance(before, dict) or not isinstance(after, dict):
                raise CacheSyncError("deactivate requires both before and after")
            touched = self._on_deactivate(descriptor, before, after)
        else:
            raise CacheSyncError(
                f"{operation.value} is not a mutation of {descriptor.kind.value}"
            )

        rendered = [str(key) for key in dict.fromkeys(touched)]
        self._logger.debug(
            "cache_synchronized",
            resource=descriptor.kind.value,
            operation=operation.value,
            touched=rendered,
        )
        return rendered
