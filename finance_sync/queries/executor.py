"""
Fetch Execution Engine

DESIGN DECISION: Reads are the only way fresh server data enters the cache.
Every successful read overwrites its cache entry and clears its stale flag.

GUARANTEES:
- List reads always return a list, never None
- A legacy 404 on a list read means "no rows" and returns []
- A modern 404 on a list read is a failure, never an empty list
"""

from typing import Any, Optional
from uuid import UUID

import httpx
import structlog

from finance_sync.audit import AuditLogger, create_correlation_id
from finance_sync.endpoints import resolve
from finance_sync.errors import SyncError
from finance_sync.models.audit import SyncEventBuilder
from finance_sync.models.cache import CacheKey
from finance_sync.models.resources import (
    Generation,
    ListScope,
    Operation,
    ResourceKind,
    get_descriptor,
)
from finance_sync.models.results import Endpoint
from finance_sync.services.cache import CacheKeys, QueryCache
from finance_sync.services.http import ApiClient, ResponseNormalizer


# Cache key prefix of each parent-scoped transaction list
_SCOPE_PREFIXES = {
    ListScope.ACCOUNT: (),
    ListScope.CATEGORY: ("category",),
    ListScope.DESCRIPTION: ("description",),
}


class FetchExecutor:
    """Executes read-only calls and mirrors their results into the cache."""

    def __init__(
        self,
        client: ApiClient,
        cache: QueryCache,
        generation: Generation,
        normalizer: Optional[ResponseNormalizer] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._client = client
        self._cache = cache
        self._generation = Generation(generation)
        self._keys = CacheKeys(self._generation)
        self._normalizer = normalizer or ResponseNormalizer()
        self._audit_logger = audit_logger
        self._logger = structlog.get_logger(__name__)

    async def _request(
        self,
        endpoint: Endpoint,
        operation: Operation,
    ) -> Any:
        try:
            response = await self._client.send(endpoint)
        except httpx.HTTPError as e:
            raise self._normalizer.from_transport_error(e) from e
        return self._normalizer.normalize(response, self._generation, operation)

    async def _fetch_list(
        self,
        resource: ResourceKind,
        endpoint: Endpoint,
        cache_key: CacheKey,
        correlation_id: Optional[UUID],
    ) -> list:
        correlation_id = correlation_id or create_correlation_id()
        try:
            rows = await self._request(endpoint, Operation.LIST)
        except SyncError as e:
            self._logger.warning(
                "list_failed",
                resource=resource.value,
                cache_key=str(cache_key),
                kind=e.error.kind.value,
                status=e.status,
            )
            if self._audit_logger:
                await self._audit_logger.log(SyncEventBuilder.list_failed(
                    resource=resource.value,
                    cache_key=str(cache_key),
                    error_kind=e.error.kind.value,
                    error_message=e.message,
                    correlation_id=correlation_id,
                ))
            raise

        self._cache.set(cache_key, rows)
        if self._audit_logger:
            await self._audit_logger.log(SyncEventBuilder.list_fetched(
                resource=resource.value,
                cache_key=str(cache_key),
                count=len(rows),
                correlation_id=correlation_id,
            ))
        return rows

    async def _transactions_by(
        self,
        scope: ListScope,
        key: str,
        correlation_id: Optional[UUID],
    ) -> list:
        endpoint = resolve(
            ResourceKind.TRANSACTION,
            Operation.LIST,
            self._generation,
            key=key,
            scope=scope,
        )
        cache_key = self._keys.scoped_list_key(
            ResourceKind.TRANSACTION,
            _SCOPE_PREFIXES[scope],
            key,
        )
        return await self._fetch_list(
            ResourceKind.TRANSACTION,
            endpoint,
            cache_key,
            correlation_id,
        )

    async def transactions_by_account(
        self,
        account_name_owner: str,
        correlation_id: Optional[UUID] = None,
    ) -> list:
        return await self._transactions_by(
            ListScope.ACCOUNT, account_name_owner, correlation_id
        )

    async def transactions_by_category(
        self,
        category_name: str,
        correlation_id: Optional[UUID] = None,
    ) -> list:
        return await self._transactions_by(
            ListScope.CATEGORY, category_name, correlation_id
        )

    async def transactions_by_description(
        self,
        description_name: str,
        correlation_id: Optional[UUID] = None,
    ) -> list:
        return await self._transactions_by(
            ListScope.DESCRIPTION, description_name, correlation_id
        )

    async def get(self, kind: ResourceKind | str, key: Any) -> Any:
        """
        Fetch one entity by the key the generation addresses it with.

        The result is cached under its natural key. The legacy generation
        has no get-one endpoint (UnsupportedOperationError).
        """
        descriptor = get_descriptor(kind)
        endpoint = resolve(descriptor.kind, Operation.GET, self._generation, key=key)
        value = await self._request(endpoint, Operation.GET)

        natural_value = key
        if isinstance(value, dict) and value.get(descriptor.natural_key) is not None:
            natural_value = value[descriptor.natural_key]
        if value is not None:
            self._cache.set(self._keys.detail_key(descriptor.kind, natural_value), value)
        self._logger.debug(
            "entity_fetched",
            resource=descriptor.kind.value,
            key=str(key),
        )
        return value

    async def totals_for_account(self, account_name_owner: str) -> Any:
        """
        Fetch the per-account totals.

        The modern generation addresses totals by the canonicalized name;
        the cache key follows the same rule.
        """
        endpoint = resolve(
            ResourceKind.TOTALS,
            Operation.GET,
            self._generation,
            key=account_name_owner,
        )
        totals = await self._request(endpoint, Operation.GET)
        if totals is not None:
            self._cache.set(self._keys.totals_key(account_name_owner), totals)
        self._logger.debug("totals_fetched", account=account_name_owner)
        return totals

    async def list(
        self,
        kind: ResourceKind | str,
        correlation_id: Optional[UUID] = None,
    ) -> list:
        """Fetch the active entities of a resource."""
        descriptor = get_descriptor(kind)
        endpoint = resolve(descriptor.kind, Operation.LIST, self._generation)
        return await self._fetch_list(
            descriptor.kind,
            endpoint,
            self._keys.active_list_key(descriptor.kind),
            correlation_id,
        )
