"""
Main Orchestrator for Finance Sync

This module ties the components together behind one client:
1. Reads (fetch -> normalize -> mirror into cache)
2. Mutations (validate -> resolve -> request -> normalize -> synchronize)

DESIGN DECISION: The orchestrator only wires. Every collaborator can be
injected, so tests swap the network for an httpx.MockTransport and the
audit trail for an in-memory sink without any global state.

The cache is shared by reads and mutations: what a read stores, the next
mutation keeps consistent.
"""

from typing import Any, Optional
from uuid import UUID

import httpx

from finance_sync.audit import AuditLogger, AuditSink
from finance_sync.config import ApiSettings, get_settings
from finance_sync.models.resources import Generation, ResourceKind
from finance_sync.mutations import MutationExecutor
from finance_sync.queries import FetchExecutor
from finance_sync.services.cache import CacheSynchronizer, QueryCache
from finance_sync.services.http import ApiClient, ResponseNormalizer
from finance_sync.services.identifier import IdentifierGenerator
from finance_sync.validation import PayloadValidator


class FinanceSyncClient:
    """
    Client-side synchronization layer for the finance API.

    Usage:
        async with FinanceSyncClient() as finance:
            categories = await finance.list("category")
            await finance.insert("category", {"categoryName": "groceries"})
    """

    def __init__(
        self,
        settings: Optional[ApiSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        cache: Optional[QueryCache] = None,
        audit_sink: Optional[AuditSink] = None,
        identifiers: Optional[IdentifierGenerator] = None,
        client: Optional[ApiClient] = None,
    ):
        self.settings = settings or get_settings().api
        self.generation: Generation = self.settings.generation
        self.cache = cache if cache is not None else QueryCache()
        self.audit_logger = AuditLogger(sink=audit_sink)

        self._client = client or ApiClient.from_settings(self.settings, transport=transport)
        normalizer = ResponseNormalizer()
        self.synchronizer = CacheSynchronizer(self.cache, self.generation)

        self.mutations = MutationExecutor(
            client=self._client,
            synchronizer=self.synchronizer,
            generation=self.generation,
            validator=PayloadValidator(),
            normalizer=normalizer,
            identifiers=identifiers,
            audit_logger=self.audit_logger,
        )
        self.fetches = FetchExecutor(
            client=self._client,
            cache=self.cache,
            generation=self.generation,
            normalizer=normalizer,
            audit_logger=self.audit_logger,
        )

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "FinanceSyncClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def insert(
        self,
        kind: ResourceKind | str,
        payload: dict,
        correlation_id: Optional[UUID] = None,
    ) -> Any:
        return await self.mutations.insert(kind, payload, correlation_id=correlation_id)

    async def update(
        self,
        kind: ResourceKind | str,
        before: dict,
        after: dict,
        correlation_id: Optional[UUID] = None,
    ) -> Any:
        return await self.mutations.update(
            kind, before, after, correlation_id=correlation_id
        )

    async def delete(
        self,
        kind: ResourceKind | str,
        entity: dict,
        missing_ok: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> Any:
        return await self.mutations.delete(
            kind, entity, missing_ok=missing_ok, correlation_id=correlation_id
        )

    async def insert_future_transaction(
        self,
        payload: dict,
        correlation_id: Optional[UUID] = None,
    ) -> Any:
        return await self.mutations.insert_future(
            ResourceKind.TRANSACTION, payload, correlation_id=correlation_id
        )

    async def update_transaction_state(
        self,
        transaction: dict,
        state: str,
        correlation_id: Optional[UUID] = None,
    ) -> Any:
        return await self.mutations.update_state(
            ResourceKind.TRANSACTION, transaction, state, correlation_id=correlation_id
        )

    async def deactivate_account(
        self,
        account: dict,
        correlation_id: Optional[UUID] = None,
    ) -> Any:
        return await self.mutations.deactivate(
            ResourceKind.ACCOUNT, account, correlation_id=correlation_id
        )

    # =========================================================================
    # READS
    # =========================================================================

    async def get(self, kind: ResourceKind | str, key: Any) -> Any:
        return await self.fetches.get(kind, key)

    async def transactions_by_account(self, account_name_owner: str) -> list:
        return await self.fetches.transactions_by_account(account_name_owner)

    async def transactions_by_category(self, category_name: str) -> list:
        return await self.fetches.transactions_by_category(category_name)

    async def transactions_by_description(self, description_name: str) -> list:
        return await self.fetches.transactions_by_description(description_name)

    async def totals_for_account(self, account_name_owner: str) -> Any:
        return await self.fetches.totals_for_account(account_name_owner)

    async def list(
        self,
        kind: ResourceKind | str,
        correlation_id: Optional[UUID] = None,
    ) -> list:
        return await self.fetches.list(kind, correlation_id=correlation_id)
