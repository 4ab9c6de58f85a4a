"""
Mutation Executor

One parameterized executor for insert / update / delete on every resource,
plus the resource actions a descriptor enables (future insert, state
change, deactivation).

Each call walks the same states:

    VALIDATING -> RESOLVING -> REQUESTING -> NORMALIZING -> SYNCHRONIZING -> DONE
         \\            \\            \\             \\
          +------------+------------+-------------+---------------------> FAILED

DESIGN DECISION: The boundaries are enforced here:
- Nothing reaches the network before the payload validates
- A minted identifier is never taken from caller input
- A cache-sync failure never turns a server-side success into a failure

Every state change is logged; every outcome is audited.
"""

from enum import Enum
from typing import Any, Optional
from uuid import UUID

import httpx
import structlog

from finance_sync.audit import AuditLogger, create_correlation_id
from finance_sync.endpoints import key_field_for, resolve
from finance_sync.errors import (
    AlreadyDeletedError,
    PayloadValidationError,
    ServerRejectedPayloadError,
    SyncError,
    UnsupportedOperationError,
)
from finance_sync.models.audit import SyncEventBuilder
from finance_sync.models.errors import CanonicalError, ErrorKind
from finance_sync.models.resources import (
    Generation,
    Operation,
    ResourceDescriptor,
    ResourceKind,
    get_descriptor,
)
from finance_sync.models.results import Endpoint, ValidationResult
from finance_sync.services.cache import CacheSynchronizer
from finance_sync.services.http import ApiClient, ResponseNormalizer
from finance_sync.services.identifier import IdentifierGenerator
from finance_sync.validation import PayloadValidator, require_writable


class MutationState(str, Enum):
    """States of one mutation call."""
    VALIDATING = "validating"
    RESOLVING = "resolving"
    REQUESTING = "requesting"
    NORMALIZING = "normalizing"
    SYNCHRONIZING = "synchronizing"
    DONE = "done"
    FAILED = "failed"


class _MutationCall:
    """Per-call context: identity, current state and a bound logger."""

    def __init__(
        self,
        logger: Any,
        descriptor: ResourceDescriptor,
        operation: Operation,
        correlation_id: UUID,
        entity_key: Optional[str] = None,
    ):
        self.descriptor = descriptor
        self.operation = operation
        self.correlation_id = correlation_id
        self.entity_key = entity_key
        self.state: Optional[MutationState] = None
        self.history: list[MutationState] = []
        self.log = logger.bind(
            resource=descriptor.kind.value,
            operation=operation.value,
            correlation_id=str(correlation_id),
        )

    @property
    def resource(self) -> str:
        return self.descriptor.kind.value

    def enter(self, state: MutationState) -> None:
        self.state = state
        self.history.append(state)
        self.log.debug("mutation_state", state=state.value)


def _entity_key(descriptor: ResourceDescriptor, entity: Any) -> Optional[str]:
    if isinstance(entity, dict) and entity.get(descriptor.natural_key) is not None:
        return str(entity[descriptor.natural_key])
    return None


class MutationExecutor:
    """
    Executes insert, update, delete and resource actions for any resource.

    All collaborators are injected; none is a global.
    """

    def __init__(
        self,
        client: ApiClient,
        synchronizer: CacheSynchronizer,
        generation: Generation,
        validator: Optional[PayloadValidator] = None,
        normalizer: Optional[ResponseNormalizer] = None,
        identifiers: Optional[IdentifierGenerator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._client = client
        self._synchronizer = synchronizer
        self._generation = Generation(generation)
        self._validator = validator or PayloadValidator()
        self._normalizer = normalizer or ResponseNormalizer()
        self._identifiers = identifiers or IdentifierGenerator()
        self._audit_logger = audit_logger
        self._logger = structlog.get_logger(__name__)
        self.last_call: Optional[_MutationCall] = None

    @property
    def generation(self) -> Generation:
        return self._generation

    # =========================================================================
    # STAGES
    # =========================================================================

    async def _fail(self, call: _MutationCall, error: SyncError) -> SyncError:
        call.enter(MutationState.FAILED)
        call.log.warning(
            "mutation_failed",
            kind=error.error.kind.value,
            status=error.status,
            message=error.message,
        )
        if self._audit_logger:
            if (
                isinstance(error, PayloadValidationError)
                and not isinstance(error, ServerRejectedPayloadError)
            ):
                event = SyncEventBuilder.validation_failed(
                    resource=call.resource,
                    operation=call.operation.value,
                    issues=[issue.model_dump() for issue in error.issues],
                    correlation_id=call.correlation_id,
                )
            else:
                event = SyncEventBuilder.mutation_failed(
                    resource=call.resource,
                    operation=call.operation.value,
                    entity_key=call.entity_key,
                    error_kind=error.error.kind.value,
                    error_message=error.message,
                    status=error.status,
                    correlation_id=call.correlation_id,
                )
            await self._audit_logger.log(event)
        return error

    async def _check(self, call: _MutationCall, result: ValidationResult) -> dict:
        if result.valid:
            return result.data
        error = PayloadValidationError(
            CanonicalError(
                kind=ErrorKind.VALIDATION,
                message=(
                    f"{call.resource.capitalize()} validation failed: "
                    f"{result.joined_messages()}"
                ),
                status=0,
            ),
            issues=result.errors,
        )
        raise await self._fail(call, error)

    async def _send(
        self,
        call: _MutationCall,
        endpoint: Endpoint,
        body: Optional[dict],
    ) -> httpx.Response:
        call.enter(MutationState.REQUESTING)
        try:
            return await self._client.send(endpoint, body)
        except httpx.HTTPError as e:
            error = self._normalizer.from_transport_error(e)
            raise await self._fail(call, error) from e

    async def _normalize(
        self,
        call: _MutationCall,
        response: httpx.Response,
        default: Any,
    ) -> Any:
        call.enter(MutationState.NORMALIZING)
        try:
            return self._normalizer.normalize(
                response,
                self._generation,
                call.operation,
                default=default,
            )
        except SyncError as e:
            raise await self._fail(call, e)

    async def _synchronize(
        self,
        call: _MutationCall,
        before: Optional[dict],
        after: Optional[dict],
    ) -> None:
        """Best-effort: failures are logged and audited, never raised."""
        call.enter(MutationState.SYNCHRONIZING)
        try:
            touched = self._synchronizer.sync(
                call.descriptor.kind,
                call.operation,
                before=before,
                after=after,
            )
        except Exception as e:
            call.log.error("cache_sync_failed", error=str(e))
            if self._audit_logger:
                await self._audit_logger.log(SyncEventBuilder.cache_sync_failed(
                    resource=call.resource,
                    operation=call.operation.value,
                    entity_key=call.entity_key,
                    error_message=str(e),
                    correlation_id=call.correlation_id,
                ))
            return

        if self._audit_logger:
            await self._audit_logger.log(SyncEventBuilder.cache_synced(
                resource=call.resource,
                operation=call.operation.value,
                entity_key=call.entity_key,
                touched=touched,
                correlation_id=call.correlation_id,
            ))

    async def _start(
        self,
        kind: ResourceKind | str,
        operation: Operation,
        entity: Any,
        correlation_id: Optional[UUID],
    ) -> _MutationCall:
        descriptor = get_descriptor(kind)
        require_writable(descriptor.kind)
        if not descriptor.supports(operation):
            raise UnsupportedOperationError(
                f"{descriptor.kind.value} does not support {operation.value}"
            )
        call = _MutationCall(
            self._logger,
            descriptor,
            operation,
            correlation_id or create_correlation_id(),
            entity_key=_entity_key(descriptor, entity),
        )
        self.last_call = call
        if self._audit_logger:
            await self._audit_logger.log(SyncEventBuilder.mutation_started(
                resource=call.resource,
                operation=operation.value,
                entity_key=call.entity_key,
                correlation_id=call.correlation_id,
            ))
        call.enter(MutationState.VALIDATING)
        return call

    async def _finish(self, call: _MutationCall, status: int) -> None:
        call.enter(MutationState.DONE)
        if self._audit_logger:
            await self._audit_logger.log(SyncEventBuilder.mutation_succeeded(
                resource=call.resource,
                operation=call.operation.value,
                entity_key=call.entity_key,
                status=status,
                correlation_id=call.correlation_id,
            ))

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    async def insert(
        self,
        kind: ResourceKind | str,
        payload: Any,
        correlation_id: Optional[UUID] = None,
    ) -> Any:
        """
        Create one entity.

        Returns:
            The server's entity, or the submitted payload on 204

        Raises:
            PayloadValidationError: Payload invalid, no request was made
            SyncError: The request failed
        """
        return await self._insert(kind, payload, Operation.CREATE, correlation_id)

    async def insert_future(
        self,
        kind: ResourceKind | str,
        payload: Any,
        correlation_id: Optional[UUID] = None,
    ) -> Any:
        """Create one scheduled entity through the future-insert endpoint."""
        return await self._insert(kind, payload, Operation.CREATE_FUTURE, correlation_id)

    async def _insert(
        self,
        kind: ResourceKind | str,
        payload: Any,
        operation: Operation,
        correlation_id: Optional[UUID],
    ) -> Any:
        call = await self._start(kind, operation, payload, correlation_id)
        descriptor = call.descriptor

        submitted = payload
        if descriptor.minted_field and isinstance(payload, dict):
            # Never trust a caller-supplied identifier
            submitted = {
                k: v for k, v in payload.items() if k != descriptor.minted_field
            }
        data = await self._check(call, self._validator.validate(descriptor.kind, submitted))

        call.enter(MutationState.RESOLVING)
        endpoint = resolve(descriptor.kind, operation, self._generation)

        if descriptor.minted_field:
            try:
                identifier = await self._identifiers.generate()
            except SyncError as e:
                raise await self._fail(call, e)
            data = {**data, descriptor.minted_field: identifier}
            call.entity_key = _entity_key(descriptor, data)
            if self._audit_logger:
                await self._audit_logger.log(SyncEventBuilder.identifier_minted(
                    resource=call.resource,
                    field=descriptor.minted_field,
                    identifier=identifier,
                    correlation_id=call.correlation_id,
                ))

        response = await self._send(call, endpoint, data)
        value = await self._normalize(call, response, default=data)
        call.entity_key = _entity_key(descriptor, value) or call.entity_key

        await self._synchronize(
            call,
            before=None,
            after=value if isinstance(value, dict) else data,
        )
        await self._finish(call, response.status_code)
        return value

    async def update(
        self,
        kind: ResourceKind | str,
        before: Any,
        after: Any,
        correlation_id: Optional[UUID] = None,
    ) -> Any:
        """
        Replace one entity.

        `before` is the entity as currently known; its key addresses the
        request even when `after` changes that key (rename).

        Returns:
            The server's entity, or the submitted payload on 204
        """
        call = await self._start(kind, Operation.UPDATE, before, correlation_id)
        descriptor = call.descriptor

        current = await self._check(
            call,
            self._validator.validate_key(descriptor.kind, before, self._generation),
        )
        data = await self._check(call, self._validator.validate(descriptor.kind, after))

        # Identity fields the caller left out carry over from the current entity
        for field in (descriptor.id_field, descriptor.minted_field):
            if field and field not in data and current.get(field) is not None:
                data[field] = current[field]

        call.enter(MutationState.RESOLVING)
        key_field = key_field_for(descriptor, self._generation)
        endpoint = resolve(
            descriptor.kind,
            Operation.UPDATE,
            self._generation,
            key=current[key_field],
        )

        response = await self._send(call, endpoint, data)
        value = await self._normalize(call, response, default=data)

        await self._synchronize(
            call,
            before=current,
            after=value if isinstance(value, dict) else data,
        )
        await self._finish(call, response.status_code)
        return value

    async def delete(
        self,
        kind: ResourceKind | str,
        entity: Any,
        missing_ok: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> Any:
        """
        Delete one entity.

        Args:
            missing_ok: Treat a 404 (already deleted) as success

        Returns:
            The server's body, None on 204

        Raises:
            AlreadyDeletedError: The server answered 404 and missing_ok is False
        """
        call = await self._start(kind, Operation.DELETE, entity, correlation_id)
        descriptor = call.descriptor

        current = await self._check(
            call,
            self._validator.validate_key(descriptor.kind, entity, self._generation),
        )

        call.enter(MutationState.RESOLVING)
        key_field = key_field_for(descriptor, self._generation)
        endpoint = resolve(
            descriptor.kind,
            Operation.DELETE,
            self._generation,
            key=current[key_field],
        )

        response = await self._send(call, endpoint, None)
        call.enter(MutationState.NORMALIZING)
        try:
            value = self._normalizer.normalize(
                response,
                self._generation,
                Operation.DELETE,
                default=None,
            )
        except AlreadyDeletedError as e:
            if not missing_ok:
                raise await self._fail(call, e)
            call.log.info("delete_already_gone", entity_key=call.entity_key)
            value = None
        except SyncError as e:
            raise await self._fail(call, e)

        await self._synchronize(call, before=current, after=None)
        await self._finish(call, response.status_code)
        return value

    async def update_state(
        self,
        kind: ResourceKind | str,
        entity: Any,
        state: str,
        correlation_id: Optional[UUID] = None,
    ) -> Any:
        """
        Move one entity to another state (e.g. a transaction to "cleared").

        The entity is addressed by its natural key in both generations.

        Returns:
            The server's entity, or the cached entity with the new state on 204
        """
        call = await self._start(kind, Operation.UPDATE_STATE, entity, correlation_id)
        descriptor = call.descriptor

        current = await self._check(
            call,
            self._validator.validate_key(
                descriptor.kind, entity, self._generation, field=descriptor.natural_key,
            ),
        )
        target = await self._check(
            call,
            self._validator.validate_field(descriptor.kind, descriptor.state_field, state),
        )
        new_state = target[descriptor.state_field]

        call.enter(MutationState.RESOLVING)
        endpoint = resolve(
            descriptor.kind,
            Operation.UPDATE_STATE,
            self._generation,
            key=current[descriptor.natural_key],
            state=new_state,
        )

        response = await self._send(call, endpoint, {})
        expected = {**current, descriptor.state_field: new_state}
        value = await self._normalize(call, response, default=expected)

        await self._synchronize(
            call,
            before=current,
            after=value if isinstance(value, dict) else expected,
        )
        await self._finish(call, response.status_code)
        return value

    async def deactivate(
        self,
        kind: ResourceKind | str,
        entity: Any,
        correlation_id: Optional[UUID] = None,
    ) -> Any:
        """
        Deactivate one entity; the server cascades to its children.

        Returns:
            The server's entity, or the entity marked inactive on 204
        """
        call = await self._start(kind, Operation.DEACTIVATE, entity, correlation_id)
        descriptor = call.descriptor

        current = await self._check(
            call,
            self._validator.validate_key(
                descriptor.kind, entity, self._generation, field=descriptor.natural_key,
            ),
        )

        call.enter(MutationState.RESOLVING)
        endpoint = resolve(
            descriptor.kind,
            Operation.DEACTIVATE,
            self._generation,
            key=current[descriptor.natural_key],
        )

        response = await self._send(call, endpoint, None)
        expected = {**current, "activeStatus": False}
        value = await self._normalize(call, response, default=expected)

        await self._synchronize(
            call,
            before=current,
            after=value if isinstance(value, dict) else expected,
        )
        await self._finish(call, response.status_code)
        return value
