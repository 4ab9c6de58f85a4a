"""
Endpoint Resolver

Maps (resource, operation, generation, key) to a request target.

LEGACY generation: the action verb is part of the path
    POST   /api/{resource}/insert
    PUT    /api/{resource}/update/{key}
    DELETE /api/{resource}/delete/{key}
    GET    /api/{resource}/select/active

MODERN generation: REST-conventional
    POST   /api/{resource}
    PUT    /api/{resource}/{key}
    DELETE /api/{resource}/{key}
    GET    /api/{resource}/active
    GET    /api/{resource}/{key}

RESOURCE ACTIONS: one form shared by both generations
    POST   /api/transaction/future/insert
    PUT    /api/transaction/state/update/{guid}/{state}
    PUT    /api/account/deactivate/{account}

DESIGN DECISION: The resolver is a pure function. It holds no state and
performs no I/O, so it can be called from tests without any client.
Update and delete always address the entity by its PRE-mutation key; the
caller passes that key explicitly.
"""

from typing import Any, Optional
from urllib.parse import quote

from finance_sync.errors import UnsupportedOperationError
from finance_sync.models.resources import (
    Generation,
    KeyKind,
    ListScope,
    Operation,
    ResourceDescriptor,
    ResourceKind,
    get_descriptor,
)
from finance_sync.models.results import Endpoint
from finance_sync.validation.sanitization import InputSanitizer

API_PREFIX = "/api"

_METHODS = {
    Operation.LIST: "GET",
    Operation.GET: "GET",
    Operation.CREATE: "POST",
    Operation.UPDATE: "PUT",
    Operation.DELETE: "DELETE",
    Operation.CREATE_FUTURE: "POST",
    Operation.UPDATE_STATE: "PUT",
    Operation.DEACTIVATE: "PUT",
}

_LEGACY_VERBS = {
    Operation.CREATE: "insert",
    Operation.UPDATE: "update",
    Operation.DELETE: "delete",
}

_ACTION_SEGMENTS = {
    Operation.CREATE_FUTURE: "future/insert",
    Operation.UPDATE_STATE: "state/update",
    Operation.DEACTIVATE: "deactivate",
}

# Parent-scoped transaction lists: scope -> (legacy segment, modern segment)
_SCOPED_SEGMENTS = {
    ListScope.ACCOUNT: ("account/select", "account"),
    ListScope.CATEGORY: ("category", "category"),
    ListScope.DESCRIPTION: ("description", "description"),
}


def encode_key(key: Any) -> str:
    """Percent-encode a key so it is always exactly one path segment."""
    return quote(str(key), safe="")


def key_kind_for(descriptor: ResourceDescriptor, generation: Generation) -> KeyKind:
    """How one entity of this resource is addressed in the given generation."""
    if generation == Generation.MODERN:
        return descriptor.modern_key
    return KeyKind.NAME


def key_field_for(descriptor: ResourceDescriptor, generation: Generation) -> str:
    """Entity field whose value addresses the entity in the given generation."""
    if generation == Generation.MODERN:
        return descriptor.modern_key_field()
    return descriptor.natural_key


def _require_key(
    descriptor: ResourceDescriptor,
    operation: Operation,
    key: Any,
) -> Any:
    if key is None or key == "":
        raise UnsupportedOperationError(
            f"{operation.value} {descriptor.kind.value} requires a key"
        )
    return key


def _resolve_totals(generation: Generation, operation: Operation, key: Any) -> Endpoint:
    descriptor = get_descriptor(ResourceKind.TOTALS)
    if operation != Operation.GET:
        raise UnsupportedOperationError(
            f"totals supports only {Operation.GET.value}, not {operation.value}"
        )
    key = _require_key(descriptor, operation, key)
    if generation == Generation.MODERN:
        key = InputSanitizer.canonicalize_account_name(str(key))
    return Endpoint(
        path=f"{API_PREFIX}/{descriptor.path}/{encode_key(key)}",
        method="GET",
        key_kind=KeyKind.NAME,
    )


def _resolve_scoped_list(
    kind: ResourceKind,
    generation: Generation,
    scope: ListScope,
    key: Any,
) -> Endpoint:
    if kind != ResourceKind.TRANSACTION:
        raise UnsupportedOperationError(
            f"scoped lists exist only for transactions, not {kind.value}"
        )
    descriptor = get_descriptor(kind)
    key = _require_key(descriptor, Operation.LIST, key)
    legacy_segment, modern_segment = _SCOPED_SEGMENTS[scope]
    segment = legacy_segment if generation == Generation.LEGACY else modern_segment
    return Endpoint(
        path=f"{API_PREFIX}/{descriptor.path}/{segment}/{encode_key(key)}",
        method="GET",
        key_kind=KeyKind.NAME,
    )


def _resolve_action(
    descriptor: ResourceDescriptor,
    operation: Operation,
    key: Any,
    state: Optional[str],
) -> Endpoint:
    if not descriptor.supports(operation):
        raise UnsupportedOperationError(
            f"{descriptor.kind.value} has no {operation.value} endpoint"
        )
    base = f"{API_PREFIX}/{descriptor.path}/{_ACTION_SEGMENTS[operation]}"
    method = _METHODS[operation]

    if operation == Operation.CREATE_FUTURE:
        return Endpoint(path=base, method=method)

    key = _require_key(descriptor, operation, key)
    if operation == Operation.DEACTIVATE:
        # Account names are canonicalized before they go into the path
        key = InputSanitizer.canonicalize_account_name(str(key))
        return Endpoint(
            path=f"{base}/{encode_key(key)}",
            method=method,
            key_kind=KeyKind.NAME,
        )

    if state is None or state == "":
        raise UnsupportedOperationError(
            f"{operation.value} {descriptor.kind.value} requires a state"
        )
    return Endpoint(
        path=f"{base}/{encode_key(key)}/{encode_key(state)}",
        method=method,
        key_kind=KeyKind.NAME,
    )


def resolve(
    kind: ResourceKind | str,
    operation: Operation | str,
    generation: Generation | str,
    key: Optional[Any] = None,
    scope: Optional[ListScope | str] = None,
    state: Optional[str] = None,
) -> Endpoint:
    """
    Resolve the request target for one call.

    Args:
        kind: Resource to address
        operation: list / get / create / update / delete, or a resource action
        generation: API generation to talk to
        key: Entity key for get/update/delete (the pre-mutation key for
            updates), or the parent key for scoped lists
        scope: Parent scope for transaction lists (account/category/description)
        state: Target state for update_state

    Returns:
        Endpoint with path, method and key kind

    Raises:
        UnsupportedOperationError: For combinations that do not exist
    """
    descriptor = get_descriptor(kind)
    operation = Operation(operation)
    generation = Generation(generation)

    if descriptor.kind == ResourceKind.TOTALS:
        return _resolve_totals(generation, operation, key)

    if operation in _ACTION_SEGMENTS:
        return _resolve_action(descriptor, operation, key, state)

    if scope is not None:
        if operation != Operation.LIST:
            raise UnsupportedOperationError("scope applies only to list")
        return _resolve_scoped_list(descriptor.kind, generation, ListScope(scope), key)

    base = f"{API_PREFIX}/{descriptor.path}"
    method = _METHODS[operation]

    if operation == Operation.LIST:
        suffix = "select/active" if generation == Generation.LEGACY else "active"
        return Endpoint(path=f"{base}/{suffix}", method=method)

    if operation == Operation.CREATE:
        path = f"{base}/insert" if generation == Generation.LEGACY else base
        return Endpoint(path=path, method=method)

    if operation == Operation.GET and generation == Generation.LEGACY:
        raise UnsupportedOperationError(
            f"legacy generation has no get-one endpoint for {descriptor.kind.value}"
        )

    key = _require_key(descriptor, operation, key)
    key_kind = key_kind_for(descriptor, generation)

    if generation == Generation.LEGACY:
        path = f"{base}/{_LEGACY_VERBS[operation]}/{encode_key(key)}"
    else:
        path = f"{base}/{encode_key(key)}"

    return Endpoint(path=path, method=method, key_kind=key_kind)
