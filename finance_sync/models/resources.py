"""
Resource Descriptors

Every entity kind the layer handles is described by one static
ResourceDescriptor. The executors, the endpoint resolver and the cache
synchronizer are all parameterized by these descriptors; no entity type
carries behavior of its own.

DESIGN DECISION: Whether the modern API addresses a resource by surrogate id
or by natural name is a per-resource fact. It is recorded here rather than
inferred from the HTTP verb.
"""

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS
# =============================================================================

class Generation(str, Enum):
    """The two coexisting backend API conventions."""
    LEGACY = "legacy"
    MODERN = "modern"


class Operation(str, Enum):
    """Operations the endpoint resolver knows how to address."""
    LIST = "list"
    GET = "get"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    # Resource-specific actions, available only where the descriptor enables them
    CREATE_FUTURE = "create_future"
    UPDATE_STATE = "update_state"
    DEACTIVATE = "deactivate"


class KeyKind(str, Enum):
    """How an endpoint addresses a single entity."""
    NAME = "name"
    ID = "id"


class ResourceKind(str, Enum):
    """Entity kinds handled uniformly by the layer."""
    ACCOUNT = "account"
    CATEGORY = "category"
    DESCRIPTION = "description"
    PARAMETER = "parameter"
    TRANSACTION = "transaction"
    TOTALS = "totals"


class ListScope(str, Enum):
    """Parent-scoped transaction lists."""
    ACCOUNT = "account"
    CATEGORY = "category"
    DESCRIPTION = "description"


# =============================================================================
# CACHE PLACEMENT
# =============================================================================

class ListPlacement(BaseModel):
    """
    A list cache entities of a resource appear in.

    The cache key is (resource, *prefix, entity[field]) when field is set,
    otherwise (resource, *prefix).
    """
    model_config = ConfigDict(frozen=True)

    prefix: tuple[str, ...] = ()
    field: Optional[str] = None


class AggregatePlacement(BaseModel):
    """An aggregate cache (e.g. totals) that summarizes entities of a resource."""
    model_config = ConfigDict(frozen=True)

    resource: ResourceKind
    field: str


class DependentCache(BaseModel):
    """
    A cache owned by another resource whose key embeds this resource's
    natural key, e.g. ["totals", accountNameOwner] for accounts.

    On rename these entries are re-keyed. child_field names the field rewritten
    inside every cached child entity; aggregates have no child entities.
    """
    model_config = ConfigDict(frozen=True)

    resource: ResourceKind
    prefix: tuple[str, ...] = ()
    child_field: Optional[str] = None
    aggregate: bool = False


# =============================================================================
# DESCRIPTOR
# =============================================================================

class ResourceDescriptor(BaseModel):
    """Static description of one resource."""
    model_config = ConfigDict(frozen=True)

    kind: ResourceKind
    path: str = Field(
        ...,
        description="Path segment(s) after /api/"
    )
    natural_key: str = Field(
        ...,
        description="Human-meaningful unique field"
    )
    id_field: Optional[str] = Field(
        default=None,
        description="Surrogate id field assigned by the server"
    )
    modern_key: KeyKind = Field(
        default=KeyKind.NAME,
        description="How the modern generation addresses one entity"
    )
    minted_field: Optional[str] = Field(
        default=None,
        description="Field filled with a client-minted identifier on insert"
    )
    insert_position: Literal["start", "end"] = "start"
    lists: tuple[ListPlacement, ...] = ()
    aggregates: tuple[AggregatePlacement, ...] = ()
    dependents: tuple[DependentCache, ...] = ()
    writable: bool = True
    canonical_modern_key: bool = False
    future_insert: bool = Field(
        default=False,
        description="Supports inserting scheduled (future) entities"
    )
    state_field: Optional[str] = Field(
        default=None,
        description="Field changed by the state-update action, if supported"
    )
    deactivatable: bool = False
    deactivate_cascade: tuple[ResourceKind, ...] = Field(
        default=(),
        description="Resources whose cached entries go stale on deactivation"
    )

    def modern_key_field(self) -> str:
        """Field whose value addresses one entity in the modern generation."""
        if self.modern_key == KeyKind.ID and self.id_field:
            return self.id_field
        return self.natural_key

    def supports(self, operation: Operation) -> bool:
        """Whether this resource can perform a resource-specific action."""
        if operation == Operation.CREATE_FUTURE:
            return self.future_insert
        if operation == Operation.UPDATE_STATE:
            return self.state_field is not None
        if operation == Operation.DEACTIVATE:
            return self.deactivatable
        return True


_TRANSACTIONS_BY_ACCOUNT = DependentCache(
    resource=ResourceKind.TRANSACTION,
    child_field="accountNameOwner",
)
_TOTALS_BY_ACCOUNT = DependentCache(
    resource=ResourceKind.TOTALS,
    aggregate=True,
)


RESOURCES: dict[ResourceKind, ResourceDescriptor] = {
    ResourceKind.ACCOUNT: ResourceDescriptor(
        kind=ResourceKind.ACCOUNT,
        path="account",
        natural_key="accountNameOwner",
        id_field="accountId",
        lists=(ListPlacement(),),
        dependents=(_TRANSACTIONS_BY_ACCOUNT, _TOTALS_BY_ACCOUNT),
        deactivatable=True,
        deactivate_cascade=(ResourceKind.TRANSACTION, ResourceKind.TOTALS),
    ),
    ResourceKind.CATEGORY: ResourceDescriptor(
        kind=ResourceKind.CATEGORY,
        path="category",
        natural_key="categoryName",
        id_field="categoryId",
        lists=(ListPlacement(),),
        dependents=(
            DependentCache(
                resource=ResourceKind.TRANSACTION,
                prefix=("category",),
                child_field="category",
            ),
        ),
    ),
    ResourceKind.DESCRIPTION: ResourceDescriptor(
        kind=ResourceKind.DESCRIPTION,
        path="description",
        natural_key="descriptionName",
        id_field="descriptionId",
        lists=(ListPlacement(),),
        dependents=(
            DependentCache(
                resource=ResourceKind.TRANSACTION,
                prefix=("description",),
                child_field="description",
            ),
        ),
    ),
    ResourceKind.PARAMETER: ResourceDescriptor(
        kind=ResourceKind.PARAMETER,
        path="parameter",
        natural_key="parameterName",
        id_field="parameterId",
        modern_key=KeyKind.ID,
        lists=(ListPlacement(),),
    ),
    ResourceKind.TRANSACTION: ResourceDescriptor(
        kind=ResourceKind.TRANSACTION,
        path="transaction",
        natural_key="guid",
        id_field="transactionId",
        minted_field="guid",
        lists=(
            ListPlacement(field="accountNameOwner"),
            ListPlacement(prefix=("category",), field="category"),
            ListPlacement(prefix=("description",), field="description"),
        ),
        aggregates=(
            AggregatePlacement(
                resource=ResourceKind.TOTALS,
                field="accountNameOwner",
            ),
        ),
        future_insert=True,
        state_field="transactionState",
    ),
    ResourceKind.TOTALS: ResourceDescriptor(
        kind=ResourceKind.TOTALS,
        path="transaction/account/totals",
        natural_key="accountNameOwner",
        writable=False,
        canonical_modern_key=True,
    ),
}


def get_descriptor(kind: ResourceKind | str) -> ResourceDescriptor:
    """Look up the descriptor for a resource kind (accepts the string value)."""
    return RESOURCES[ResourceKind(kind)]
