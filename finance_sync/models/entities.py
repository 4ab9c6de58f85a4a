"""
Entity Schemas

Strict schemas for every payload the layer sends to the API.
They are designed to:
1. Trim string input before any constraint is checked
2. Restrict natural-key names to a URL- and cache-safe character set
   (free-text labels such as a transaction's description are not keys)
3. Reject amounts that are not finite numbers
4. Serialize back to the camelCase JSON the API expects

DESIGN DECISION: Schemas carry no behavior beyond validation and defaults.
Everything a resource *does* is driven by its ResourceDescriptor.
Unknown fields (timestamps, receipt images, ...) pass through untouched.
"""

from datetime import date
from typing import Annotated, Literal, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
)
from pydantic.alias_generators import to_camel

from finance_sync.models.resources import ResourceKind


# =============================================================================
# LIMITS & SHARED FIELD TYPES
# =============================================================================

SAFE_NAME_PATTERN = r"^[A-Za-z0-9_-]+$"
GUID_PATTERN = (
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-"
    r"[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}$"
)

MAX_AMOUNT = 999999999.99
MAX_NAME_LENGTH = 255
MAX_VALUE_LENGTH = 1000
MAX_NOTES_LENGTH = 2000


def _round_cents(value: float) -> float:
    return round(value, 2)


SafeName = Annotated[
    str,
    StringConstraints(
        min_length=1,
        max_length=MAX_NAME_LENGTH,
        pattern=SAFE_NAME_PATTERN,
    ),
]

RequiredText = Annotated[
    str,
    StringConstraints(min_length=1, max_length=MAX_VALUE_LENGTH),
]

# Free text that is not used as an addressing key (spaces, punctuation allowed)
LabelText = Annotated[
    str,
    StringConstraints(min_length=1, max_length=MAX_NAME_LENGTH),
]

Amount = Annotated[
    float,
    Field(ge=-MAX_AMOUNT, le=MAX_AMOUNT, allow_inf_nan=False),
    AfterValidator(_round_cents),
]

PositiveId = Annotated[int, Field(gt=0)]


class EntityPayload(BaseModel):
    """Base for every resource payload."""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_wire(self) -> dict:
        """Serialize to the JSON shape sent to the API."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# =============================================================================
# RESOURCE SCHEMAS
# =============================================================================

class AccountPayload(EntityPayload):
    """A financial account, addressed by its owner-qualified name."""

    account_id: Optional[PositiveId] = None
    account_name_owner: SafeName
    account_type: Literal["credit", "debit"]
    active_status: bool = True
    moniker: Optional[
        Annotated[str, StringConstraints(max_length=20, pattern=r"^[A-Za-z0-9]*$")]
    ] = None
    outstanding: Amount = 0.0
    future: Amount = 0.0
    cleared: Amount = 0.0


class CategoryPayload(EntityPayload):
    category_id: Optional[PositiveId] = None
    category_name: SafeName
    active_status: bool = True
    category_count: Optional[Annotated[int, Field(ge=0)]] = None


class DescriptionPayload(EntityPayload):
    description_id: Optional[PositiveId] = None
    description_name: SafeName
    active_status: bool = True
    description_count: Optional[Annotated[int, Field(ge=0)]] = None


class ParameterPayload(EntityPayload):
    """A named configuration value stored server-side."""

    parameter_id: Optional[PositiveId] = None
    parameter_name: SafeName
    parameter_value: RequiredText
    active_status: bool = True


class TransactionPayload(EntityPayload):
    """
    A single ledger transaction.

    The guid is minted client-side on insert and becomes the durable
    primary key, so a caller-supplied value is never trusted for inserts.
    """

    transaction_id: Optional[PositiveId] = None
    guid: Optional[Annotated[str, StringConstraints(pattern=GUID_PATTERN)]] = None
    account_id: Optional[PositiveId] = None
    account_type: Literal["credit", "debit", "undefined"] = "undefined"
    account_name_owner: SafeName
    transaction_date: date
    description: RequiredText
    category: LabelText = "undefined"
    amount: Amount
    transaction_state: Literal["cleared", "outstanding", "future"] = "outstanding"
    transaction_type: Literal["debit", "credit", "undefined"] = "undefined"
    reoccurring_type: Literal[
        "onetime", "weekly", "monthly", "yearly", "undefined"
    ] = "onetime"
    active_status: bool = True
    notes: Annotated[str, StringConstraints(max_length=MAX_NOTES_LENGTH)] = ""
    due_date: Optional[date] = None


class TotalsPayload(EntityPayload):
    """Per-account aggregate, read-only."""

    totals: Amount = 0.0
    totals_cleared: Amount = 0.0
    totals_outstanding: Amount = 0.0
    totals_future: Amount = 0.0


SCHEMAS: dict[ResourceKind, type[EntityPayload]] = {
    ResourceKind.ACCOUNT: AccountPayload,
    ResourceKind.CATEGORY: CategoryPayload,
    ResourceKind.DESCRIPTION: DescriptionPayload,
    ResourceKind.PARAMETER: ParameterPayload,
    ResourceKind.TRANSACTION: TransactionPayload,
    ResourceKind.TOTALS: TotalsPayload,
}
