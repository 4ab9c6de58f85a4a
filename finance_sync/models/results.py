"""
Result Models

Values handed between the stages of a call: validation results and
resolved endpoints.
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from finance_sync.models.resources import KeyKind


class FieldIssue(BaseModel):
    """
    One violated field rule.

    `message` is stable and machine-checkable, e.g. "categoryName is required".
    """
    model_config = ConfigDict(frozen=True)

    field: str
    message: str
    code: str = Field(
        default="VALIDATION_ERROR",
        description="Stable error code, e.g. REQUIRED_FIELD"
    )


class ValidationResult(BaseModel):
    """
    Outcome of payload validation.

    Exactly one of `data` / `errors` is present: `data` when valid,
    `errors` when not.
    """

    valid: bool
    data: Optional[dict[str, Any]] = None
    errors: Optional[list[FieldIssue]] = None

    @model_validator(mode='after')
    def exactly_one_outcome(self) -> 'ValidationResult':
        if self.valid and (self.data is None or self.errors is not None):
            raise ValueError("A valid result carries data and no errors")
        if not self.valid and (not self.errors or self.data is not None):
            raise ValueError("An invalid result carries errors and no data")
        return self

    @property
    def error_count(self) -> int:
        return len(self.errors or [])

    def joined_messages(self) -> str:
        """Field messages comma-joined into one human-readable string."""
        return ", ".join(issue.message for issue in self.errors or [])


class Endpoint(BaseModel):
    """A resolved request target. Pure data, no I/O."""
    model_config = ConfigDict(frozen=True)

    path: str
    method: Literal["GET", "POST", "PUT", "DELETE"]
    key_kind: Optional[KeyKind] = Field(
        default=None,
        description="Whether the path addresses the entity by name or id"
    )
