"""
Two-Stage Payload Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SANITIZATION:
- Trim strings, drop control characters and markup
- Strip currency noise from amounts
- Reduce datetimes to dates where a date is expected

STAGE 2 - SCHEMA VALIDATION:
- Required field presence
- Safe character set for natural-key names
- Finite, bounded amounts
- Enumerated values (account type, transaction state, ...)

IMPORTANT: Validation runs strictly before any network call. A failed
validation produces one FieldIssue per violated field, each with a stable
message, and the caller never reaches the network.
"""

from typing import Annotated, Any, Optional

import structlog
from pydantic import TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from finance_sync.errors import UnsupportedOperationError
from finance_sync.models.entities import SCHEMAS, EntityPayload
from finance_sync.models.resources import (
    Generation,
    ResourceKind,
    get_descriptor,
)
from finance_sync.models.results import FieldIssue, ValidationResult
from finance_sync.validation.sanitization import InputSanitizer


# pydantic error type -> (message template, stable code)
_REQUIRED = ("{field} is required", "REQUIRED_FIELD")
_NOT_A_NUMBER = ("{field} must be a finite number", "INVALID_AMOUNT")
_BAD_DATE = ("{field} must be a valid date", "INVALID_DATE")
_NOT_AN_INTEGER = ("{field} must be an integer", "INVALID_INTEGER")
_OUT_OF_RANGE = ("{field} exceeds allowed limit of {limit}", "AMOUNT_OUT_OF_RANGE")

_MESSAGES: dict[str, tuple[str, str]] = {
    "missing": _REQUIRED,
    "string_too_short": _REQUIRED,
    "string_pattern_mismatch": ("{field} contains invalid characters", "INVALID_CHARACTERS"),
    "string_too_long": ("{field} is too long", "MAX_LENGTH_EXCEEDED"),
    "string_type": ("{field} must be a string", "INVALID_TYPE"),
    "finite_number": _NOT_A_NUMBER,
    "float_parsing": _NOT_A_NUMBER,
    "float_type": _NOT_A_NUMBER,
    "less_than_equal": _OUT_OF_RANGE,
    "greater_than_equal": _OUT_OF_RANGE,
    "greater_than": ("{field} must be a positive integer", "INVALID_ID"),
    "literal_error": ("{field} must be one of {expected}", "INVALID_CHOICE"),
    "date_parsing": _BAD_DATE,
    "date_type": _BAD_DATE,
    "date_from_datetime_parsing": _BAD_DATE,
    "date_from_datetime_inexact": _BAD_DATE,
    "int_parsing": _NOT_AN_INTEGER,
    "int_type": _NOT_AN_INTEGER,
    "int_from_float": _NOT_AN_INTEGER,
    "bool_parsing": ("{field} must be true or false", "INVALID_BOOLEAN"),
    "bool_type": ("{field} must be true or false", "INVALID_BOOLEAN"),
}


def _issue_from_error(error: dict) -> FieldIssue:
    field = ".".join(str(part) for part in error["loc"]) or "payload"
    template, code = _MESSAGES.get(
        error["type"],
        ("{field}: {msg}", error["type"].upper()),
    )
    ctx = error.get("ctx") or {}
    message = template.format(
        field=field,
        expected=ctx.get("expected", ""),
        limit=ctx.get("le", ctx.get("ge", "")),
        msg=error.get("msg", "invalid value"),
    )
    return FieldIssue(field=field, message=message, code=code)


class PayloadValidator:
    """
    Validates and sanitizes entity payloads through a two-stage pipeline.

    Stage 1: Sanitization (never rejects)
    Stage 2: Schema validation against the resource's schema
    """

    def __init__(self):
        self._logger = structlog.get_logger(__name__)

    def _validate_schema(
        self,
        kind: ResourceKind,
        sanitized: dict[str, Any],
    ) -> tuple[Optional[EntityPayload], list[FieldIssue]]:
        """
        Stage 2: Schema validation.

        Returns: (entity_or_none, list_of_issues)
        Only the first issue per field is kept.
        """
        schema = SCHEMAS[kind]
        try:
            return schema.model_validate(sanitized), []
        except ValidationError as e:
            issues: list[FieldIssue] = []
            seen: set[str] = set()
            for error in e.errors():
                issue = _issue_from_error(error)
                if issue.field in seen:
                    continue
                seen.add(issue.field)
                issues.append(issue)
            return None, issues

    def validate(
        self,
        kind: ResourceKind | str,
        payload: Any,
    ) -> ValidationResult:
        """
        Run the full validation pipeline for one payload.

        Args:
            kind: Resource the payload belongs to
            payload: Raw JSON-shaped record

        Returns:
            ValidationResult carrying the sanitized payload (never the
            original) or one FieldIssue per violated field
        """
        kind = ResourceKind(kind)

        if not isinstance(payload, dict):
            return ValidationResult(
                valid=False,
                errors=[FieldIssue(
                    field="payload",
                    message="payload must be an object",
                    code="INVALID_TYPE",
                )],
            )

        # Stage 1: Sanitization
        sanitized = InputSanitizer.sanitize_payload(payload)

        # Stage 2: Schema validation
        entity, issues = self._validate_schema(kind, sanitized)

        if issues:
            self._logger.warning(
                "payload_validation_failed",
                resource=kind.value,
                fields=[issue.field for issue in issues],
            )
            return ValidationResult(valid=False, errors=issues)

        return ValidationResult(valid=True, data=entity.to_wire())

    def _rejected(self, kind: ResourceKind, issue: FieldIssue) -> ValidationResult:
        self._logger.warning(
            "payload_validation_failed",
            resource=kind.value,
            fields=[issue.field],
        )
        return ValidationResult(valid=False, errors=[issue])

    def validate_key(
        self,
        kind: ResourceKind | str,
        entity: Any,
        generation: Generation,
        field: Optional[str] = None,
    ) -> ValidationResult:
        """
        Validate only the field that addresses an entity (used for deletes).

        The addressing field depends on the generation: the modern API
        addresses some resources by surrogate id. Pass `field` to force one,
        e.g. the natural key for resource actions.
        """
        descriptor = get_descriptor(kind)
        if not isinstance(entity, dict):
            return ValidationResult(
                valid=False,
                errors=[FieldIssue(
                    field="payload",
                    message="payload must be an object",
                    code="INVALID_TYPE",
                )],
            )

        if field is None:
            field = (
                descriptor.modern_key_field()
                if generation == Generation.MODERN
                else descriptor.natural_key
            )
        value = entity.get(field)
        if isinstance(value, str):
            value = InputSanitizer.sanitize_text(value)

        if value is None or value == "" or isinstance(value, bool):
            return self._rejected(descriptor.kind, FieldIssue(
                field=field,
                message=f"{field} is required",
                code="REQUIRED_FIELD",
            ))

        if field == descriptor.minted_field and not InputSanitizer.is_valid_guid(value):
            return self._rejected(descriptor.kind, FieldIssue(
                field=field,
                message=f"{field} must be a valid identifier",
                code="INVALID_GUID",
            ))

        return ValidationResult(valid=True, data={**entity, field: value})

    def validate_field(
        self,
        kind: ResourceKind | str,
        field: str,
        value: Any,
    ) -> ValidationResult:
        """
        Validate one field against the resource schema's rule for it.

        Returns:
            ValidationResult whose data is {field: validated_value}
        """
        kind = ResourceKind(kind)
        schema = SCHEMAS[kind]
        info = next(
            (
                info for name, info in schema.model_fields.items()
                if field in (name, to_camel(name))
            ),
            None,
        )
        if info is None:
            raise UnsupportedOperationError(f"{kind.value} has no field {field}")

        if isinstance(value, str):
            value = InputSanitizer.sanitize_text(value)
        annotation = (
            Annotated[(info.annotation, *info.metadata)]
            if info.metadata else info.annotation
        )
        try:
            validated = TypeAdapter(annotation).validate_python(value)
        except ValidationError as e:
            error = e.errors()[0]
            return self._rejected(kind, _issue_from_error({**error, "loc": (field,)}))

        return ValidationResult(valid=True, data={field: validated})


def require_writable(kind: ResourceKind | str) -> None:
    """Raise when a mutation is requested for a read-only resource."""
    descriptor = get_descriptor(kind)
    if not descriptor.writable:
        raise UnsupportedOperationError(
            f"{descriptor.kind.value} is read-only"
        )
