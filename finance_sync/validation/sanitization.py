"""
Input Sanitization

Cleans raw payload values before schema validation.

DESIGN DECISION: Sanitization only removes what can never be meaningful
(surrounding whitespace, control characters, markup, currency symbols).
Anything else is left for the schema to accept or reject, so a bad value is
reported to the caller rather than quietly rewritten.

The one exception is account-name canonicalization, which is destructive by
contract: it is only used to build the modern per-account totals lookup key.
"""

import re
from typing import Any

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_WHITESPACE_RUN = re.compile(r"\s+")
_SCRIPT_BLOCK = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_HTML_TAG = re.compile(r"<[^>]*>")
_MARKUP_CHARS = re.compile(r"[<>\"'&]")
_NON_CANONICAL = re.compile(r"[^a-z0-9_-]")
_AMOUNT_NOISE = re.compile(r"[\s$,]")
_GUID = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

MAX_CANONICAL_LENGTH = 255
MAX_NOTES_LENGTH = 2000

AMOUNT_FIELDS = frozenset({
    "amount",
    "outstanding",
    "future",
    "cleared",
    "totals",
    "totalsCleared",
    "totalsOutstanding",
    "totalsFuture",
})
DATE_FIELDS = frozenset({"transactionDate", "dueDate"})
NOTES_FIELDS = frozenset({"notes"})
DESCRIPTION_FIELDS = frozenset({"description"})


class InputSanitizer:
    """Field-level cleaning helpers."""

    @staticmethod
    def sanitize_text(value: str) -> str:
        """Trim, drop control characters, collapse internal whitespace."""
        cleaned = _CONTROL_CHARS.sub("", value.strip())
        return _WHITESPACE_RUN.sub(" ", cleaned)

    @staticmethod
    def sanitize_notes(value: str) -> str:
        """Free-form notes keep their line breaks but lose any markup."""
        cleaned = _SCRIPT_BLOCK.sub("", value)
        cleaned = _HTML_TAG.sub("", cleaned)
        cleaned = cleaned.replace("<", "").replace(">", "")
        return _CONTROL_CHARS.sub("", cleaned).strip()[:MAX_NOTES_LENGTH]

    @classmethod
    def sanitize_description(cls, value: str) -> str:
        """Transaction descriptions are free text minus HTML-significant characters."""
        return cls.sanitize_text(_MARKUP_CHARS.sub("", value))

    @staticmethod
    def sanitize_amount(value: Any) -> Any:
        """
        Strip currency symbols and thousands separators from string amounts.

        Non-string values are returned as-is for the schema to judge.
        """
        if isinstance(value, str):
            return _AMOUNT_NOISE.sub("", value)
        return value

    @staticmethod
    def sanitize_date(value: Any) -> Any:
        """Reduce an ISO datetime string to its date part."""
        if isinstance(value, str):
            value = value.strip()
            if len(value) > 10 and value[10] in ("T", " "):
                return value[:10]
        return value

    @staticmethod
    def canonicalize_account_name(value: str) -> str:
        """
        Lower-case and drop every character outside [a-z0-9-_].

        Destructive and one-way: "A.B" and "AB" both become "ab".
        Idempotent: canonicalizing twice equals canonicalizing once.
        """
        return _NON_CANONICAL.sub("", value.strip().lower())[:MAX_CANONICAL_LENGTH]

    @staticmethod
    def is_valid_guid(value: Any) -> bool:
        """True for a canonical 8-4-4-4-12 hex identifier (versions 1-5)."""
        return isinstance(value, str) and bool(_GUID.match(value))

    @classmethod
    def sanitize_payload(cls, payload: dict[str, Any]) -> dict[str, Any]:
        """Return a cleaned copy of a payload. The input is never mutated."""
        cleaned: dict[str, Any] = {}
        for field, value in payload.items():
            if field in AMOUNT_FIELDS:
                cleaned[field] = cls.sanitize_amount(value)
            elif field in DATE_FIELDS:
                cleaned[field] = cls.sanitize_date(value)
            elif field in NOTES_FIELDS and isinstance(value, str):
                cleaned[field] = cls.sanitize_notes(value)
            elif field in DESCRIPTION_FIELDS and isinstance(value, str):
                cleaned[field] = cls.sanitize_description(value)
            elif isinstance(value, str):
                cleaned[field] = cls.sanitize_text(value)
            else:
                cleaned[field] = value
        return cleaned
