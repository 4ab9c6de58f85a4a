"""
Tests for sanitization and two-stage payload validation.
"""

import pytest

from finance_sync.errors import UnsupportedOperationError
from finance_sync.models import Generation, ResourceKind
from finance_sync.validation import InputSanitizer, PayloadValidator, require_writable


def transaction(**overrides):
    payload = {
        "accountNameOwner": "chase_brian",
        "transactionDate": "2024-01-15",
        "description": "groceries",
        "category": "food",
        "amount": 25.5,
    }
    payload.update(overrides)
    return payload


class TestInputSanitizer:
    """Tests for field-level cleaning helpers."""

    def test_sanitize_text(self):
        """Test trim, control characters and whitespace runs."""
        assert InputSanitizer.sanitize_text("  a\x00b   c  ") == "ab c"

    def test_sanitize_notes_strips_markup(self):
        """Test that script blocks and tags are removed."""
        notes = "<script>alert(1)</script>paid <b>late</b> > fee"
        assert InputSanitizer.sanitize_notes(notes) == "paid late  fee"

    def test_sanitize_notes_truncates(self):
        """Test the notes length cap."""
        assert len(InputSanitizer.sanitize_notes("x" * 3000)) == 2000

    def test_sanitize_description_strips_markup(self):
        """Test that markup characters go and the free text stays."""
        cleaned = InputSanitizer.sanitize_description('  <b>rent</b> "May" & fees  ')
        assert cleaned == "brent/b May fees"

    def test_is_valid_guid(self):
        """Test canonical identifiers only."""
        assert InputSanitizer.is_valid_guid("00010203-0405-4607-8809-0a0b0c0d0e0f")
        assert not InputSanitizer.is_valid_guid("not-a-guid")
        assert not InputSanitizer.is_valid_guid(42)

    def test_sanitize_amount(self):
        """Test that currency noise is stripped from strings only."""
        assert InputSanitizer.sanitize_amount(" $1,234.50 ") == "1234.50"
        assert InputSanitizer.sanitize_amount(12.5) == 12.5

    def test_sanitize_date(self):
        """Test that datetimes are reduced to dates."""
        assert InputSanitizer.sanitize_date("2024-01-15T10:30:00Z") == "2024-01-15"
        assert InputSanitizer.sanitize_date("2024-01-15") == "2024-01-15"

    @pytest.mark.parametrize("raw,expected", [
        ("Chase_Brian", "chase_brian"),
        ("  A.B  ", "ab"),
        ("AB", "ab"),
        ("amex-gold card!", "amex-goldcard"),
    ])
    def test_canonicalize_account_name(self, raw, expected):
        """Test lower-casing and character stripping."""
        assert InputSanitizer.canonicalize_account_name(raw) == expected

    @pytest.mark.parametrize("raw", ["Chase_Brian", "A.B", "Ünïcode Näme", "x" * 400, ""])
    def test_canonicalization_is_idempotent(self, raw):
        """Test that canonicalizing twice equals canonicalizing once."""
        once = InputSanitizer.canonicalize_account_name(raw)
        assert InputSanitizer.canonicalize_account_name(once) == once
        assert all(c in "abcdefghijklmnopqrstuvwxyz0123456789-_" for c in once)
        assert len(once) <= 255

    def test_canonicalization_collapses_distinct_names(self):
        """Test the known collision between punctuation variants."""
        assert (
            InputSanitizer.canonicalize_account_name("A.B")
            == InputSanitizer.canonicalize_account_name("AB")
        )

    def test_sanitize_payload_does_not_mutate_input(self):
        """Test that a cleaned copy is returned."""
        payload = {"categoryName": "  food  "}
        cleaned = InputSanitizer.sanitize_payload(payload)
        assert cleaned == {"categoryName": "food"}
        assert payload == {"categoryName": "  food  "}


class TestPayloadValidator:
    """Tests for PayloadValidator."""

    @pytest.fixture
    def validator(self):
        return PayloadValidator()

    @pytest.mark.parametrize("kind,field", [
        (ResourceKind.CATEGORY, "categoryName"),
        (ResourceKind.DESCRIPTION, "descriptionName"),
        (ResourceKind.PARAMETER, "parameterName"),
        (ResourceKind.ACCOUNT, "accountNameOwner"),
    ])
    def test_empty_name_is_required(self, validator, kind, field):
        """Test that a blank required name is rejected."""
        payload = {field: "   ", "parameterValue": "x", "accountType": "debit"}
        result = validator.validate(kind, payload)
        assert result.valid is False
        assert result.data is None
        messages = [issue.message for issue in result.errors]
        assert f"{field} is required" in messages

    def test_valid_payload_is_sanitized(self, validator):
        """Test that the returned payload is the cleaned one."""
        result = validator.validate(
            ResourceKind.CATEGORY, {"categoryName": "  food  "}
        )
        assert result.valid is True
        assert result.errors is None
        assert result.data["categoryName"] == "food"
        assert result.data["activeStatus"] is True

    def test_unsafe_name_characters(self, validator):
        """Test the safe character set for names."""
        result = validator.validate(ResourceKind.CATEGORY, {"categoryName": "food & drink"})
        assert result.errors[0].message == "categoryName contains invalid characters"
        assert result.errors[0].code == "INVALID_CHARACTERS"

    def test_name_too_long(self, validator):
        """Test the name length cap."""
        result = validator.validate(ResourceKind.CATEGORY, {"categoryName": "a" * 256})
        assert result.errors[0].message == "categoryName is too long"

    def test_amount_must_be_finite(self, validator):
        """Test that non-numeric and infinite amounts are rejected."""
        for amount in ("abc", float("inf"), float("nan")):
            result = validator.validate(ResourceKind.TRANSACTION, transaction(amount=amount))
            assert result.valid is False
            assert result.errors[0].message == "amount must be a finite number"

    def test_amount_limit(self, validator):
        """Test the amount range."""
        result = validator.validate(
            ResourceKind.TRANSACTION, transaction(amount=1_000_000_000)
        )
        assert result.errors[0].code == "AMOUNT_OUT_OF_RANGE"
        assert "999999999.99" in result.errors[0].message

    def test_currency_string_amount_accepted(self, validator):
        """Test that a formatted amount is cleaned then accepted."""
        result = validator.validate(
            ResourceKind.TRANSACTION, transaction(amount="$1,234.567")
        )
        assert result.valid is True
        assert result.data["amount"] == 1234.57

    def test_invalid_date(self, validator):
        """Test that the transaction date must be a date."""
        result = validator.validate(
            ResourceKind.TRANSACTION, transaction(transactionDate="2024-13-45")
        )
        assert result.errors[0].message == "transactionDate must be a valid date"

    def test_datetime_reduced_to_date(self, validator):
        """Test that an ISO datetime is accepted as its date."""
        result = validator.validate(
            ResourceKind.TRANSACTION,
            transaction(transactionDate="2024-01-15T08:00:00.000Z"),
        )
        assert result.data["transactionDate"] == "2024-01-15"

    def test_enumerated_values(self, validator):
        """Test that states outside the enumeration are rejected."""
        result = validator.validate(
            ResourceKind.TRANSACTION, transaction(transactionState="pending")
        )
        assert result.errors[0].field == "transactionState"
        assert result.errors[0].code == "INVALID_CHOICE"
        assert result.errors[0].message.startswith("transactionState must be one of")

    def test_one_issue_per_field(self, validator):
        """Test that every violated field is reported exactly once."""
        result = validator.validate(ResourceKind.TRANSACTION, {
            "accountNameOwner": "",
            "amount": "x",
        })
        fields = [issue.field for issue in result.errors]
        assert len(fields) == len(set(fields))
        assert set(fields) == {
            "accountNameOwner", "transactionDate", "description", "amount",
        }

    def test_account_type_required(self, validator):
        """Test account type choices."""
        result = validator.validate(
            ResourceKind.ACCOUNT,
            {"accountNameOwner": "chase_brian", "accountType": "savings"},
        )
        assert result.errors[0].field == "accountType"

    def test_non_object_payload(self, validator):
        """Test that a non-dict payload is rejected."""
        result = validator.validate(ResourceKind.CATEGORY, ["food"])
        assert result.errors[0].field == "payload"

    def test_validate_key_uses_generation(self, validator):
        """Test that the addressing field follows the generation."""
        parameter = {"parameterName": "timezone"}
        assert validator.validate_key(
            ResourceKind.PARAMETER, parameter, Generation.LEGACY
        ).valid is True
        result = validator.validate_key(
            ResourceKind.PARAMETER, parameter, Generation.MODERN
        )
        assert result.errors[0].message == "parameterId is required"


    def test_free_text_description_and_category(self, validator):
        """Test that labels are not held to the name character set."""
        result = validator.validate(ResourceKind.TRANSACTION, transaction(
            description="balance adjustment (Q1)",
            category="Home & Garden",
        ))
        assert result.valid is True
        assert result.data["description"] == "balance adjustment (Q1)"
        assert result.data["category"] == "Home & Garden"

    def test_description_too_long(self, validator):
        """Test the description length cap."""
        result = validator.validate(
            ResourceKind.TRANSACTION, transaction(description="x" * 1001)
        )
        assert result.errors[0].message == "description is too long"

    def test_validate_key_rejects_malformed_guid(self, validator):
        """Test that transactions are addressed by a real identifier."""
        result = validator.validate_key(
            ResourceKind.TRANSACTION, {"guid": "abc"}, Generation.LEGACY
        )
        assert result.errors[0].code == "INVALID_GUID"

    def test_validate_field(self, validator):
        """Test one field against the schema rule, by wire name."""
        result = validator.validate_field(
            ResourceKind.TRANSACTION, "transactionState", " cleared "
        )
        assert result.data == {"transactionState": "cleared"}
        result = validator.validate_field(
            ResourceKind.TRANSACTION, "transactionState", "pending"
        )
        assert result.valid is False
        assert result.errors[0].field == "transactionState"

    def test_validate_field_unknown(self, validator):
        """Test that a field outside the schema is a caller error."""
        with pytest.raises(UnsupportedOperationError):
            validator.validate_field(ResourceKind.CATEGORY, "transactionState", "cleared")

class TestRequireWritable:
    """Tests for require_writable."""

    def test_totals_is_read_only(self):
        with pytest.raises(UnsupportedOperationError):
            require_writable(ResourceKind.TOTALS)

    def test_category_is_writable(self):
        require_writable("category")
