"""Tests for the secure identifier generator."""

import asyncio
import uuid

import pytest

from finance_sync.errors import UnknownError
from finance_sync.models import ErrorKind
from finance_sync.services.identifier import IdentifierGenerator, is_valid_identifier


class TestIdentifierGenerator:
    """Tests for IdentifierGenerator."""

    def test_generates_canonical_identifier(self):
        """Test 36-character hyphenated lower-case hex output."""
        identifier = asyncio.run(IdentifierGenerator().generate())
        assert len(identifier) == 36
        assert identifier.count("-") == 4
        assert identifier == identifier.lower()
        assert is_valid_identifier(identifier)

    def test_identifiers_do_not_repeat(self):
        """Test that successive identifiers differ."""
        generator = IdentifierGenerator()

        async def _run():
            return {await generator.generate() for _ in range(200)}

        assert len(asyncio.run(_run())) == 200

    def test_uses_injected_entropy(self):
        """Test that the identifier is derived from the entropy source."""
        raw = bytes(range(16))
        identifier = asyncio.run(IdentifierGenerator(entropy=lambda n: raw).generate())
        assert identifier == str(uuid.UUID(bytes=raw, version=4))

    def test_entropy_failure_is_unknown_error(self):
        """Test that an unavailable entropy source aborts generation."""
        def broken(n):
            raise OSError("no entropy")

        with pytest.raises(UnknownError) as exc_info:
            asyncio.run(IdentifierGenerator(entropy=broken).generate())
        assert exc_info.value.error.kind == ErrorKind.UNKNOWN
        assert "no entropy" in exc_info.value.message

    def test_short_entropy_is_rejected(self):
        """Test that too few random bytes never yield an identifier."""
        with pytest.raises(UnknownError):
            asyncio.run(IdentifierGenerator(entropy=lambda n: b"\x00" * 4).generate())


class TestIdentifierCheck:
    """Tests for is_valid_identifier."""

    def test_rejects_non_strings(self):
        assert not is_valid_identifier(None)
        assert not is_valid_identifier(12)

    def test_rejects_malformed(self):
        assert not is_valid_identifier("not-a-guid")
        assert not is_valid_identifier("")
