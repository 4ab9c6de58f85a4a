"""
Secure Identifier Generator

Mints the durable primary key of client-created entities (transaction guid).

DESIGN DECISION: Identifiers are drawn from the operating system's CSPRNG
(via `secrets`), never from `random` or a counter. If the entropy source
fails, generation fails with an Unknown error and the insert is aborted:
an entity is never created with a fabricated or empty identifier.
"""

import re
import secrets
import uuid
from typing import Callable, Optional

import structlog

from finance_sync.errors import UnknownError
from finance_sync.models.errors import CanonicalError, ErrorKind


IDENTIFIER_BYTES = 16

_IDENTIFIER = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$"
)


def is_valid_identifier(value: object) -> bool:
    """True for a canonical lower-case version-4 identifier string."""
    return isinstance(value, str) and bool(_IDENTIFIER.match(value))


class IdentifierGenerator:
    """
    Produces 128-bit identifiers as 36-character hyphenated hex strings.

    The entropy source can be replaced (tests inject failing or fixed
    sources); it must return `IDENTIFIER_BYTES` random bytes.
    """

    def __init__(
        self,
        entropy: Optional[Callable[[int], bytes]] = None,
    ):
        self._entropy = entropy or secrets.token_bytes
        self._logger = structlog.get_logger(__name__)

    async def generate(self) -> str:
        """
        Mint one identifier.

        Raises:
            UnknownError: If the entropy source is unavailable
        """
        try:
            raw = self._entropy(IDENTIFIER_BYTES)
            if not isinstance(raw, (bytes, bytearray)) or len(raw) != IDENTIFIER_BYTES:
                raise ValueError(
                    f"entropy source returned {len(raw) if raw else 0} bytes"
                )
            return str(uuid.UUID(bytes=bytes(raw), version=4))
        except Exception as e:
            self._logger.error("identifier_generation_failed", error=str(e))
            raise UnknownError(CanonicalError(
                kind=ErrorKind.UNKNOWN,
                message=f"Secure identifier generation failed: {e}",
                status=0,
            )) from e
