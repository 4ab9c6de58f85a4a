from finance_sync.services.identifier.generator import (
    IdentifierGenerator,
    is_valid_identifier,
)

__all__ = ["IdentifierGenerator", "is_valid_identifier"]
