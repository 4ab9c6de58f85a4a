from finance_sync.endpoints.resolver import (
    encode_key,
    key_field_for,
    key_kind_for,
    resolve,
)

__all__ = ["encode_key", "key_field_for", "key_kind_for", "resolve"]
