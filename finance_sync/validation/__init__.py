from finance_sync.validation.sanitization import InputSanitizer
from finance_sync.validation.validator import PayloadValidator, require_writable

__all__ = ["InputSanitizer", "PayloadValidator", "require_writable"]
