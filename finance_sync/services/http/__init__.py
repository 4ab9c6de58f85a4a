"""
HTTP Services Package

The network client and the response normalizer.
"""

from finance_sync.services.http.client import DEFAULT_HEADERS, ApiClient
from finance_sync.services.http.normalizer import ResponseNormalizer, fallback_message

__all__ = [
    "ApiClient",
    "DEFAULT_HEADERS",
    "ResponseNormalizer",
    "fallback_message",
]
