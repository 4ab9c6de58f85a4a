"""
Response Normalizer

Turns an httpx.Response into either the decoded success value or exactly
one SyncError carrying a CanonicalError.

Error body shapes, tried in this fixed order:
1. {"errors": ["...", "..."]}   modern ServiceResult, joined with ", "
2. {"error": "..."}             modern ServiceResult
3. {"response": "..."}          legacy
4. {"message": "..."}           framework default error page
5. fallback "HTTP error! Status: {status}"

DESIGN DECISION: The shapes are tried in one priority order for every
response instead of branching on generation, so a legacy endpoint that
started answering in the modern shape is still understood.

List reads are special: a legacy 404 means "no rows" and becomes [].
The modern generation never answers 404 for an empty list, so there a 404
is a contract violation and fails as Unknown.
"""

from typing import Any, Optional

import httpx
import structlog

from finance_sync.errors import (
    AlreadyDeletedError,
    NetworkError,
    ParseFailureError,
    SyncError,
    UnknownError,
    error_for,
)
from finance_sync.models.errors import CanonicalError, ErrorKind, kind_for_status
from finance_sync.models.resources import Generation, Operation


def fallback_message(status: int) -> str:
    return f"HTTP error! Status: {status}"


def _message_from_body(body: Any) -> Optional[str]:
    if not isinstance(body, dict):
        return None

    errors = body.get("errors")
    if isinstance(errors, list):
        messages = [str(item) for item in errors if item not in (None, "")]
        if messages:
            return ", ".join(messages)

    for field in ("error", "response", "message"):
        value = body.get(field)
        if isinstance(value, str) and value.strip():
            return value.strip()

    return None


class ResponseNormalizer:
    """Maps responses and transport failures onto the canonical taxonomy."""

    def __init__(self):
        self._logger = structlog.get_logger(__name__)

    def from_transport_error(self, exc: Exception) -> NetworkError:
        """No response was received; the body is never consulted."""
        return NetworkError(CanonicalError(
            kind=ErrorKind.NETWORK,
            message=f"Network request failed: {exc}",
            status=0,
        ))

    def _decode_success(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ParseFailureError(CanonicalError(
                kind=ErrorKind.PARSE_FAILURE,
                message=f"Response parsing failed: {e}",
                status=response.status_code,
            )) from e

    def _error_for_response(
        self,
        response: httpx.Response,
        operation: Operation,
    ) -> SyncError:
        status = response.status_code

        message: Optional[str] = None
        if response.content.strip():
            try:
                message = _message_from_body(response.json())
            except ValueError as e:
                return ParseFailureError(CanonicalError(
                    kind=ErrorKind.PARSE_FAILURE,
                    message=f"Failed to parse error response: {e}",
                    status=status,
                ))

        error = CanonicalError(
            kind=kind_for_status(status),
            message=message or fallback_message(status),
            status=status,
        )
        if operation == Operation.DELETE and status == 404:
            return AlreadyDeletedError(error)
        return error_for(error)

    def normalize(
        self,
        response: httpx.Response,
        generation: Generation,
        operation: Operation,
        default: Any = None,
    ) -> Any:
        """
        Normalize one response.

        Args:
            response: The response received
            generation: Generation that produced the response
            operation: Operation the request performed
            default: Value returned for a 204 No Content
                (the submitted payload for inserts and updates)

        Returns:
            The decoded success value; always a list for list reads

        Raises:
            SyncError: The canonical failure for this response
        """
        status = response.status_code

        if 200 <= status < 300:
            if status == 204:
                return [] if operation == Operation.LIST else default
            # An empty list body means no rows; other empty bodies fail to decode
            if operation == Operation.LIST and not response.content.strip():
                return []
            value = self._decode_success(response)
            if operation == Operation.LIST:
                if value is None:
                    return []
                if not isinstance(value, list):
                    raise ParseFailureError(CanonicalError(
                        kind=ErrorKind.PARSE_FAILURE,
                        message=(
                            "Response parsing failed: expected a list, "
                            f"got {type(value).__name__}"
                        ),
                        status=status,
                    ))
            return value

        if operation == Operation.LIST and status == 404:
            if generation == Generation.LEGACY:
                self._logger.debug("legacy_list_empty", status=status)
                return []
            error = self._error_for_response(response, operation)
            raise UnknownError(CanonicalError(
                kind=ErrorKind.UNKNOWN,
                message=error.message,
                status=status,
            ))

        error = self._error_for_response(response, operation)
        self._logger.info(
            "response_error",
            kind=error.error.kind.value,
            status=status,
            message=error.message,
        )
        raise error
