"""
Exceptions raised to callers of the synchronization layer.

Every failed operation raises exactly one SyncError carrying the
CanonicalError built for it. Programming mistakes (unknown resource,
updating a read-only aggregate) raise UnsupportedOperationError instead.
"""

from typing import Optional

from finance_sync.models.errors import CanonicalError, ErrorKind
from finance_sync.models.results import FieldIssue


class SyncError(Exception):
    """Base exception for failed operations."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, error: CanonicalError):
        self.error = error
        super().__init__(error.message)

    @property
    def status(self) -> int:
        return self.error.status

    @property
    def message(self) -> str:
        return self.error.message


class PayloadValidationError(SyncError):
    """
    Payload was rejected as invalid.

    Raised directly when client-side validation fails (no network call was
    made, status 0, one FieldIssue per field). A 400 from the server raises
    the ServerRejectedPayloadError subclass instead.
    """

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        error: CanonicalError,
        issues: Optional[list[FieldIssue]] = None,
    ):
        self.issues = list(issues or [])
        super().__init__(error)


class ServerRejectedPayloadError(PayloadValidationError):
    """The server answered 400; issues are empty, the message is the server's."""
    pass


class NotFoundError(SyncError):
    kind = ErrorKind.NOT_FOUND


class AlreadyDeletedError(NotFoundError):
    """A delete was answered with 404: the entity is already gone."""
    pass


class UnauthorizedError(SyncError):
    kind = ErrorKind.UNAUTHORIZED


class ForbiddenError(SyncError):
    kind = ErrorKind.FORBIDDEN


class ConflictError(SyncError):
    kind = ErrorKind.CONFLICT


class ServerError(SyncError):
    kind = ErrorKind.SERVER_ERROR


class NetworkError(SyncError):
    """The transport failed before any response was received."""
    kind = ErrorKind.NETWORK


class ParseFailureError(SyncError):
    """A success or error body could not be decoded."""
    kind = ErrorKind.PARSE_FAILURE


class UnknownError(SyncError):
    kind = ErrorKind.UNKNOWN


class UnsupportedOperationError(ValueError):
    """The requested resource/operation combination does not exist."""
    pass


_ERRORS_BY_KIND: dict[ErrorKind, type[SyncError]] = {
    ErrorKind.VALIDATION: ServerRejectedPayloadError,
    ErrorKind.NOT_FOUND: NotFoundError,
    ErrorKind.UNAUTHORIZED: UnauthorizedError,
    ErrorKind.FORBIDDEN: ForbiddenError,
    ErrorKind.CONFLICT: ConflictError,
    ErrorKind.SERVER_ERROR: ServerError,
    ErrorKind.NETWORK: NetworkError,
    ErrorKind.PARSE_FAILURE: ParseFailureError,
    ErrorKind.UNKNOWN: UnknownError,
}


def error_for(error: CanonicalError) -> SyncError:
    """
    Build the SyncError subclass matching a server-reported canonical error.

    Client-side validation failures never come through here.
    """
    return _ERRORS_BY_KIND[error.kind](error)
