"""
Canonical Error Model

Four different error encodings coexist on the wire (legacy {response},
modern {error}, modern {errors: [...]}, and bare status codes). All of them
are reconciled into this one taxonomy.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ErrorKind(str, Enum):
    """Failure taxonomy shared by every operation."""
    VALIDATION = "validation"       # Payload rejected, client-side or by a 400
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    SERVER_ERROR = "server_error"
    NETWORK = "network"             # Transport-level failure
    PARSE_FAILURE = "parse_failure" # Body could not be decoded
    UNKNOWN = "unknown"


class CanonicalError(BaseModel):
    """
    The single error value produced for a failed operation.

    Constructed once, never mutated.
    """
    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str = Field(..., min_length=1)
    status: int = Field(
        default=0,
        ge=0,
        description="HTTP status, 0 when no response was received"
    )


def kind_for_status(status: int) -> ErrorKind:
    """Map a non-2xx HTTP status to its ErrorKind."""
    if status == 400:
        return ErrorKind.VALIDATION
    if status == 401:
        return ErrorKind.UNAUTHORIZED
    if status == 403:
        return ErrorKind.FORBIDDEN
    if status == 404:
        return ErrorKind.NOT_FOUND
    if status == 409:
        return ErrorKind.CONFLICT
    if 500 <= status <= 599:
        return ErrorKind.SERVER_ERROR
    return ErrorKind.UNKNOWN
