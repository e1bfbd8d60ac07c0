"""
Error taxonomy for the review engine.

Every failure the engine surfaces is a ReviewEngineError subclass carrying an
ErrorKind, so callers can branch on the kind without matching messages.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Discriminator for engine errors."""

    INVALID_INPUT = "invalid_input"
    INVALID_STATE = "invalid_state"
    NOT_FOUND = "not_found"
    STORE_UNAVAILABLE = "store_unavailable"


class ReviewEngineError(Exception):
    """Base class for all review engine errors."""

    kind: ErrorKind = ErrorKind.INVALID_INPUT
    client_error: bool = True

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Serialize for an API or CLI error payload."""
        return {"kind": self.kind.value, "message": self.message, "details": self.details}


class InvalidInputError(ReviewEngineError, ValueError):
    """Quality grade out of range, malformed identifier, bad cursor or page size."""

    kind = ErrorKind.INVALID_INPUT


class InvalidStateError(ReviewEngineError):
    """Operation not allowed in the record's current state (e.g. grading a suspended record)."""

    kind = ErrorKind.INVALID_STATE


class NotFoundError(ReviewEngineError, LookupError):
    """A record required by the operation does not exist."""

    kind = ErrorKind.NOT_FOUND


class StoreUnavailableError(ReviewEngineError):
    """Transient persistence failure. Nothing was committed."""

    kind = ErrorKind.STORE_UNAVAILABLE
    client_error = False
