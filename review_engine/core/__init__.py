"""
Core domain types shared by the scheduler, stores and adapters.
"""

from .errors import (
    ErrorKind,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
    ReviewEngineError,
    StoreUnavailableError,
)
from .models import (
    LEECH_THRESHOLD,
    REVIEWING_THRESHOLD,
    ContentType,
    Page,
    ProgrammedReview,
    QualityGrade,
    ReviewKey,
    ReviewPosition,
    ReviewStatus,
    ensure_utc,
    status_for_repetitions,
    utcnow,
)

__all__ = [
    # Errors
    "ErrorKind",
    "ReviewEngineError",
    "InvalidInputError",
    "InvalidStateError",
    "NotFoundError",
    "StoreUnavailableError",
    # Model
    "ContentType",
    "ReviewStatus",
    "QualityGrade",
    "ReviewKey",
    "ReviewPosition",
    "ProgrammedReview",
    "Page",
    "status_for_repetitions",
    "utcnow",
    "ensure_utc",
    "LEECH_THRESHOLD",
    "REVIEWING_THRESHOLD",
]
