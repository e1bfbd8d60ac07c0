"""
Spaced-repetition review engine.

SM-2 scheduling of programmed reviews for questions, flashcards, exam
questions and error notebook entries.
"""

from .core import (
    ContentType,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
    Page,
    ProgrammedReview,
    QualityGrade,
    ReviewEngineError,
    ReviewStatus,
    StoreUnavailableError,
)
from .engine import ReviewEngine
from .scheduling import DueReviewQuery, ReviewRecorder, SM2Calculator, calculate_next
from .store import InMemoryReviewStore, ReviewRecordStore, SqlReviewStore

__version__ = "1.0.0"

__all__ = [
    "ReviewEngine",
    # Model
    "ContentType",
    "ReviewStatus",
    "QualityGrade",
    "ProgrammedReview",
    "Page",
    # Errors
    "ReviewEngineError",
    "InvalidInputError",
    "InvalidStateError",
    "NotFoundError",
    "StoreUnavailableError",
    # Scheduling
    "SM2Calculator",
    "calculate_next",
    "ReviewRecorder",
    "DueReviewQuery",
    # Stores
    "ReviewRecordStore",
    "InMemoryReviewStore",
    "SqlReviewStore",
]
