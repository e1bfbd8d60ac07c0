"""
Domain model for programmed reviews.

A ProgrammedReview is the scheduling state of one (user, content) pair.
It is created on the first graded attempt and mutated only by the
ReviewRecorder afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Any, NamedTuple

from .errors import InvalidInputError

# Repetitions needed before an item leaves the learning phase
REVIEWING_THRESHOLD = 2

# Lifetime lapses at which an item is treated as a leech
LEECH_THRESHOLD = 4


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo), convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# =============================================================================
# Enums
# =============================================================================


class ContentType(str, Enum):
    """Family of content a programmed review schedules."""

    QUESTION = "QUESTION"
    FLASHCARD = "FLASHCARD"
    EXAM_QUESTION = "EXAM_QUESTION"
    ERROR_NOTEBOOK_ENTRY = "ERROR_NOTEBOOK_ENTRY"

    @classmethod
    def parse(cls, value: ContentType | str) -> ContentType:
        """Coerce a raw value, raising InvalidInputError for unknown types."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise InvalidInputError(
                f"Unknown content type: {value!r}",
                allowed=[c.value for c in cls],
            ) from None


class ReviewStatus(str, Enum):
    """Lifecycle state of a programmed review."""

    LEARNING = "LEARNING"
    REVIEWING = "REVIEWING"
    SUSPENDED = "SUSPENDED"

    @classmethod
    def parse(cls, value: ReviewStatus | str) -> ReviewStatus:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise InvalidInputError(
                f"Unknown review status: {value!r}",
                allowed=[s.value for s in cls],
            ) from None


class QualityGrade(IntEnum):
    """
    SM-2 recall quality.

    0 - Complete blackout, wrong response
    1 - Incorrect, but upon seeing answer remembered
    2 - Incorrect, but answer seemed easy to recall
    3 - Correct, but with significant difficulty
    4 - Correct, with some hesitation
    5 - Correct, with perfect recall
    """

    BLACKOUT = 0
    INCORRECT = 1
    INCORRECT_EASY_RECALL = 2
    DIFFICULT = 3
    HESITANT = 4
    PERFECT = 5

    @property
    def is_success(self) -> bool:
        return self >= QualityGrade.DIFFICULT

    @classmethod
    def parse(cls, value: int) -> QualityGrade:
        """Validate a raw grade, raising InvalidInputError outside 0-5."""
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidInputError(f"Quality grade must be an integer, got {value!r}")
        if not 0 <= value <= 5:
            raise InvalidInputError(
                f"Quality grade must be between 0 and 5, got {value}", quality=value
            )
        return cls(value)


def status_for_repetitions(repetitions: int) -> ReviewStatus:
    """Derive the active status from the consecutive-success count."""
    if repetitions >= REVIEWING_THRESHOLD:
        return ReviewStatus.REVIEWING
    return ReviewStatus.LEARNING


# =============================================================================
# Keys and Records
# =============================================================================


class ReviewKey(NamedTuple):
    """Unique key of a programmed review."""

    user_id: str
    content_id: str
    content_type: ContentType

    @classmethod
    def build(
        cls,
        user_id: str,
        content_id: str,
        content_type: ContentType | str,
    ) -> ReviewKey:
        """Validate identifiers and build a key."""
        for name, value in (("user_id", user_id), ("content_id", content_id)):
            if not isinstance(value, str) or not value.strip():
                raise InvalidInputError(f"{name} must be a non-empty string", field=name)
        return cls(user_id, content_id, ContentType.parse(content_type))

    def __str__(self) -> str:
        return f"{self.user_id}/{self.content_type.value}/{self.content_id}"


@dataclass
class ProgrammedReview:
    """SM-2 scheduling state for one (user, content) pair."""

    user_id: str
    content_id: str
    content_type: ContentType
    status: ReviewStatus
    ease_factor: float
    interval_days: int
    repetitions: int
    lapses: int
    last_reviewed_at: datetime
    next_review_at: datetime
    original_answer_correct: bool
    deck_id: str | None = None
    notes: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def key(self) -> ReviewKey:
        return ReviewKey(self.user_id, self.content_id, self.content_type)

    @property
    def is_suspended(self) -> bool:
        return self.status is ReviewStatus.SUSPENDED

    @property
    def is_leech(self) -> bool:
        """Leech at the default threshold; see is_leech_at for a custom one."""
        return self.is_leech_at(LEECH_THRESHOLD)

    def is_leech_at(self, threshold: int) -> bool:
        return self.lapses >= threshold

    @property
    def streak(self) -> int:
        """Consecutive successful reviews (display alias for repetitions)."""
        return self.repetitions

    def is_due(self, now: datetime | None = None) -> bool:
        """Check if this review is due (never true while suspended)."""
        if self.is_suspended:
            return False
        return self.next_review_at <= (now or utcnow())

    def days_overdue(self, now: datetime | None = None) -> int:
        """Whole days past the scheduled review time."""
        delta = (now or utcnow()) - self.next_review_at
        return max(0, delta.days)

    def to_dict(self, leech_threshold: int = LEECH_THRESHOLD) -> dict[str, Any]:
        """JSON-friendly representation for API layers and the CLI."""
        return {
            "userId": self.user_id,
            "contentId": self.content_id,
            "contentType": self.content_type.value,
            "status": self.status.value,
            "easeFactor": self.ease_factor,
            "intervalDays": self.interval_days,
            "repetitions": self.repetitions,
            "lapses": self.lapses,
            "isLeech": self.is_leech_at(leech_threshold),
            "lastReviewedAt": self.last_reviewed_at.isoformat(),
            "nextReviewAt": self.next_review_at.isoformat(),
            "originalAnswerCorrect": self.original_answer_correct,
            "deckId": self.deck_id,
            "notes": self.notes,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


# =============================================================================
# Paging
# =============================================================================


class ReviewPosition(NamedTuple):
    """Sort position of a review in due order: (next_review_at, content_type, content_id)."""

    next_review_at: datetime
    content_type: ContentType
    content_id: str

    @classmethod
    def of(cls, review: ProgrammedReview) -> ReviewPosition:
        return cls(review.next_review_at, review.content_type, review.content_id)

    def sort_key(self) -> tuple[datetime, str, str]:
        return (ensure_utc(self.next_review_at), self.content_type.value, self.content_id)


@dataclass
class Page:
    """One page of reviews plus the opaque cursor for the next page."""

    items: list[ProgrammedReview] = field(default_factory=list)
    next_cursor: str | None = None

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)
