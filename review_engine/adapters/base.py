"""
Shared pieces for content adapters.

An adapter maps its own correctness signal to a QualityGrade, calls the
engine, and keeps its denormalized counters. It reads only display metadata
from the returned record (ReviewSnapshot), never SRS internals.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar

from ..core.models import ContentType, ProgrammedReview, QualityGrade, ReviewStatus, ensure_utc
from ..engine import ReviewEngine


@dataclass(frozen=True)
class ReviewSnapshot:
    """Display metadata an adapter may copy from a programmed review."""

    next_review_at: datetime
    last_reviewed_at: datetime
    interval_days: int
    streak: int
    status: ReviewStatus
    is_leech: bool

    @classmethod
    def of(cls, review: ProgrammedReview, leech_threshold: int) -> ReviewSnapshot:
        return cls(
            next_review_at=review.next_review_at,
            last_reviewed_at=review.last_reviewed_at,
            interval_days=review.interval_days,
            streak=review.streak,
            status=review.status,
            is_leech=review.is_leech_at(leech_threshold),
        )


class ContentAdapter:
    """Base for adapters of one content family."""

    content_type: ClassVar[ContentType]

    def __init__(self, engine: ReviewEngine):
        self.engine = engine

    def quality_from_correctness(self, is_correct: bool) -> QualityGrade:
        """Map a binary outcome to the configured success/failure grade."""
        settings = self.engine.settings
        return QualityGrade(
            settings.srs_correct_quality if is_correct else settings.srs_incorrect_quality
        )

    def now(self) -> datetime:
        return ensure_utc(self.engine.clock())

    def snapshot(self, review: ProgrammedReview) -> ReviewSnapshot:
        return ReviewSnapshot.of(review, self.engine.settings.srs_leech_threshold)

    def _record(
        self,
        user_id: str,
        content_id: str,
        quality: int,
        *,
        deck_id: str | None = None,
        content_type: ContentType | None = None,
    ) -> ProgrammedReview:
        return self.engine.record_review(
            user_id,
            content_id,
            content_type or self.content_type,
            quality,
            deck_id=deck_id,
        )

    def _forget(self, user_id: str, content_id: str, content_type: ContentType | None = None) -> bool:
        return self.engine.delete_review(user_id, content_id, content_type or self.content_type)
