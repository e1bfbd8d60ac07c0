"""
SQLAlchemy models for the review record store.

One row per (user_id, content_id, content_type). The version column backs
optimistic concurrency for backends without row locks.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum as SAEnum,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..core.models import ContentType, ProgrammedReview, ReviewStatus, ensure_utc


class Base(DeclarativeBase):
    """Declarative base for review engine tables."""


class ProgrammedReviewRow(Base):
    """Persistent SM-2 state for one (user, content) pair."""

    __tablename__ = "programmed_reviews"
    __table_args__ = (
        UniqueConstraint("user_id", "content_id", "content_type", name="uq_programmed_review_key"),
        # Due query: user + time ordered scan
        Index("idx_programmed_reviews_due", "user_id", "next_review_at", "content_type", "content_id"),
        Index("idx_programmed_reviews_deck", "user_id", "deck_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    content_id: Mapped[str] = mapped_column(String(255), nullable=False)
    content_type: Mapped[ContentType] = mapped_column(
        SAEnum(ContentType, name="content_type", native_enum=False, length=32), nullable=False
    )
    status: Mapped[ReviewStatus] = mapped_column(
        SAEnum(ReviewStatus, name="review_status", native_enum=False, length=16), nullable=False
    )

    # SM-2 state
    ease_factor: Mapped[float] = mapped_column(Float, nullable=False)
    interval_days: Mapped[int] = mapped_column(Integer, nullable=False)
    repetitions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lapses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    last_reviewed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    next_review_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    original_answer_correct: Mapped[bool] = mapped_column(Boolean, nullable=False)

    deck_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<ProgrammedReviewRow({self.user_id}, {self.content_type}, {self.content_id})>"

    @classmethod
    def from_domain(cls, review: ProgrammedReview) -> ProgrammedReviewRow:
        row = cls(
            user_id=review.user_id,
            content_id=review.content_id,
            content_type=review.content_type,
            created_at=review.created_at,
        )
        row.apply(review)
        return row

    def apply(self, review: ProgrammedReview) -> None:
        """Copy mutable state from a domain record onto this row."""
        self.status = review.status
        self.ease_factor = review.ease_factor
        self.interval_days = review.interval_days
        self.repetitions = review.repetitions
        self.lapses = review.lapses
        self.last_reviewed_at = review.last_reviewed_at
        self.next_review_at = review.next_review_at
        self.original_answer_correct = review.original_answer_correct
        self.deck_id = review.deck_id
        self.notes = review.notes
        self.updated_at = review.updated_at

    def to_domain(self) -> ProgrammedReview:
        return ProgrammedReview(
            user_id=self.user_id,
            content_id=self.content_id,
            content_type=ContentType(self.content_type),
            status=ReviewStatus(self.status),
            ease_factor=self.ease_factor,
            interval_days=self.interval_days,
            repetitions=self.repetitions,
            lapses=self.lapses,
            last_reviewed_at=ensure_utc(self.last_reviewed_at),
            next_review_at=ensure_utc(self.next_review_at),
            original_answer_correct=self.original_answer_correct,
            deck_id=self.deck_id,
            notes=self.notes,
            created_at=ensure_utc(self.created_at),
            updated_at=ensure_utc(self.updated_at),
        )
