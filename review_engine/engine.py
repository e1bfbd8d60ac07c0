"""
Review engine facade.

Bundles the recorder and the due query over one injected store so content
adapters and the API layer depend on a single object.
"""

from __future__ import annotations

from datetime import datetime

from config import Settings, get_settings

from .core.models import ContentType, Page, ProgrammedReview, ReviewStatus, utcnow
from .scheduling.calculator import SM2Calculator, SM2Config
from .scheduling.due import DueReviewQuery
from .scheduling.recorder import Clock, ReviewRecorder
from .store.base import ReviewRecordStore
from .store.memory import InMemoryReviewStore


class ReviewEngine:
    """Caller-facing operations of the spaced-repetition engine."""

    def __init__(
        self,
        store: ReviewRecordStore,
        settings: Settings | None = None,
        clock: Clock = utcnow,
    ):
        self.settings = settings or get_settings()
        self.store = store
        self.clock = clock
        self.recorder = ReviewRecorder(
            store,
            calculator=SM2Calculator(SM2Config.from_settings(self.settings)),
            clock=clock,
            leech_threshold=self.settings.srs_leech_threshold,
        )
        self.due = DueReviewQuery(
            store,
            clock=clock,
            default_limit=self.settings.due_page_size,
            max_limit=self.settings.max_page_size,
        )

    @classmethod
    def in_memory(cls, settings: Settings | None = None, clock: Clock = utcnow) -> ReviewEngine:
        """Engine over a fresh process-local store."""
        return cls(InMemoryReviewStore(), settings=settings, clock=clock)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> ReviewEngine:
        """Engine over the SQL store at settings.database_url (default: DATABASE_URL)."""
        from .store.sql import SqlReviewStore

        store = SqlReviewStore.from_settings(settings)
        return cls(store, settings=settings or get_settings())

    def is_leech(self, review: ProgrammedReview) -> bool:
        return review.is_leech_at(self.settings.srs_leech_threshold)

    # =========================================================================
    # Recording
    # =========================================================================

    def record_review(
        self,
        user_id: str,
        content_id: str,
        content_type: ContentType | str,
        quality: int,
        *,
        deck_id: str | None = None,
        notes: str | None = None,
    ) -> ProgrammedReview:
        return self.recorder.record_review(
            user_id, content_id, content_type, quality, deck_id=deck_id, notes=notes
        )

    def suspend(self, user_id: str, content_id: str, content_type: ContentType | str) -> ProgrammedReview:
        return self.recorder.suspend(user_id, content_id, content_type)

    def reactivate(self, user_id: str, content_id: str, content_type: ContentType | str) -> ProgrammedReview:
        return self.recorder.reactivate(user_id, content_id, content_type)

    def get_review(self, user_id: str, content_id: str, content_type: ContentType | str) -> ProgrammedReview:
        return self.recorder.get_review(user_id, content_id, content_type)

    def find_review(
        self, user_id: str, content_id: str, content_type: ContentType | str
    ) -> ProgrammedReview | None:
        return self.recorder.find_review(user_id, content_id, content_type)

    def delete_review(self, user_id: str, content_id: str, content_type: ContentType | str) -> bool:
        return self.recorder.delete_review(user_id, content_id, content_type)

    def reset_review(self, user_id: str, content_id: str, content_type: ContentType | str) -> bool:
        return self.recorder.reset_review(user_id, content_id, content_type)

    # =========================================================================
    # Queries
    # =========================================================================

    def due_reviews(
        self,
        user_id: str,
        content_type: ContentType | str | None = None,
        limit: int | None = None,
        cursor: str | None = None,
        *,
        deck_id: str | None = None,
        now: datetime | None = None,
    ) -> Page:
        return self.due.due_reviews(
            user_id, content_type, limit, cursor, deck_id=deck_id, now=now
        )

    def list_reviews(
        self,
        user_id: str,
        status: ReviewStatus | str | None = None,
        content_type: ContentType | str | None = None,
        limit: int | None = None,
        cursor: str | None = None,
        *,
        deck_id: str | None = None,
    ) -> Page:
        return self.due.list_reviews(
            user_id, status, content_type, limit, cursor, deck_id=deck_id
        )

    def count_due(
        self,
        user_id: str,
        content_type: ContentType | str | None = None,
        *,
        deck_id: str | None = None,
        now: datetime | None = None,
    ) -> int:
        return self.due.count_due(user_id, content_type, deck_id=deck_id, now=now)
