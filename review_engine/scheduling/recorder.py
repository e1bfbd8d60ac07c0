"""
Review Recorder.

The single entry point that turns a graded attempt into a persisted
ProgrammedReview. Adapters call record_review(); they never compute SRS
state themselves.

One review event is exactly one store.transact() call: load-or-seed,
reject suspended records, run the SM-2 calculator, count lapses, derive
the status and schedule the next review.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta

from loguru import logger

from ..core.errors import InvalidStateError, NotFoundError
from ..core.models import (
    LEECH_THRESHOLD,
    ContentType,
    ProgrammedReview,
    QualityGrade,
    ReviewKey,
    ReviewStatus,
    ensure_utc,
    status_for_repetitions,
    utcnow,
)
from ..store.base import ReviewRecordStore
from .calculator import SM2Calculator

Clock = Callable[[], datetime]


class ReviewRecorder:
    """
    Orchestrates review events against a ReviewRecordStore.

    Holds no mutable state of its own; concurrent calls are safe as long as
    the store serializes same-key transactions.
    """

    def __init__(
        self,
        store: ReviewRecordStore,
        calculator: SM2Calculator | None = None,
        clock: Clock = utcnow,
        leech_threshold: int = LEECH_THRESHOLD,
    ):
        """
        Initialize the recorder.

        Args:
            store: Review record persistence
            calculator: SM-2 calculator (creates default if None)
            clock: Returns the current UTC time
            leech_threshold: Lifetime lapses at which a record is a leech
        """
        self.store = store
        self.calculator = calculator or SM2Calculator()
        self.clock = clock
        self.leech_threshold = leech_threshold

    def now(self) -> datetime:
        return ensure_utc(self.clock())

    # =========================================================================
    # Grading
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
        """
        Record one graded attempt.

        Args:
            user_id: Learner identifier
            content_id: Content identifier within its family
            content_type: Content family
            quality: Recall grade (0-5)
            deck_id: Grouping stored on first creation (flashcard decks)
            notes: Replaces the record's notes when given

        Returns:
            The updated ProgrammedReview

        Raises:
            InvalidInputError: bad identifier, content type or quality
            InvalidStateError: the record is suspended
            StoreUnavailableError: persistence failed, nothing committed
        """
        key = ReviewKey.build(user_id, content_id, content_type)
        grade = QualityGrade.parse(quality)
        now = self.now()

        def apply(current: ProgrammedReview | None) -> ProgrammedReview:
            return self._grade(key, current, grade, now, deck_id, notes)

        review = self.store.transact(key, apply)

        logger.debug(
            f"Recorded review for {key}: quality={int(grade)}, reps={review.repetitions}, "
            f"interval={review.interval_days}d, ease={review.ease_factor:.2f}, "
            f"next_review={review.next_review_at.isoformat()}"
        )
        if not grade.is_success and review.lapses == self.leech_threshold:
            logger.warning(f"{key} became a leech after {review.lapses} lapses")

        return review

    def _grade(
        self,
        key: ReviewKey,
        current: ProgrammedReview | None,
        grade: QualityGrade,
        now: datetime,
        deck_id: str | None,
        notes: str | None,
    ) -> ProgrammedReview:
        if current is not None and current.is_suspended:
            raise InvalidStateError(
                f"Cannot record a review for suspended item {key}; reactivate it first",
                key=str(key),
            )

        if current is None:
            prior = self.calculator.seed()
            prior_ease, prior_interval, prior_repetitions = prior
            prior_lapses = 0
        else:
            prior_ease = current.ease_factor
            prior_interval = current.interval_days
            prior_repetitions = current.repetitions
            prior_lapses = current.lapses

        result = self.calculator.next(grade, prior_ease, prior_interval, prior_repetitions)
        lapses = prior_lapses + (0 if grade.is_success else 1)

        if current is None:
            return ProgrammedReview(
                user_id=key.user_id,
                content_id=key.content_id,
                content_type=key.content_type,
                status=status_for_repetitions(result.repetitions),
                ease_factor=result.ease,
                interval_days=result.interval_days,
                repetitions=result.repetitions,
                lapses=lapses,
                last_reviewed_at=now,
                next_review_at=now + timedelta(days=result.interval_days),
                original_answer_correct=grade.is_success,
                deck_id=deck_id,
                notes=notes,
                created_at=now,
                updated_at=now,
            )

        return replace(
            current,
            status=status_for_repetitions(result.repetitions),
            ease_factor=result.ease,
            interval_days=result.interval_days,
            repetitions=result.repetitions,
            lapses=lapses,
            last_reviewed_at=now,
            next_review_at=now + timedelta(days=result.interval_days),
            notes=notes if notes is not None else current.notes,
            updated_at=now,
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def get_review(
        self,
        user_id: str,
        content_id: str,
        content_type: ContentType | str,
    ) -> ProgrammedReview:
        """Load a record, raising NotFoundError when it does not exist."""
        key = ReviewKey.build(user_id, content_id, content_type)
        review = self.store.get(key)
        if review is None:
            raise NotFoundError(f"No programmed review for {key}", key=str(key))
        return review

    def find_review(
        self,
        user_id: str,
        content_id: str,
        content_type: ContentType | str,
    ) -> ProgrammedReview | None:
        key = ReviewKey.build(user_id, content_id, content_type)
        return self.store.get(key)

    def suspend(
        self,
        user_id: str,
        content_id: str,
        content_type: ContentType | str,
    ) -> ProgrammedReview:
        """
        Suspend a record (mastered or archived). Suspended records are never due.

        Raises:
            NotFoundError: no record for the key
        """
        return self._set_status(user_id, content_id, content_type, suspend=True)

    def reactivate(
        self,
        user_id: str,
        content_id: str,
        content_type: ContentType | str,
    ) -> ProgrammedReview:
        """
        Return a suspended record to LEARNING/REVIEWING per its repetitions.

        The schedule is kept, so an overdue record is due immediately.

        Raises:
            NotFoundError: no record for the key
        """
        return self._set_status(user_id, content_id, content_type, suspend=False)

    def _set_status(
        self,
        user_id: str,
        content_id: str,
        content_type: ContentType | str,
        suspend: bool,
    ) -> ProgrammedReview:
        key = ReviewKey.build(user_id, content_id, content_type)
        now = self.now()

        def apply(current: ProgrammedReview | None) -> ProgrammedReview:
            if current is None:
                raise NotFoundError(f"No programmed review for {key}", key=str(key))
            if suspend:
                status = ReviewStatus.SUSPENDED
            elif current.is_suspended:
                status = status_for_repetitions(current.repetitions)
            else:
                status = current.status
            if status is current.status:
                return current
            return replace(current, status=status, updated_at=now)

        review = self.store.transact(key, apply)
        logger.info(f"{key} is now {review.status.value}")
        return review

    def delete_review(
        self,
        user_id: str,
        content_id: str,
        content_type: ContentType | str,
    ) -> bool:
        """Delete a record when its parent content is deleted."""
        key = ReviewKey.build(user_id, content_id, content_type)
        return self.store.delete(key)

    def reset_review(
        self,
        user_id: str,
        content_id: str,
        content_type: ContentType | str,
    ) -> bool:
        """Forget all progress; the next graded attempt seeds a fresh record."""
        key = ReviewKey.build(user_id, content_id, content_type)
        deleted = self.store.delete(key)
        if deleted:
            logger.info(f"Progress reset for {key}")
        return deleted
