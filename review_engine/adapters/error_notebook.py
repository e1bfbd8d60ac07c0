"""
Error notebook adapter.

Incorrect exam answers come back as low-quality QUESTION reviews, and can be
copied into a notebook where each entry is reviewed on its own schedule.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from loguru import logger

from ..core.errors import InvalidInputError, ReviewEngineError
from ..core.models import ContentType, ProgrammedReview, ReviewStatus, utcnow
from .base import ContentAdapter
from .simulated_exam import ExamStatus, SimulatedExamResult


@dataclass
class ErrorNotebook:
    id: str
    user_id: str
    title: str
    entry_count: int = 0
    last_entry_at: datetime | None = None


@dataclass
class ErrorNotebookEntry:
    """A mistake copied into a notebook, mirroring its review schedule."""

    id: str
    notebook_id: str
    user_id: str
    question_id: str
    source_result_id: str | None = None
    notes: str | None = None
    srs_interval: int = 0
    srs_streak: int = 0
    srs_status: ReviewStatus | None = None
    is_leech: bool = False
    last_reviewed_at: datetime | None = None
    next_review_at: datetime | None = None
    added_at: datetime = field(default_factory=utcnow)


@dataclass
class ImportReport:
    """Outcome of importing an exam's mistakes."""

    reviews: list[ProgrammedReview] = field(default_factory=list)
    entries: list[ErrorNotebookEntry] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def fully_imported(self) -> bool:
        return not self.failures


class ErrorNotebookAdapter(ContentAdapter):
    """Feeds exam mistakes into review and schedules notebook entries."""

    content_type = ContentType.ERROR_NOTEBOOK_ENTRY

    def import_exam_errors(
        self,
        result: SimulatedExamResult,
        notebook: ErrorNotebook | None = None,
        now: datetime | None = None,
    ) -> ImportReport:
        """
        Schedule every incorrectly answered question of a completed exam.

        Each mistake is recorded as a QUESTION review with the failure grade.
        When a notebook is given, an entry is added for each mistake whose
        review was recorded. A mistake that cannot be recorded (for example a
        suspended question) is logged and listed in the report's failures.

        Raises:
            InvalidInputError: the exam is not completed or the notebook belongs to another user
        """
        if result.status is not ExamStatus.COMPLETED:
            raise InvalidInputError(f"Exam result {result.id} is not completed", result_id=result.id)
        if notebook is not None and notebook.user_id != result.user_id:
            raise InvalidInputError(
                f"Notebook {notebook.id} does not belong to user {result.user_id}",
                notebook_id=notebook.id,
            )

        mistakes = result.incorrect_answers()
        report = ImportReport()
        grade = self.quality_from_correctness(False)
        for answer in mistakes:
            try:
                review = self._record(
                    result.user_id,
                    answer.question_id,
                    grade,
                    content_type=ContentType.QUESTION,
                )
            except ReviewEngineError as e:
                logger.error(
                    f"Could not import question {answer.question_id} "
                    f"of exam result {result.id}: {e}"
                )
                report.failures[answer.question_id] = str(e)
                continue

            report.reviews.append(review)
            if notebook is not None:
                report.entries.append(
                    self.add_entry(
                        notebook,
                        f"{result.id}:{answer.question_id}",
                        answer.question_id,
                        source_result_id=result.id,
                        now=now,
                    )
                )

        logger.info(
            f"Imported {len(report.reviews)}/{len(mistakes)} mistakes from exam result {result.id}"
        )
        return report

    def add_entry(
        self,
        notebook: ErrorNotebook,
        entry_id: str,
        question_id: str,
        *,
        source_result_id: str | None = None,
        notes: str | None = None,
        now: datetime | None = None,
    ) -> ErrorNotebookEntry:
        now = now or self.now()
        entry = ErrorNotebookEntry(
            id=entry_id,
            notebook_id=notebook.id,
            user_id=notebook.user_id,
            question_id=question_id,
            source_result_id=source_result_id,
            notes=notes,
            added_at=now,
        )
        notebook.entry_count += 1
        notebook.last_entry_at = now
        return entry

    def review_entry(self, entry: ErrorNotebookEntry, quality: int) -> ProgrammedReview:
        """Grade a notebook entry and mirror its schedule onto the entry."""
        review = self._record(entry.user_id, entry.id, quality)
        snapshot = self.snapshot(review)
        entry.srs_interval = snapshot.interval_days
        entry.srs_streak = snapshot.streak
        entry.srs_status = snapshot.status
        entry.is_leech = snapshot.is_leech
        entry.last_reviewed_at = snapshot.last_reviewed_at
        entry.next_review_at = snapshot.next_review_at
        return review

    def remove_entry(self, notebook: ErrorNotebook, entry: ErrorNotebookEntry) -> bool:
        if entry.notebook_id != notebook.id:
            raise InvalidInputError(
                f"Entry {entry.id} does not belong to notebook {notebook.id}", entry_id=entry.id
            )
        notebook.entry_count = max(0, notebook.entry_count - 1)
        return self._forget(entry.user_id, entry.id)
