"""
Simulated exam adapter.

An exam attempt collects answers while in progress. Completing it grades the
attempt and schedules an EXAM_QUESTION review for every answered question.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from loguru import logger

from ..core.errors import InvalidInputError, InvalidStateError, ReviewEngineError
from ..core.models import ContentType, ProgrammedReview, utcnow
from .base import ContentAdapter


class ExamStatus(str, Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    ABANDONED = "ABANDONED"


@dataclass
class ExamAnswer:
    """Answer to one exam question. selected_option_id None means skipped."""

    question_id: str
    selected_option_id: str | None
    is_correct: bool = False

    @property
    def is_skipped(self) -> bool:
        return self.selected_option_id is None


@dataclass
class SimulatedExamResult:
    """One user's attempt at a simulated exam."""

    id: str
    user_id: str
    exam_id: str
    question_ids: list[str]
    status: ExamStatus = ExamStatus.IN_PROGRESS
    answers: dict[str, ExamAnswer] = field(default_factory=dict)
    correct_count: int = 0
    incorrect_count: int = 0
    score: float = 0.0
    started_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None
    time_taken_seconds: int | None = None

    @property
    def total_questions(self) -> int:
        return len(self.question_ids)

    def incorrect_answers(self) -> list[ExamAnswer]:
        return [a for a in self.answers.values() if not a.is_skipped and not a.is_correct]


@dataclass
class GradingReport:
    """Outcome of completing an exam attempt."""

    result: SimulatedExamResult
    reviews: list[ProgrammedReview] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def fully_scheduled(self) -> bool:
        return not self.failures


class SimulatedExamAdapter(ContentAdapter):
    """Grades exam attempts and schedules their questions for review."""

    content_type = ContentType.EXAM_QUESTION

    def submit_answer(self, result: SimulatedExamResult, answer: ExamAnswer) -> SimulatedExamResult:
        """Store or replace the answer for one question of an in-progress attempt."""
        self._require_in_progress(result)
        if answer.question_id not in result.question_ids:
            raise InvalidInputError(
                f"Question {answer.question_id} is not part of exam {result.exam_id}",
                question_id=answer.question_id,
            )
        result.answers[answer.question_id] = answer
        return result

    def complete(self, result: SimulatedExamResult, now: datetime | None = None) -> GradingReport:
        """
        Grade the attempt and record one review per answered question.

        Skipped questions count as neither correct nor incorrect. A review
        that fails to record is logged and listed in the report; grading
        itself still succeeds.

        Raises:
            InvalidStateError: the attempt is not in progress
        """
        self._require_in_progress(result)
        now = now or self.now()

        answered = [a for a in result.answers.values() if not a.is_skipped]
        result.correct_count = sum(1 for a in answered if a.is_correct)
        result.incorrect_count = len(answered) - result.correct_count
        result.score = (
            round(result.correct_count / result.total_questions * 100, 2)
            if result.total_questions
            else 0.0
        )
        result.status = ExamStatus.COMPLETED
        result.completed_at = now
        result.time_taken_seconds = max(0, int((now - result.started_at).total_seconds()))

        report = GradingReport(result=result)
        for answer in answered:
            try:
                review = self._record(
                    result.user_id,
                    answer.question_id,
                    self.quality_from_correctness(answer.is_correct),
                )
            except ReviewEngineError as e:
                logger.error(
                    f"Could not schedule review for question {answer.question_id} "
                    f"of exam result {result.id}: {e}"
                )
                report.failures[answer.question_id] = str(e)
            else:
                report.reviews.append(review)

        logger.info(
            f"Exam result {result.id} graded: score={result.score}, "
            f"{len(report.reviews)} reviews scheduled, {len(report.failures)} failed"
        )
        return report

    def abandon(self, result: SimulatedExamResult, now: datetime | None = None) -> SimulatedExamResult:
        """Close the attempt without grading or scheduling anything."""
        self._require_in_progress(result)
        result.status = ExamStatus.ABANDONED
        result.completed_at = now or self.now()
        return result

    @staticmethod
    def _require_in_progress(result: SimulatedExamResult) -> None:
        if result.status is not ExamStatus.IN_PROGRESS:
            raise InvalidStateError(
                f"Exam result {result.id} is {result.status.value}", result_id=result.id
            )
