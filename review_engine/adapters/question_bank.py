"""
Question bank adapter.

Answers given inside a study session become QUESTION reviews. The session
keeps running counters and an accuracy percentage; each stored question
response mirrors the review's schedule for display.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from loguru import logger

from ..core.errors import InvalidInputError, InvalidStateError
from ..core.models import ContentType, ProgrammedReview, QualityGrade, utcnow
from .base import ContentAdapter


@dataclass
class StudySession:
    """A learner's question study session."""

    id: str
    user_id: str
    started_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None
    questions_answered: int = 0
    correct_answers: int = 0
    incorrect_answers: int = 0
    accuracy: float = 0.0

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None


@dataclass
class QuestionResponse:
    """A stored answer to a question, with denormalized review fields."""

    id: str
    user_id: str
    question_id: str
    is_correct: bool
    review_count: int = 0
    srs_level: int = 0
    last_review_date: datetime | None = None
    next_review_date: datetime | None = None
    is_leech: bool = False


class QuestionBankAdapter(ContentAdapter):
    """Connects question practice to the review engine."""

    content_type = ContentType.QUESTION

    def record_answer(
        self,
        session: StudySession,
        user_id: str,
        question_id: str,
        is_correct: bool,
        quality: int | None = None,
    ) -> ProgrammedReview:
        """
        Record an answer within a study session.

        When quality is omitted the binary correctness mapping is used. An
        explicit quality must agree with is_correct (3-5 correct, 0-2 not).

        Raises:
            InvalidInputError: the session belongs to another user, or the
                quality is invalid or contradicts is_correct
            InvalidStateError: the session is already completed
        """
        if session.user_id != user_id:
            raise InvalidInputError(
                f"Study session {session.id} does not belong to user {user_id}",
                session_id=session.id,
            )
        if session.is_completed:
            raise InvalidStateError(
                f"Study session {session.id} is already completed", session_id=session.id
            )

        if quality is None:
            grade = self.quality_from_correctness(is_correct)
        else:
            grade = QualityGrade.parse(quality)
            if grade.is_success != is_correct:
                raise InvalidInputError(
                    f"Quality {grade.value} contradicts is_correct={is_correct} "
                    f"for question {question_id}",
                    quality=grade.value,
                    is_correct=is_correct,
                )
        review = self._record(user_id, question_id, grade)

        session.questions_answered += 1
        if is_correct:
            session.correct_answers += 1
        else:
            session.incorrect_answers += 1
        session.accuracy = round(session.correct_answers / session.questions_answered * 100, 2)
        return review

    def complete_session(self, session: StudySession, now: datetime | None = None) -> StudySession:
        if session.is_completed:
            raise InvalidStateError(
                f"Study session {session.id} is already completed", session_id=session.id
            )
        session.completed_at = now or self.now()
        logger.info(
            f"Session {session.id} completed: {session.correct_answers}/"
            f"{session.questions_answered} correct ({session.accuracy}%)"
        )
        return session

    def record_response_review(self, response: QuestionResponse, quality: int) -> ProgrammedReview:
        """Grade a stored response and refresh its review fields."""
        review = self._record(response.user_id, response.question_id, quality)
        snapshot = self.snapshot(review)
        response.review_count += 1
        response.srs_level = snapshot.streak
        response.last_review_date = snapshot.last_reviewed_at
        response.next_review_date = snapshot.next_review_at
        response.is_leech = snapshot.is_leech
        return review

    def delete_response(self, response: QuestionResponse) -> bool:
        """Delete the review linked to a response being removed."""
        return self._forget(response.user_id, response.question_id)
