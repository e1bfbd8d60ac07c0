"""
Unit tests for the content adapters.

Each adapter maps its own signal to a grade, records through the engine and
keeps its aggregate counters consistent.
"""

from datetime import timedelta

import pytest

from review_engine.adapters import (
    Deck,
    ErrorNotebook,
    ErrorNotebookAdapter,
    ExamAnswer,
    ExamStatus,
    Flashcard,
    FlashcardAdapter,
    QuestionBankAdapter,
    QuestionResponse,
    SimulatedExamAdapter,
    SimulatedExamResult,
    StudySession,
)
from review_engine.core.errors import (
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
    StoreUnavailableError,
)
from review_engine.core.models import ContentType, QualityGrade, ReviewStatus


# =============================================================================
# Flashcards
# =============================================================================


@pytest.fixture
def deck():
    return Deck(id="deck-1", user_id="u1", name="Networking")


@pytest.fixture
def card(deck):
    return Flashcard(id="card-1", deck_id=deck.id, user_id="u1", front="OSI?", back="7 layers")


class TestFlashcardAdapter:
    @pytest.fixture
    def adapter(self, engine):
        return FlashcardAdapter(engine)

    def test_add_and_remove_adjust_count(self, adapter, deck, card):
        adapter.add_flashcard(deck, card)
        assert deck.flashcard_count == 1

        adapter.remove_flashcard(deck, card)
        adapter.remove_flashcard(deck, card)
        assert deck.flashcard_count == 0

    def test_interaction_records_review_in_deck(self, adapter, engine, deck, card):
        adapter.add_flashcard(deck, card)
        review = adapter.record_interaction(deck, card, 4)

        assert review.content_type is ContentType.FLASHCARD
        assert review.deck_id == "deck-1"
        assert card.review.next_review_at == review.next_review_at
        assert card.review.streak == 1
        assert deck.last_studied_at == review.last_reviewed_at

    def test_interaction_rejects_card_from_other_deck(self, adapter, deck):
        stray = Flashcard(id="c2", deck_id="deck-2", user_id="u1", front="f", back="b")
        with pytest.raises(InvalidInputError):
            adapter.record_interaction(deck, stray, 4)

    def test_interaction_rejects_other_users_deck(self, adapter, deck):
        stray = Flashcard(id="c2", deck_id=deck.id, user_id="u2", front="f", back="b")
        with pytest.raises(NotFoundError):
            adapter.record_interaction(deck, stray, 4)

    def test_mastered_card_stops_being_due(self, adapter, engine, clock, deck, card):
        adapter.record_interaction(deck, card, 5)
        adapter.mark_mastered(card)
        clock.advance(days=3)

        assert card.mastered
        assert card.review.status is ReviewStatus.SUSPENDED
        assert adapter.due_count(deck) == 0
        with pytest.raises(InvalidStateError):
            adapter.record_interaction(deck, card, 5)

    def test_toggle_archive(self, adapter, deck, card):
        adapter.record_interaction(deck, card, 5)

        adapter.toggle_archive(card)
        assert card.archived
        assert card.review.status is ReviewStatus.SUSPENDED

        adapter.toggle_archive(card)
        assert not card.archived
        assert card.review.status is ReviewStatus.LEARNING

    def test_archive_unreviewed_card(self, adapter, card):
        with pytest.raises(NotFoundError):
            adapter.toggle_archive(card)
        assert not card.archived

    def test_reset_progress(self, adapter, engine, deck, card):
        adapter.record_interaction(deck, card, 0)
        adapter.mark_mastered(card)

        assert adapter.reset_progress(card) is True
        assert card.review is None
        assert not card.mastered
        assert engine.find_review("u1", card.id, ContentType.FLASHCARD) is None

    def test_remove_deletes_review(self, adapter, engine, deck, card):
        adapter.add_flashcard(deck, card)
        adapter.record_interaction(deck, card, 3)

        assert adapter.remove_flashcard(deck, card) is True
        assert engine.find_review("u1", card.id, ContentType.FLASHCARD) is None


# =============================================================================
# Question bank
# =============================================================================


class TestQuestionBankAdapter:
    @pytest.fixture
    def adapter(self, engine):
        return QuestionBankAdapter(engine)

    @pytest.fixture
    def session(self):
        return StudySession(id="s1", user_id="u1")

    def test_counters_and_accuracy(self, adapter, session):
        adapter.record_answer(session, "u1", "q1", True)
        adapter.record_answer(session, "u1", "q2", False)
        adapter.record_answer(session, "u1", "q3", True)

        assert session.questions_answered == 3
        assert session.correct_answers == 2
        assert session.incorrect_answers == 1
        assert session.accuracy == 66.67

    def test_binary_mapping_uses_configured_grades(self, adapter, session):
        correct = adapter.record_answer(session, "u1", "q1", True)
        wrong = adapter.record_answer(session, "u1", "q2", False)

        assert correct.ease_factor == pytest.approx(2.6)
        assert wrong.lapses == 1
        assert wrong.ease_factor == pytest.approx(2.5 - 0.54)

    def test_explicit_quality_overrides_mapping(self, adapter, session):
        review = adapter.record_answer(session, "u1", "q1", True, quality=3)
        assert review.ease_factor == pytest.approx(2.36)

    @pytest.mark.parametrize("is_correct,quality", [(True, 1), (True, 2), (False, 3), (False, 5)])
    def test_quality_contradicting_correctness_rejected(
        self, adapter, engine, store, session, is_correct, quality
    ):
        with pytest.raises(InvalidInputError):
            adapter.record_answer(session, "u1", "q1", is_correct, quality=quality)

        assert session.questions_answered == 0
        assert store.write_count == 0
        assert engine.find_review("u1", "q1", ContentType.QUESTION) is None

    def test_rejects_completed_session(self, adapter, session, store):
        adapter.complete_session(session)
        with pytest.raises(InvalidStateError):
            adapter.record_answer(session, "u1", "q1", True)
        assert store.write_count == 0

    def test_rejects_other_users_session(self, adapter, session):
        with pytest.raises(InvalidInputError):
            adapter.record_answer(session, "u2", "q1", True)
        assert session.questions_answered == 0

    def test_response_review_refreshes_fields(self, adapter, clock):
        response = QuestionResponse(id="r1", user_id="u1", question_id="q1", is_correct=True)
        adapter.record_response_review(response, 5)
        clock.advance(days=1)
        review = adapter.record_response_review(response, 4)

        assert response.review_count == 2
        assert response.srs_level == 2
        assert response.last_review_date == clock.now
        assert response.next_review_date == clock.now + timedelta(days=6)
        assert response.next_review_date == review.next_review_at

    def test_delete_response(self, adapter, engine):
        response = QuestionResponse(id="r1", user_id="u1", question_id="q1", is_correct=False)
        adapter.record_response_review(response, 1)

        assert adapter.delete_response(response) is True
        assert engine.count_due("u1") == 0


# =============================================================================
# Simulated exams
# =============================================================================


@pytest.fixture
def exam_result(clock):
    return SimulatedExamResult(
        id="res-1",
        user_id="u1",
        exam_id="exam-1",
        question_ids=["q1", "q2", "q3", "q4"],
        started_at=clock.now,
    )


class TestSimulatedExamAdapter:
    @pytest.fixture
    def adapter(self, engine):
        return SimulatedExamAdapter(engine)

    def answer_all(self, adapter, result):
        adapter.submit_answer(result, ExamAnswer("q1", "a", is_correct=True))
        adapter.submit_answer(result, ExamAnswer("q2", "b", is_correct=False))
        adapter.submit_answer(result, ExamAnswer("q3", "c", is_correct=True))
        adapter.submit_answer(result, ExamAnswer("q4", None))

    def test_complete_scores_and_schedules(self, adapter, engine, clock, exam_result):
        self.answer_all(adapter, exam_result)
        clock.advance(minutes=30)

        report = adapter.complete(exam_result)

        assert exam_result.status is ExamStatus.COMPLETED
        assert exam_result.correct_count == 2
        assert exam_result.incorrect_count == 1
        assert exam_result.score == 50.0
        assert exam_result.time_taken_seconds == 1800
        assert report.fully_scheduled
        assert sorted(r.content_id for r in report.reviews) == ["q1", "q2", "q3"]
        assert engine.find_review("u1", "q4", ContentType.EXAM_QUESTION) is None

    def test_score_rounded_to_two_decimals(self, adapter, clock):
        result = SimulatedExamResult(
            id="r", user_id="u1", exam_id="e", question_ids=["a", "b", "c"], started_at=clock.now
        )
        adapter.submit_answer(result, ExamAnswer("a", "x", is_correct=True))
        adapter.complete(result)
        assert result.score == 33.33

    def test_resubmit_replaces_answer(self, adapter, exam_result):
        adapter.submit_answer(exam_result, ExamAnswer("q1", "a", is_correct=False))
        adapter.submit_answer(exam_result, ExamAnswer("q1", "b", is_correct=True))

        report = adapter.complete(exam_result)
        assert exam_result.correct_count == 1
        assert len(report.reviews) == 1

    def test_rejects_unknown_question(self, adapter, exam_result):
        with pytest.raises(InvalidInputError):
            adapter.submit_answer(exam_result, ExamAnswer("q9", "a", is_correct=True))

    def test_completed_attempt_is_closed(self, adapter, exam_result):
        adapter.complete(exam_result)
        with pytest.raises(InvalidStateError):
            adapter.submit_answer(exam_result, ExamAnswer("q1", "a", is_correct=True))
        with pytest.raises(InvalidStateError):
            adapter.complete(exam_result)

    def test_abandon_records_nothing(self, adapter, store, exam_result):
        self.answer_all(adapter, exam_result)
        adapter.abandon(exam_result)

        assert exam_result.status is ExamStatus.ABANDONED
        assert len(store) == 0

    def test_review_failure_does_not_fail_grading(self, adapter, engine, exam_result, monkeypatch):
        self.answer_all(adapter, exam_result)
        original = engine.record_review

        def flaky(user_id, content_id, *args, **kwargs):
            if content_id == "q2":
                raise StoreUnavailableError("store down")
            return original(user_id, content_id, *args, **kwargs)

        monkeypatch.setattr(engine, "record_review", flaky)
        report = adapter.complete(exam_result)

        assert exam_result.status is ExamStatus.COMPLETED
        assert exam_result.score == 50.0
        assert list(report.failures) == ["q2"]
        assert len(report.reviews) == 2


# =============================================================================
# Error notebook
# =============================================================================


class TestErrorNotebookAdapter:
    @pytest.fixture
    def adapter(self, engine):
        return ErrorNotebookAdapter(engine)

    @pytest.fixture
    def notebook(self):
        return ErrorNotebook(id="nb-1", user_id="u1", title="Mistakes")

    @pytest.fixture
    def completed_exam(self, engine, exam_result):
        exams = SimulatedExamAdapter(engine)
        exams.submit_answer(exam_result, ExamAnswer("q1", "a", is_correct=False))
        exams.submit_answer(exam_result, ExamAnswer("q2", "b", is_correct=True))
        exams.submit_answer(exam_result, ExamAnswer("q3", "c", is_correct=False))
        exams.submit_answer(exam_result, ExamAnswer("q4", None))
        exams.complete(exam_result)
        return exam_result

    def test_import_records_question_reviews(self, adapter, engine, completed_exam):
        report = adapter.import_exam_errors(completed_exam)

        assert report.entries == []
        assert report.fully_imported
        assert [r.content_id for r in report.reviews] == ["q1", "q3"]
        for question_id in ("q1", "q3"):
            review = engine.get_review("u1", question_id, ContentType.QUESTION)
            assert review.lapses == 1
            assert review.original_answer_correct is False
        assert engine.find_review("u1", "q2", ContentType.QUESTION) is None

    def test_import_copies_into_notebook(self, adapter, clock, notebook, completed_exam):
        report = adapter.import_exam_errors(completed_exam, notebook)

        assert [e.question_id for e in report.entries] == ["q1", "q3"]
        assert notebook.entry_count == 2
        assert notebook.last_entry_at == clock.now
        assert all(e.source_result_id == "res-1" for e in report.entries)

    def test_import_skips_suspended_question(self, adapter, engine, notebook, completed_exam):
        engine.record_review("u1", "q3", ContentType.QUESTION, 5)
        engine.suspend("u1", "q3", ContentType.QUESTION)

        report = adapter.import_exam_errors(completed_exam, notebook)

        assert list(report.failures) == ["q3"]
        assert not report.fully_imported
        assert [e.question_id for e in report.entries] == ["q1"]
        assert notebook.entry_count == len(report.entries) == 1
        assert engine.get_review("u1", "q1", ContentType.QUESTION).lapses == 1
        assert engine.get_review("u1", "q3", ContentType.QUESTION).lapses == 0

    def test_import_requires_completed_exam(self, adapter, exam_result):
        with pytest.raises(InvalidInputError):
            adapter.import_exam_errors(exam_result)

    def test_import_rejects_other_users_notebook(self, adapter, completed_exam):
        other = ErrorNotebook(id="nb-2", user_id="u2", title="Theirs")
        with pytest.raises(InvalidInputError):
            adapter.import_exam_errors(completed_exam, other)

    def test_review_entry_mirrors_schedule(self, adapter, engine, notebook):
        entry = adapter.add_entry(notebook, "e1", "q1")
        for quality in (QualityGrade.PERFECT, QualityGrade.HESITANT):
            review = adapter.review_entry(entry, quality)

        assert review.content_type is ContentType.ERROR_NOTEBOOK_ENTRY
        assert entry.srs_interval == 6
        assert entry.srs_streak == 2
        assert entry.srs_status is ReviewStatus.REVIEWING
        assert entry.next_review_at == review.next_review_at
        assert not entry.is_leech

    def test_review_entry_flags_leech(self, adapter, notebook):
        entry = adapter.add_entry(notebook, "e1", "q1")
        for _ in range(4):
            adapter.review_entry(entry, 0)
        assert entry.is_leech

    def test_remove_entry(self, adapter, engine, notebook):
        entry = adapter.add_entry(notebook, "e1", "q1")
        adapter.review_entry(entry, 4)

        assert adapter.remove_entry(notebook, entry) is True
        assert notebook.entry_count == 0
        assert engine.find_review("u1", "e1", ContentType.ERROR_NOTEBOOK_ENTRY) is None
