"""
Integration tests for the SQLAlchemy review store.

Runs against a file-backed SQLite database per test, so no server is needed.
"""

from datetime import timedelta

import pytest

from config import Settings
from review_engine.core.errors import InvalidStateError, NotFoundError, StoreUnavailableError
from review_engine.core.models import ContentType, ReviewKey, ReviewStatus
from review_engine.db.database import build_engine, init_db, make_session_factory, session_scope
from review_engine.db.models import ProgrammedReviewRow
from review_engine.engine import ReviewEngine
from review_engine.store.sql import SqlReviewStore

FLASHCARD = ContentType.FLASHCARD
QUESTION = ContentType.QUESTION


@pytest.fixture
def sql_engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'reviews.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sql_store(sql_engine):
    return SqlReviewStore(sql_engine, retries=2)


@pytest.fixture
def review_engine(sql_store, settings, clock):
    return ReviewEngine(sql_store, settings=settings, clock=clock)


class TestRecording:
    def test_scenario_persists_across_reads(self, review_engine, clock):
        review_engine.record_review("u1", "card-x", FLASHCARD, 5, deck_id="d1")
        clock.advance(days=1)
        second = review_engine.record_review("u1", "card-x", FLASHCARD, 5)
        clock.advance(days=6)
        review_engine.record_review("u1", "card-x", FLASHCARD, 2)

        stored = review_engine.get_review("u1", "card-x", FLASHCARD)
        assert second.status is ReviewStatus.REVIEWING
        assert stored.repetitions == 0
        assert stored.interval_days == 1
        assert stored.lapses == 1
        assert stored.status is ReviewStatus.LEARNING
        assert stored.ease_factor == pytest.approx(2.38)
        assert stored.deck_id == "d1"
        assert stored.next_review_at == clock.now + timedelta(days=1)
        assert stored.next_review_at.tzinfo is not None

    def test_one_row_per_key(self, review_engine, sql_engine):
        for quality in (4, 4, 1):
            review_engine.record_review("u1", "q1", QUESTION, quality)

        with session_scope(make_session_factory(sql_engine)) as session:
            rows = session.query(ProgrammedReviewRow).all()
            assert len(rows) == 1
            assert rows[0].version == 3

    def test_suspended_rejection_leaves_row_unchanged(self, review_engine):
        review_engine.record_review("u1", "card-x", FLASHCARD, 5)
        before = review_engine.suspend("u1", "card-x", FLASHCARD)

        with pytest.raises(InvalidStateError):
            review_engine.record_review("u1", "card-x", FLASHCARD, 5)

        assert review_engine.get_review("u1", "card-x", FLASHCARD) == before

    def test_reactivate_missing(self, review_engine):
        with pytest.raises(NotFoundError):
            review_engine.reactivate("u1", "nope", FLASHCARD)

    def test_delete(self, review_engine):
        review_engine.record_review("u1", "q1", QUESTION, 4)
        assert review_engine.delete_review("u1", "q1", QUESTION) is True
        assert review_engine.find_review("u1", "q1", QUESTION) is None
        assert review_engine.delete_review("u1", "q1", QUESTION) is False


class TestDueQueries:
    @pytest.fixture
    def seeded(self, review_engine, clock):
        for i, content_id in enumerate(["e", "d", "c", "b", "a"]):
            review_engine.record_review("u1", content_id, QUESTION, 4)
            clock.advance(minutes=i + 1)
        review_engine.record_review("u1", "f", FLASHCARD, 4)
        review_engine.suspend("u1", "f", FLASHCARD)
        review_engine.record_review("u2", "x", QUESTION, 4)
        clock.advance(days=2)
        return review_engine

    def test_due_in_time_order(self, seeded):
        page = seeded.due_reviews("u1")
        assert [r.content_id for r in page] == ["e", "d", "c", "b", "a"]

    def test_keyset_pages(self, seeded):
        first = seeded.due_reviews("u1", limit=2)
        second = seeded.due_reviews("u1", limit=2, cursor=first.next_cursor)
        third = seeded.due_reviews("u1", limit=2, cursor=second.next_cursor)

        ids = [r.content_id for page in (first, second, third) for r in page]
        assert ids == ["e", "d", "c", "b", "a"]
        assert third.next_cursor is None

    def test_count_and_filters(self, seeded):
        assert seeded.count_due("u1") == 5
        assert seeded.count_due("u1", FLASHCARD) == 0
        assert seeded.count_due("u2") == 1

    def test_list_by_status(self, seeded):
        page = seeded.list_reviews("u1", status="suspended")
        assert [r.content_id for r in page] == ["f"]


class TestFromSettings:
    def test_uses_given_database_url(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'configured.db'}"
        settings = Settings(_env_file=None, database_url=url, store_transaction_retries=5)

        engine = ReviewEngine.from_settings(settings)
        try:
            assert engine.store.engine.url.database == str(tmp_path / "configured.db")
            assert engine.store.retries == 5
            assert engine.settings is settings

            init_db(engine.store.engine)
            engine.record_review("u1", "q1", QUESTION, 4)
            assert engine.get_review("u1", "q1", QUESTION).repetitions == 1
        finally:
            engine.store.engine.dispose()


class TestConflicts:
    def insert_behind_our_back(self, sql_engine, review):
        with session_scope(make_session_factory(sql_engine)) as session:
            session.add(ProgrammedReviewRow.from_domain(review))

    def test_concurrent_first_insert_is_retried(self, sql_engine, sql_store, make_review):
        key = ReviewKey("u1", "q1", QUESTION)
        calls = []

        def fn(current):
            calls.append(current)
            if current is None:
                if len(calls) == 1:
                    self.insert_behind_our_back(sql_engine, make_review("u1", "q1", repetitions=1))
                return make_review("u1", "q1", repetitions=1)
            return make_review("u1", "q1", repetitions=current.repetitions + 1)

        result = sql_store.transact(key, fn)

        assert calls[0] is None
        assert calls[1].repetitions == 1
        assert result.repetitions == 2
        assert sql_store.get(key).repetitions == 2

    def test_gives_up_after_retries(self, sql_engine, make_review):
        store = SqlReviewStore(sql_engine, retries=0)
        key = ReviewKey("u1", "q1", QUESTION)

        def fn(current):
            self.insert_behind_our_back(sql_engine, make_review("u1", "q1"))
            return make_review("u1", "q1")

        with pytest.raises(StoreUnavailableError):
            store.transact(key, fn)

    def test_missing_schema_reports_unavailable(self, tmp_path):
        engine = build_engine(f"sqlite:///{tmp_path / 'empty.db'}")
        store = SqlReviewStore(engine)
        try:
            with pytest.raises(StoreUnavailableError):
                store.get(ReviewKey("u1", "q1", QUESTION))
        finally:
            engine.dispose()
