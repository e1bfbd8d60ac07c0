"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import Settings  # noqa: E402
from review_engine.core.models import ContentType, ProgrammedReview, ReviewStatus  # noqa: E402
from review_engine.engine import ReviewEngine  # noqa: E402
from review_engine.store.memory import InMemoryReviewStore  # noqa: E402

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (SQL store on SQLite)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


class FrozenClock:
    """Controllable clock; call it to read, advance() to move forward."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: float = 0, **kwargs) -> datetime:
        self.now = self.now + timedelta(days=days, **kwargs)
        return self.now


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def settings():
    """Default settings, independent of any .env file."""
    return Settings(_env_file=None, database_url="sqlite://")


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def store():
    return InMemoryReviewStore()


@pytest.fixture
def engine(store, settings, clock):
    """Review engine over the in-memory store with a frozen clock."""
    return ReviewEngine(store, settings=settings, clock=clock)


@pytest.fixture
def make_review(clock):
    """Factory for ProgrammedReview records with sensible defaults."""

    def _make(user_id="u1", content_id="q1", content_type=ContentType.QUESTION, **overrides):
        fields = {
            "status": ReviewStatus.LEARNING,
            "ease_factor": 2.5,
            "interval_days": 1,
            "repetitions": 1,
            "lapses": 0,
            "last_reviewed_at": clock.now,
            "next_review_at": clock.now + timedelta(days=1),
            "original_answer_correct": True,
            "created_at": clock.now,
            "updated_at": clock.now,
        }
        fields.update(overrides)
        return ProgrammedReview(
            user_id=user_id, content_id=content_id, content_type=content_type, **fields
        )

    return _make
