"""
Review Record Store contract.

Durable keyed storage for one ProgrammedReview per (user, content, type)
key. Implementations must make transact() an atomic read-modify-write:
two concurrent calls for the same key may never both observe the same
prior state.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime

from ..core.models import (
    ContentType,
    ProgrammedReview,
    ReviewKey,
    ReviewPosition,
    ReviewStatus,
)

# fn(current or None) -> new state. Raising aborts the transaction.
TransactFn = Callable[[ProgrammedReview | None], ProgrammedReview]


class ReviewRecordStore(ABC):
    """Persistence boundary for programmed reviews."""

    @abstractmethod
    def get(self, key: ReviewKey) -> ProgrammedReview | None:
        """Load a record, or None when the key has never been reviewed."""

    @abstractmethod
    def transact(self, key: ReviewKey, fn: TransactFn) -> ProgrammedReview:
        """
        Atomically read the record for key, apply fn and persist its result.

        Exceptions raised by fn propagate and nothing is written.

        Raises:
            StoreUnavailableError: persistence failed; nothing was committed
        """

    @abstractmethod
    def query_due(
        self,
        user_id: str,
        now: datetime,
        content_type: ContentType | None = None,
        deck_id: str | None = None,
        after: ReviewPosition | None = None,
        limit: int = 50,
    ) -> tuple[list[ProgrammedReview], ReviewPosition | None]:
        """
        Non-suspended records with next_review_at <= now, oldest due first.

        Returns:
            (items, position of the last item when more may follow, else None)
        """

    @abstractmethod
    def delete(self, key: ReviewKey) -> bool:
        """Delete a record. Returns False when it did not exist."""

    @abstractmethod
    def list_for_user(
        self,
        user_id: str,
        status: ReviewStatus | None = None,
        content_type: ContentType | None = None,
        deck_id: str | None = None,
        after: ReviewPosition | None = None,
        limit: int = 50,
    ) -> tuple[list[ProgrammedReview], ReviewPosition | None]:
        """All of a user's records in due order, optionally filtered."""

    @abstractmethod
    def count_due(
        self,
        user_id: str,
        now: datetime,
        content_type: ContentType | None = None,
        deck_id: str | None = None,
    ) -> int:
        """Count non-suspended records due at now."""
