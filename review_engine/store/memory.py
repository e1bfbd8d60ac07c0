"""
In-memory Review Record Store.

Process-local store used by unit tests and by callers that embed the engine
without a database. Same-key transactions are serialized with one lock per
key; different keys never contend.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime

from loguru import logger

from ..core.models import (
    ContentType,
    ProgrammedReview,
    ReviewKey,
    ReviewPosition,
    ReviewStatus,
    ensure_utc,
)
from .base import ReviewRecordStore, TransactFn


class InMemoryReviewStore(ReviewRecordStore):
    """Dictionary-backed store with per-key locking."""

    def __init__(self, records: Iterable[ProgrammedReview] = ()):
        self._records: dict[ReviewKey, ProgrammedReview] = {}
        self._locks: defaultdict[ReviewKey, threading.Lock] = defaultdict(threading.Lock)
        self._registry_lock = threading.Lock()
        self.write_count = 0

        for record in records:
            self._records[record.key] = replace(record)

    def _lock_for(self, key: ReviewKey) -> threading.Lock:
        with self._registry_lock:
            return self._locks[key]

    @contextmanager
    def _key_locked(self, key: ReviewKey) -> Iterator[None]:
        """
        Hold the key's lock for the duration of the block.

        Locks of keys without a record are dropped on release, so a waiter
        that wakes up holding a dropped lock retries with the current one.
        """
        while True:
            lock = self._lock_for(key)
            lock.acquire()
            with self._registry_lock:
                if self._locks.get(key) is lock:
                    break
            lock.release()
        try:
            yield
        finally:
            with self._registry_lock:
                if key not in self._records:
                    self._locks.pop(key, None)
            lock.release()

    def __len__(self) -> int:
        return len(self._records)

    # =========================================================================
    # Contract
    # =========================================================================

    def get(self, key: ReviewKey) -> ProgrammedReview | None:
        record = self._records.get(key)
        return replace(record) if record is not None else None

    def transact(self, key: ReviewKey, fn: TransactFn) -> ProgrammedReview:
        with self._key_locked(key):
            current = self._records.get(key)
            updated = fn(replace(current) if current is not None else None)
            if updated.key != key:
                raise ValueError(f"Transaction for {key} returned a record for {updated.key}")
            with self._registry_lock:
                self._records[key] = replace(updated)
                self.write_count += 1
            return replace(updated)

    def delete(self, key: ReviewKey) -> bool:
        with self._key_locked(key), self._registry_lock:
            removed = self._records.pop(key, None)
        if removed is not None:
            logger.debug(f"Deleted programmed review {key}")
        return removed is not None

    def query_due(
        self,
        user_id: str,
        now: datetime,
        content_type: ContentType | None = None,
        deck_id: str | None = None,
        after: ReviewPosition | None = None,
        limit: int = 50,
    ) -> tuple[list[ProgrammedReview], ReviewPosition | None]:
        now = ensure_utc(now)

        def is_due(record: ProgrammedReview) -> bool:
            return (
                record.status is not ReviewStatus.SUSPENDED
                and ensure_utc(record.next_review_at) <= now
            )

        return self._page(user_id, is_due, content_type, deck_id, after, limit)

    def list_for_user(
        self,
        user_id: str,
        status: ReviewStatus | None = None,
        content_type: ContentType | None = None,
        deck_id: str | None = None,
        after: ReviewPosition | None = None,
        limit: int = 50,
    ) -> tuple[list[ProgrammedReview], ReviewPosition | None]:
        def matches(record: ProgrammedReview) -> bool:
            return status is None or record.status is status

        return self._page(user_id, matches, content_type, deck_id, after, limit)

    def count_due(
        self,
        user_id: str,
        now: datetime,
        content_type: ContentType | None = None,
        deck_id: str | None = None,
    ) -> int:
        now = ensure_utc(now)
        return sum(
            1
            for record in self._select(user_id, content_type, deck_id)
            if record.status is not ReviewStatus.SUSPENDED
            and ensure_utc(record.next_review_at) <= now
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _select(
        self,
        user_id: str,
        content_type: ContentType | None,
        deck_id: str | None,
    ) -> list[ProgrammedReview]:
        with self._registry_lock:
            records = list(self._records.values())
        return [
            r
            for r in records
            if r.user_id == user_id
            and (content_type is None or r.content_type is content_type)
            and (deck_id is None or r.deck_id == deck_id)
        ]

    def _page(
        self,
        user_id: str,
        predicate: Callable[[ProgrammedReview], bool],
        content_type: ContentType | None,
        deck_id: str | None,
        after: ReviewPosition | None,
        limit: int,
    ) -> tuple[list[ProgrammedReview], ReviewPosition | None]:
        candidates = [r for r in self._select(user_id, content_type, deck_id) if predicate(r)]
        candidates.sort(key=lambda r: ReviewPosition.of(r).sort_key())

        if after is not None:
            boundary = after.sort_key()
            candidates = [r for r in candidates if ReviewPosition.of(r).sort_key() > boundary]

        page = [replace(r) for r in candidates[:limit]]
        next_position = ReviewPosition.of(page[-1]) if len(candidates) > limit else None
        return page, next_position
