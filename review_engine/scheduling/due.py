"""
Due-Item Query.

Lists a learner's programmed reviews whose next review time has elapsed,
oldest due first, with opaque keyset cursors. Scheduling is declarative:
"due" is a timestamp comparison, there is no timer.
"""

from __future__ import annotations

import base64
import binascii
import json
from datetime import datetime

from pydantic import BaseModel, ConfigDict, ValidationError

from ..core.errors import InvalidInputError
from ..core.models import (
    ContentType,
    Page,
    ReviewPosition,
    ReviewStatus,
    ensure_utc,
    utcnow,
)
from ..store.base import ReviewRecordStore
from .recorder import Clock


class CursorPayload(BaseModel):
    """Decoded form of a page cursor."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    at: datetime
    ct: ContentType
    cid: str

    def to_position(self) -> ReviewPosition:
        return ReviewPosition(ensure_utc(self.at), self.ct, self.cid)


def encode_cursor(position: ReviewPosition) -> str:
    """Encode a sort position as a URL-safe opaque token."""
    payload = CursorPayload(
        at=ensure_utc(position.next_review_at),
        ct=position.content_type,
        cid=position.content_id,
    )
    raw = payload.model_dump_json().encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_cursor(cursor: str) -> ReviewPosition:
    """
    Decode a token produced by encode_cursor.

    Raises:
        InvalidInputError: the token is not a cursor we issued
    """
    try:
        padded = cursor + "=" * (-len(cursor) % 4)
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        return CursorPayload.model_validate(json.loads(raw)).to_position()
    except (binascii.Error, UnicodeError, ValueError, ValidationError) as e:
        raise InvalidInputError("Malformed page cursor", cursor=cursor) from e


class DueReviewQuery:
    """Paginated reads over the review store."""

    def __init__(
        self,
        store: ReviewRecordStore,
        clock: Clock = utcnow,
        default_limit: int = 50,
        max_limit: int = 200,
    ):
        self.store = store
        self.clock = clock
        self.default_limit = default_limit
        self.max_limit = max_limit

    def _limit(self, limit: int | None) -> int:
        if limit is None:
            return self.default_limit
        if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= self.max_limit:
            raise InvalidInputError(
                f"limit must be between 1 and {self.max_limit}, got {limit!r}", limit=limit
            )
        return limit

    @staticmethod
    def _user(user_id: str) -> str:
        if not isinstance(user_id, str) or not user_id.strip():
            raise InvalidInputError("user_id must be a non-empty string", field="user_id")
        return user_id

    def _now(self, now: datetime | None) -> datetime:
        return ensure_utc(now or self.clock())

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
        """
        Reviews due at `now` (default: the clock), oldest due first.

        Suspended records are never returned. An empty page is not an error.

        Raises:
            InvalidInputError: bad user id, content type, limit or cursor
        """
        user_id = self._user(user_id)
        kind = ContentType.parse(content_type) if content_type is not None else None
        after = decode_cursor(cursor) if cursor else None

        items, next_position = self.store.query_due(
            user_id,
            self._now(now),
            content_type=kind,
            deck_id=deck_id,
            after=after,
            limit=self._limit(limit),
        )
        return Page(items=items, next_cursor=encode_cursor(next_position) if next_position else None)

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
        """All of a user's reviews in due order, optionally filtered by status/type/deck."""
        user_id = self._user(user_id)
        items, next_position = self.store.list_for_user(
            user_id,
            status=ReviewStatus.parse(status) if status is not None else None,
            content_type=ContentType.parse(content_type) if content_type is not None else None,
            deck_id=deck_id,
            after=decode_cursor(cursor) if cursor else None,
            limit=self._limit(limit),
        )
        return Page(items=items, next_cursor=encode_cursor(next_position) if next_position else None)

    def count_due(
        self,
        user_id: str,
        content_type: ContentType | str | None = None,
        *,
        deck_id: str | None = None,
        now: datetime | None = None,
    ) -> int:
        """Number of reviews due at `now` (the learner's pending review badge)."""
        user_id = self._user(user_id)
        return self.store.count_due(
            user_id,
            self._now(now),
            content_type=ContentType.parse(content_type) if content_type is not None else None,
            deck_id=deck_id,
        )
