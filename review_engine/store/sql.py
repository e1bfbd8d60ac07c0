"""
SQLAlchemy-backed Review Record Store.

transact() locks the row with SELECT ... FOR UPDATE where the backend
supports it. The row's version column catches concurrent updates on
backends that ignore row locks, and the unique key catches concurrent
first inserts. Both conflicts roll back and re-run the transaction against
the fresh state, up to `retries` times.
"""

from __future__ import annotations

from datetime import datetime

from loguru import logger
from sqlalchemy import Engine, and_, delete, func, or_, select
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.sql.elements import ColumnElement

from ..core.errors import StoreUnavailableError
from ..core.models import (
    ContentType,
    ProgrammedReview,
    ReviewKey,
    ReviewPosition,
    ReviewStatus,
)
from ..db.database import make_session_factory, session_scope
from ..db.models import ProgrammedReviewRow
from .base import ReviewRecordStore, TransactFn

Row = ProgrammedReviewRow


class SqlReviewStore(ReviewRecordStore):
    """Review store over any SQLAlchemy engine (PostgreSQL in production, SQLite locally)."""

    def __init__(self, engine: Engine, retries: int = 3):
        self.engine = engine
        self.retries = retries
        self._factory: sessionmaker[Session] = make_session_factory(engine)

    @classmethod
    def from_settings(cls, settings=None) -> SqlReviewStore:
        """
        Store for the given settings' database.

        Without settings the shared engine from get_engine() is reused.
        """
        from config import get_settings

        from ..db.database import build_engine, get_engine

        if settings is None:
            return cls(get_engine(), retries=get_settings().store_transaction_retries)
        engine = build_engine(settings.database_url, echo=settings.database_echo)
        return cls(engine, retries=settings.store_transaction_retries)

    # =========================================================================
    # Contract
    # =========================================================================

    def get(self, key: ReviewKey) -> ProgrammedReview | None:
        with self._guard("get"), session_scope(self._factory) as session:
            row = session.execute(self._key_query(key)).scalar_one_or_none()
            return row.to_domain() if row is not None else None

    def transact(self, key: ReviewKey, fn: TransactFn) -> ProgrammedReview:
        attempt = 0
        while True:
            try:
                with self._guard("transact"), session_scope(self._factory) as session:
                    row = session.execute(
                        self._key_query(key).with_for_update()
                    ).scalar_one_or_none()

                    current = row.to_domain() if row is not None else None
                    updated = fn(current)
                    if updated.key != key:
                        raise ValueError(
                            f"Transaction for {key} returned a record for {updated.key}"
                        )

                    if row is None:
                        session.add(Row.from_domain(updated))
                    else:
                        row.apply(updated)
                    session.flush()
                return updated
            except (IntegrityError, StaleDataError) as e:
                attempt += 1
                if attempt > self.retries:
                    logger.error(f"Giving up on {key} after {attempt} conflicting attempts")
                    raise StoreUnavailableError(
                        f"Concurrent update conflict for {key}", key=str(key), attempts=attempt
                    ) from e
                logger.debug(f"Write conflict on {key}, retrying ({attempt}/{self.retries})")

    def delete(self, key: ReviewKey) -> bool:
        with self._guard("delete"), session_scope(self._factory) as session:
            result = session.execute(
                delete(Row).where(
                    Row.user_id == key.user_id,
                    Row.content_id == key.content_id,
                    Row.content_type == key.content_type,
                )
            )
            deleted = result.rowcount > 0
        if deleted:
            logger.debug(f"Deleted programmed review {key}")
        return deleted

    def query_due(
        self,
        user_id: str,
        now: datetime,
        content_type: ContentType | None = None,
        deck_id: str | None = None,
        after: ReviewPosition | None = None,
        limit: int = 50,
    ) -> tuple[list[ProgrammedReview], ReviewPosition | None]:
        conditions = [
            Row.status != ReviewStatus.SUSPENDED,
            Row.next_review_at <= now,
        ]
        return self._page(user_id, conditions, content_type, deck_id, after, limit)

    def list_for_user(
        self,
        user_id: str,
        status: ReviewStatus | None = None,
        content_type: ContentType | None = None,
        deck_id: str | None = None,
        after: ReviewPosition | None = None,
        limit: int = 50,
    ) -> tuple[list[ProgrammedReview], ReviewPosition | None]:
        conditions = [Row.status == status] if status is not None else []
        return self._page(user_id, conditions, content_type, deck_id, after, limit)

    def count_due(
        self,
        user_id: str,
        now: datetime,
        content_type: ContentType | None = None,
        deck_id: str | None = None,
    ) -> int:
        query = select(func.count()).select_from(Row).where(
            *self._scope(user_id, content_type, deck_id),
            Row.status != ReviewStatus.SUSPENDED,
            Row.next_review_at <= now,
        )
        with self._guard("count_due"), session_scope(self._factory) as session:
            return session.execute(query).scalar_one()

    # =========================================================================
    # Helpers
    # =========================================================================

    def _guard(self, operation: str):
        return _TranslateErrors(operation)

    @staticmethod
    def _key_query(key: ReviewKey):
        return select(Row).where(
            Row.user_id == key.user_id,
            Row.content_id == key.content_id,
            Row.content_type == key.content_type,
        )

    @staticmethod
    def _scope(
        user_id: str,
        content_type: ContentType | None,
        deck_id: str | None,
    ) -> list[ColumnElement[bool]]:
        conditions: list[ColumnElement[bool]] = [Row.user_id == user_id]
        if content_type is not None:
            conditions.append(Row.content_type == content_type)
        if deck_id is not None:
            conditions.append(Row.deck_id == deck_id)
        return conditions

    @staticmethod
    def _after(position: ReviewPosition) -> ColumnElement[bool]:
        """Keyset predicate: strictly after position in (next_review_at, content_type, content_id)."""
        return or_(
            Row.next_review_at > position.next_review_at,
            and_(
                Row.next_review_at == position.next_review_at,
                or_(
                    Row.content_type > position.content_type,
                    and_(
                        Row.content_type == position.content_type,
                        Row.content_id > position.content_id,
                    ),
                ),
            ),
        )

    def _page(
        self,
        user_id: str,
        conditions: list[ColumnElement[bool]],
        content_type: ContentType | None,
        deck_id: str | None,
        after: ReviewPosition | None,
        limit: int,
    ) -> tuple[list[ProgrammedReview], ReviewPosition | None]:
        where = [*self._scope(user_id, content_type, deck_id), *conditions]
        if after is not None:
            where.append(self._after(after))

        query = (
            select(Row)
            .where(*where)
            .order_by(Row.next_review_at.asc(), Row.content_type.asc(), Row.content_id.asc())
            .limit(limit + 1)
        )

        with self._guard("query"), session_scope(self._factory) as session:
            rows = session.execute(query).scalars().all()
            items = [row.to_domain() for row in rows[:limit]]

        next_position = ReviewPosition.of(items[-1]) if len(rows) > limit else None
        return items, next_position


class _TranslateErrors:
    """Turn driver/connection failures into StoreUnavailableError."""

    def __init__(self, operation: str):
        self.operation = operation

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc is None or isinstance(exc, IntegrityError):
            return False
        if isinstance(exc, (OperationalError, DBAPIError)):
            logger.warning(f"Review store {self.operation} failed: {exc}")
            raise StoreUnavailableError(
                f"Review store unavailable during {self.operation}", operation=self.operation
            ) from exc
        return False
