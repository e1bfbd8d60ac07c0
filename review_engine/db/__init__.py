# SQLAlchemy persistence
from .database import (
    build_engine,
    drop_db,
    get_engine,
    get_session_factory,
    init_db,
    make_session_factory,
    reset_engine,
    session_scope,
)
from .models import Base, ProgrammedReviewRow

__all__ = [
    "Base",
    "ProgrammedReviewRow",
    "build_engine",
    "get_engine",
    "get_session_factory",
    "make_session_factory",
    "init_db",
    "drop_db",
    "reset_engine",
    "session_scope",
]
