"""
Review Record Store implementations.
"""

from .base import ReviewRecordStore, TransactFn
from .memory import InMemoryReviewStore
from .sql import SqlReviewStore

__all__ = [
    "ReviewRecordStore",
    "TransactFn",
    "InMemoryReviewStore",
    "SqlReviewStore",
]
