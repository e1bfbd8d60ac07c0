"""
Spaced-repetition scheduling.

Components:
- SM2Calculator: pure SM-2 state transition
- ReviewRecorder: one graded attempt -> one atomic store write
- DueReviewQuery: paginated due-item reads
"""

from .calculator import SM2Calculator, SM2Config, SM2Result, calculate_next
from .due import DueReviewQuery, decode_cursor, encode_cursor
from .recorder import ReviewRecorder

__all__ = [
    # Algorithm
    "SM2Calculator",
    "SM2Config",
    "SM2Result",
    "calculate_next",
    # Recording
    "ReviewRecorder",
    # Queries
    "DueReviewQuery",
    "encode_cursor",
    "decode_cursor",
]
