"""
Content adapters: flashcards, question bank, simulated exams, error notebooks.
"""

from .base import ContentAdapter, ReviewSnapshot
from .error_notebook import ErrorNotebook, ErrorNotebookAdapter, ErrorNotebookEntry, ImportReport
from .flashcards import Deck, Flashcard, FlashcardAdapter
from .question_bank import QuestionBankAdapter, QuestionResponse, StudySession
from .simulated_exam import (
    ExamAnswer,
    ExamStatus,
    GradingReport,
    SimulatedExamAdapter,
    SimulatedExamResult,
)

__all__ = [
    "ContentAdapter",
    "ReviewSnapshot",
    # Flashcards
    "Deck",
    "Flashcard",
    "FlashcardAdapter",
    # Question bank
    "StudySession",
    "QuestionResponse",
    "QuestionBankAdapter",
    # Simulated exams
    "ExamStatus",
    "ExamAnswer",
    "SimulatedExamResult",
    "GradingReport",
    "SimulatedExamAdapter",
    # Error notebook
    "ErrorNotebook",
    "ErrorNotebookEntry",
    "ErrorNotebookAdapter",
    "ImportReport",
]
