"""
Flashcard adapter.

Learners self-rate each flashcard 0-5. Reviews are scoped to the card's deck
so due lists can be filtered per deck; mastering or archiving a card
suspends its review.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from loguru import logger

from ..core.errors import InvalidInputError, NotFoundError
from ..core.models import ContentType, ProgrammedReview, utcnow
from .base import ContentAdapter, ReviewSnapshot


@dataclass
class Deck:
    """A user's flashcard deck."""

    id: str
    user_id: str
    name: str
    flashcard_count: int = 0
    last_studied_at: datetime | None = None


@dataclass
class Flashcard:
    """Single flashcard plus the review metadata shown next to it."""

    id: str
    deck_id: str
    user_id: str
    front: str
    back: str
    archived: bool = False
    mastered: bool = False
    review: ReviewSnapshot | None = None
    created_at: datetime = field(default_factory=utcnow)


class FlashcardAdapter(ContentAdapter):
    """Connects flashcard study to the review engine."""

    content_type = ContentType.FLASHCARD

    def add_flashcard(self, deck: Deck, card: Flashcard) -> Flashcard:
        """Attach a card to its deck (no review exists until the first rating)."""
        self._check_deck(deck, card)
        deck.flashcard_count += 1
        return card

    def remove_flashcard(self, deck: Deck, card: Flashcard) -> bool:
        """Detach a card and delete its programmed review."""
        self._check_deck(deck, card)
        deck.flashcard_count = max(0, deck.flashcard_count - 1)
        deleted = self._forget(card.user_id, card.id)
        logger.debug(f"Removed flashcard {card.id} from deck {deck.id} (review deleted: {deleted})")
        return deleted

    def record_interaction(
        self,
        deck: Deck,
        card: Flashcard,
        quality: int,
    ) -> ProgrammedReview:
        """
        Grade a self-rated flashcard review.

        Raises:
            InvalidInputError: quality outside 0-5 or card not in deck
            InvalidStateError: the card is mastered or archived
        """
        self._check_deck(deck, card)
        review = self._record(card.user_id, card.id, quality, deck_id=deck.id)
        card.review = self.snapshot(review)
        deck.last_studied_at = review.last_reviewed_at
        return review

    def mark_mastered(self, card: Flashcard) -> ProgrammedReview:
        """Stop scheduling a card the learner has mastered."""
        review = self.engine.suspend(card.user_id, card.id, self.content_type)
        card.mastered = True
        card.review = self.snapshot(review)
        return review

    def toggle_archive(self, card: Flashcard) -> ProgrammedReview:
        """
        Archive an active card or restore an archived one.

        Raises:
            NotFoundError: the card has never been reviewed
        """
        if card.archived:
            review = self.engine.reactivate(card.user_id, card.id, self.content_type)
        else:
            review = self.engine.suspend(card.user_id, card.id, self.content_type)
        card.archived = not card.archived
        card.review = self.snapshot(review)
        return review

    def reset_progress(self, card: Flashcard) -> bool:
        """Forget a card's progress; its next rating starts from scratch."""
        reset = self.engine.reset_review(card.user_id, card.id, self.content_type)
        card.review = None
        card.mastered = False
        card.archived = False
        return reset

    def due_count(self, deck: Deck) -> int:
        return self.engine.count_due(deck.user_id, self.content_type, deck_id=deck.id)

    @staticmethod
    def _check_deck(deck: Deck, card: Flashcard) -> None:
        if card.deck_id != deck.id:
            raise InvalidInputError(
                f"Flashcard {card.id} does not belong to deck {deck.id}",
                flashcard_id=card.id,
                deck_id=deck.id,
            )
        if card.user_id != deck.user_id:
            raise NotFoundError(f"Deck {deck.id} not found for user {card.user_id}")
