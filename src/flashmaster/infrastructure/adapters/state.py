"""
In-memory index shared by the memory and JSON backends.

`StoreState` holds decks, cards and reviews-by-card and applies mutations.
It does no locking and no I/O; its owner wraps every call in the right side
of a ReadWriteLock.
"""

import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime

from flashmaster.domain.errors import ConflictError, NotFoundError
from flashmaster.domain.models import Card, Deck, Review, utcnow


def _review_key(review: Review) -> tuple[datetime, str]:
    return (review.reviewed_at, str(review.id))


@dataclass
class StoreState:
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    decks: dict[uuid.UUID, Deck] = field(default_factory=dict)
    cards: dict[uuid.UUID, Card] = field(default_factory=dict)
    reviews: dict[uuid.UUID, list[Review]] = field(default_factory=dict)

    # Decks

    def create_deck(self, name: str) -> Deck:
        deck = Deck.new(name)
        wanted = name.lower()
        if any(d.name.lower() == wanted for d in self.decks.values()):
            raise ConflictError(f"deck name already exists: {name!r}")
        self.decks[deck.id] = deck
        return deck

    def get_deck(self, deck_id: uuid.UUID) -> Deck:
        try:
            return self.decks[deck_id]
        except KeyError:
            raise NotFoundError(f"deck {deck_id}") from None

    def delete_deck(self, deck_id: uuid.UUID) -> list[uuid.UUID]:
        """Remove a deck, then its cards and their reviews. Returns removed card ids."""
        self.get_deck(deck_id)
        doomed = [c.id for c in self.cards.values() if c.deck_id == deck_id]
        del self.decks[deck_id]
        for card_id in doomed:
            del self.cards[card_id]
            self.reviews.pop(card_id, None)
        return doomed

    # Cards

    def add_card(
        self,
        deck_id: uuid.UUID,
        front: str,
        back: str,
        hint: str | None,
        tags: Sequence[str],
    ) -> Card:
        self.get_deck(deck_id)
        card = Card.new(deck_id, front, back, hint=hint, tags=tuple(tags))
        self.cards[card.id] = card
        return card

    def get_card(self, card_id: uuid.UUID) -> Card:
        try:
            return self.cards[card_id]
        except KeyError:
            raise NotFoundError(f"card {card_id}") from None

    def list_cards(self, deck_id: uuid.UUID | None) -> list[Card]:
        if deck_id is None:
            return list(self.cards.values())
        return [c for c in self.cards.values() if c.deck_id == deck_id]

    def update_card(self, card: Card) -> Card:
        self.get_card(card.id)
        self.cards[card.id] = card
        return card

    def delete_card(self, card_id: uuid.UUID) -> None:
        self.get_card(card_id)
        del self.cards[card_id]
        self.reviews.pop(card_id, None)

    def set_suspended(self, card_id: uuid.UUID, suspended: bool) -> Card:
        card = replace(self.get_card(card_id), suspended=suspended)
        self.cards[card_id] = card
        return card

    # Reviews

    def insert_review(self, review: Review) -> None:
        self.reviews.setdefault(review.card_id, []).append(review)

    def list_reviews_for_card(self, card_id: uuid.UUID) -> list[Review]:
        return sorted(self.reviews.get(card_id, []), key=_review_key)

    def all_reviews(self) -> list[Review]:
        return sorted(
            (r for reviews in self.reviews.values() for r in reviews),
            key=_review_key,
        )
