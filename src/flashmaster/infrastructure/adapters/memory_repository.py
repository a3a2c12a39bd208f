"""
Memory Repository: infrastructure adapter keeping everything in process.

Implements Repository with no persistence. Used as a test double and for
throwaway sessions (`backend = "memory"`).
"""

import logging
import uuid
from collections.abc import Sequence

from flashmaster.domain.models import Card, Deck, Review
from flashmaster.domain.ports import Repository
from flashmaster.infrastructure.adapters.state import StoreState
from flashmaster.infrastructure.utils.locks import ReadWriteLock

logger = logging.getLogger(__name__)


class MemoryRepository(Repository):
    def __init__(self, state: StoreState | None = None):
        self._state = state or StoreState()
        self._lock = ReadWriteLock()

    async def create_deck(self, name: str) -> Deck:
        with self._lock.write():
            return self._state.create_deck(name)

    async def get_deck(self, deck_id: uuid.UUID) -> Deck:
        with self._lock.read():
            return self._state.get_deck(deck_id)

    async def list_decks(self) -> list[Deck]:
        with self._lock.read():
            return list(self._state.decks.values())

    async def delete_deck(self, deck_id: uuid.UUID) -> None:
        with self._lock.write():
            removed = self._state.delete_deck(deck_id)
        logger.debug(f"Deleted deck {deck_id} and {len(removed)} card(s)")

    async def add_card(
        self,
        deck_id: uuid.UUID,
        front: str,
        back: str,
        hint: str | None = None,
        tags: Sequence[str] = (),
    ) -> Card:
        with self._lock.write():
            return self._state.add_card(deck_id, front, back, hint, tags)

    async def get_card(self, card_id: uuid.UUID) -> Card:
        with self._lock.read():
            return self._state.get_card(card_id)

    async def list_cards(self, deck_id: uuid.UUID | None = None) -> list[Card]:
        with self._lock.read():
            return self._state.list_cards(deck_id)

    async def update_card(self, card: Card) -> Card:
        with self._lock.write():
            return self._state.update_card(card)

    async def delete_card(self, card_id: uuid.UUID) -> None:
        with self._lock.write():
            self._state.delete_card(card_id)

    async def set_suspended(self, card_id: uuid.UUID, suspended: bool) -> None:
        with self._lock.write():
            self._state.set_suspended(card_id, suspended)

    async def insert_review(self, review: Review) -> None:
        with self._lock.write():
            self._state.insert_review(review)

    async def list_reviews_for_card(self, card_id: uuid.UUID) -> list[Review]:
        with self._lock.read():
            return self._state.list_reviews_for_card(card_id)

    async def list_reviews(self) -> list[Review]:
        with self._lock.read():
            return self._state.all_reviews()
