"""
Ports (interfaces) for card storage.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

import uuid
from abc import ABC, abstractmethod
from collections.abc import Sequence

from .models import Card, Deck, Review


class Repository(ABC):
    """
    Port for persisting decks, cards and reviews.

    Every implementation raises the same error kinds from
    `flashmaster.domain.errors` for the same situations.

    Implementations:
        - MemoryRepository: In-process dictionaries, nothing persisted.
        - JsonStore: In-memory index mirrored to a single JSON snapshot file.
    """

    # Decks

    @abstractmethod
    async def create_deck(self, name: str) -> Deck:
        """
        Create a deck.

        Raises:
            ConflictError: A deck with the same name (case-insensitive) exists.
            InvalidError: The name is blank.
        """
        pass

    @abstractmethod
    async def get_deck(self, deck_id: uuid.UUID) -> Deck:
        """Raises NotFoundError if absent."""
        pass

    @abstractmethod
    async def list_decks(self) -> list[Deck]:
        """Return all decks. No ordering guarantee; callers sort by created_at."""
        pass

    @abstractmethod
    async def delete_deck(self, deck_id: uuid.UUID) -> None:
        """
        Delete a deck together with all of its cards and their reviews.

        Raises:
            NotFoundError: The deck does not exist.
        """
        pass

    # Cards

    @abstractmethod
    async def add_card(
        self,
        deck_id: uuid.UUID,
        front: str,
        back: str,
        hint: str | None = None,
        tags: Sequence[str] = (),
    ) -> Card:
        """
        Add a new card to an existing deck. Tags are stored as given.

        Raises:
            NotFoundError: The deck does not exist.
        """
        pass

    @abstractmethod
    async def get_card(self, card_id: uuid.UUID) -> Card:
        """Raises NotFoundError if absent."""
        pass

    @abstractmethod
    async def list_cards(self, deck_id: uuid.UUID | None = None) -> list[Card]:
        """Return cards of one deck, or of all decks when deck_id is None."""
        pass

    @abstractmethod
    async def update_card(self, card: Card) -> Card:
        """Replace the stored card with the same id. Raises NotFoundError if absent."""
        pass

    @abstractmethod
    async def delete_card(self, card_id: uuid.UUID) -> None:
        """Delete a card and its reviews. Raises NotFoundError if absent."""
        pass

    @abstractmethod
    async def set_suspended(self, card_id: uuid.UUID, suspended: bool) -> None:
        """Raises NotFoundError if absent."""
        pass

    # Reviews

    @abstractmethod
    async def insert_review(self, review: Review) -> None:
        """Append a review. The referenced card is not required to exist."""
        pass

    @abstractmethod
    async def list_reviews_for_card(self, card_id: uuid.UUID) -> list[Review]:
        """Return the card's reviews sorted by reviewed_at ascending (empty if none)."""
        pass

    @abstractmethod
    async def list_reviews(self) -> list[Review]:
        """Return every stored review sorted by reviewed_at ascending."""
        pass

    async def close(self) -> None:
        """Release any resources held by the backend."""
        return None
