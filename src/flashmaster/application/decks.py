"""Deck lookup helpers shared by the CLI and import code."""

import logging
import uuid

from flashmaster.domain.errors import NotFoundError
from flashmaster.domain.models import Deck
from flashmaster.domain.ports import Repository

logger = logging.getLogger(__name__)


def sorted_decks(decks: list[Deck]) -> list[Deck]:
    return sorted(decks, key=lambda d: (d.created_at, d.name.lower()))


async def find_deck_by_name(repo: Repository, name: str) -> Deck | None:
    wanted = name.strip().lower()
    for deck in await repo.list_decks():
        if deck.name.lower() == wanted:
            return deck
    return None


async def resolve_deck(repo: Repository, selector: str) -> Deck:
    """
    Find a deck by id or by name (case-insensitive).

    An id that parses but matches no deck falls back to a name lookup.

    Raises:
        NotFoundError: Nothing matches the selector.
    """
    try:
        deck_id = uuid.UUID(selector.strip())
    except ValueError:
        deck_id = None

    if deck_id is not None:
        try:
            return await repo.get_deck(deck_id)
        except NotFoundError:
            pass

    deck = await find_deck_by_name(repo, selector)
    if deck is None:
        raise NotFoundError(f"deck {selector!r}")
    return deck


async def ensure_deck(repo: Repository, name: str) -> Deck:
    """Return the deck with this name, creating it if needed."""
    deck = await find_deck_by_name(repo, name)
    if deck is not None:
        return deck
    logger.info(f"Creating deck '{name}'")
    return await repo.create_deck(name)
