"""Pure card filters used to build review queues and searches."""

from collections.abc import Iterable
from datetime import datetime

from flashmaster.domain.models import Card, DueStatus


def filter_not_suspended(cards: Iterable[Card]) -> list[Card]:
    return [c for c in cards if not c.suspended]


def filter_by_due(cards: Iterable[Card], now: datetime, status: DueStatus) -> list[Card]:
    return [c for c in cards if c.due_status(now) == status]


def filter_by_text(cards: Iterable[Card], query: str) -> list[Card]:
    """
    Case-insensitive substring match against front, back, hint and tags.

    A blank query returns every card.
    """
    q = query.strip().lower()
    if not q:
        return list(cards)

    def matches(card: Card) -> bool:
        return (
            q in card.front.lower()
            or q in card.back.lower()
            or (card.hint is not None and q in card.hint.lower())
            or any(q in t.lower() for t in card.tags)
        )

    return [c for c in cards if matches(c)]


def filter_by_tag(cards: Iterable[Card], tag: str) -> list[Card]:
    """Case-insensitive exact match against any tag."""
    q = tag.strip().lower()
    return [c for c in cards if any(t.lower() == q for t in c.tags)]
