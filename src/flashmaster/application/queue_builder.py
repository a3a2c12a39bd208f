"""
Queue builder for review sessions.

Builds the ordered review queue that every front-end presents:
1. Drop suspended cards
2. Collect new (optional), due-today and lapsed (optional) cards
3. Sort by (due_at, created_at)
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from flashmaster.application.filters import filter_by_due, filter_not_suspended
from flashmaster.domain.models import Card, DueStatus, ensure_utc

logger = logging.getLogger(__name__)


@dataclass
class QueueOptions:
    """Which due categories to include in a review queue."""

    include_new: bool = False
    include_lapsed: bool = False
    limit: int | None = None


def _queue_key(card: Card) -> tuple[datetime, datetime]:
    return (card.due_at, card.created_at)


def build_review_queue(
    cards: Iterable[Card],
    now: datetime,
    include_new: bool = False,
    include_lapsed: bool = False,
    limit: int | None = None,
) -> list[Card]:
    """
    Build a review queue from the given cards.

    Due-today cards are always included. New cards carry due_at == created_at,
    so they interleave with due cards by timestamp after the sort.

    Args:
        cards: Candidate cards (one deck or all decks).
        now: Reference time for due classification.
        include_new: Include cards that were never reviewed.
        include_lapsed: Include cards overdue by 24h or more.
        limit: Maximum queue length, applied after sorting.

    Returns:
        Cards sorted by (due_at ascending, created_at ascending).
    """
    now = ensure_utc(now)
    active = filter_not_suspended(cards)

    pool: list[Card] = []
    if include_new:
        pool.extend(filter_by_due(active, now, DueStatus.NEW))
    pool.extend(filter_by_due(active, now, DueStatus.DUE_TODAY))
    if include_lapsed:
        pool.extend(filter_by_due(active, now, DueStatus.LAPSED))

    pool.sort(key=_queue_key)

    if limit is not None:
        pool = pool[: max(limit, 0)]

    logger.debug(f"Built review queue of {len(pool)} card(s) from {len(active)} active")
    return pool


def build_queue(cards: Iterable[Card], now: datetime, options: QueueOptions) -> list[Card]:
    return build_review_queue(
        cards,
        now,
        include_new=options.include_new,
        include_lapsed=options.include_lapsed,
        limit=options.limit,
    )
