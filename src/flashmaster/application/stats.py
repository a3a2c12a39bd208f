"""
Review statistics.

This is a pure computation module with no I/O.
"""

import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, timedelta, timezone

from flashmaster.domain.models import Grade, Review


@dataclass
class Totals:
    """Grade counts for a set of reviews."""

    total: int = 0
    hard: int = 0
    medium: int = 0
    easy: int = 0

    def record(self, grade: Grade) -> None:
        self.total += 1
        if grade == Grade.HARD:
            self.hard += 1
        elif grade == Grade.MEDIUM:
            self.medium += 1
        else:
            self.easy += 1

    @property
    def accuracy(self) -> float:
        """Share of reviews graded Medium or Easy (0.0 when empty)."""
        if self.total == 0:
            return 0.0
        return (self.medium + self.easy) / self.total


@dataclass
class StatsSummary:
    totals: Totals = field(default_factory=Totals)
    per_day: dict[date, Totals] = field(default_factory=dict)


def _review_day(review: Review) -> date:
    return review.reviewed_at.astimezone(timezone.utc).date()


def summarize(reviews: Iterable[Review]) -> StatsSummary:
    summary = StatsSummary()
    for r in reviews:
        summary.totals.record(r.grade)
        summary.per_day.setdefault(_review_day(r), Totals()).record(r.grade)
    summary.per_day = dict(sorted(summary.per_day.items()))
    return summary


def daily_streak(reviews: Iterable[Review], today: date) -> int:
    """Number of consecutive days, ending at `today`, with at least one review."""
    days = {_review_day(r) for r in reviews}
    streak = 0
    day = today
    while day in days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def per_deck_totals(
    reviews: Iterable[Review],
    card_to_deck: Mapping[uuid.UUID, uuid.UUID],
) -> dict[uuid.UUID, Totals]:
    """Group review totals by deck. Reviews of unknown cards are skipped."""
    totals: dict[uuid.UUID, Totals] = {}
    for r in reviews:
        deck_id = card_to_deck.get(r.card_id)
        if deck_id is None:
            continue
        totals.setdefault(deck_id, Totals()).record(r.grade)
    return totals
