"""
SM-2 style scheduler.

Maps (card, grade, now) to an updated card and the review that records it.
This is a pure computation module with no I/O.
"""

import math
from dataclasses import replace
from datetime import datetime, timedelta
from typing import NamedTuple

from flashmaster.domain.constants import (
    EF_MAX,
    EF_MIN,
    FIRST_INTERVAL_DAYS,
    LAPSE_INTERVAL_DAYS,
    SECOND_INTERVAL_DAYS,
)
from flashmaster.domain.models import Card, Grade, Review, ensure_utc, utcnow


class ScheduleOutcome(NamedTuple):
    """Result of grading a card. Unpacks as (updated_card, review)."""

    updated_card: Card
    review: Review


def clamp_ef(value: float) -> float:
    return min(max(value, EF_MIN), EF_MAX)


def ef_delta(grade: Grade) -> float:
    """Easiness change for a grade: +0.1 (easy), 0.0 (medium), -0.14 (hard)."""
    miss = 3 - int(grade)
    return 0.1 - miss * (0.08 + miss * 0.02)


def _round_half_up(value: float) -> int:
    # Intervals are positive; round halves away from zero rather than to even.
    return int(math.floor(value + 0.5))


def next_interval(reps: int, prior_interval: int, ef: float) -> int:
    """Interval in days after a successful review bringing the card to `reps`."""
    if reps == 1:
        return FIRST_INTERVAL_DAYS
    if reps == 2:
        return SECOND_INTERVAL_DAYS
    return max(1, _round_half_up(max(prior_interval, 1) * ef))


def apply_grade(card: Card, grade: Grade, now: datetime | None = None) -> ScheduleOutcome:
    """
    Apply a review grade to a card.

    Hard is a lapse: reps resets to 0 and the card comes back tomorrow.
    Medium and Easy advance reps and grow the interval (1, 6, then prior * ef).

    Args:
        card: The card being reviewed.
        grade: The learner's grade.
        now: Review time. Defaults to the current UTC time.

    Returns:
        ScheduleOutcome with the updated card and the new Review.
    """
    now = ensure_utc(now or utcnow())
    grade = Grade(grade)

    new_ef = clamp_ef(card.ef + ef_delta(grade))

    if grade < Grade.MEDIUM:
        new_reps = 0
        new_interval = LAPSE_INTERVAL_DAYS
    else:
        new_reps = card.reps + 1
        new_interval = next_interval(new_reps, card.interval_days, new_ef)

    updated = replace(
        card,
        ef=new_ef,
        reps=new_reps,
        interval_days=new_interval,
        due_at=now + timedelta(days=new_interval),
        last_grade=grade,
        last_reviewed_at=now,
    )
    review = Review.new(card.id, grade, now, new_interval, new_ef)
    return ScheduleOutcome(updated_card=updated, review=review)
