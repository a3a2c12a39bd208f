"""
Domain models for decks, cards and reviews.

These are pure data structures with no I/O or external dependencies.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum, IntEnum

from .constants import EF_DEFAULT, LAPSED_AFTER_HOURS
from .errors import InvalidError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_id(value: "str | uuid.UUID", kind: str = "id") -> uuid.UUID:
    """Parse a user- or file-supplied identifier, raising InvalidError if malformed."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value).strip())
    except ValueError as e:
        raise InvalidError(f"invalid {kind}: {value!r}") from e


class Grade(IntEnum):
    """
    Learner's self-assessed recall quality.

    The integer values are the persistence encoding and must never change.
    """

    HARD = 1
    MEDIUM = 2
    EASY = 3

    @classmethod
    def parse(cls, value: "int | str | Grade") -> "Grade":
        """Accept 1/2/3, their string forms, names, or the one-letter aliases."""
        if isinstance(value, Grade):
            return value
        if isinstance(value, bool):
            raise InvalidError(f"invalid grade: {value!r}")
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError as e:
                raise InvalidError(f"invalid grade: {value!r}") from e

        text = str(value).strip().lower()
        if text.isdecimal():
            return cls.parse(int(text))
        aliases = {"h": cls.HARD, "m": cls.MEDIUM, "med": cls.MEDIUM, "e": cls.EASY}
        if text in aliases:
            return aliases[text]
        try:
            return cls[text.upper()]
        except KeyError as e:
            raise InvalidError(f"invalid grade: {value!r}") from e


class DueStatus(str, Enum):
    """Derived readiness of a card for review. Never stored."""

    NEW = "new"
    DUE_TODAY = "due_today"
    LAPSED = "lapsed"
    FUTURE = "future"


@dataclass(frozen=True)
class Deck:
    """A named collection of cards."""

    id: uuid.UUID
    name: str
    created_at: datetime

    @classmethod
    def new(cls, name: str, now: datetime | None = None) -> "Deck":
        if not name or not name.strip():
            raise InvalidError("deck name must not be empty")
        return cls(id=uuid.uuid4(), name=name, created_at=ensure_utc(now or utcnow()))


@dataclass(frozen=True)
class Card:
    """
    A front/back flashcard with its scheduling state.

    Attributes:
        reps: Consecutive successful reviews; 0 means the card is new.
        interval_days: Days between the last review and due_at.
        ef: Easiness factor, always within [EF_MIN, EF_MAX].
        due_at: Next review time. For new cards this is created_at.
    """

    id: uuid.UUID
    deck_id: uuid.UUID
    front: str
    back: str
    hint: str | None = None
    tags: tuple[str, ...] = ()

    reps: int = 0
    interval_days: int = 0
    ef: float = EF_DEFAULT
    due_at: datetime = field(default_factory=utcnow)
    last_grade: Grade | None = None
    last_reviewed_at: datetime | None = None
    suspended: bool = False

    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def new(
        cls,
        deck_id: uuid.UUID,
        front: str,
        back: str,
        hint: str | None = None,
        tags: "tuple[str, ...] | list[str]" = (),
        now: datetime | None = None,
    ) -> "Card":
        created = ensure_utc(now or utcnow())
        return cls(
            id=uuid.uuid4(),
            deck_id=deck_id,
            front=front,
            back=back,
            hint=hint,
            tags=tuple(tags),
            due_at=created,
            created_at=created,
        )

    @property
    def is_new(self) -> bool:
        return self.reps == 0

    def due_status(self, now: datetime) -> DueStatus:
        """Classify the card. Check order matters: new, future, lapsed, due today."""
        now = ensure_utc(now)
        if self.is_new:
            return DueStatus.NEW
        if self.due_at > now:
            return DueStatus.FUTURE
        if now - self.due_at >= timedelta(hours=LAPSED_AFTER_HOURS):
            return DueStatus.LAPSED
        return DueStatus.DUE_TODAY


@dataclass(frozen=True)
class Review:
    """An append-only record of one grading event."""

    id: uuid.UUID
    card_id: uuid.UUID
    grade: Grade
    reviewed_at: datetime
    interval_applied: int
    ef_after: float

    @classmethod
    def new(
        cls,
        card_id: uuid.UUID,
        grade: Grade,
        reviewed_at: datetime,
        interval_applied: int,
        ef_after: float,
    ) -> "Review":
        return cls(
            id=uuid.uuid4(),
            card_id=card_id,
            grade=grade,
            reviewed_at=ensure_utc(reviewed_at),
            interval_applied=interval_applied,
            ef_after=ef_after,
        )
