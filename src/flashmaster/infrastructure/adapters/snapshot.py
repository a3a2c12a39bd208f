"""
Snapshot file schema.

Pydantic records mirror the domain dataclasses field for field. Grades are
written as their integer ordinal, timestamps as ISO 8601 with offset.
"""

import uuid
from datetime import datetime

from pydantic import AwareDatetime, BaseModel, Field, ValidationError, field_validator

from flashmaster.domain.constants import EF_MAX, EF_MIN, SNAPSHOT_VERSION
from flashmaster.domain.errors import InvalidError, StorageError
from flashmaster.domain.models import Card, Deck, Grade, Review, ensure_utc
from flashmaster.infrastructure.adapters.state import StoreState


class DeckRecord(BaseModel):
    id: uuid.UUID
    name: str
    created_at: AwareDatetime

    @classmethod
    def from_domain(cls, deck: Deck) -> "DeckRecord":
        return cls(id=deck.id, name=deck.name, created_at=deck.created_at)

    def to_domain(self) -> Deck:
        return Deck(id=self.id, name=self.name, created_at=ensure_utc(self.created_at))


class CardRecord(BaseModel):
    id: uuid.UUID
    deck_id: uuid.UUID
    front: str
    back: str
    hint: str | None = None
    tags: list[str] = Field(default_factory=list)

    reps: int = Field(default=0, ge=0)
    interval_days: int = Field(default=0, ge=0)
    ef: float
    due_at: AwareDatetime
    last_grade: Grade | None = None
    last_reviewed_at: AwareDatetime | None = None
    suspended: bool = False

    created_at: AwareDatetime

    @field_validator("ef", mode="after")
    @classmethod
    def clamp_ef(cls, v: float) -> float:
        return min(max(v, EF_MIN), EF_MAX)

    @classmethod
    def from_domain(cls, card: Card) -> "CardRecord":
        return cls(
            id=card.id,
            deck_id=card.deck_id,
            front=card.front,
            back=card.back,
            hint=card.hint,
            tags=list(card.tags),
            reps=card.reps,
            interval_days=card.interval_days,
            ef=card.ef,
            due_at=card.due_at,
            last_grade=card.last_grade,
            last_reviewed_at=card.last_reviewed_at,
            suspended=card.suspended,
            created_at=card.created_at,
        )

    def to_domain(self) -> Card:
        return Card(
            id=self.id,
            deck_id=self.deck_id,
            front=self.front,
            back=self.back,
            hint=self.hint,
            tags=tuple(self.tags),
            reps=self.reps,
            interval_days=self.interval_days,
            ef=self.ef,
            due_at=ensure_utc(self.due_at),
            last_grade=self.last_grade,
            last_reviewed_at=(
                ensure_utc(self.last_reviewed_at) if self.last_reviewed_at else None
            ),
            suspended=self.suspended,
            created_at=ensure_utc(self.created_at),
        )


class ReviewRecord(BaseModel):
    id: uuid.UUID
    card_id: uuid.UUID
    grade: Grade
    reviewed_at: AwareDatetime
    interval_applied: int
    ef_after: float

    @classmethod
    def from_domain(cls, review: Review) -> "ReviewRecord":
        return cls(
            id=review.id,
            card_id=review.card_id,
            grade=review.grade,
            reviewed_at=review.reviewed_at,
            interval_applied=review.interval_applied,
            ef_after=review.ef_after,
        )

    def to_domain(self) -> Review:
        return Review(
            id=self.id,
            card_id=self.card_id,
            grade=self.grade,
            reviewed_at=ensure_utc(self.reviewed_at),
            interval_applied=self.interval_applied,
            ef_after=self.ef_after,
        )


class SnapshotDocument(BaseModel):
    """Top-level layout of the store file."""

    version: int
    created_at: AwareDatetime
    updated_at: AwareDatetime
    decks: list[DeckRecord] = Field(default_factory=list)
    cards: list[CardRecord] = Field(default_factory=list)
    reviews: list[ReviewRecord] = Field(default_factory=list)

    @field_validator("version")
    @classmethod
    def check_version(cls, v: int) -> int:
        if v != SNAPSHOT_VERSION:
            raise ValueError(f"unsupported snapshot version {v}")
        return v


def _created_order(item: Deck | Card) -> tuple[datetime, str]:
    return (item.created_at, str(item.id))


def encode_snapshot(state: StoreState) -> bytes:
    """Serialize the full state. Collections are written in a stable order."""
    doc = SnapshotDocument(
        version=SNAPSHOT_VERSION,
        created_at=state.created_at,
        updated_at=state.updated_at,
        decks=[DeckRecord.from_domain(d) for d in sorted(state.decks.values(), key=_created_order)],
        cards=[CardRecord.from_domain(c) for c in sorted(state.cards.values(), key=_created_order)],
        reviews=[ReviewRecord.from_domain(r) for r in state.all_reviews()],
    )
    return doc.model_dump_json(indent=2).encode("utf-8")


def translate_validation_error(e: ValidationError, source: str) -> Exception:
    """Unparseable JSON is a storage failure; well-formed but wrong content is invalid."""
    errors = e.errors()
    if any(err.get("type") == "json_invalid" for err in errors):
        return StorageError(f"{source} is not valid JSON")
    first = errors[0] if errors else {}
    where = ".".join(str(p) for p in first.get("loc", ()))
    return InvalidError(f"{source}: {where}: {first.get('msg', 'invalid value')}")


def decode_snapshot(data: bytes | str, source: str = "snapshot") -> StoreState:
    """
    Parse a snapshot into a fresh StoreState.

    Raises:
        StorageError: The bytes are not JSON.
        InvalidError: The JSON does not match the snapshot schema.
    """
    try:
        doc = SnapshotDocument.model_validate_json(data)
    except ValidationError as e:
        raise translate_validation_error(e, source) from e

    state = StoreState(
        created_at=ensure_utc(doc.created_at),
        updated_at=ensure_utc(doc.updated_at),
    )
    for record in doc.decks:
        deck = record.to_domain()
        state.decks[deck.id] = deck
    for record in doc.cards:
        card = record.to_domain()
        state.cards[card.id] = card
    for record in doc.reviews:
        state.insert_review(record.to_domain())
    return state
