"""
Export and import of deck/card content.

JSON bundles reuse the snapshot record layout; CSV uses the columns
deck,front,back,hint,tags,suspended. Imported cards always start as new
cards: scheduling state and review history are not transferred.
"""

import csv
import io
import logging
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from flashmaster.application.decks import ensure_deck, sorted_decks
from flashmaster.domain.constants import CSV_HEADER, EXPORT_VERSION, TAG_SEPARATOR
from flashmaster.domain.errors import InvalidError, StorageError
from flashmaster.domain.models import Deck
from flashmaster.domain.ports import Repository
from flashmaster.infrastructure.adapters.persistence import atomic_write
from flashmaster.infrastructure.adapters.snapshot import (
    CardRecord,
    DeckRecord,
    translate_validation_error,
)

logger = logging.getLogger(__name__)


class ExportBundle(BaseModel):
    version: int = EXPORT_VERSION
    decks: list[DeckRecord] = Field(default_factory=list)
    cards: list[CardRecord] = Field(default_factory=list)


def _write(path: Path, data: bytes) -> None:
    try:
        atomic_write(path, data)
    except OSError as e:
        raise StorageError(f"cannot write {path}: {e}") from e


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise StorageError(f"cannot read {path}: {e}") from e


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


async def export_json(repo: Repository, path: Path) -> int:
    """Write every deck and card to a JSON bundle. Returns the card count."""
    decks = sorted_decks(await repo.list_decks())
    cards = sorted(await repo.list_cards(None), key=lambda c: c.created_at)

    bundle = ExportBundle(
        decks=[DeckRecord.from_domain(d) for d in decks],
        cards=[CardRecord.from_domain(c) for c in cards],
    )
    _write(path, bundle.model_dump_json(indent=2).encode("utf-8"))
    logger.info(f"Exported {len(decks)} deck(s), {len(cards)} card(s) to {path}")
    return len(cards)


async def export_csv(repo: Repository, path: Path, deck: Deck | None = None) -> int:
    """Write cards (of one deck, or all) as CSV. Returns the card count."""
    cards = sorted(
        await repo.list_cards(deck.id if deck else None), key=lambda c: c.created_at
    )
    deck_names = {d.id: d.name for d in await repo.list_decks()}

    buf = io.StringIO(newline="")
    writer = csv.writer(buf)
    writer.writerow(CSV_HEADER)
    for c in cards:
        writer.writerow(
            [
                deck_names.get(c.deck_id, str(c.deck_id)),
                c.front,
                c.back,
                c.hint or "",
                TAG_SEPARATOR.join(c.tags),
                "1" if c.suspended else "0",
            ]
        )
    _write(path, buf.getvalue().encode("utf-8"))
    logger.info(f"Exported {len(cards)} card(s) to {path}")
    return len(cards)


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


async def import_json(repo: Repository, path: Path) -> int:
    """
    Import a JSON bundle. Decks are matched by name (case-insensitive) and
    created when missing. Returns the number of cards added.

    Raises:
        InvalidError: The bundle is malformed or a card references a deck
            missing from the bundle.
    """
    try:
        bundle = ExportBundle.model_validate_json(_read_text(path))
    except ValidationError as e:
        raise translate_validation_error(e, str(path)) from e

    names = {d.id: d.name for d in bundle.decks}
    targets: dict[str, Deck] = {}
    for record in bundle.decks:
        targets[record.name.lower()] = await ensure_deck(repo, record.name)

    added = 0
    for record in bundle.cards:
        name = names.get(record.deck_id)
        if name is None:
            raise InvalidError(f"card {record.id} references unknown deck {record.deck_id}")
        deck = targets[name.lower()]
        card = await repo.add_card(deck.id, record.front, record.back, record.hint, record.tags)
        if record.suspended:
            await repo.set_suspended(card.id, True)
        added += 1

    logger.info(f"Imported {added} card(s) from {path}")
    return added


def _split_tags(raw: str) -> list[str]:
    return [t for t in raw.split(TAG_SEPARATOR) if t]


async def import_csv(repo: Repository, path: Path, deck: Deck | None = None) -> int:
    """
    Import cards from CSV. With `deck`, every row goes there; otherwise the
    row's deck column names the deck (created when missing).
    Returns the number of cards added.
    """
    reader = csv.reader(io.StringIO(_read_text(path), newline=""))
    rows = list(reader)
    first_line = 1
    if rows and [c.strip().lower() for c in rows[0]] == CSV_HEADER:
        rows = rows[1:]
        first_line = 2

    added = 0
    for lineno, row in enumerate(rows, start=first_line):
        if not any(cell.strip() for cell in row):
            continue
        cells = row + [""] * (len(CSV_HEADER) - len(row))
        deck_name, front, back, hint, tags, suspended = cells[: len(CSV_HEADER)]

        target = deck
        if target is None:
            if not deck_name.strip():
                raise InvalidError(f"{path}:{lineno}: missing deck name")
            target = await ensure_deck(repo, deck_name.strip())

        card = await repo.add_card(target.id, front, back, hint or None, _split_tags(tags))
        if suspended.strip() == "1":
            await repo.set_suspended(card.id, True)
        added += 1

    logger.info(f"Imported {added} card(s) from {path}")
    return added
