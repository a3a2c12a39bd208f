"""
JSON Store: infrastructure adapter backed by a single snapshot file.

Implements Repository with an in-memory index mirrored to disk. Every
mutation is write-through: the call returns only after the full snapshot has
been atomically written, backed up and rotated.
"""

import asyncio
import logging
import uuid
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import TypeVar

from flashmaster.domain.constants import BACKUPS_DIR_NAME, DEFAULT_MAX_BACKUPS, MIN_BACKUPS
from flashmaster.domain.errors import StorageError
from flashmaster.domain.models import Card, Deck, Review, utcnow
from flashmaster.domain.ports import Repository
from flashmaster.infrastructure.adapters import persistence
from flashmaster.infrastructure.adapters.snapshot import decode_snapshot, encode_snapshot
from flashmaster.infrastructure.adapters.state import StoreState
from flashmaster.infrastructure.utils.locks import ReadWriteLock

T = TypeVar("T")


class JsonStore(Repository):
    """
    File-backed repository for single-process use.

    Two locks are involved:
        - `_index_lock` (read/write) guards the in-memory StoreState and is
          never held during disk I/O.
        - `_write_lock` serialises saves. A save takes its snapshot only after
          acquiring it, so later saves always include earlier mutations and
          snapshots reach disk in order.

    Use `JsonStore.open(...)` rather than the constructor.
    """

    def __init__(
        self,
        path: Path,
        backups_dir: Path,
        max_backups: int,
        state: StoreState,
    ):
        self.path = path
        self.backups_dir = backups_dir
        self.max_backups = max(max_backups, MIN_BACKUPS)
        self.logger = logging.getLogger(__name__)
        self._state = state
        self._index_lock = ReadWriteLock()
        self._write_lock = asyncio.Lock()
        self._closed = False

    @classmethod
    async def open(
        cls,
        path: Path,
        backups_dir: Path | None = None,
        max_backups: int = DEFAULT_MAX_BACKUPS,
    ) -> "JsonStore":
        """
        Open the store at `path`, creating it if it does not exist.

        Raises:
            StorageError: The file cannot be read or is not valid JSON.
            InvalidError: The file is JSON but not a valid snapshot.
        """
        path = Path(path)
        backups_dir = Path(backups_dir) if backups_dir else path.parent / BACKUPS_DIR_NAME
        logger = logging.getLogger(__name__)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            backups_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"cannot create store directories: {e}") from e

        if path.exists():
            try:
                data = await asyncio.to_thread(path.read_bytes)
            except OSError as e:
                raise StorageError(f"cannot read {path}: {e}") from e
            state = decode_snapshot(data, source=str(path))
            state.updated_at = utcnow()
            logger.info(
                f"Opened store {path} ({len(state.decks)} decks, {len(state.cards)} cards)"
            )
            return cls(path, backups_dir, max_backups, state)

        store = cls(path, backups_dir, max_backups, StoreState())
        await store._save()
        logger.info(f"Initialised new store at {path}")
        return store

    # -- persistence -------------------------------------------------------

    async def _save(self) -> None:
        async with self._write_lock:
            if self._closed:
                raise StorageError("store is closed")
            with self._index_lock.write():
                moment = self._state.updated_at = utcnow()
                data = encode_snapshot(self._state)
            try:
                await asyncio.to_thread(
                    persistence.write_snapshot,
                    self.path,
                    self.backups_dir,
                    self.max_backups,
                    data,
                    moment,
                )
            except OSError as e:
                self.logger.error(f"Failed to persist snapshot to {self.path}: {e}")
                raise StorageError(f"cannot write {self.path}: {e}") from e

    async def _mutate(self, fn: Callable[[StoreState], T]) -> T:
        if self._closed:
            raise StorageError("store is closed")
        with self._index_lock.write():
            result = fn(self._state)
        await self._save()
        return result

    def _read(self, fn: Callable[[StoreState], T]) -> T:
        if self._closed:
            raise StorageError("store is closed")
        with self._index_lock.read():
            return fn(self._state)

    async def close(self) -> None:
        async with self._write_lock:
            self._closed = True

    # -- decks -------------------------------------------------------------

    async def create_deck(self, name: str) -> Deck:
        return await self._mutate(lambda s: s.create_deck(name))

    async def get_deck(self, deck_id: uuid.UUID) -> Deck:
        return self._read(lambda s: s.get_deck(deck_id))

    async def list_decks(self) -> list[Deck]:
        return self._read(lambda s: list(s.decks.values()))

    async def delete_deck(self, deck_id: uuid.UUID) -> None:
        removed = await self._mutate(lambda s: s.delete_deck(deck_id))
        self.logger.debug(f"Deleted deck {deck_id} and {len(removed)} card(s)")

    # -- cards -------------------------------------------------------------

    async def add_card(
        self,
        deck_id: uuid.UUID,
        front: str,
        back: str,
        hint: str | None = None,
        tags: Sequence[str] = (),
    ) -> Card:
        return await self._mutate(lambda s: s.add_card(deck_id, front, back, hint, tags))

    async def get_card(self, card_id: uuid.UUID) -> Card:
        return self._read(lambda s: s.get_card(card_id))

    async def list_cards(self, deck_id: uuid.UUID | None = None) -> list[Card]:
        return self._read(lambda s: s.list_cards(deck_id))

    async def update_card(self, card: Card) -> Card:
        return await self._mutate(lambda s: s.update_card(card))

    async def delete_card(self, card_id: uuid.UUID) -> None:
        await self._mutate(lambda s: s.delete_card(card_id))

    async def set_suspended(self, card_id: uuid.UUID, suspended: bool) -> None:
        await self._mutate(lambda s: s.set_suspended(card_id, suspended))

    # -- reviews -----------------------------------------------------------

    async def insert_review(self, review: Review) -> None:
        await self._mutate(lambda s: s.insert_review(review))

    async def list_reviews_for_card(self, card_id: uuid.UUID) -> list[Review]:
        return self._read(lambda s: s.list_reviews_for_card(card_id))

    async def list_reviews(self) -> list[Review]:
        return self._read(lambda s: s.all_reviews())
