import asyncio
import json
from datetime import timedelta

import pytest

from flashmaster.application.scheduler import apply_grade
from flashmaster.domain.errors import InvalidError, StorageError
from flashmaster.domain.models import Grade
from flashmaster.infrastructure.adapters import persistence
from flashmaster.infrastructure.adapters.json_store import JsonStore


async def _populated_store(store_path, now):
    store = await JsonStore.open(store_path, max_backups=3)
    deck = await store.create_deck("Spanish")
    card = await store.add_card(deck.id, "hola", "hello", "greeting", ["a1"])
    updated, review = apply_grade(card, Grade.EASY, now)
    await store.update_card(updated)
    await store.insert_review(review)
    return store


@pytest.mark.asyncio
async def test_open_creates_file_and_backups(store_path):
    store = await JsonStore.open(store_path)

    assert store_path.exists()
    assert store.backups_dir == store_path.parent / "backups"
    assert len(persistence.list_backups(store.backups_dir)) == 1
    doc = json.loads(store_path.read_text())
    assert doc["version"] == 1
    assert doc["decks"] == [] and doc["cards"] == [] and doc["reviews"] == []


@pytest.mark.asyncio
async def test_contents_survive_reopen(store_path, now):
    store = await _populated_store(store_path, now)
    decks = await store.list_decks()
    cards = await store.list_cards()
    reviews = await store.list_reviews()
    await store.close()

    reopened = await JsonStore.open(store_path)

    assert await reopened.list_decks() == decks
    assert await reopened.list_cards() == cards
    assert await reopened.list_reviews() == reviews


@pytest.mark.asyncio
async def test_grades_are_written_as_integers(store_path, now):
    await _populated_store(store_path, now)

    doc = json.loads(store_path.read_text())

    assert doc["reviews"][0]["grade"] == 3
    assert doc["cards"][0]["last_grade"] == 3


@pytest.mark.asyncio
async def test_corrupt_file_is_storage_error_and_left_alone(store_path):
    store_path.parent.mkdir(parents=True)
    store_path.write_text("{not json")

    with pytest.raises(StorageError):
        await JsonStore.open(store_path)

    assert store_path.read_text() == "{not json"


@pytest.mark.asyncio
async def test_unknown_grade_is_invalid(store_path, now):
    await _populated_store(store_path, now)
    doc = json.loads(store_path.read_text())
    doc["reviews"][0]["grade"] = 7
    store_path.write_text(json.dumps(doc))

    with pytest.raises(InvalidError):
        await JsonStore.open(store_path)


@pytest.mark.asyncio
async def test_unsupported_version_is_invalid(store_path):
    await JsonStore.open(store_path)
    doc = json.loads(store_path.read_text())
    doc["version"] = 99
    store_path.write_text(json.dumps(doc))

    with pytest.raises(InvalidError):
        await JsonStore.open(store_path)


@pytest.mark.asyncio
async def test_closed_store_rejects_calls(store_path):
    store = await JsonStore.open(store_path)
    await store.close()

    with pytest.raises(StorageError):
        await store.create_deck("Spanish")
    with pytest.raises(StorageError):
        await store.list_decks()


@pytest.mark.asyncio
async def test_failed_write_keeps_previous_file(store_path, monkeypatch):
    store = await JsonStore.open(store_path)
    await store.create_deck("Spanish")
    before = store_path.read_bytes()

    def fail(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(persistence.os, "replace", fail)

    with pytest.raises(StorageError):
        await store.create_deck("French")

    monkeypatch.undo()
    assert store_path.read_bytes() == before
    assert not list(store_path.parent.glob("*.tmp"))
    # the in-memory index keeps the change; the next successful save catches up
    assert {d.name for d in await store.list_decks()} == {"Spanish", "French"}


@pytest.mark.asyncio
async def test_backups_are_rotated(store_path):
    store = await JsonStore.open(store_path, max_backups=2)

    for i in range(5):
        await store.create_deck(f"deck {i}")

    assert len(persistence.list_backups(store.backups_dir)) == 2


@pytest.mark.asyncio
async def test_newest_backup_matches_primary(store_path):
    store = await JsonStore.open(store_path, max_backups=3)
    await store.create_deck("Spanish")

    newest = persistence.list_backups(store.backups_dir)[-1]

    assert newest.read_bytes() == store_path.read_bytes()


@pytest.mark.asyncio
async def test_concurrent_mutations_are_all_persisted(store_path):
    store = await JsonStore.open(store_path, max_backups=3)

    await asyncio.gather(*(store.create_deck(f"deck {i}") for i in range(10)))
    await store.close()

    reopened = await JsonStore.open(store_path)
    assert len(await reopened.list_decks()) == 10


@pytest.mark.asyncio
async def test_explicit_backups_dir(tmp_path, now):
    backups = tmp_path / "elsewhere"

    store = await JsonStore.open(tmp_path / "store.json", backups_dir=backups)
    await store.create_deck("Spanish")

    assert len(persistence.list_backups(backups)) == 2
    assert not (tmp_path / "backups").exists()


@pytest.mark.asyncio
async def test_naive_timestamps_in_file_are_invalid(store_path, now):
    await _populated_store(store_path, now)
    doc = json.loads(store_path.read_text())
    doc["cards"][0]["due_at"] = (now + timedelta(days=1)).replace(tzinfo=None).isoformat()
    store_path.write_text(json.dumps(doc))

    with pytest.raises(InvalidError):
        await JsonStore.open(store_path)


@pytest.mark.asyncio
async def test_backups_sharing_store_directory_keep_primary(store_path):
    export = store_path.parent / "export.json"
    store = await JsonStore.open(store_path, backups_dir=store_path.parent, max_backups=1)
    export.write_text("{}")

    for name in ("Spanish", "French", "German"):
        await store.create_deck(name)
    await store.close()

    assert store_path.exists()
    assert export.read_text() == "{}"
    assert len(persistence.list_backups(store_path.parent, exclude=store_path)) == 1

    reopened = await JsonStore.open(store_path)
    assert {d.name for d in await reopened.list_decks()} == {"Spanish", "French", "German"}
