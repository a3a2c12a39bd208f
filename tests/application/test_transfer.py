import json

import pytest

from flashmaster.application import transfer
from flashmaster.domain.errors import InvalidError, StorageError
from flashmaster.infrastructure.adapters.memory_repository import MemoryRepository


@pytest.fixture
async def source():
    repo = MemoryRepository()
    spanish = await repo.create_deck("Spanish")
    french = await repo.create_deck("French")
    await repo.add_card(spanish.id, "hola", "hello", "greeting", ["a1", "greet"])
    suspended = await repo.add_card(spanish.id, "adiós", "goodbye")
    await repo.set_suspended(suspended.id, True)
    await repo.add_card(french.id, "bonjour", "hello, \"formal\"")
    return repo


def _content(cards, decks):
    names = {d.id: d.name for d in decks}
    return sorted(
        (names[c.deck_id], c.front, c.back, c.hint, c.tags, c.suspended) for c in cards
    )


@pytest.mark.asyncio
async def test_json_round_trip(source, tmp_path):
    path = tmp_path / "export.json"

    assert await transfer.export_json(source, path) == 3

    target = MemoryRepository()
    assert await transfer.import_json(target, path) == 3
    assert _content(await target.list_cards(), await target.list_decks()) == _content(
        await source.list_cards(), await source.list_decks()
    )


@pytest.mark.asyncio
async def test_imported_cards_start_new(source, tmp_path):
    path = tmp_path / "export.json"
    await transfer.export_json(source, path)
    target = MemoryRepository()

    await transfer.import_json(target, path)

    assert all(c.is_new for c in await target.list_cards())
    assert await target.list_reviews() == []


@pytest.mark.asyncio
async def test_json_import_merges_into_existing_deck(source, tmp_path):
    path = tmp_path / "export.json"
    await transfer.export_json(source, path)
    target = MemoryRepository()
    existing = await target.create_deck("spanish")

    await transfer.import_json(target, path)

    decks = await target.list_decks()
    assert len(decks) == 2
    assert len(await target.list_cards(existing.id)) == 2


@pytest.mark.asyncio
async def test_json_import_rejects_unknown_deck(source, tmp_path):
    path = tmp_path / "export.json"
    await transfer.export_json(source, path)
    bundle = json.loads(path.read_text())
    bundle["decks"] = bundle["decks"][:1]
    path.write_text(json.dumps(bundle))

    with pytest.raises(InvalidError):
        await transfer.import_json(MemoryRepository(), path)


@pytest.mark.asyncio
async def test_json_import_of_garbage_is_storage_error(tmp_path):
    path = tmp_path / "export.json"
    path.write_text("not json at all")

    with pytest.raises(StorageError):
        await transfer.import_json(MemoryRepository(), path)


@pytest.mark.asyncio
async def test_import_of_missing_file_is_storage_error(tmp_path):
    with pytest.raises(StorageError):
        await transfer.import_csv(MemoryRepository(), tmp_path / "nope.csv")


@pytest.mark.asyncio
async def test_csv_round_trip(source, tmp_path):
    path = tmp_path / "export.csv"

    assert await transfer.export_csv(source, path) == 3
    assert path.read_text().splitlines()[0] == "deck,front,back,hint,tags,suspended"

    target = MemoryRepository()
    assert await transfer.import_csv(target, path) == 3
    assert _content(await target.list_cards(), await target.list_decks()) == _content(
        await source.list_cards(), await source.list_decks()
    )


@pytest.mark.asyncio
async def test_csv_export_of_one_deck(source, tmp_path):
    french = next(d for d in await source.list_decks() if d.name == "French")
    path = tmp_path / "french.csv"

    assert await transfer.export_csv(source, path, french) == 1


@pytest.mark.asyncio
async def test_csv_import_into_chosen_deck(tmp_path):
    path = tmp_path / "cards.csv"
    path.write_text("ignored,uno,one,,num,0\n\n,dos,two,,,1\n")
    repo = MemoryRepository()
    deck = await repo.create_deck("Numbers")

    assert await transfer.import_csv(repo, path, deck) == 2

    cards = await repo.list_cards(deck.id)
    assert {c.front for c in cards} == {"uno", "dos"}
    assert [c.suspended for c in sorted(cards, key=lambda c: c.front)] == [True, False]
    assert len(await repo.list_decks()) == 1


@pytest.mark.asyncio
async def test_csv_row_without_deck_is_invalid(tmp_path):
    path = tmp_path / "cards.csv"
    path.write_text("deck,front,back,hint,tags,suspended\n,uno,one,,,0\n")

    with pytest.raises(InvalidError, match=":2:"):
        await transfer.import_csv(MemoryRepository(), path)
