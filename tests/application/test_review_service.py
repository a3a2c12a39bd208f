from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from flashmaster.application.decks import ensure_deck, resolve_deck
from flashmaster.application.queue_builder import QueueOptions
from flashmaster.application.review_service import ReviewService
from flashmaster.domain.errors import NotFoundError, StorageError
from flashmaster.domain.models import Grade
from flashmaster.infrastructure.adapters.memory_repository import MemoryRepository


@pytest.fixture
def memory_repo():
    return MemoryRepository()


@pytest.mark.asyncio
async def test_grade_persists_card_and_review(memory_repo, now):
    deck = await memory_repo.create_deck("Spanish")
    card = await memory_repo.add_card(deck.id, "hola", "hello")
    service = ReviewService(memory_repo)

    outcome = await service.grade(card.id, Grade.EASY, now)

    stored = await memory_repo.get_card(card.id)
    assert stored == outcome.updated_card
    assert stored.reps == 1
    assert await service.history(card.id) == [outcome.review]


@pytest.mark.asyncio
async def test_grade_unknown_card_raises_not_found(memory_repo, now):
    from uuid import uuid4

    with pytest.raises(NotFoundError):
        await ReviewService(memory_repo).grade(uuid4(), Grade.EASY, now)


@pytest.mark.asyncio
async def test_review_insert_failure_leaves_rescheduled_card(memory_repo, now, caplog):
    deck = await memory_repo.create_deck("Spanish")
    card = await memory_repo.add_card(deck.id, "hola", "hello")
    memory_repo.insert_review = AsyncMock(side_effect=StorageError("disk full"))

    with pytest.raises(StorageError):
        await ReviewService(memory_repo).grade(card.id, Grade.MEDIUM, now)

    stored = await memory_repo.get_card(card.id)
    assert stored.reps == 1
    assert await memory_repo.list_reviews_for_card(card.id) == []
    assert "could not be recorded" in caplog.text


@pytest.mark.asyncio
async def test_due_queue_scopes_to_deck(memory_repo, now):
    spanish = await memory_repo.create_deck("Spanish")
    french = await memory_repo.create_deck("French")
    hola = await memory_repo.add_card(spanish.id, "hola", "hello")
    await memory_repo.add_card(french.id, "bonjour", "hello")
    service = ReviewService(memory_repo)

    queue = await service.due_queue(spanish.id, now + timedelta(minutes=1), QueueOptions(include_new=True))

    assert [c.id for c in queue] == [hola.id]
    assert await service.due_queue(spanish.id, now) == []


@pytest.mark.asyncio
async def test_graded_card_leaves_queue_until_due(memory_repo, now):
    deck = await memory_repo.create_deck("Spanish")
    card = await memory_repo.add_card(deck.id, "hola", "hello")
    service = ReviewService(memory_repo)
    options = QueueOptions(include_new=True, include_lapsed=True)

    await service.grade(card.id, Grade.MEDIUM, now)

    assert await service.due_queue(None, now + timedelta(hours=12), options) == []
    queue = await service.due_queue(None, now + timedelta(days=1, hours=1), options)
    assert [c.id for c in queue] == [card.id]


@pytest.mark.asyncio
async def test_summary_counts_reviews(memory_repo, now):
    deck = await memory_repo.create_deck("Spanish")
    card = await memory_repo.add_card(deck.id, "hola", "hello")
    service = ReviewService(memory_repo)
    await service.grade(card.id, Grade.EASY, now)
    await service.grade(card.id, Grade.HARD, now + timedelta(days=1))

    summary, streak = await service.summary((now + timedelta(days=1)).date())

    assert summary.totals.total == 2
    assert summary.totals.accuracy == pytest.approx(0.5)
    assert streak == 2


@pytest.mark.asyncio
async def test_resolve_deck_by_id_or_name(memory_repo):
    deck = await memory_repo.create_deck("Spanish")

    assert await resolve_deck(memory_repo, str(deck.id)) == deck
    assert await resolve_deck(memory_repo, "spanish") == deck
    with pytest.raises(NotFoundError):
        await resolve_deck(memory_repo, "German")


@pytest.mark.asyncio
async def test_ensure_deck_reuses_existing(memory_repo):
    deck = await memory_repo.create_deck("Spanish")

    assert await ensure_deck(memory_repo, "SPANISH") == deck
    created = await ensure_deck(memory_repo, "French")
    assert created.name == "French"
    assert len(await memory_repo.list_decks()) == 2
