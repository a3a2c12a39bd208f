import uuid
from datetime import datetime, timezone

import pytest

from flashmaster.domain.models import Card
from flashmaster.infrastructure.adapters.json_store import JsonStore
from flashmaster.infrastructure.adapters.memory_repository import MemoryRepository


@pytest.fixture
def now():
    return datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_card(now):
    """Build a card without a repository."""

    def _make(**overrides) -> Card:
        fields = {
            "id": uuid.uuid4(),
            "deck_id": uuid.uuid4(),
            "front": "hola",
            "back": "hello",
            "due_at": now,
            "created_at": now,
        }
        fields.update(overrides)
        return Card(**fields)

    return _make


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "data" / "flashmaster.json"


@pytest.fixture(params=["memory", "json"])
async def repo(request, store_path):
    """Every Repository backend; contract tests run against each."""
    if request.param == "memory":
        backend = MemoryRepository()
    else:
        backend = await JsonStore.open(store_path, max_backups=3)
    yield backend
    await backend.close()


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config and data
    monkeypatch.setenv("HOME", str(home))
    for key in (
        "FLASHMASTER_BACKEND",
        "FLASHMASTER_DATA_DIR",
        "FLASHMASTER_STORE_PATH",
        "FLASHMASTER_BACKUPS_DIR",
        "FLASHMASTER_MAX_BACKUPS",
        "FLASHMASTER_VERBOSE",
    ):
        monkeypatch.delenv(key, raising=False)
    return home
