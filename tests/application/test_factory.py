import pytest

from flashmaster.application.config import resolve_config
from flashmaster.application.factory import get_repository
from flashmaster.infrastructure.adapters.json_store import JsonStore
from flashmaster.infrastructure.adapters.memory_repository import MemoryRepository


@pytest.mark.asyncio
async def test_memory_backend(mock_home):
    repo = await get_repository(resolve_config({"backend": "memory"}))

    assert isinstance(repo, MemoryRepository)
    assert not (mock_home / ".local").exists()


@pytest.mark.asyncio
async def test_json_backend_opens_configured_store(mock_home, store_path):
    config = resolve_config({"store_path": store_path, "max_backups": 2})

    repo = await get_repository(config)

    assert isinstance(repo, JsonStore)
    assert repo.path == store_path.resolve()
    assert repo.max_backups == 2
    assert store_path.exists()
    assert (store_path.parent / "backups").is_dir()
    await repo.close()
