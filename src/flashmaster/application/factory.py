"""
Repository Factory
Centralizes the logic for selecting the storage backend.
"""

import logging

from flashmaster.application.config import AppConfig
from flashmaster.domain.constants import STORE_FILE_NAME
from flashmaster.domain.ports import Repository
from flashmaster.infrastructure.adapters.json_store import JsonStore
from flashmaster.infrastructure.adapters.memory_repository import MemoryRepository

logger = logging.getLogger(__name__)


async def get_repository(config: AppConfig) -> Repository:
    """
    Returns the Repository implementation selected by config.backend.
    """
    if config.backend == "memory":
        logger.debug("Backend: memory")
        return MemoryRepository()

    store_path = config.store_path or config.data_dir / STORE_FILE_NAME
    logger.debug(f"Backend: json ({store_path})")
    return await JsonStore.open(
        store_path,
        backups_dir=config.backups_dir,
        max_backups=config.max_backups,
    )
