# Infrastructure Repository Adapters Package
from .json_store import JsonStore
from .memory_repository import MemoryRepository

__all__ = ["JsonStore", "MemoryRepository"]
