from skillchain.config import Settings
from skillchain.storage.base import Storage
from skillchain.storage.memory import MemoryStorage
from skillchain.storage.sql import SQLStorage


def create_storage(settings: Settings) -> Storage:
    """Select the storage backend named by STORAGE_BACKEND."""
    backend = settings.STORAGE_BACKEND.strip().lower()
    if backend == "memory":
        return MemoryStorage()
    if backend == "sql":
        return SQLStorage()
    raise ValueError(f"Unknown STORAGE_BACKEND: {settings.STORAGE_BACKEND}")


__all__ = ["Storage", "MemoryStorage", "SQLStorage", "create_storage"]
