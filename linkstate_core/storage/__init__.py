# linkstate_core/storage/__init__.py

from .provider import StorageProvider
from .providers.memory_provider import InMemoryStorage
from .providers.sqlite_provider import SQLiteStorage
from .providers.redis_provider import RedisStorage
import os


def load_storage_provider(config: dict | None = None) -> StorageProvider:
    """
    Factory resolver for selecting the auth state backend.

        - sqlite (default)
        - memory
        - redis
    """
    config = config or {}
    provider = config.get("provider") or os.getenv("LINKSTATE_STORAGE_PROVIDER", "sqlite")

    if provider == "memory":
        return InMemoryStorage()

    if provider == "sqlite":
        db_path = config.get("sqlite_path") or os.getenv("LINKSTATE_DB_PATH", "db/linkstate.db")
        return SQLiteStorage(db_path)

    if provider == "redis":
        return RedisStorage(
            url=config.get("redis_url") or os.getenv("LINKSTATE_REDIS_URL"),
            client=config.get("redis_client"),
            prefix=config.get("redis_prefix") or os.getenv("LINKSTATE_REDIS_PREFIX", ""),
        )

    raise ValueError(f"Unknown storage provider: {provider}")


__all__ = [
    "StorageProvider",
    "InMemoryStorage",
    "SQLiteStorage",
    "RedisStorage",
    "load_storage_provider",
]
