# linkstate_core/storage/providers/redis_provider.py
from __future__ import annotations
from typing import Optional
import os
import redis
from linkstate_core.errors import PersistenceUnavailable
from linkstate_core.logger import get_logger
from linkstate_core.storage.provider import StorageProvider

log = get_logger("LinkState.Storage.Redis")


class RedisStorage(StorageProvider):
    """
    Redis-backed auth state storage. One string value per identity key.

    The client can be injected (tests, shared connection pools); otherwise one
    is built from ``url`` or LINKSTATE_REDIS_URL (default redis://localhost:6379).
    An optional ``prefix`` namespaces keys when the database is shared.
    """

    name = "redis"

    def __init__(self, url: Optional[str] = None, client=None, prefix: str = ""):
        self.prefix = prefix
        if client is not None:
            self._client = client
            return

        url = url or os.getenv("LINKSTATE_REDIS_URL", "redis://localhost:6379")
        self._client = redis.Redis.from_url(url, decode_responses=True)
        try:
            self._client.ping()
        except redis.RedisError:
            log.warning(f"[REDIS] connection failed at init url={url}, will retry on use")

    def _key(self, identity_key: str) -> str:
        return f"{self.prefix}{identity_key}"

    def load(self, identity_key: str) -> Optional[str]:
        try:
            raw = self._client.get(self._key(identity_key))
        except redis.RedisError as e:
            raise PersistenceUnavailable("load", identity_key, self.name) from e
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return raw

    def store(self, identity_key: str, blob: str) -> None:
        try:
            self._client.set(self._key(identity_key), blob)
        except redis.RedisError as e:
            raise PersistenceUnavailable("store", identity_key, self.name) from e

    def delete(self, identity_key: str) -> None:
        try:
            self._client.delete(self._key(identity_key))
        except redis.RedisError as e:
            raise PersistenceUnavailable("delete", identity_key, self.name) from e

    def close(self) -> None:
        self._client.close()
