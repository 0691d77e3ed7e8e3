# linkstate_core/storage/provider.py
from __future__ import annotations
from typing import Optional


class StorageProvider:
    """
    Durable key-value backend for persisted auth state.

    One opaque blob (the codec's text form) per identity key. Keys are
    independent of each other and there are no cross-key transactions.

    - load: missing key -> None, never an error
    - store: overwrites whatever was there (last write wins)
    - delete: missing key is a no-op

    Backend failures surface as PersistenceUnavailable. Providers keep no
    in-memory cache of their own.
    """
    name: str = "base"

    def load(self, identity_key: str) -> Optional[str]:
        raise NotImplementedError

    def store(self, identity_key: str, blob: str) -> None:
        raise NotImplementedError

    def delete(self, identity_key: str) -> None:
        raise NotImplementedError

    def close(self) -> None:
        return
