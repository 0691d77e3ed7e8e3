"""
linkstate_core.auth_state
-------------------------
Live auth state for one identity key: the credential record plus the
namespaced key-material store, persisted as a single blob through a
StorageProvider.

Every ``keys.set`` writes the whole blob before returning, so a completed
``set`` survives a restart. Writes are not batched.
"""

from __future__ import annotations
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from . import codec
from .creds import AuthenticationCreds
from .crypto import init_auth_creds
from .errors import DecodeError
from .keys import KEY_MAP, materialize, resolve_key_type, to_storable
from .logger import get_logger
from .storage.provider import StorageProvider

log = get_logger("LinkState.AuthState")

KeyBatch = Mapping[str, Mapping[str, Any]]


class KeyMaterialStore:
    """
    Handle the session uses to read and write key material.

    get: only ids present in the type's namespace are returned, missing ids
         are omitted (no error, no placeholder).
    set: merge-only per namespace; a None value removes that id. Triggers a
         full save of the owning manager's state.
    """

    def __init__(self, manager: "AuthStateManager", data: Optional[Dict[str, Dict[str, Any]]] = None):
        self._manager = manager
        self._data: Dict[str, Dict[str, Any]] = data if data is not None else {}

    @property
    def data(self) -> Dict[str, Dict[str, Any]]:
        return self._data

    def get(self, key_type: str, ids: Iterable[str]) -> Dict[str, Any]:
        kt = resolve_key_type(key_type)
        with self._manager.lock:
            bucket = self._data.get(KEY_MAP[kt], {})
            found = {}
            for id_ in ids:
                value = bucket.get(id_)
                if value is not None:
                    found[id_] = materialize(kt, value)
            return found

    def set(self, batch: KeyBatch) -> None:
        # resolve every type first so a bad batch changes nothing
        resolved = [(KEY_MAP[resolve_key_type(t)], entries) for t, entries in batch.items()]

        with self._manager.lock:
            for namespace, entries in resolved:
                bucket = self._data.setdefault(namespace, {})
                for id_, value in entries.items():
                    if value is None:
                        bucket.pop(id_, None)
                    else:
                        bucket[id_] = to_storable(value)
            self._manager.save_state()


@dataclass
class AuthenticationState:
    creds: AuthenticationCreds
    keys: KeyMaterialStore


class AuthStateManager:
    """
    Owns the persisted state of one identity key.

    Use ``AuthStateManager.load(...)`` to bootstrap: a stored, decodable blob
    is restored; an absent or corrupt one falls back to ``init_creds()`` with
    an empty key store. The corrupt case is logged and the old blob is left in
    place until the next save overwrites it.

    Not re-entrant across processes: one live manager per identity key.
    """

    def __init__(
        self,
        identity_key: str,
        provider: StorageProvider,
        creds: AuthenticationCreds,
        keys: Optional[Dict[str, Dict[str, Any]]] = None,
    ):
        self.identity_key = identity_key
        self.provider = provider
        self.lock = threading.RLock()
        self.creds = creds
        self.keys = KeyMaterialStore(self, keys)

    @classmethod
    def load(
        cls,
        identity_key: str,
        provider: StorageProvider,
        init_creds: Callable[[], AuthenticationCreds] = init_auth_creds,
    ) -> "AuthStateManager":
        blob = provider.load(identity_key)
        if blob is not None:
            try:
                creds, keys = cls._split_blob(blob)
                log.info(f"[AUTH] restored state identity={identity_key} namespaces={len(keys)}")
                return cls(identity_key, provider, creds, keys)
            except DecodeError as e:
                log.warning(f"[AUTH] stored state unreadable identity={identity_key}, starting fresh: {e}")
        else:
            log.info(f"[AUTH] no stored state identity={identity_key}, starting fresh")

        return cls(identity_key, provider, init_creds(), {})

    @staticmethod
    def _split_blob(blob: str):
        parsed = codec.decode(blob)
        try:
            creds = AuthenticationCreds.from_dict(parsed["creds"])
            keys = parsed.get("keys") or {}
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise DecodeError(f"state blob has unexpected shape: {e}") from e
        if not isinstance(keys, dict) or not all(isinstance(v, dict) for v in keys.values()):
            raise DecodeError("state blob key store is not a namespace mapping")
        return creds, keys

    @property
    def state(self) -> AuthenticationState:
        return AuthenticationState(creds=self.creds, keys=self.keys)

    def replace_creds(self, creds: AuthenticationCreds) -> None:
        if not isinstance(creds, AuthenticationCreds):
            raise TypeError(f"expected AuthenticationCreds, got {type(creds).__name__}")
        with self.lock:
            self.creds = creds

    def serialize(self) -> str:
        with self.lock:
            return codec.encode({"creds": self.creds.to_dict(), "keys": self.keys.data})

    def save_state(self) -> None:
        with self.lock:
            self.provider.store(self.identity_key, self.serialize())
        log.debug(f"[AUTH] saved state identity={self.identity_key}")

    def clear_state(self) -> None:
        # in-memory state is left alone; the caller discards this manager
        with self.lock:
            self.provider.delete(self.identity_key)
        log.info(f"[AUTH] cleared stored state identity={self.identity_key}")
