"""
linkstate_core.keys
-------------------
Logical key-material types and the fixed namespace each one is stored under.

Value shapes per type:
- pre-key                 {"public": bytes, "private": bytes}
- session, sender-key     bytes
- app-state-sync-key      AppStateSyncKeyData (stored as a plain mapping)
- app-state-sync-version  mapping (version + hash state)
- sender-key-memory       mapping jid -> bool
"""

from __future__ import annotations
from dataclasses import asdict, dataclass, field, is_dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from .errors import UnknownKeyType


class KeyType(str, Enum):
    PRE_KEY = "pre-key"
    SESSION = "session"
    SENDER_KEY = "sender-key"
    APP_STATE_SYNC_KEY = "app-state-sync-key"
    APP_STATE_SYNC_VERSION = "app-state-sync-version"
    SENDER_KEY_MEMORY = "sender-key-memory"


KEY_MAP: Dict[KeyType, str] = {
    KeyType.PRE_KEY: "preKeys",
    KeyType.SESSION: "sessions",
    KeyType.SENDER_KEY: "senderKeys",
    KeyType.APP_STATE_SYNC_KEY: "appStateSyncKeys",
    KeyType.APP_STATE_SYNC_VERSION: "appStateVersions",
    KeyType.SENDER_KEY_MEMORY: "senderKeyMemory",
}


def resolve_key_type(key_type: Any) -> KeyType:
    try:
        return KeyType(key_type)
    except ValueError:
        raise UnknownKeyType(key_type) from None


@dataclass
class AppStateSyncKeyFingerprint:
    raw_id: Optional[int] = None
    current_index: Optional[int] = None
    device_indexes: List[int] = field(default_factory=list)

    @classmethod
    def from_object(cls, obj: Any) -> "AppStateSyncKeyFingerprint":
        if isinstance(obj, cls):
            return obj
        obj = obj or {}
        return cls(
            raw_id=_pick(obj, "raw_id", "rawId"),
            current_index=_pick(obj, "current_index", "currentIndex"),
            device_indexes=list(_pick(obj, "device_indexes", "deviceIndexes") or []),
        )


@dataclass
class AppStateSyncKeyData:
    """
    Structured form of an app-state sync key.

    Stored as a plain mapping so the codec can persist it; ``get`` hands the
    session this materialized form. Accepts both snake_case and the camelCase
    field names used by other clients.
    """
    key_data: Optional[bytes] = None
    fingerprint: Optional[AppStateSyncKeyFingerprint] = None
    timestamp: Optional[int] = None

    @classmethod
    def from_object(cls, obj: Any) -> "AppStateSyncKeyData":
        if isinstance(obj, cls):
            return obj
        if not isinstance(obj, Mapping):
            raise TypeError(f"cannot build AppStateSyncKeyData from {type(obj).__name__}")
        fpr = _pick(obj, "fingerprint")
        return cls(
            key_data=_pick(obj, "key_data", "keyData"),
            fingerprint=AppStateSyncKeyFingerprint.from_object(fpr) if fpr is not None else None,
            timestamp=_pick(obj, "timestamp"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _pick(obj: Mapping[str, Any], *names: str) -> Any:
    for n in names:
        if n in obj:
            return obj[n]
    return None


def to_storable(value: Any) -> Any:
    """Normalize a value handed to ``set`` into codec-friendly data."""
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    return value


def materialize(key_type: KeyType, value: Any) -> Any:
    if key_type is KeyType.APP_STATE_SYNC_KEY:
        return AppStateSyncKeyData.from_object(value)
    return value
