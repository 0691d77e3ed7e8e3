"""
LinkState Core Package
======================
Durable auth state and reconnect lifecycle for long-lived multi-device
messaging sessions.

Provides:
- Buffer-aware JSON codec for persisted state
- Namespaced key-material store with merge-only writes
- Pluggable persistence (memory, SQLite, Redis)
- Connection lifecycle controller (reconnect / terminate / purge)
"""

from .auth_state import AuthenticationState, AuthStateManager, KeyMaterialStore
from .bootstrap import Pipeline, SessionRunner, runner_from_env
from .creds import AuthenticationCreds, KeyPair, SignedKeyPair
from .crypto import init_auth_creds
from .errors import DecodeError, LinkStateError, PersistenceUnavailable, SessionClosedError, UnknownKeyType
from .keys import KEY_MAP, AppStateSyncKeyData, KeyType
from .lifecycle import (
    ConnectionLifecycleController,
    ConnectionState,
    DisconnectDecision,
    DisconnectReason,
    ReconnectBackoff,
    classify_disconnect,
)

__all__ = [
    "AuthenticationState",
    "AuthStateManager",
    "KeyMaterialStore",
    "Pipeline",
    "SessionRunner",
    "runner_from_env",
    "AuthenticationCreds",
    "KeyPair",
    "SignedKeyPair",
    "init_auth_creds",
    "DecodeError",
    "LinkStateError",
    "PersistenceUnavailable",
    "SessionClosedError",
    "UnknownKeyType",
    "KEY_MAP",
    "AppStateSyncKeyData",
    "KeyType",
    "ConnectionLifecycleController",
    "ConnectionState",
    "DisconnectDecision",
    "DisconnectReason",
    "ReconnectBackoff",
    "classify_disconnect",
]
