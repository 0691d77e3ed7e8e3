"""
linkstate_core.errors
---------------------
Error taxonomy shared across the codec, storage, key store and lifecycle code.

- DecodeError: a persisted blob could not be parsed. Recovered at bootstrap only.
- PersistenceUnavailable: the backing store failed on load/store/delete. Always surfaced.
- UnknownKeyType: a get/set referenced a key type outside the namespace map.
- SessionClosedError: how a session reports the reason it closed.
"""

from __future__ import annotations
from typing import Any, Optional


class LinkStateError(Exception):
    pass


class DecodeError(LinkStateError, ValueError):
    pass


class PersistenceUnavailable(LinkStateError):
    def __init__(self, op: str, identity_key: str, backend: str = ""):
        self.op = op
        self.identity_key = identity_key
        self.backend = backend
        super().__init__(f"{backend or 'storage'} {op} failed for {identity_key!r}")


class UnknownKeyType(LinkStateError, KeyError):
    def __init__(self, key_type: Any):
        self.key_type = key_type
        super().__init__(key_type)

    def __str__(self) -> str:
        return f"unknown key type: {self.key_type!r}"


class SessionClosedError(LinkStateError):
    """Close reason carried by a session's ``connection.update`` event."""

    def __init__(self, message: str = "connection closed", status_code: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.data = data
