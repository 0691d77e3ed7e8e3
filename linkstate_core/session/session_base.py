from __future__ import annotations
from typing import Any, Optional

from linkstate_core.auth_state import KeyMaterialStore
from linkstate_core.creds import AuthenticationCreds
from linkstate_core.errors import SessionClosedError
from linkstate_core.logger import get_logger
from linkstate_core.session.events import CONNECTION_UPDATE, CREDS_UPDATE, EventBus

log = get_logger("LinkState.Session")


class BaseSession:
    """
    Boundary to the messaging session engine.

    The engine is built with the credential record and the key-material
    handle, reads/writes key material through ``keys.get``/``keys.set`` and
    reports lifecycle on ``ev``:

      creds.update       payload: AuthenticationCreds or None (mutated in place)
      connection.update  payload: {"connection": "connecting"|"open"|"close",
                                   "last_disconnect": {"error": <close reason>}}
    """
    name: str = "base"

    def __init__(self, creds: AuthenticationCreds, keys: KeyMaterialStore):
        self.creds = creds
        self.keys = keys
        self.ev = EventBus()

    def connect(self) -> None:
        raise NotImplementedError

    def end(self, error: Optional[BaseException] = None) -> None:
        self.ev.remove_all()


class LocalSession(BaseSession):
    """
    In-process loopback session. Nothing goes over a wire; callers drive the
    lifecycle with the helpers below. Used for development and tests.
    """
    name = "local"

    def __init__(self, creds: AuthenticationCreds, keys: KeyMaterialStore):
        super().__init__(creds, keys)
        self.connected = False
        self.ended = False

    def connect(self) -> None:
        log.info("[LOCAL] connecting")
        self.ev.emit(CONNECTION_UPDATE, {"connection": "connecting"})

    def open(self) -> None:
        self.connected = True
        self.ev.emit(CONNECTION_UPDATE, {"connection": "open"})

    def close(self, status_code: Optional[int] = None, data: Any = None, message: str = "connection closed") -> None:
        self.connected = False
        err = SessionClosedError(message, status_code=status_code, data=data)
        self.ev.emit(CONNECTION_UPDATE, {"connection": "close", "last_disconnect": {"error": err}})

    def update_creds(self, creds: Optional[AuthenticationCreds] = None) -> None:
        if creds is not None:
            self.creds = creds
        self.ev.emit(CREDS_UPDATE, creds)

    def end(self, error: Optional[BaseException] = None) -> None:
        self.ended = True
        self.connected = False
        super().end(error)
