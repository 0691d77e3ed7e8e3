# linkstate_core/session/events.py
from __future__ import annotations
from typing import Any, Callable, Dict, List
from linkstate_core.logger import get_logger

log = get_logger("LinkState.Session.Events")

Handler = Callable[[Any], Any]

CREDS_UPDATE = "creds.update"
CONNECTION_UPDATE = "connection.update"


class EventBus:
    """
    In-process pub/sub for session events.

    Handlers run synchronously on the emitting thread, in registration order.
    A handler that raises stops delivery of that event to later handlers and
    the error propagates to the emitter.
    """

    def __init__(self):
        self.handlers: Dict[str, List[Handler]] = {}

    def on(self, event: str, handler: Handler) -> None:
        self.handlers.setdefault(event, []).append(handler)

    def off(self, event: str, handler: Handler) -> None:
        hs = self.handlers.get(event, [])
        if handler in hs:
            hs.remove(handler)

    def emit(self, event: str, payload: Any = None) -> int:
        hs = list(self.handlers.get(event, []))
        log.debug(f"[EMIT] {event} handlers={len(hs)}")
        for h in hs:
            h(payload)
        return len(hs)

    def remove_all(self) -> None:
        self.handlers.clear()
