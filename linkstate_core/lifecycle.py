"""
linkstate_core.lifecycle
------------------------
Connection lifecycle handling for one running session pipeline.

The controller consumes ConnectionEvent values (credential updates and
connection-state changes), saves credentials when the session reports a
change, and on close decides between:

    status != logged_out                    -> reconnect (rebuild pipeline)
    status == logged_out, device removed    -> purge stored state, stop
    status == logged_out, device not removed-> stop

A close reason that cannot be read is treated as "not logged out", so the
session reconnects rather than staying down.
"""

from __future__ import annotations
import os
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Callable, Deque, Mapping, Optional, Union

from .auth_state import AuthStateManager
from .creds import AuthenticationCreds
from .logger import get_logger
from .session.events import CONNECTION_UPDATE, CREDS_UPDATE

log = get_logger("LinkState.Lifecycle")

DEVICE_REMOVED = "device_removed"


class DisconnectReason(IntEnum):
    CONNECTION_CLOSED = 428
    CONNECTION_LOST = 408
    TIMED_OUT = 408
    CONNECTION_REPLACED = 440
    LOGGED_OUT = 401
    BAD_SESSION = 500
    RESTART_REQUIRED = 515
    MULTIDEVICE_MISMATCH = 411
    FORBIDDEN = 403
    UNAVAILABLE_SERVICE = 503


class DisconnectDecision(str, Enum):
    RECONNECT = "reconnect"
    TERMINATE = "terminate"
    TERMINATE_AND_PURGE = "terminate_and_purge"


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "close"


_ALLOWED = {
    ConnectionState.CONNECTING: {ConnectionState.OPEN, ConnectionState.CLOSED},
    ConnectionState.OPEN: {ConnectionState.CLOSED},
    ConnectionState.CLOSED: set(),
}


# ---------------------------------------------------------------------------
# Close classification
# ---------------------------------------------------------------------------

def _field(obj: Any, *names: str) -> Any:
    if obj is None:
        return None
    for n in names:
        if isinstance(obj, Mapping):
            if n in obj:
                return obj[n]
        else:
            v = getattr(obj, n, None)
            if v is not None:
                return v
    return None


def extract_status_code(reason: Any) -> Optional[int]:
    output = _field(reason, "output")
    raw = _field(output, "status_code", "statusCode")
    if raw is None:
        raw = _field(reason, "status_code", "statusCode")
    if raw is None or isinstance(raw, bool):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def is_device_removed(reason: Any) -> bool:
    content = _field(_field(reason, "data"), "content")
    if not isinstance(content, (list, tuple)):
        return False
    return any(_field(_field(node, "attrs"), "type") == DEVICE_REMOVED for node in content)


@dataclass(frozen=True)
class CloseClassification:
    status_code: Optional[int]
    device_removed: bool
    decision: DisconnectDecision


def classify_disconnect(reason: Any) -> CloseClassification:
    try:
        status = extract_status_code(reason)
        removed = is_device_removed(reason)
    except Exception:
        # a close payload must never stop the reconnect path
        log.exception("[CONN] unreadable close reason, treating as transient")
        return CloseClassification(None, False, DisconnectDecision.RECONNECT)

    if status != DisconnectReason.LOGGED_OUT:
        decision = DisconnectDecision.RECONNECT
    elif removed:
        decision = DisconnectDecision.TERMINATE_AND_PURGE
    else:
        decision = DisconnectDecision.TERMINATE
    return CloseClassification(status, removed, decision)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CredentialsUpdated:
    creds: Optional[AuthenticationCreds] = None


@dataclass(frozen=True)
class ConnectionUpdate:
    state: ConnectionState
    close_reason: Any = None

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["ConnectionUpdate"]:
        """Parse a ``connection.update`` payload; None when it carries no state."""
        connection = _field(payload, "connection")
        if connection is None:
            return None
        try:
            state = ConnectionState(connection)
        except ValueError:
            log.warning(f"[CONN] unknown connection state {connection!r}")
            return None
        last = _field(payload, "last_disconnect", "lastDisconnect")
        return cls(state=state, close_reason=_field(last, "error"))


ConnectionEvent = Union[CredentialsUpdated, ConnectionUpdate]


def _as_creds(payload: Any) -> AuthenticationCreds:
    """Full credential record from a creds.update payload; partial updates are rejected."""
    if isinstance(payload, AuthenticationCreds):
        return payload
    if isinstance(payload, Mapping):
        try:
            return AuthenticationCreds.from_dict(payload)
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise TypeError(f"creds.update payload is not a full credential record: {e!r}") from e
    raise TypeError(f"unsupported creds.update payload: {type(payload).__name__}")


# ---------------------------------------------------------------------------
# Reconnect pacing
# ---------------------------------------------------------------------------

@dataclass
class ReconnectBackoff:
    """
    Delay before each reconnect attempt. base_delay=0 reconnects immediately
    with no cap on attempts; otherwise the delay grows by ``factor`` per
    consecutive attempt up to ``max_delay``. ``reset`` on a successful open.
    """
    base_delay: float = 0.0
    max_delay: float = 30.0
    factor: float = 2.0
    attempts: int = field(default=0, init=False)

    def next_delay(self) -> float:
        self.attempts += 1
        if self.base_delay <= 0:
            return 0.0
        return min(self.max_delay, self.base_delay * self.factor ** (self.attempts - 1))

    def reset(self) -> None:
        self.attempts = 0

    @classmethod
    def from_env(cls, config: dict | None = None) -> "ReconnectBackoff":
        config = config or {}
        if "reconnect_base_delay" in config:
            base = config["reconnect_base_delay"]
        else:
            base = os.getenv("LINKSTATE_RECONNECT_BASE_DELAY", "0")
        if "reconnect_max_delay" in config:
            cap = config["reconnect_max_delay"]
        else:
            cap = os.getenv("LINKSTATE_RECONNECT_MAX_DELAY", "30")
        return cls(base_delay=float(base), max_delay=float(cap))


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------

class ConnectionLifecycleController:
    """
    State machine over one session's connection:

        CONNECTING -> OPEN, CONNECTING -> CLOSED, OPEN -> CLOSED

    CLOSED is terminal for the controller; a reconnect builds a new pipeline
    with its own controller. Events are queued and drained in order on the
    submitting thread, so an event raised while handling another one waits
    its turn instead of nesting.
    """

    def __init__(
        self,
        auth: AuthStateManager,
        restart: Callable[[], Any],
        on_open: Optional[Callable[[], Any]] = None,
    ):
        self.auth = auth
        self.restart = restart
        self.on_open = on_open
        self.state = ConnectionState.CONNECTING
        self.last_close: Optional[CloseClassification] = None
        self._queue: Deque[ConnectionEvent] = deque()
        self._draining = False

    def attach(self, session) -> None:
        session.ev.on(CREDS_UPDATE, lambda creds: self.submit(CredentialsUpdated(creds)))
        session.ev.on(CONNECTION_UPDATE, self._on_connection_update)

    def _on_connection_update(self, payload: Any) -> None:
        event = ConnectionUpdate.from_payload(payload)
        if event is not None:
            self.submit(event)

    def submit(self, event: ConnectionEvent) -> None:
        self._queue.append(event)
        if self._draining:
            return
        self._draining = True
        try:
            while self._queue:
                self.handle(self._queue.popleft())
        finally:
            self._draining = False

    def handle(self, event: ConnectionEvent) -> Optional[DisconnectDecision]:
        if isinstance(event, CredentialsUpdated):
            if event.creds is not None:
                self.auth.replace_creds(_as_creds(event.creds))
            self.auth.save_state()
            return None

        if isinstance(event, ConnectionUpdate):
            return self._transition(event)

        raise TypeError(f"unsupported lifecycle event: {type(event).__name__}")

    def _transition(self, event: ConnectionUpdate) -> Optional[DisconnectDecision]:
        if event.state is ConnectionState.CONNECTING and self.state is ConnectionState.CONNECTING:
            return None
        if event.state not in _ALLOWED[self.state]:
            log.warning(f"[CONN] ignoring transition {self.state.value} -> {event.state.value}")
            return None

        self.state = event.state

        if event.state is ConnectionState.OPEN:
            log.info(f"[CONN] connection ready identity={self.auth.identity_key}")
            if self.on_open:
                self.on_open()
            return None

        cls = classify_disconnect(event.close_reason)
        self.last_close = cls
        log.info(
            f"[CONN] closed identity={self.auth.identity_key} "
            f"status={cls.status_code} device_removed={cls.device_removed} decision={cls.decision.value}"
        )

        if cls.decision is DisconnectDecision.TERMINATE_AND_PURGE:
            self.auth.clear_state()
        elif cls.decision is DisconnectDecision.RECONNECT:
            self.restart()
        return cls.decision


def sleep_for(backoff: ReconnectBackoff, sleep: Callable[[float], Any] = time.sleep) -> float:
    delay = backoff.next_delay()
    if delay > 0:
        log.info(f"[CONN] reconnect attempt={backoff.attempts} in {delay:.2f}s")
        sleep(delay)
    return delay
