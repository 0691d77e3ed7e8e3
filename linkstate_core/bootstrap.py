"""
linkstate_core.bootstrap
------------------------
Composes the pipeline for one identity key:

    StorageProvider -> AuthStateManager -> session -> ConnectionLifecycleController

and rebuilds all of it when the controller asks for a reconnect.
"""

from __future__ import annotations
import os
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .auth_state import AuthStateManager
from .creds import AuthenticationCreds
from .crypto import init_auth_creds
from .lifecycle import ConnectionLifecycleController, ReconnectBackoff, sleep_for
from .logger import get_logger
from .session import load_session_factory
from .storage import load_storage_provider
from .storage.provider import StorageProvider

log = get_logger("LinkState.Bootstrap")


@dataclass
class Pipeline:
    auth: AuthStateManager
    session: Any
    controller: ConnectionLifecycleController


class SessionRunner:
    """
    Owns the restart loop for one identity key.

    ``start`` bootstraps auth state, builds the session with the creds and key
    handle, wires the lifecycle controller and connects. ``restart`` tears the
    current session down and launches a new one. A close reported while a
    launch is in progress (e.g. from inside ``connect``) only marks a retry as
    pending; the active loop picks it up, so retries never nest. Reconnects
    are not cancellable once begun.
    """

    def __init__(
        self,
        identity_key: str,
        provider: StorageProvider,
        session_factory: Callable[..., Any],
        init_creds: Callable[[], AuthenticationCreds] = init_auth_creds,
        backoff: Optional[ReconnectBackoff] = None,
        sleep: Callable[[float], Any] = time.sleep,
        on_open: Optional[Callable[[Pipeline], Any]] = None,
    ):
        self.identity_key = identity_key
        self.provider = provider
        self.session_factory = session_factory
        self.init_creds = init_creds
        self.backoff = backoff or ReconnectBackoff()
        self.sleep = sleep
        self.on_open = on_open
        self.current: Optional[Pipeline] = None
        self.generation = 0
        self._running = False
        self._pending = False

    def start(self) -> Pipeline:
        return self._run(restart=False)

    def restart(self) -> Optional[Pipeline]:
        # called from inside a controller's close handling; while the run
        # loop is active just flag it so retries never nest on the stack
        if self._running:
            self._pending = True
            return None
        return self._run(restart=True)

    def _run(self, restart: bool) -> Pipeline:
        self._running = True
        self._pending = restart
        try:
            if not restart:
                self._launch()
            while self._pending:
                self._pending = False
                if self.current is not None:
                    self.current.session.end()
                sleep_for(self.backoff, self.sleep)
                self._launch()
        finally:
            self._running = False
        return self.current

    def _launch(self) -> Pipeline:
        auth = AuthStateManager.load(self.identity_key, self.provider, self.init_creds)
        session = self.session_factory(creds=auth.creds, keys=auth.keys)
        controller = ConnectionLifecycleController(auth, restart=self.restart, on_open=self._opened)
        controller.attach(session)

        pipeline = Pipeline(auth=auth, session=session, controller=controller)
        self.current = pipeline
        self.generation += 1
        log.info(f"[BOOT] starting session identity={self.identity_key} generation={self.generation}")

        session.connect()
        return pipeline

    def _opened(self) -> None:
        self.backoff.reset()
        if self.on_open and self.current is not None:
            self.on_open(self.current)


def runner_from_env(identity_key: Optional[str] = None, config: dict | None = None) -> SessionRunner:
    config = config or {}
    return SessionRunner(
        identity_key=identity_key or os.getenv("LINKSTATE_IDENTITY_KEY", "linkstate"),
        provider=load_storage_provider(config),
        session_factory=load_session_factory(config.get("session_factory")),
        backoff=ReconnectBackoff.from_env(config),
    )
