# linkstate_core/session/__init__.py
import importlib
import os
from linkstate_core.session.events import EventBus
from linkstate_core.session.session_base import BaseSession, LocalSession


def load_session_factory(target: str | None = None):
    """
    Resolve the session constructor from "package.module:attr".

    Falls back to LINKSTATE_SESSION_FACTORY, then to the in-process
    LocalSession when neither is set.
    """
    target = target or os.getenv("LINKSTATE_SESSION_FACTORY", "")
    if not target:
        return LocalSession

    module_name, _, attr = target.partition(":")
    if not attr:
        raise ValueError(f"Session factory must look like 'module:attr', got {target!r}")
    module = importlib.import_module(module_name)
    return getattr(module, attr)


__all__ = ["EventBus", "BaseSession", "LocalSession", "load_session_factory"]
