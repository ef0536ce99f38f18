"""Module-level access to the application-wide SessionManager.

The manager is created in the server lifespan and published here so that
tool handlers can reach it without threading it through every call. A
module-level variable is used rather than a ContextVar because the manager
is a process-wide singleton that HTTP request handlers must also see.

Usage:
    # In server.py lifespan:
    set_session_manager(manager)

    # In tools or helpers:
    manager = get_session_manager()
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .sessions.manager import SessionManager

_session_manager: "SessionManager | None" = None


def set_session_manager(manager: "SessionManager | None") -> None:
    """Publish (or clear, with None) the session manager."""
    global _session_manager
    _session_manager = manager


def get_session_manager() -> "SessionManager":
    """Get the session manager.

    Raises:
        RuntimeError: If the server lifespan has not initialized it
    """
    if _session_manager is None:
        raise RuntimeError("Session manager not initialized")
    return _session_manager
