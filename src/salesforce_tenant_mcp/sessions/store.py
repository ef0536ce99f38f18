"""In-memory session store.

Owned by a single :class:`~salesforce_tenant_mcp.sessions.manager.SessionManager`,
which is the only writer. Reads return the stored (immutable) session
directly, so a reader always sees either the previous or the next session,
never a partially applied one.
"""

from __future__ import annotations

from ..errors import NotRegisteredError
from .models import Session, TenantId


class SessionStore:
    """Mapping of tenant id to its current :class:`Session`."""

    def __init__(self) -> None:
        self._sessions: dict[TenantId, Session] = {}

    def get(self, tenant_id: TenantId) -> Session:
        """Return the current session.

        Raises:
            NotRegisteredError: If the tenant has no session
        """
        session = self._sessions.get(tenant_id)
        if session is None:
            raise NotRegisteredError(tenant_id)
        return session

    def put(self, session: Session) -> None:
        """Replace the tenant's session in one assignment."""
        self._sessions[session.tenant_id] = session

    def tenant_ids(self) -> list[TenantId]:
        return sorted(self._sessions)

    def clear(self) -> None:
        self._sessions.clear()

    def __contains__(self, tenant_id: object) -> bool:
        return tenant_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
