"""Owner-scoped reads over call sessions."""
from typing import Any

from app.core.errors import NotFound
from app.db.models import CallSession
from app.services.call_session.models import SessionPage
from app.services.persistence.calls import CallSessionStore

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def coerce_non_negative(value: Any, default: int) -> int:
    """Parse a caller-supplied integer, falling back to default and clamping at 0."""
    if value is None or value == "":
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return max(parsed, 0)


class CallSessionQueries:
    """Point and list lookups, always scoped to the owning caller."""

    def __init__(self, store: CallSessionStore):
        self.store = store

    async def get(self, owner_id: str, session_id: str) -> CallSession:
        """Raises NotFound for missing sessions and sessions owned by someone else."""
        session = await self.store.get_session_for_owner(owner_id, session_id)
        if session is None:
            raise NotFound(f"Call session not found: {session_id}")
        return session

    async def list(self, owner_id: str, limit: Any = None, offset: Any = None) -> SessionPage:
        limit = min(coerce_non_negative(limit, DEFAULT_PAGE_SIZE), MAX_PAGE_SIZE)
        offset = coerce_non_negative(offset, 0)

        items = await self.store.list_sessions_for_owner(owner_id, limit, offset)
        total = await self.store.count_sessions_for_owner(owner_id)
        return SessionPage(items=items, total=total, limit=limit, offset=offset)
