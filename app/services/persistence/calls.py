"""Call session persistence service."""
import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, case, func, desc
from sqlalchemy.exc import SQLAlchemyError

from app.core.errors import StorageError
from app.db.models import CallSession, utcnow
from app.services.call_session.state import CallStatus, sources_for, TERMINAL_STATUSES

logger = logging.getLogger(__name__)


class CallSessionStore:
    """Service for persisting call session data."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_session(self, session: CallSession) -> CallSession:
        """Insert a new call session record."""
        now = utcnow()
        session.created_at = session.created_at or now
        session.updated_at = session.updated_at or session.created_at
        session.started_at = session.started_at or session.created_at
        try:
            self.db.add(session)
            await self.db.commit()
            await self.db.refresh(session)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"[STORE] Failed to create session {session.id}: {e}", exc_info=True)
            raise StorageError(f"Failed to create call session: {e}") from e
        return session

    async def get_session(self, session_id: str) -> Optional[CallSession]:
        """Get a call session by id."""
        try:
            result = await self.db.execute(
                select(CallSession)
                .where(CallSession.id == session_id)
                .execution_options(populate_existing=True)
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError(f"Failed to read call session: {e}") from e
        return result.scalar_one_or_none()

    async def get_session_for_owner(self, owner_id: str, session_id: str) -> Optional[CallSession]:
        """Get a call session by id, only if it belongs to owner_id."""
        try:
            result = await self.db.execute(
                select(CallSession)
                .where(CallSession.id == session_id, CallSession.owner_id == owner_id)
                .execution_options(populate_existing=True)
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError(f"Failed to read call session: {e}") from e
        return result.scalar_one_or_none()

    async def list_sessions_for_owner(
        self, owner_id: str, limit: int, offset: int
    ) -> List[CallSession]:
        """List an owner's sessions, newest first."""
        try:
            result = await self.db.execute(
                select(CallSession)
                .where(CallSession.owner_id == owner_id)
                .order_by(desc(CallSession.created_at), desc(CallSession.id))
                .limit(limit)
                .offset(offset)
                .execution_options(populate_existing=True)
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError(f"Failed to list call sessions: {e}") from e
        return list(result.scalars().all())

    async def count_sessions_for_owner(self, owner_id: str) -> int:
        """Count an owner's sessions."""
        try:
            result = await self.db.execute(
                select(func.count()).select_from(CallSession).where(CallSession.owner_id == owner_id)
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError(f"Failed to count call sessions: {e}") from e
        return int(result.scalar_one())

    async def apply_update(
        self,
        session_id: str,
        *,
        status: Optional[CallStatus] = None,
        ended_at: Optional[datetime] = None,
        duration_seconds: Optional[int] = None,
        provider_call_id: Optional[str] = None,
        provider_control_id: Optional[str] = None,
        recording_ref: Optional[str] = None,
        transcript: Optional[str] = None,
        insights: Optional[str] = None,
    ) -> Optional[CallSession]:
        """
        Apply one atomic, idempotent update to a session.

        The status only moves if the stored status is a valid source for the
        requested one, so redelivered or racing events cannot regress it.
        ended_at/duration_seconds are written under the same guard and only
        for terminal targets. Provider identifiers are set once and never
        overwritten. Artifact fields are last-write-wins in every state.

        Args:
            session_id: Session to update

        Returns:
            The refreshed session, or None if no such session exists
        """
        values = {"updated_at": utcnow()}

        if status is not None:
            status = CallStatus(status)
            sources = [s.value for s in sources_for(status)]
            guard = CallSession.status.in_(sources)
            values["status"] = case((guard, status.value), else_=CallSession.status)
            if status in TERMINAL_STATUSES:
                values["ended_at"] = case(
                    (guard, ended_at or utcnow()), else_=CallSession.ended_at
                )
                values["duration_seconds"] = case(
                    (guard, duration_seconds or 0), else_=CallSession.duration_seconds
                )

        if provider_call_id:
            values["provider_call_id"] = func.coalesce(
                CallSession.provider_call_id, provider_call_id
            )
        if provider_control_id:
            values["provider_control_id"] = func.coalesce(
                CallSession.provider_control_id, provider_control_id
            )

        if recording_ref is not None:
            values["recording_ref"] = recording_ref
        if transcript is not None:
            values["transcript"] = transcript
        if insights is not None:
            values["insights"] = insights

        try:
            result = await self.db.execute(
                update(CallSession)
                .where(CallSession.id == session_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"[STORE] Failed to update session {session_id}: {e}", exc_info=True)
            raise StorageError(f"Failed to update call session: {e}") from e

        if result.rowcount == 0:
            return None

        return await self.get_session(session_id)
