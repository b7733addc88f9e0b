"""Database models."""
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, DateTime, Text, Index
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how the columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class CallSession(Base):
    """One outbound AI call and its lifecycle."""

    __tablename__ = "call_sessions"

    id = Column(String(36), primary_key=True)
    owner_id = Column(String, nullable=False)
    phone_number = Column(String, nullable=False)
    assistant_id = Column(String, nullable=False)
    assistant_name = Column(String, nullable=True)
    status = Column(String, default="initiating", nullable=False)  # see services/call_session/state.py
    provider_call_id = Column(String, nullable=True, index=True)
    provider_control_id = Column(String, nullable=True)
    started_at = Column(DateTime, default=utcnow, nullable=False)
    ended_at = Column(DateTime, nullable=True)
    duration_seconds = Column(Integer, nullable=True)
    recording_ref = Column(Text, nullable=True)
    transcript = Column(Text, nullable=True)
    insights = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_call_sessions_owner_created", "owner_id", "created_at"),
    )
