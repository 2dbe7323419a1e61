"""Counseling session and its participant roster.
Status: pending -> (pending_feedback) -> completed, or cancelled. Never physically deleted."""

import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, String, Text, Time, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID

from app.db.session import Base


class CounselingSession(Base):
    __tablename__ = "counseling_sessions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    session_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    location = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    session_type = Column(String(20), nullable=False, default="one_on_one")  # one_on_one | group
    priority = Column(String(10), nullable=False, default="normal")  # low | normal | high
    status = Column(String(20), nullable=False, default="pending", index=True)
    cancellation_reason = Column(Text, nullable=True)
    # External id of the creating mentor/admin; ownership for mentor-scoped permissions
    created_by = Column(String(100), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class SessionParticipant(Base):
    __tablename__ = "session_participants"
    __table_args__ = (
        UniqueConstraint("session_id", "student_external_id", name="uq_session_participant"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id = Column(
        UUID(as_uuid=True),
        ForeignKey("counseling_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    student_external_id = Column(String(100), nullable=False, index=True)
    participation_status = Column(String(20), nullable=False, default="invited")  # invited | confirmed | attended | missed
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
