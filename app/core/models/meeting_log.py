import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID

from app.db.session import Base


class MeetingLog(Base):
    """What was discussed in a session. A log with focus_of_meeting is required before completion."""

    __tablename__ = "meeting_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id = Column(
        UUID(as_uuid=True),
        ForeignKey("counseling_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    focus_of_meeting = Column(Text, nullable=True)
    updates_from_previous = Column(Text, nullable=True)
    problems_encountered = Column(Text, nullable=True)
    resolutions_discussed = Column(Text, nullable=True)
    next_steps = Column(Text, nullable=True)
    expected_outcome_next = Column(Text, nullable=True)
    next_session_datetime = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
