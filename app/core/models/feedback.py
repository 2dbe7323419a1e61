import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID

from app.db.session import Base


class MentorFeedback(Base):
    """Mentor's post-session assessment. One per (session, mentor); required before a mentor completes a session."""

    __tablename__ = "mentor_feedback"
    __table_args__ = (
        UniqueConstraint("session_id", "mentor_external_id", name="uq_mentor_feedback_session_mentor"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id = Column(
        UUID(as_uuid=True),
        ForeignKey("counseling_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    mentor_external_id = Column(String(100), nullable=False)
    session_quality_rating = Column(Integer, nullable=False)
    student_engagement_rating = Column(Integer, nullable=False)
    goals_achieved_rating = Column(Integer, nullable=False)
    student_progress_notes = Column(Text, nullable=False)
    key_outcomes = Column(Text, nullable=True)
    challenges_faced = Column(Text, nullable=True)
    next_steps_recommended = Column(Text, nullable=False)
    follow_up_required = Column(Boolean, nullable=False, default=False)
    follow_up_timeline = Column(String(100), nullable=True)
    additional_support_needed = Column(Text, nullable=True)
    mentor_reflection = Column(Text, nullable=True)
    improvement_areas = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class SessionFeedback(Base):
    """Mentee's rating of a session. One per (session, mentee)."""

    __tablename__ = "session_feedback"
    __table_args__ = (
        UniqueConstraint("session_id", "mentee_external_id", name="uq_session_feedback_session_mentee"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id = Column(
        UUID(as_uuid=True),
        ForeignKey("counseling_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    mentee_external_id = Column(String(100), nullable=False)
    overall_rating = Column(Integer, nullable=False)
    mentor_helpfulness = Column(Integer, nullable=False)
    session_effectiveness = Column(Integer, nullable=False)
    would_recommend = Column(Boolean, nullable=False, default=True)
    comments = Column(Text, nullable=True)
    improvement_suggestions = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
