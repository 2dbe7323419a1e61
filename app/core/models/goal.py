"""SMART goals set in a session for a student. Every edit bumps version_number and
appends a snapshot to goal_versions."""

import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID

from app.db.session import Base


class Goal(Base):
    __tablename__ = "goals"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id = Column(
        UUID(as_uuid=True),
        ForeignKey("counseling_sessions.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    student_external_id = Column(String(100), nullable=False, index=True)
    area_of_focus = Column(String(255), nullable=False)
    smart_goal_text = Column(Text, nullable=False)
    knowledge_what = Column(Text, nullable=True)
    knowledge_how = Column(Text, nullable=True)
    skills_what = Column(Text, nullable=True)
    skills_how = Column(Text, nullable=True)
    action_plan = Column(Text, nullable=True)
    target_date = Column(Date, nullable=True)
    status = Column(String(20), nullable=False, default="proposed")  # proposed | in_progress | completed | archived
    version_number = Column(Integer, nullable=False, default=1)
    created_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class GoalVersion(Base):
    __tablename__ = "goal_versions"
    __table_args__ = (
        UniqueConstraint("goal_id", "version_number", name="uq_goal_version"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    goal_id = Column(UUID(as_uuid=True), ForeignKey("goals.id", ondelete="CASCADE"), nullable=False, index=True)
    version_number = Column(Integer, nullable=False)
    area_of_focus = Column(String(255), nullable=False)
    smart_goal_text = Column(Text, nullable=False)
    knowledge_what = Column(Text, nullable=True)
    knowledge_how = Column(Text, nullable=True)
    skills_what = Column(Text, nullable=True)
    skills_how = Column(Text, nullable=True)
    action_plan = Column(Text, nullable=True)
    target_date = Column(Date, nullable=True)
    status = Column(String(20), nullable=False)
    changed_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
