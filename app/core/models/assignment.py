"""Mentor-student assignment. Ended (status=completed, effective_to set), never deleted."""

import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID

from app.db.session import Base


class Assignment(Base):
    __tablename__ = "assignments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    cycle_id = Column(
        UUID(as_uuid=True),
        ForeignKey("assignment_cycles.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    mentor_external_id = Column(String(100), nullable=False, index=True)
    student_external_id = Column(String(100), nullable=False, index=True)
    role = Column(String(20), nullable=False, default="primary")  # primary | co_mentor
    status = Column(String(20), nullable=False, default="active")  # active | pending | completed | cancelled
    effective_from = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    effective_to = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    institution = Column(String(255), nullable=True)
    department = Column(String(255), nullable=True)
    program = Column(String(255), nullable=True)
    assignment_metadata = Column(JSON, nullable=True)
    is_locked = Column(Boolean, nullable=False, default=False)
    locked_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(UUID(as_uuid=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
