import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, String
from sqlalchemy.dialects.postgresql import UUID

from app.db.session import Base


class AssignmentCycle(Base):
    """
    Time-boxed window (one per academic year) in which mentor assignments may be created.
    Only one cycle is active at a time. Assignments attach only to an active, unlocked cycle.
    Locking a cycle freezes every assignment in it.
    """

    __tablename__ = "assignment_cycles"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    academic_year = Column(String(20), nullable=False, unique=True)  # e.g. "2025-2026"
    cycle_name = Column(String(100), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default="draft")  # draft | active | locked | archived
    is_locked = Column(Boolean, nullable=False, default=False)
    locked_at = Column(DateTime(timezone=True), nullable=True)
    locked_by = Column(UUID(as_uuid=True), nullable=True)
    cycle_metadata = Column("metadata", JSON, nullable=True)
    created_by = Column(UUID(as_uuid=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
