import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, String
from sqlalchemy.dialects.postgresql import UUID

from app.db.session import Base

DEMO_MODE_KEY = "demo_mode"
ASSIGNMENT_MODE_KEY = "assignment_mode"


class SystemSetting(Base):
    """Persisted key/value settings toggled from the admin console (demo_mode, assignment_mode)."""

    __tablename__ = "system_settings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    key = Column(String(100), nullable=False, unique=True)
    value = Column(JSON, nullable=True)
    updated_by = Column(UUID(as_uuid=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
