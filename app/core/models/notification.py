import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, String, Text
from sqlalchemy.dialects.postgresql import UUID

from app.db.session import Base


class Notification(Base):
    """In-app notification for a student, mentor or admin (keyed by directory external id)."""

    __tablename__ = "notifications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_external_id = Column(String(100), nullable=False, index=True)
    user_type = Column(String(20), nullable=False)  # student | mentor | admin
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(50), nullable=False, default="general")
    data = Column(JSON, nullable=True)
    action_required = Column(Boolean, nullable=False, default=False)
    action_url = Column(String(255), nullable=True)
    read_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
