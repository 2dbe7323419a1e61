import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.dialects.postgresql import UUID

from app.db.session import Base


class User(Base):
    """Login account. external_id links the account to its directory record (staff or student)."""

    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, unique=True)
    full_name = Column(String(255), nullable=False)
    password_hash = Column(Text, nullable=False)
    # super_admin | admin | mentor | mentee | dept_lead
    role = Column(String(50), nullable=False, default="mentee")
    # Staff or student id in the people directory; null for pure admin accounts
    external_id = Column(String(100), nullable=True, index=True)
    department = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default="ACTIVE")
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
