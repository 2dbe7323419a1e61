"""Directory mirror of students and staff, synced from the institution's
people directory. Read-only for this service; the sync job owns writes."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import UUID

from app.db.session import Base


class DirectoryStudent(Base):
    __tablename__ = "directory_students"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    external_id = Column(String(100), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    institution = Column(String(255), nullable=True)
    department = Column(String(255), nullable=True)
    program = Column(String(255), nullable=True)
    section = Column(String(50), nullable=True)
    semester_year = Column(Integer, nullable=True)
    status = Column(String(20), nullable=False, default="active")
    synced_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class DirectoryStaff(Base):
    __tablename__ = "directory_staff"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    external_id = Column(String(100), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    institution = Column(String(255), nullable=True)
    department = Column(String(255), nullable=True)
    designation = Column(String(100), nullable=True)
    status = Column(String(20), nullable=False, default="active")
    synced_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
