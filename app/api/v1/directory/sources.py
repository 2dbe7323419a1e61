"""
Directory data sources. Live and demo behaviour are two implementations of the same
interface, picked once per request from ServiceConfig.demo_mode.

DatabaseDirectorySource: reads the synced directory_students / directory_staff mirror.
DemoDirectorySource: fixed offline data set for demos and when the directory is unreachable.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.system_settings.service import ServiceConfig
from app.core.models import DirectoryStaff, DirectoryStudent

from .schemas import StaffRecord, StudentRecord


class DirectorySource(ABC):
    @abstractmethod
    async def get_student(self, external_id: str) -> Optional[StudentRecord]:
        ...

    @abstractmethod
    async def get_staff(self, external_id: str) -> Optional[StaffRecord]:
        ...

    @abstractmethod
    async def list_students(
        self, department: Optional[str] = None, institution: Optional[str] = None
    ) -> List[StudentRecord]:
        ...

    @abstractmethod
    async def list_staff(
        self, department: Optional[str] = None, institution: Optional[str] = None
    ) -> List[StaffRecord]:
        ...

    async def list_departments(self) -> List[str]:
        students = await self.list_students()
        staff = await self.list_staff()
        names = {r.department for r in students} | {r.department for r in staff}
        return sorted(n for n in names if n)

    async def list_institutions(self) -> List[str]:
        students = await self.list_students()
        staff = await self.list_staff()
        names = {r.institution for r in students} | {r.institution for r in staff}
        return sorted(n for n in names if n)


class DatabaseDirectorySource(DirectorySource):
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_student(self, external_id: str) -> Optional[StudentRecord]:
        result = await self.db.execute(
            select(DirectoryStudent).where(
                DirectoryStudent.external_id == external_id,
                DirectoryStudent.status == "active",
            )
        )
        row = result.scalar_one_or_none()
        return StudentRecord.model_validate(row) if row else None

    async def get_staff(self, external_id: str) -> Optional[StaffRecord]:
        result = await self.db.execute(
            select(DirectoryStaff).where(
                DirectoryStaff.external_id == external_id,
                DirectoryStaff.status == "active",
            )
        )
        row = result.scalar_one_or_none()
        return StaffRecord.model_validate(row) if row else None

    async def list_students(
        self, department: Optional[str] = None, institution: Optional[str] = None
    ) -> List[StudentRecord]:
        stmt = select(DirectoryStudent).where(DirectoryStudent.status == "active")
        if department:
            stmt = stmt.where(DirectoryStudent.department == department)
        if institution:
            stmt = stmt.where(DirectoryStudent.institution == institution)
        result = await self.db.execute(stmt.order_by(DirectoryStudent.name))
        return [StudentRecord.model_validate(r) for r in result.scalars().all()]

    async def list_staff(
        self, department: Optional[str] = None, institution: Optional[str] = None
    ) -> List[StaffRecord]:
        stmt = select(DirectoryStaff).where(DirectoryStaff.status == "active")
        if department:
            stmt = stmt.where(DirectoryStaff.department == department)
        if institution:
            stmt = stmt.where(DirectoryStaff.institution == institution)
        result = await self.db.execute(stmt.order_by(DirectoryStaff.name))
        return [StaffRecord.model_validate(r) for r in result.scalars().all()]


DEMO_INSTITUTION = "Demo University"

DEMO_STAFF = [
    StaffRecord(external_id="DEMO_STAFF_001", name="Dr. Sarah Johnson", email="sarah.johnson@demo.edu",
                institution=DEMO_INSTITUTION, department="Computer Science", designation="Associate Professor"),
    StaffRecord(external_id="DEMO_STAFF_002", name="Prof. Michael Chen", email="michael.chen@demo.edu",
                institution=DEMO_INSTITUTION, department="Mathematics", designation="Professor"),
    StaffRecord(external_id="DEMO_STAFF_003", name="Dr. Emily Rodriguez", email="emily.rodriguez@demo.edu",
                institution=DEMO_INSTITUTION, department="Psychology", designation="Assistant Professor"),
    StaffRecord(external_id="DEMO_STAFF_004", name="Dr. James Wilson", email="james.wilson@demo.edu",
                institution=DEMO_INSTITUTION, department="Business", designation="Associate Professor"),
    StaffRecord(external_id="DEMO_STAFF_005", name="Prof. Lisa Anderson", email="lisa.anderson@demo.edu",
                institution=DEMO_INSTITUTION, department="Engineering", designation="Professor"),
]

DEMO_STUDENTS = [
    StudentRecord(external_id="DEMO_STU_001", name="Alex Chen", email="alex.chen@demo.edu",
                  institution=DEMO_INSTITUTION, department="Computer Science", program="Computer Science", semester_year=6),
    StudentRecord(external_id="DEMO_STU_002", name="Maria Rodriguez", email="maria.rodriguez@demo.edu",
                  institution=DEMO_INSTITUTION, department="Mathematics", program="Mathematics", semester_year=4),
    StudentRecord(external_id="DEMO_STU_003", name="David Kim", email="david.kim@demo.edu",
                  institution=DEMO_INSTITUTION, department="Psychology", program="Psychology", semester_year=2),
    StudentRecord(external_id="DEMO_STU_004", name="Sarah Thompson", email="sarah.thompson@demo.edu",
                  institution=DEMO_INSTITUTION, department="Business", program="Business Administration", semester_year=8),
    StudentRecord(external_id="DEMO_STU_005", name="Jordan Lee", email="jordan.lee@demo.edu",
                  institution=DEMO_INSTITUTION, department="Engineering", program="Mechanical Engineering", semester_year=5),
    StudentRecord(external_id="DEMO_STU_006", name="Emma Davis", email="emma.davis@demo.edu",
                  institution=DEMO_INSTITUTION, department="Computer Science", program="Computer Science", semester_year=3),
]


class DemoDirectorySource(DirectorySource):
    async def get_student(self, external_id: str) -> Optional[StudentRecord]:
        return next((s for s in DEMO_STUDENTS if s.external_id == external_id), None)

    async def get_staff(self, external_id: str) -> Optional[StaffRecord]:
        return next((s for s in DEMO_STAFF if s.external_id == external_id), None)

    async def list_students(
        self, department: Optional[str] = None, institution: Optional[str] = None
    ) -> List[StudentRecord]:
        return [
            s for s in DEMO_STUDENTS
            if (not department or s.department == department)
            and (not institution or s.institution == institution)
        ]

    async def list_staff(
        self, department: Optional[str] = None, institution: Optional[str] = None
    ) -> List[StaffRecord]:
        return [
            s for s in DEMO_STAFF
            if (not department or s.department == department)
            and (not institution or s.institution == institution)
        ]


def get_directory_source(db: AsyncSession, config: ServiceConfig) -> DirectorySource:
    if config.demo_mode:
        return DemoDirectorySource()
    return DatabaseDirectorySource(db)
