"""
Assignment constraint checks run before an assignment is created. Read-only.

Rules, first failure wins:
1. cycle exists, is active and is not locked
2. mentor resolves in the staff directory, student in the student directory
3. primary role: student has no other active primary assignment in the cycle
4. mentor and student are not already paired by an active/pending assignment (any cycle)
5. mentor caseload in the cycle is below max_mentor_caseload, when configured
"""

from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.directory.sources import DirectorySource
from app.api.v1.system_settings.service import ServiceConfig
from app.core.enums import AssignmentRole, AssignmentStatus, CycleStatus
from app.core.models import Assignment, AssignmentCycle

from .schemas import AssignmentValidation

_OPEN_STATUSES = (AssignmentStatus.ACTIVE.value, AssignmentStatus.PENDING.value)
DUPLICATE_PRIMARY = "Student already has an active primary mentor this cycle"


def _invalid(message: str) -> AssignmentValidation:
    return AssignmentValidation(is_valid=False, error_message=message)


async def has_active_primary(
    db: AsyncSession,
    student_external_id: str,
    cycle_id: Optional[UUID],
    exclude_id: Optional[UUID] = None,
) -> bool:
    stmt = select(Assignment.id).where(
        Assignment.cycle_id == cycle_id,
        Assignment.student_external_id == student_external_id,
        Assignment.role == AssignmentRole.PRIMARY.value,
        Assignment.status == AssignmentStatus.ACTIVE.value,
    )
    if exclude_id is not None:
        stmt = stmt.where(Assignment.id != exclude_id)
    result = await db.execute(stmt.limit(1))
    return result.scalar_one_or_none() is not None


async def validate_assignment_constraints(
    db: AsyncSession,
    directory: DirectorySource,
    config: ServiceConfig,
    mentor_external_id: str,
    student_external_id: str,
    cycle_id: UUID,
    role: AssignmentRole = AssignmentRole.PRIMARY,
) -> AssignmentValidation:
    cycle = await db.get(AssignmentCycle, cycle_id)
    if not cycle:
        return _invalid("Assignment cycle not found")
    if cycle.status != CycleStatus.ACTIVE.value:
        return _invalid("Assignment cycle is not active")
    if cycle.is_locked:
        return _invalid("Assignment cycle is locked")

    mentor = await directory.get_staff(mentor_external_id)
    if not mentor:
        return _invalid("Mentor not found in staff directory")
    student = await directory.get_student(student_external_id)
    if not student:
        return _invalid("Student not found in student directory")

    if role == AssignmentRole.PRIMARY and await has_active_primary(db, student_external_id, cycle_id):
        return _invalid(DUPLICATE_PRIMARY)

    result = await db.execute(
        select(Assignment.id).where(
            Assignment.mentor_external_id == mentor_external_id,
            Assignment.student_external_id == student_external_id,
            Assignment.status.in_(_OPEN_STATUSES),
        ).limit(1)
    )
    if result.scalar_one_or_none():
        return _invalid("Mentor and student are already paired in an active assignment")

    if config.max_mentor_caseload is not None:
        result = await db.execute(
            select(func.count(Assignment.id)).where(
                Assignment.cycle_id == cycle_id,
                Assignment.mentor_external_id == mentor_external_id,
                Assignment.status == AssignmentStatus.ACTIVE.value,
            )
        )
        caseload = result.scalar_one()
        if caseload >= config.max_mentor_caseload:
            return _invalid(
                f"Mentor has reached the maximum caseload of {config.max_mentor_caseload} students this cycle"
            )

    return AssignmentValidation(
        is_valid=True,
        student_department=student.department,
        student_program=student.program,
        student_institution=student.institution,
        student_semester_year=student.semester_year,
    )
