"""Read-only directory listings (students, staff, departments, institutions)."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.system_settings.service import ServiceConfig, get_service_config
from app.auth.rbac import Permission, require_permission
from app.db.session import get_db

from .schemas import StaffRecord, StudentRecord
from .sources import DirectorySource, get_directory_source

router = APIRouter(prefix="/api/v1/directory", tags=["directory"])


async def get_directory(
    db: AsyncSession = Depends(get_db),
    config: ServiceConfig = Depends(get_service_config),
) -> DirectorySource:
    return get_directory_source(db, config)


@router.get(
    "/students",
    response_model=List[StudentRecord],
    dependencies=[Depends(require_permission(
        Permission.VIEW_ALL_STUDENTS, Permission.VIEW_STUDENTS_DIRECTORY, Permission.VIEW_MY_MENTEES
    ))],
)
async def list_students(
    department: Optional[str] = Query(None),
    institution: Optional[str] = Query(None),
    directory: DirectorySource = Depends(get_directory),
):
    return await directory.list_students(department=department, institution=institution)


@router.get(
    "/students/{external_id}",
    response_model=StudentRecord,
    dependencies=[Depends(require_permission(
        Permission.VIEW_ALL_STUDENTS, Permission.VIEW_STUDENTS_DIRECTORY, Permission.VIEW_MY_MENTEES
    ))],
)
async def get_student(external_id: str, directory: DirectorySource = Depends(get_directory)):
    student = await directory.get_student(external_id)
    if not student:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    return student


@router.get(
    "/staff",
    response_model=List[StaffRecord],
    dependencies=[Depends(require_permission(
        Permission.VIEW_ALL_MENTORS, Permission.VIEW_MENTORS_DIRECTORY, Permission.MANAGE_ASSIGNMENTS
    ))],
)
async def list_staff(
    department: Optional[str] = Query(None),
    institution: Optional[str] = Query(None),
    directory: DirectorySource = Depends(get_directory),
):
    return await directory.list_staff(department=department, institution=institution)


@router.get("/departments", response_model=List[str])
async def list_departments(
    directory: DirectorySource = Depends(get_directory),
    _=Depends(require_permission(Permission.VIEW_ALL_STUDENTS, Permission.VIEW_STUDENTS_DIRECTORY)),
):
    return await directory.list_departments()


@router.get("/institutions", response_model=List[str])
async def list_institutions(
    directory: DirectorySource = Depends(get_directory),
    _=Depends(require_permission(Permission.VIEW_ALL_STUDENTS, Permission.VIEW_STUDENTS_DIRECTORY)),
):
    return await directory.list_institutions()
