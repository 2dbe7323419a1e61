from typing import Optional

from pydantic import BaseModel


class StudentRecord(BaseModel):
    external_id: str
    name: str
    email: Optional[str] = None
    institution: Optional[str] = None
    department: Optional[str] = None
    program: Optional[str] = None
    section: Optional[str] = None
    semester_year: Optional[int] = None

    class Config:
        from_attributes = True


class StaffRecord(BaseModel):
    external_id: str
    name: str
    email: Optional[str] = None
    institution: Optional[str] = None
    department: Optional[str] = None
    designation: Optional[str] = None

    class Config:
        from_attributes = True
