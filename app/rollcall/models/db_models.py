# app/rollcall/models/db_models.py

from pydantic import BaseModel, Field
from datetime import datetime, date as date_type
from typing import Literal, Optional
from uuid import UUID

AttendanceStatus = Literal["present", "absent", "late"]

ROLE_DOCTOR = "doctor"
ROLE_STUDENT = "student"


class Principal(BaseModel):
    """
    The authenticated caller, as vouched for by the identity provider's token.
    """
    id: UUID = Field(..., description="Subject of the access token")
    role: str = Field(..., description="Either 'doctor' or 'student'")

    @property
    def is_doctor(self) -> bool:
        return self.role == ROLE_DOCTOR

    @property
    def is_student(self) -> bool:
        return self.role == ROLE_STUDENT


class Course(BaseModel):
    """
    Represents a course, mapping to the 'courses' table.
    """
    id: UUID
    owner_id: UUID = Field(..., description="The instructor who owns the course")
    name: str
    created_at: Optional[datetime] = None


class Enrollment(BaseModel):
    """
    A student's membership in a course, mapping to the 'course_students' table.
    """
    id: UUID
    course_id: UUID
    student_id: UUID
    created_at: Optional[datetime] = None


class Session(BaseModel):
    """
    One meeting's attendance window, mapping to the 'sessions' table.
    """
    id: UUID
    course_id: UUID
    session_number: int = Field(..., ge=1)
    code: str = Field(..., description="Short code distributed to students")
    date: date_type = Field(..., description="UTC calendar date the session was opened on")
    created_by: UUID
    expires_at: datetime = Field(..., description="Redemption is refused after this instant")
    is_active: bool = True
    created_at: Optional[datetime] = None

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


class AttendanceRecord(BaseModel):
    """
    A student's attendance for one course meeting, mapping to the 'attendance' table.
    """
    id: UUID
    student_id: UUID
    course_id: UUID
    session_id: Optional[UUID] = Field(None, description="Empty for rows entered manually by the instructor")
    date: date_type
    status: AttendanceStatus
    created_at: Optional[datetime] = None
