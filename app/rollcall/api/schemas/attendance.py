from pydantic import Field
from uuid import UUID
from datetime import date, datetime
from typing import Literal, Optional

from .base import CamelModel


class RedeemRequest(CamelModel):
    code: str = Field(..., max_length=64, description="The session code shown by the instructor.")


class RedeemResponse(CamelModel):
    """'alreadyRecorded' is a success: the student was marked present earlier."""
    status: Literal["recorded", "alreadyRecorded"]
    record_id: UUID


class AttendanceStatusRequest(CamelModel):
    """Instructor override of one student's status for one day."""
    course_id: UUID
    student_id: UUID
    date: date
    status: Literal["present", "absent", "late"]


class AttendanceRecordResponse(CamelModel):
    id: UUID
    student_id: UUID
    course_id: UUID
    session_id: Optional[UUID] = None
    date: date
    status: str
    created_at: Optional[datetime] = None
