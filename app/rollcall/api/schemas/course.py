from pydantic import Field
from uuid import UUID
from datetime import datetime
from typing import List, Optional

from .base import CamelModel


class CourseCreateRequest(CamelModel):
    name: str = Field(..., description="Display name of the course.")


class CourseUpdateRequest(CamelModel):
    course_id: UUID
    name: str


class CourseDeleteRequest(CamelModel):
    course_id: UUID


class CourseResponse(CamelModel):
    id: UUID
    owner_id: UUID
    name: str
    created_at: Optional[datetime] = None


class EnrollStudentsRequest(CamelModel):
    student_ids: List[UUID] = Field(..., description="Students to add; ones already enrolled are skipped.")


class StudentsDeleteRequest(CamelModel):
    course_id: UUID
    student_ids: List[UUID]


class StudentsDeleteAllRequest(CamelModel):
    course_id: UUID


class CountResponse(CamelModel):
    """Result of a bulk operation."""
    success: bool = True
    count: int
    message: str
