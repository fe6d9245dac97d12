import logging
from typing import List, Optional
from uuid import UUID
from datetime import date

from ..db.db_client import AsyncPostgresClient, CascadeStageError
from ..models.db_models import AttendanceRecord, AttendanceStatus, Course, Principal
from .access import require_course_owner
from .errors import AuthorizationError, CascadeDeletionError, InvalidInputError, NotFoundError

logger = logging.getLogger(__name__)

MAX_COURSE_NAME_LENGTH = 200
ATTENDANCE_STATUSES = ("present", "absent", "late")


def _clean_course_name(name: str) -> str:
    name = (name or "").strip()
    if not name or len(name) > MAX_COURSE_NAME_LENGTH:
        raise InvalidInputError(f"Course name must be between 1 and {MAX_COURSE_NAME_LENGTH} characters.")
    return name


class CourseService:
    """
    Course, enrollment and attendance-override operations around the session core.
    """
    def __init__(self, db_client: AsyncPostgresClient):
        self.db_client = db_client

    def _require_doctor(self, principal: Principal):
        if not principal.is_doctor:
            raise AuthorizationError("This operation is only valid for instructors.")

    # --- Courses ---

    async def create_course(self, instructor: Principal, name: str) -> Course:
        self._require_doctor(instructor)
        course = await self.db_client.add_course(instructor.id, _clean_course_name(name))
        logger.info(f"Course {course.id} created by '{instructor.id}'.")
        return course

    async def list_courses(self, instructor: Principal) -> List[Course]:
        self._require_doctor(instructor)
        return await self.db_client.get_courses_by_owner(instructor.id)

    async def update_course_name(self, instructor: Principal, course_id: UUID, name: str) -> Course:
        name = _clean_course_name(name)
        await require_course_owner(self.db_client, instructor, course_id)
        course = await self.db_client.update_course_name(course_id, name)
        if course is None:
            raise NotFoundError("Course not found.")
        return course

    async def delete_course(self, instructor: Principal, course_id: UUID) -> None:
        await require_course_owner(self.db_client, instructor, course_id)
        await self._delete_cascade([course_id])
        logger.info(f"Course {course_id} and its sessions, enrollments and attendance deleted.")

    async def delete_all_courses(self, instructor: Principal) -> int:
        self._require_doctor(instructor)
        courses = await self.db_client.get_courses_by_owner(instructor.id)
        if not courses:
            return 0
        deleted = await self._delete_cascade([course.id for course in courses])
        logger.info(f"Deleted {deleted} course(s) of '{instructor.id}'.")
        return deleted

    async def _delete_cascade(self, course_ids: List[UUID]) -> int:
        try:
            return await self.db_client.delete_courses_cascade(course_ids)
        except CascadeStageError as e:
            raise CascadeDeletionError(e.stage, str(e)) from e

    # --- Enrollments ---

    async def enroll_students(self, instructor: Principal, course_id: UUID, student_ids: List[UUID]) -> int:
        if not student_ids:
            raise InvalidInputError("At least one student is required.")
        await require_course_owner(self.db_client, instructor, course_id)
        added = await self.db_client.add_enrollments(course_id, list(dict.fromkeys(student_ids)))
        logger.info(f"Enrolled {added} student(s) in course {course_id}.")
        return added

    async def remove_students(self, instructor: Principal, course_id: UUID, student_ids: List[UUID]) -> int:
        if not student_ids:
            raise InvalidInputError("At least one student is required.")
        await require_course_owner(self.db_client, instructor, course_id)
        return await self._remove_enrollments(course_id, list(student_ids))

    async def remove_all_students(self, instructor: Principal, course_id: UUID) -> int:
        await require_course_owner(self.db_client, instructor, course_id)
        return await self._remove_enrollments(course_id, None)

    async def _remove_enrollments(self, course_id: UUID, student_ids: Optional[List[UUID]]) -> int:
        try:
            removed = await self.db_client.remove_enrollments_cascade(course_id, student_ids)
        except CascadeStageError as e:
            raise CascadeDeletionError(e.stage, str(e)) from e
        logger.info(f"Removed {removed} student(s) from course {course_id}.")
        return removed

    # --- Attendance ---

    async def set_attendance_status(self, instructor: Principal, course_id: UUID, student_id: UUID,
                                    record_date: date, status: AttendanceStatus) -> AttendanceRecord:
        """
        Instructor override of a student's status for one day. Creates a
        manual row (no session) when the student never redeemed a code.
        """
        if status not in ATTENDANCE_STATUSES:
            raise InvalidInputError(f"Status must be one of: {', '.join(ATTENDANCE_STATUSES)}.")
        await require_course_owner(self.db_client, instructor, course_id)
        if not await self.db_client.get_enrollment(course_id, student_id):
            raise NotFoundError("The student is not enrolled in this course.")
        record = await self.db_client.upsert_attendance_status(student_id, course_id, record_date, status)
        logger.info(f"Instructor '{instructor.id}' set student '{student_id}' to '{status}' on {record_date} in course {course_id}.")
        return record

    async def list_course_attendance(self, instructor: Principal, course_id: UUID,
                                     record_date: Optional[date] = None) -> List[AttendanceRecord]:
        await require_course_owner(self.db_client, instructor, course_id)
        return await self.db_client.get_course_attendance(course_id, record_date)

    async def list_my_attendance(self, student: Principal) -> List[AttendanceRecord]:
        if not student.is_student:
            raise AuthorizationError("This operation is only valid for students.")
        return await self.db_client.get_student_attendance(student.id)
