# tests/fakes.py
import asyncio
import uuid
from datetime import date, datetime, timezone
from typing import Dict, List, Optional
from uuid import UUID

from app.rollcall.db.db_client import (
    ACTIVE_CODE_CONSTRAINT,
    ACTIVE_MEETING_CONSTRAINT,
    ATTENDANCE_UNIQUE_CONSTRAINT,
    STAGE_ATTENDANCE,
    STAGE_COURSES,
    STAGE_ENROLLMENTS,
    STAGE_SESSIONS,
    CascadeStageError,
    ConstraintViolationError,
)
from app.rollcall.models.db_models import AttendanceRecord, Course, Enrollment, Session


class InMemoryStore:
    """
    Stand-in for AsyncPostgresClient with the same unique constraints.

    Every call yields to the event loop first, so coroutines run with
    asyncio.gather interleave between a read and the following insert the
    way separate requests do against PostgreSQL. Each write is atomic.
    """

    def __init__(self):
        self.courses: Dict[UUID, Course] = {}
        self.enrollments: Dict[UUID, Enrollment] = {}
        self.sessions: Dict[UUID, Session] = {}
        self.attendance: Dict[UUID, AttendanceRecord] = {}
        # Set to a stage name to make the next cascade fail there.
        self.fail_cascade_at: Optional[str] = None

    async def _tick(self):
        await asyncio.sleep(0)

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    # ===== Courses =====

    async def add_course(self, owner_id: UUID, name: str) -> Course:
        await self._tick()
        course = Course(id=uuid.uuid4(), owner_id=owner_id, name=name, created_at=self._now())
        self.courses[course.id] = course
        return course.model_copy()

    async def get_course(self, course_id: UUID) -> Optional[Course]:
        await self._tick()
        course = self.courses.get(course_id)
        return course.model_copy() if course else None

    async def get_courses_by_owner(self, owner_id: UUID) -> List[Course]:
        await self._tick()
        return [c.model_copy() for c in self.courses.values() if c.owner_id == owner_id]

    async def update_course_name(self, course_id: UUID, name: str) -> Optional[Course]:
        await self._tick()
        course = self.courses.get(course_id)
        if course is None:
            return None
        course.name = name
        return course.model_copy()

    def _check_cascade(self, stages):
        if self.fail_cascade_at in stages:
            stage, self.fail_cascade_at = self.fail_cascade_at, None
            raise CascadeStageError(stage, f"Error deleting {stage}: simulated failure")

    async def delete_courses_cascade(self, course_ids: List[UUID]) -> int:
        await self._tick()
        ids = set(course_ids)
        # Nothing is touched when a stage fails, like a rolled back transaction.
        self._check_cascade((STAGE_ATTENDANCE, STAGE_ENROLLMENTS, STAGE_SESSIONS, STAGE_COURSES))
        self.attendance = {k: v for k, v in self.attendance.items() if v.course_id not in ids}
        self.enrollments = {k: v for k, v in self.enrollments.items() if v.course_id not in ids}
        self.sessions = {k: v for k, v in self.sessions.items() if v.course_id not in ids}
        deleted = [cid for cid in ids if cid in self.courses]
        for cid in deleted:
            del self.courses[cid]
        return len(deleted)

    async def remove_enrollments_cascade(self, course_id: UUID, student_ids: Optional[List[UUID]] = None) -> int:
        await self._tick()
        self._check_cascade((STAGE_ATTENDANCE, STAGE_ENROLLMENTS))

        def matches(row):
            return row.course_id == course_id and (student_ids is None or row.student_id in student_ids)

        self.attendance = {k: v for k, v in self.attendance.items() if not matches(v)}
        removed = [k for k, v in self.enrollments.items() if matches(v)]
        for key in removed:
            del self.enrollments[key]
        return len(removed)

    # ===== Enrollments =====

    async def add_enrollments(self, course_id: UUID, student_ids: List[UUID]) -> int:
        await self._tick()
        added = 0
        for student_id in student_ids:
            if self._find_enrollment(course_id, student_id):
                continue
            enrollment = Enrollment(id=uuid.uuid4(), course_id=course_id, student_id=student_id, created_at=self._now())
            self.enrollments[enrollment.id] = enrollment
            added += 1
        return added

    def _find_enrollment(self, course_id: UUID, student_id: UUID) -> Optional[Enrollment]:
        for enrollment in self.enrollments.values():
            if enrollment.course_id == course_id and enrollment.student_id == student_id:
                return enrollment
        return None

    async def get_enrollment(self, course_id: UUID, student_id: UUID) -> Optional[Enrollment]:
        await self._tick()
        enrollment = self._find_enrollment(course_id, student_id)
        return enrollment.model_copy() if enrollment else None

    # ===== Sessions =====

    async def insert_session(self, course_id: UUID, session_number: int, code: str,
                             session_date: date, created_by: UUID, expires_at: datetime) -> Session:
        await self._tick()
        for existing in self.sessions.values():
            if not existing.is_active:
                continue
            if existing.course_id == course_id and existing.session_number == session_number:
                raise ConstraintViolationError(ACTIVE_MEETING_CONSTRAINT, "duplicate active meeting")
            if existing.code == code:
                raise ConstraintViolationError(ACTIVE_CODE_CONSTRAINT, "duplicate active code")
        session = Session(
            id=uuid.uuid4(), course_id=course_id, session_number=session_number, code=code,
            date=session_date, created_by=created_by, expires_at=expires_at, is_active=True,
            created_at=self._now(),
        )
        self.sessions[session.id] = session
        return session.model_copy()

    async def get_session_by_id(self, session_id: UUID) -> Optional[Session]:
        await self._tick()
        session = self.sessions.get(session_id)
        return session.model_copy() if session else None

    async def get_active_session(self, course_id: UUID, session_number: int) -> Optional[Session]:
        await self._tick()
        for session in self.sessions.values():
            if session.is_active and session.course_id == course_id and session.session_number == session_number:
                return session.model_copy()
        return None

    async def get_active_session_by_code(self, code: str) -> Optional[Session]:
        await self._tick()
        for session in self.sessions.values():
            if session.is_active and session.code == code:
                return session.model_copy()
        return None

    async def get_latest_session_by_code(self, code: str) -> Optional[Session]:
        await self._tick()
        for session in reversed(list(self.sessions.values())):
            if session.code == code:
                return session.model_copy()
        return None

    async def deactivate_session(self, session_id: UUID) -> bool:
        await self._tick()
        session = self.sessions.get(session_id)
        if session is None or not session.is_active:
            return False
        session.is_active = False
        return True

    async def deactivate_expired_sessions(self, now: Optional[datetime] = None) -> int:
        await self._tick()
        now = now or self._now()
        closed = 0
        for session in self.sessions.values():
            if session.is_active and session.expires_at < now:
                session.is_active = False
                closed += 1
        return closed

    # ===== Attendance =====

    def _find_record(self, student_id: UUID, course_id: UUID, record_date: date) -> Optional[AttendanceRecord]:
        for record in self.attendance.values():
            if record.student_id == student_id and record.course_id == course_id and record.date == record_date:
                return record
        return None

    async def insert_attendance_record(self, student_id: UUID, course_id: UUID, session_id: Optional[UUID],
                                       record_date: date, status: str) -> AttendanceRecord:
        await self._tick()
        if self._find_record(student_id, course_id, record_date):
            raise ConstraintViolationError(ATTENDANCE_UNIQUE_CONSTRAINT, "duplicate attendance")
        record = AttendanceRecord(
            id=uuid.uuid4(), student_id=student_id, course_id=course_id, session_id=session_id,
            date=record_date, status=status, created_at=self._now(),
        )
        self.attendance[record.id] = record
        return record.model_copy()

    async def get_attendance_record(self, student_id: UUID, course_id: UUID, record_date: date) -> Optional[AttendanceRecord]:
        await self._tick()
        record = self._find_record(student_id, course_id, record_date)
        return record.model_copy() if record else None

    async def upsert_attendance_status(self, student_id: UUID, course_id: UUID, record_date: date, status: str) -> AttendanceRecord:
        await self._tick()
        record = self._find_record(student_id, course_id, record_date)
        if record is None:
            record = AttendanceRecord(
                id=uuid.uuid4(), student_id=student_id, course_id=course_id, session_id=None,
                date=record_date, status=status, created_at=self._now(),
            )
            self.attendance[record.id] = record
        else:
            record.status = status
        return record.model_copy()

    async def get_course_attendance(self, course_id: UUID, record_date: Optional[date] = None) -> List[AttendanceRecord]:
        await self._tick()
        return [
            r.model_copy() for r in self.attendance.values()
            if r.course_id == course_id and (record_date is None or r.date == record_date)
        ]

    async def get_student_attendance(self, student_id: UUID) -> List[AttendanceRecord]:
        await self._tick()
        return [r.model_copy() for r in self.attendance.values() if r.student_id == student_id]


class InMemoryTokenStore:
    """Stand-in for RedisClient's token revocation list."""

    def __init__(self):
        self.revoked: Dict[str, int] = {}

    async def revoke_token(self, jti: str, ttl: int):
        self.revoked[jti] = max(ttl, 1)

    async def is_token_revoked(self, jti: Optional[str]) -> bool:
        return bool(jti) and jti in self.revoked
