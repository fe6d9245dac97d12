import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from pathlib import Path
from typing import List, Optional
from uuid import UUID

import asyncpg

from ..models.db_models import AttendanceRecord, Course, Enrollment, Session

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).with_name("schema.sql")

# Unique constraints / partial unique indexes declared in schema.sql
ACTIVE_MEETING_CONSTRAINT = "sessions_active_meeting_key"
ACTIVE_CODE_CONSTRAINT = "sessions_active_code_key"
ATTENDANCE_UNIQUE_CONSTRAINT = "attendance_student_course_date_key"
ENROLLMENT_UNIQUE_CONSTRAINT = "course_students_course_student_key"

# Cascade stages, in the order they run
STAGE_ATTENDANCE = "attendance"
STAGE_ENROLLMENTS = "course_students"
STAGE_SESSIONS = "sessions"
STAGE_COURSES = "courses"


class StoreError(Exception):
    """Any failure reported by the attendance store."""
    pass


class StoreUnavailableError(StoreError):
    """The store could not be reached or dropped the connection."""
    pass


class ConstraintViolationError(StoreError):
    """An insert or update hit a unique constraint."""

    def __init__(self, constraint: Optional[str], message: str = ""):
        super().__init__(message or f"Unique constraint violated: {constraint}")
        self.constraint = constraint


class CascadeStageError(StoreError):
    """A cascading delete failed; the transaction was rolled back at `stage`."""

    def __init__(self, stage: str, message: str):
        super().__init__(message)
        self.stage = stage


def _rows_affected(status: str) -> int:
    # asyncpg returns command tags such as "UPDATE 3" / "DELETE 0".
    try:
        return int(str(status).split()[-1])
    except (ValueError, IndexError):
        return 0


class AsyncPostgresClient:
    """
    PostgreSQL client for every attendance store operation.

    Unique-constraint hits surface as ConstraintViolationError carrying the
    constraint name; connectivity problems surface as StoreUnavailableError.
    """
    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool

    @asynccontextmanager
    async def _connection(self):
        try:
            async with self._pool.acquire() as connection:
                yield connection
        except asyncpg.exceptions.UniqueViolationError as e:
            raise ConstraintViolationError(getattr(e, "constraint_name", None), str(e)) from e
        except (OSError, asyncio.TimeoutError,
                asyncpg.exceptions.PostgresConnectionError,
                asyncpg.exceptions.CannotConnectNowError,
                asyncpg.exceptions.InterfaceError) as e:
            logger.error(f"Attendance store unavailable: {e}")
            raise StoreUnavailableError("The attendance store is unavailable.") from e
        except asyncpg.exceptions.PostgresError as e:
            raise StoreError(str(e)) from e

    async def apply_schema(self):
        """Creates tables and unique indexes if they do not exist yet."""
        async with self._connection() as connection:
            await connection.execute(SCHEMA_PATH.read_text(encoding="utf-8"))

    # ===== Courses =====

    async def add_course(self, owner_id: UUID, name: str) -> Course:
        query = "INSERT INTO courses (owner_id, name) VALUES ($1, $2) RETURNING *;"
        async with self._connection() as connection:
            record = await connection.fetchrow(query, owner_id, name)
            return Course(**record)

    async def get_course(self, course_id: UUID) -> Optional[Course]:
        query = "SELECT * FROM courses WHERE id = $1;"
        async with self._connection() as connection:
            record = await connection.fetchrow(query, course_id)
            return Course(**record) if record else None

    async def get_courses_by_owner(self, owner_id: UUID) -> List[Course]:
        query = "SELECT * FROM courses WHERE owner_id = $1 ORDER BY created_at;"
        async with self._connection() as connection:
            records = await connection.fetch(query, owner_id)
            return [Course(**record) for record in records]

    async def update_course_name(self, course_id: UUID, name: str) -> Optional[Course]:
        query = "UPDATE courses SET name = $2 WHERE id = $1 RETURNING *;"
        async with self._connection() as connection:
            record = await connection.fetchrow(query, course_id, name)
            return Course(**record) if record else None

    async def delete_courses_cascade(self, course_ids: List[UUID]) -> int:
        """
        Deletes courses with everything hanging off them, in dependency order:
        attendance, course_students, sessions, then the courses.

        Runs in one transaction; a failing stage rolls everything back and is
        reported through CascadeStageError.
        """
        if not course_ids:
            return 0
        stages = [
            (STAGE_ATTENDANCE, "DELETE FROM attendance WHERE course_id = ANY($1::uuid[]);"),
            (STAGE_ENROLLMENTS, "DELETE FROM course_students WHERE course_id = ANY($1::uuid[]);"),
            (STAGE_SESSIONS, "DELETE FROM sessions WHERE course_id = ANY($1::uuid[]);"),
            (STAGE_COURSES, "DELETE FROM courses WHERE id = ANY($1::uuid[]);"),
        ]
        async with self._connection() as connection:
            status = await self._run_stages(connection, stages, course_ids)
            return _rows_affected(status)

    async def remove_enrollments_cascade(self, course_id: UUID, student_ids: Optional[List[UUID]] = None) -> int:
        """
        Removes students from a course together with their attendance rows for it.
        With no student_ids every enrollment of the course is removed.
        Returns the number of enrollments deleted.
        """
        if student_ids is None:
            stages = [
                (STAGE_ATTENDANCE, "DELETE FROM attendance WHERE course_id = $1;"),
                (STAGE_ENROLLMENTS, "DELETE FROM course_students WHERE course_id = $1;"),
            ]
            args = (course_id,)
        else:
            stages = [
                (STAGE_ATTENDANCE, "DELETE FROM attendance WHERE course_id = $1 AND student_id = ANY($2::uuid[]);"),
                (STAGE_ENROLLMENTS, "DELETE FROM course_students WHERE course_id = $1 AND student_id = ANY($2::uuid[]);"),
            ]
            args = (course_id, student_ids)
        async with self._connection() as connection:
            status = await self._run_stages(connection, stages, *args)
            return _rows_affected(status)

    async def _run_stages(self, connection, stages, *args) -> str:
        status = ""
        stage = stages[0][0]
        try:
            async with connection.transaction():
                for stage, query in stages:
                    status = await connection.execute(query, *args)
                    logger.info(f"Cascade stage '{stage}' done: {status}")
        except (asyncpg.exceptions.PostgresError, asyncpg.exceptions.InterfaceError, OSError) as e:
            logger.error(f"Cascade delete failed at stage '{stage}'.", exc_info=True)
            raise CascadeStageError(stage, f"Error deleting {stage}: {e}") from e
        return status

    # ===== Enrollments =====

    async def add_enrollments(self, course_id: UUID, student_ids: List[UUID]) -> int:
        """Enrolls students in bulk. Already-enrolled students are skipped."""
        if not student_ids:
            return 0
        query = """
            INSERT INTO course_students (course_id, student_id)
            SELECT $1, student_id FROM unnest($2::uuid[]) AS student_id
            ON CONFLICT (course_id, student_id) DO NOTHING
            RETURNING id;
        """
        async with self._connection() as connection:
            records = await connection.fetch(query, course_id, student_ids)
            return len(records)

    async def get_enrollment(self, course_id: UUID, student_id: UUID) -> Optional[Enrollment]:
        query = "SELECT * FROM course_students WHERE course_id = $1 AND student_id = $2;"
        async with self._connection() as connection:
            record = await connection.fetchrow(query, course_id, student_id)
            return Enrollment(**record) if record else None

    # ===== Sessions =====

    async def insert_session(self, course_id: UUID, session_number: int, code: str,
                             session_date: date, created_by: UUID, expires_at: datetime) -> Session:
        """
        Inserts an active session. Raises ConstraintViolationError naming
        ACTIVE_CODE_CONSTRAINT or ACTIVE_MEETING_CONSTRAINT on a clash.
        """
        query = """
            INSERT INTO sessions (course_id, session_number, code, date, created_by, expires_at, is_active)
            VALUES ($1, $2, $3, $4, $5, $6, TRUE)
            RETURNING *;
        """
        async with self._connection() as connection:
            record = await connection.fetchrow(query, course_id, session_number, code, session_date, created_by, expires_at)
            return Session(**record)

    async def get_session_by_id(self, session_id: UUID) -> Optional[Session]:
        query = "SELECT * FROM sessions WHERE id = $1;"
        async with self._connection() as connection:
            record = await connection.fetchrow(query, session_id)
            return Session(**record) if record else None

    async def get_active_session(self, course_id: UUID, session_number: int) -> Optional[Session]:
        query = "SELECT * FROM sessions WHERE course_id = $1 AND session_number = $2 AND is_active = TRUE;"
        async with self._connection() as connection:
            record = await connection.fetchrow(query, course_id, session_number)
            return Session(**record) if record else None

    async def get_active_session_by_code(self, code: str) -> Optional[Session]:
        query = "SELECT * FROM sessions WHERE code = $1 AND is_active = TRUE;"
        async with self._connection() as connection:
            record = await connection.fetchrow(query, code)
            return Session(**record) if record else None

    async def get_latest_session_by_code(self, code: str) -> Optional[Session]:
        """Most recent session that used the code, active or not. Codes are reused once freed."""
        query = "SELECT * FROM sessions WHERE code = $1 ORDER BY created_at DESC LIMIT 1;"
        async with self._connection() as connection:
            record = await connection.fetchrow(query, code)
            return Session(**record) if record else None

    async def deactivate_session(self, session_id: UUID) -> bool:
        """Flips is_active off. Returns False when it already was."""
        query = "UPDATE sessions SET is_active = FALSE WHERE id = $1 AND is_active = TRUE;"
        async with self._connection() as connection:
            status = await connection.execute(query, session_id)
            return _rows_affected(status) > 0

    async def deactivate_expired_sessions(self, now: Optional[datetime] = None) -> int:
        """Closes every still-active session whose deadline has passed."""
        query = "UPDATE sessions SET is_active = FALSE WHERE is_active = TRUE AND expires_at < $1;"
        async with self._connection() as connection:
            status = await connection.execute(query, now or datetime.now(timezone.utc))
            return _rows_affected(status)

    # ===== Attendance =====

    async def insert_attendance_record(self, student_id: UUID, course_id: UUID, session_id: Optional[UUID],
                                       record_date: date, status: str) -> AttendanceRecord:
        """
        Plain insert guarded by ATTENDANCE_UNIQUE_CONSTRAINT. A duplicate raises
        ConstraintViolationError rather than being merged.
        """
        query = """
            INSERT INTO attendance (student_id, course_id, session_id, date, status)
            VALUES ($1, $2, $3, $4, $5)
            RETURNING *;
        """
        async with self._connection() as connection:
            record = await connection.fetchrow(query, student_id, course_id, session_id, record_date, status)
            return AttendanceRecord(**record)

    async def get_attendance_record(self, student_id: UUID, course_id: UUID, record_date: date) -> Optional[AttendanceRecord]:
        query = "SELECT * FROM attendance WHERE student_id = $1 AND course_id = $2 AND date = $3;"
        async with self._connection() as connection:
            record = await connection.fetchrow(query, student_id, course_id, record_date)
            return AttendanceRecord(**record) if record else None

    async def upsert_attendance_status(self, student_id: UUID, course_id: UUID, record_date: date, status: str) -> AttendanceRecord:
        """Instructor override: sets the status, creating a manual row if there is none."""
        query = """
            INSERT INTO attendance (student_id, course_id, session_id, date, status)
            VALUES ($1, $2, NULL, $3, $4)
            ON CONFLICT (student_id, course_id, date) DO UPDATE SET status = EXCLUDED.status
            RETURNING *;
        """
        async with self._connection() as connection:
            record = await connection.fetchrow(query, student_id, course_id, record_date, status)
            return AttendanceRecord(**record)

    async def get_course_attendance(self, course_id: UUID, record_date: Optional[date] = None) -> List[AttendanceRecord]:
        if record_date is None:
            query = "SELECT * FROM attendance WHERE course_id = $1 ORDER BY date DESC, created_at;"
            args = (course_id,)
        else:
            query = "SELECT * FROM attendance WHERE course_id = $1 AND date = $2 ORDER BY created_at;"
            args = (course_id, record_date)
        async with self._connection() as connection:
            records = await connection.fetch(query, *args)
            return [AttendanceRecord(**record) for record in records]

    async def get_student_attendance(self, student_id: UUID) -> List[AttendanceRecord]:
        query = "SELECT * FROM attendance WHERE student_id = $1 ORDER BY date DESC, created_at;"
        async with self._connection() as connection:
            records = await connection.fetch(query, student_id)
            return [AttendanceRecord(**record) for record in records]
