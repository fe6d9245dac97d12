import logging
from typing import Literal
from uuid import UUID
from datetime import datetime, timezone

from pydantic import BaseModel

from ..config.config import settings
from ..db.db_client import (
    AsyncPostgresClient,
    ConstraintViolationError,
    StoreError,
    ATTENDANCE_UNIQUE_CONSTRAINT,
)
from ..models.db_models import AttendanceRecord, Session
from .code_generator import normalize_code
from .errors import CodeExpiredError, InvalidCodeError, InvalidInputError, NotEnrolledError

logger = logging.getLogger(__name__)

OUTCOME_RECORDED = "recorded"
OUTCOME_ALREADY_RECORDED = "alreadyRecorded"


class RedemptionResult(BaseModel):
    """What a redemption attempt produced; both outcomes are successes."""
    outcome: Literal["recorded", "alreadyRecorded"]
    record: AttendanceRecord


class RedemptionService:
    """
    Turns a student's session code into an attendance record, at most once.
    """
    def __init__(self, db_client: AsyncPostgresClient, code_alphabet: str = settings.SESSION_CODE_ALPHABET):
        self.db_client = db_client
        self.code_alphabet = code_alphabet

    async def redeem(self, student_id: UUID, code: str) -> RedemptionResult:
        code = normalize_code(code or "", self.code_alphabet)
        if not code:
            raise InvalidInputError("A session code is required.")
        logger.info(f"Student '{student_id}' is redeeming code '{code}'.")

        now = datetime.now(timezone.utc)
        session = await self.db_client.get_active_session_by_code(code)
        if session is None:
            # The sweeper may already have closed a session whose deadline passed.
            latest = await self.db_client.get_latest_session_by_code(code)
            if latest is not None and latest.is_expired(now):
                logger.warning(f"Student '{student_id}' submitted expired code for swept session {latest.id}.")
                raise CodeExpiredError("The session code has expired.")
            logger.warning(f"Student '{student_id}' submitted unknown or closed code '{code}'.")
            raise InvalidCodeError("The session code is invalid.")

        # The deadline decides, whatever the is_active flag says.
        if session.is_expired(now):
            logger.warning(f"Student '{student_id}' submitted expired code for session {session.id}.")
            raise CodeExpiredError("The session code has expired.")

        if not await self.db_client.get_enrollment(session.course_id, student_id):
            logger.warning(f"Student '{student_id}' is not enrolled in course {session.course_id}.")
            raise NotEnrolledError("You are not enrolled in this course.")

        existing = await self.db_client.get_attendance_record(student_id, session.course_id, session.date)
        if existing:
            return RedemptionResult(outcome=OUTCOME_ALREADY_RECORDED, record=existing)

        return await self._record_present(student_id, session)

    async def _record_present(self, student_id: UUID, session: Session) -> RedemptionResult:
        try:
            record = await self.db_client.insert_attendance_record(
                student_id=student_id,
                course_id=session.course_id,
                session_id=session.id,
                record_date=session.date,
                status="present",
            )
        except ConstraintViolationError as e:
            if e.constraint != ATTENDANCE_UNIQUE_CONSTRAINT:
                raise
            # A concurrent request for the same student and meeting got there first.
            existing = await self.db_client.get_attendance_record(student_id, session.course_id, session.date)
            if existing is None:
                raise StoreError("Attendance record vanished after a duplicate insert.") from e
            logger.info(f"Concurrent redemption for student '{student_id}' in session {session.id}; returning record {existing.id}.")
            return RedemptionResult(outcome=OUTCOME_ALREADY_RECORDED, record=existing)

        logger.info(f"Student '{student_id}' marked present in session {session.id} (record {record.id}).")
        return RedemptionResult(outcome=OUTCOME_RECORDED, record=record)
