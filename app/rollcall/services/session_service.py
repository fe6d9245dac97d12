import logging
from typing import Optional
from uuid import UUID
from datetime import datetime, timedelta, timezone

from ..config.config import settings
from ..db.db_client import (
    AsyncPostgresClient,
    ConstraintViolationError,
    ACTIVE_CODE_CONSTRAINT,
    ACTIVE_MEETING_CONSTRAINT,
)
from ..models.db_models import Principal, Session
from .access import require_course_owner
from .code_generator import generate_code
from .errors import (
    AuthorizationError,
    CodeSpaceExhaustedError,
    InvalidInputError,
    NotFoundError,
    SessionConflictError,
)

logger = logging.getLogger(__name__)


class SessionService:
    """
    Opens, closes and looks up attendance sessions.

    The store's partial unique indexes are what keep one active session per
    meeting and unique codes among active sessions; this class only reacts
    to the violations they raise.
    """
    def __init__(self, db_client: AsyncPostgresClient,
                 code_length: int = settings.SESSION_CODE_LENGTH,
                 code_alphabet: str = settings.SESSION_CODE_ALPHABET,
                 max_code_attempts: int = settings.SESSION_CODE_MAX_ATTEMPTS,
                 min_ttl_minutes: int = settings.SESSION_TTL_MIN_MINUTES,
                 max_ttl_minutes: int = settings.SESSION_TTL_MAX_MINUTES):
        self.db_client = db_client
        self.code_length = code_length
        self.code_alphabet = code_alphabet
        self.max_code_attempts = max_code_attempts
        self.min_ttl_minutes = min_ttl_minutes
        self.max_ttl_minutes = max_ttl_minutes

    def _validate_open_request(self, session_number: int, ttl_minutes: int):
        if session_number < 1:
            raise InvalidInputError("Session number must be 1 or greater.")
        if not self.min_ttl_minutes <= ttl_minutes <= self.max_ttl_minutes:
            raise InvalidInputError(
                f"Session duration must be between {self.min_ttl_minutes} and {self.max_ttl_minutes} minutes."
            )

    async def open_session(self, instructor: Principal, course_id: UUID, session_number: int, ttl_minutes: int) -> Session:
        """
        Opens the attendance window for one meeting of a course, or returns
        the one already open for it if it has not expired yet.
        """
        await require_course_owner(self.db_client, instructor, course_id)
        self._validate_open_request(session_number, ttl_minutes)

        now = datetime.now(timezone.utc)
        existing = await self.db_client.get_active_session(course_id, session_number)
        if existing:
            if not existing.is_expired(now):
                logger.info(f"Re-issuing open session {existing.id} for course {course_id}, meeting {session_number}.")
                return existing
            # Release the meeting slot held by a session the sweeper has not reached yet.
            await self.db_client.deactivate_session(existing.id)
            logger.info(f"Deactivated expired session {existing.id} before reopening meeting {session_number}.")

        expires_at = now + timedelta(minutes=ttl_minutes)
        for attempt in range(1, self.max_code_attempts + 1):
            code = generate_code(self.code_length, self.code_alphabet)
            try:
                session = await self.db_client.insert_session(
                    course_id=course_id,
                    session_number=session_number,
                    code=code,
                    session_date=now.date(),
                    created_by=instructor.id,
                    expires_at=expires_at,
                )
            except ConstraintViolationError as e:
                if e.constraint == ACTIVE_CODE_CONSTRAINT:
                    logger.warning(f"Session code collision on attempt {attempt}/{self.max_code_attempts}; regenerating.")
                    continue
                if e.constraint == ACTIVE_MEETING_CONSTRAINT:
                    return await self._fetch_concurrent_winner(course_id, session_number)
                raise
            logger.info(f"Session {session.id} opened for course {course_id}, meeting {session_number}, expires at {expires_at.isoformat()}.")
            return session

        logger.error(f"Could not find a free session code after {self.max_code_attempts} attempts.")
        raise CodeSpaceExhaustedError("Could not generate a unique session code. Please try again.")

    async def _fetch_concurrent_winner(self, course_id: UUID, session_number: int) -> Session:
        winner = await self.db_client.get_active_session(course_id, session_number)
        if winner is None:
            # The winner was closed between our insert and this read.
            raise SessionConflictError("The session was opened and closed concurrently. Please try again.")
        logger.info(f"Concurrent open for course {course_id}, meeting {session_number}; returning session {winner.id}.")
        return winner

    async def close_session(self, instructor: Principal, session_id: UUID) -> None:
        """Closes a session. Closing an already-closed session succeeds quietly."""
        session = await self.db_client.get_session_by_id(session_id)
        if session is None:
            raise NotFoundError("Session not found.")
        try:
            await require_course_owner(self.db_client, instructor, session.course_id)
        except AuthorizationError:
            logger.warning(f"Principal '{instructor.id}' tried to close session {session_id} without owning its course.")
            raise

        if not session.is_active:
            logger.info(f"Session {session_id} is already closed.")
            return
        await self.db_client.deactivate_session(session_id)
        logger.info(f"Session {session_id} closed by '{instructor.id}'.")

    async def get_active_session(self, course_id: UUID, session_number: int) -> Optional[Session]:
        """The meeting's live session. One past its deadline counts as closed even before the sweep."""
        session = await self.db_client.get_active_session(course_id, session_number)
        if session is None or session.is_expired(datetime.now(timezone.utc)):
            return None
        return session
