from pydantic import Field
from uuid import UUID
from datetime import date, datetime

from ...config.config import settings
from .base import CamelModel


class SessionOpenRequest(CamelModel):
    """Request model for opening (or re-issuing) a meeting's attendance session."""
    course_id: UUID
    session_number: int = Field(..., description="Meeting number within the course, starting at 1.")
    ttl_minutes: int = Field(settings.SESSION_TTL_DEFAULT_MINUTES, description="How long the code stays redeemable.")


class SessionOpenResponse(CamelModel):
    session_id: UUID
    code: str
    expires_at: datetime


class SessionCloseRequest(CamelModel):
    session_id: UUID


class OkResponse(CamelModel):
    ok: bool = True


class SessionResponse(CamelModel):
    """Full view of a session, for the instructor's dashboard."""
    id: UUID
    course_id: UUID
    session_number: int
    code: str
    date: date
    created_by: UUID
    expires_at: datetime
    is_active: bool
