import logging
from typing import Optional
from uuid import UUID

from ..db.db_client import AsyncPostgresClient
from ..models.db_models import Course, Principal
from .errors import AuthorizationError

logger = logging.getLogger(__name__)


def _owns(principal: Principal, course: Optional[Course]) -> bool:
    return principal.is_doctor and course is not None and course.owner_id == principal.id


async def is_course_owner(db_client: AsyncPostgresClient, principal: Principal, course_id: UUID) -> bool:
    """True when the principal is an instructor and owns the course."""
    if not principal.is_doctor:
        return False
    return _owns(principal, await db_client.get_course(course_id))


async def require_course_owner(db_client: AsyncPostgresClient, principal: Principal, course_id: UUID) -> Course:
    """
    Returns the course when the principal owns it, raises AuthorizationError otherwise.
    A missing course is reported the same way as a foreign one.
    """
    course = await db_client.get_course(course_id) if principal.is_doctor else None
    if not _owns(principal, course):
        logger.warning(f"Principal '{principal.id}' ({principal.role}) denied access to course {course_id}.")
        raise AuthorizationError("Course not found or you are not authorized to manage it.")
    return course
