from fastapi import APIRouter, Depends, Request, Query
from typing import Optional
from uuid import UUID

from ..services.session_service import SessionService
from ..services.errors import ServiceError
from ..db.db_client import StoreError
from ..models.db_models import Principal
from .schemas.session import (
    OkResponse,
    SessionCloseRequest,
    SessionOpenRequest,
    SessionOpenResponse,
    SessionResponse,
)
from .auth import get_current_principal, require_doctor
from .dependencies import get_session_service
from .utilities.errors import to_http_exception
from .utilities.limiter import limiter

router = APIRouter(prefix="/sessions", tags=["Attendance Sessions"])


@router.post("/open", response_model=SessionOpenResponse, summary="Open (or re-issue) a meeting's attendance session")
@limiter.limit("30/minute")
async def open_session(
    request: Request,
    open_request: SessionOpenRequest,
    user: Principal = Depends(require_doctor),
    service: SessionService = Depends(get_session_service)
):
    """
    Returns the code students redeem. Calling this again for the same meeting
    before the code expires returns the same session and code.
    """
    try:
        session = await service.open_session(
            instructor=user,
            course_id=open_request.course_id,
            session_number=open_request.session_number,
            ttl_minutes=open_request.ttl_minutes,
        )
    except (ServiceError, StoreError) as e:
        raise to_http_exception(e) from e
    return SessionOpenResponse(session_id=session.id, code=session.code, expires_at=session.expires_at)


@router.post("/close", response_model=OkResponse, summary="Close an attendance session")
@limiter.limit("30/minute")
async def close_session(
    request: Request,
    close_request: SessionCloseRequest,
    user: Principal = Depends(require_doctor),
    service: SessionService = Depends(get_session_service)
):
    try:
        await service.close_session(instructor=user, session_id=close_request.session_id)
    except (ServiceError, StoreError) as e:
        raise to_http_exception(e) from e
    return OkResponse(ok=True)


@router.get("/active", response_model=Optional[SessionResponse], summary="Get the open session of a meeting, if any")
@limiter.limit("60/minute")
async def get_active_session(
    request: Request,
    course_id: UUID = Query(..., alias="courseId"),
    session_number: int = Query(..., alias="sessionNumber"),
    user: Principal = Depends(get_current_principal),
    service: SessionService = Depends(get_session_service)
):
    try:
        return await service.get_active_session(course_id, session_number)
    except StoreError as e:
        raise to_http_exception(e) from e
