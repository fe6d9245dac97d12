from fastapi import APIRouter, Depends, Request
from typing import List

from ..services.redemption_service import RedemptionService
from ..services.course_service import CourseService
from ..services.errors import ServiceError
from ..db.db_client import StoreError
from ..models.db_models import Principal
from .schemas.attendance import (
    AttendanceRecordResponse,
    AttendanceStatusRequest,
    RedeemRequest,
    RedeemResponse,
)
from .auth import require_doctor, require_student
from .dependencies import get_course_service, get_redemption_service
from .utilities.errors import to_http_exception
from .utilities.limiter import limiter

router = APIRouter(prefix="/attendance", tags=["Attendance"])


@router.post("/redeem", response_model=RedeemResponse, summary="Redeem a session code")
@limiter.limit("20/minute")
async def redeem_code(
    request: Request,
    redeem_request: RedeemRequest,
    user: Principal = Depends(require_student),
    service: RedemptionService = Depends(get_redemption_service)
):
    """
    Marks the calling student present for the code's meeting. Repeating the
    call is safe: it answers 'alreadyRecorded' with the same record id.
    """
    try:
        result = await service.redeem(student_id=user.id, code=redeem_request.code)
    except (ServiceError, StoreError) as e:
        raise to_http_exception(e) from e
    return RedeemResponse(status=result.outcome, record_id=result.record.id)


@router.get("/me", response_model=List[AttendanceRecordResponse], summary="List my attendance records")
@limiter.limit("30/minute")
async def get_my_attendance(
    request: Request,
    user: Principal = Depends(require_student),
    service: CourseService = Depends(get_course_service)
):
    try:
        return await service.list_my_attendance(user)
    except (ServiceError, StoreError) as e:
        raise to_http_exception(e) from e


@router.put("/status", response_model=AttendanceRecordResponse, summary="Override a student's attendance status")
@limiter.limit("200/minute")
async def set_attendance_status(
    request: Request,
    status_request: AttendanceStatusRequest,
    user: Principal = Depends(require_doctor),
    service: CourseService = Depends(get_course_service)
):
    try:
        return await service.set_attendance_status(
            instructor=user,
            course_id=status_request.course_id,
            student_id=status_request.student_id,
            record_date=status_request.date,
            status=status_request.status,
        )
    except (ServiceError, StoreError) as e:
        raise to_http_exception(e) from e
