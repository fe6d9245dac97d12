from fastapi import APIRouter, Depends, Request, Query, status
from typing import List, Optional
from uuid import UUID
from datetime import date

from ..services.course_service import CourseService
from ..services.errors import ServiceError
from ..db.db_client import StoreError
from ..models.db_models import Principal
from .schemas.attendance import AttendanceRecordResponse
from .schemas.course import (
    CountResponse,
    CourseCreateRequest,
    CourseDeleteRequest,
    CourseResponse,
    CourseUpdateRequest,
    EnrollStudentsRequest,
    StudentsDeleteAllRequest,
    StudentsDeleteRequest,
)
from .auth import require_doctor
from .dependencies import get_course_service
from .utilities.errors import to_http_exception
from .utilities.limiter import limiter

router = APIRouter(prefix="/courses", tags=["Courses"])
students_router = APIRouter(prefix="/students", tags=["Course Students"])

# === COURSES ===

@router.get("", response_model=List[CourseResponse], summary="List my courses")
@limiter.limit("60/minute")
async def list_courses(request: Request, user: Principal = Depends(require_doctor), service: CourseService = Depends(get_course_service)):
    try:
        return await service.list_courses(user)
    except (ServiceError, StoreError) as e:
        raise to_http_exception(e) from e

@router.post("", response_model=CourseResponse, status_code=status.HTTP_201_CREATED, summary="Create a course")
@limiter.limit("20/minute")
async def create_course(request: Request, create_request: CourseCreateRequest, user: Principal = Depends(require_doctor), service: CourseService = Depends(get_course_service)):
    try:
        return await service.create_course(user, create_request.name)
    except (ServiceError, StoreError) as e:
        raise to_http_exception(e) from e

@router.put("/update", response_model=CourseResponse, summary="Rename a course")
@limiter.limit("20/minute")
async def update_course(request: Request, update_request: CourseUpdateRequest, user: Principal = Depends(require_doctor), service: CourseService = Depends(get_course_service)):
    try:
        return await service.update_course_name(user, update_request.course_id, update_request.name)
    except (ServiceError, StoreError) as e:
        raise to_http_exception(e) from e

@router.delete("/delete", response_model=CountResponse, summary="Delete a course with its sessions, students and attendance")
@limiter.limit("10/minute")
async def delete_course(request: Request, delete_request: CourseDeleteRequest, user: Principal = Depends(require_doctor), service: CourseService = Depends(get_course_service)):
    try:
        await service.delete_course(user, delete_request.course_id)
    except (ServiceError, StoreError) as e:
        raise to_http_exception(e) from e
    return CountResponse(count=1, message="Course deleted")

@router.delete("/delete-all", response_model=CountResponse, summary="Delete all of my courses")
@limiter.limit("5/minute")
async def delete_all_courses(request: Request, user: Principal = Depends(require_doctor), service: CourseService = Depends(get_course_service)):
    try:
        deleted = await service.delete_all_courses(user)
    except (ServiceError, StoreError) as e:
        raise to_http_exception(e) from e
    message = f"Successfully deleted {deleted} course(s)" if deleted else "No courses to delete"
    return CountResponse(count=deleted, message=message)

@router.get("/{course_id}/attendance", response_model=List[AttendanceRecordResponse], summary="List a course's attendance records")
@limiter.limit("60/minute")
async def list_course_attendance(
    request: Request,
    course_id: UUID,
    record_date: Optional[date] = Query(None, alias="date"),
    user: Principal = Depends(require_doctor),
    service: CourseService = Depends(get_course_service)
):
    try:
        return await service.list_course_attendance(user, course_id, record_date)
    except (ServiceError, StoreError) as e:
        raise to_http_exception(e) from e

@router.post("/{course_id}/students", response_model=CountResponse, status_code=status.HTTP_201_CREATED, summary="Enroll students in a course")
@limiter.limit("60/minute")
async def enroll_students(request: Request, course_id: UUID, enroll_request: EnrollStudentsRequest, user: Principal = Depends(require_doctor), service: CourseService = Depends(get_course_service)):
    try:
        added = await service.enroll_students(user, course_id, enroll_request.student_ids)
    except (ServiceError, StoreError) as e:
        raise to_http_exception(e) from e
    return CountResponse(count=added, message=f"Successfully added {added} student(s) to the course")

# === COURSE STUDENTS ===

@students_router.delete("/delete", response_model=CountResponse, summary="Remove students from a course")
@limiter.limit("30/minute")
async def remove_students(request: Request, delete_request: StudentsDeleteRequest, user: Principal = Depends(require_doctor), service: CourseService = Depends(get_course_service)):
    try:
        removed = await service.remove_students(user, delete_request.course_id, delete_request.student_ids)
    except (ServiceError, StoreError) as e:
        raise to_http_exception(e) from e
    return CountResponse(count=removed, message=f"Successfully removed {removed} student(s) from the course")

@students_router.delete("/delete-all", response_model=CountResponse, summary="Remove every student from a course")
@limiter.limit("10/minute")
async def remove_all_students(request: Request, delete_request: StudentsDeleteAllRequest, user: Principal = Depends(require_doctor), service: CourseService = Depends(get_course_service)):
    try:
        removed = await service.remove_all_students(user, delete_request.course_id)
    except (ServiceError, StoreError) as e:
        raise to_http_exception(e) from e
    return CountResponse(count=removed, message="Successfully removed all students from the course")
