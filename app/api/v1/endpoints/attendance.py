"""Attendance management endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import CurrentUser, StaffUser
from app.core.exceptions import ForbiddenError
from app.models.attendance import AttendanceStatus
from app.models.user import UserRole
from app.schemas.attendance import (
    AttendanceRecordResponse,
    BulkAttendanceCreate,
    BulkAttendanceResponse,
)
from app.services.attendance import AttendanceService
from app.services.student import StudentService

router = APIRouter()


@router.post("", response_model=BulkAttendanceResponse)
def mark_attendance(
    request: BulkAttendanceCreate,
    user: StaffUser,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Save a batch's attendance sheet for one day.
    Existing records of that day are updated in place.
    """
    StudentService(db).get_batch(request.batch_id)
    return AttendanceService(db).mark_attendance(request, marked_by=user.id)


@router.get("", response_model=list[AttendanceRecordResponse])
def list_attendance(
    user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
    batch_id: int = Query(...),
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    status: AttendanceStatus | None = None,
):
    """
    Attendance records of a batch for one month.
    Students only see their own batch.
    """
    if user.role == UserRole.STUDENT and user.batch_id != batch_id:
        raise ForbiddenError("You can only view attendance for your own batch")
    return AttendanceService(db).list_records(batch_id, year, month, status=status)
