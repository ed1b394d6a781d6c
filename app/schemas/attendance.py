"""Attendance schemas."""

from datetime import date, datetime

from pydantic import Field

from app.models.attendance import AttendanceStatus
from app.schemas.common import BaseSchema


class AttendanceEntry(BaseSchema):
    """One student's status within a batch attendance sheet."""

    student_id: int
    status: AttendanceStatus = AttendanceStatus.PRESENT
    notes: str | None = None


class BulkAttendanceCreate(BaseSchema):
    """Attendance sheet for one batch on one day."""

    batch_id: int
    attendance_date: date
    entries: list[AttendanceEntry] = Field(..., min_length=1)


class AttendanceRecordResponse(BaseSchema):
    """Attendance record response schema."""

    id: int
    student_id: int
    student_name: str
    batch_id: int
    attendance_date: date
    status: AttendanceStatus
    notes: str | None
    created_at: datetime
    updated_at: datetime


class BulkAttendanceResponse(BaseSchema):
    """Bulk attendance operation response."""

    total_records: int
    created: int
    updated: int
    message: str
