"""Attendance recording and monthly aggregation."""

import calendar
import logging
from collections import Counter
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.exceptions import ValidationError
from app.models.attendance import AttendanceRecord, AttendanceStatus
from app.schemas.attendance import (
    AttendanceRecordResponse,
    BulkAttendanceCreate,
    BulkAttendanceResponse,
)
from app.services.student import StudentService

logger = logging.getLogger(__name__)


def month_window(year: int, month: int) -> tuple[date, date]:
    """First and last calendar day of a month (both inclusive)."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


class AttendanceService:
    """Attendance management service."""

    def __init__(self, db: Session):
        self.db = db

    def _record_to_response(self, record: AttendanceRecord) -> dict:
        """Convert AttendanceRecord to response dict."""
        return {
            "id": record.id,
            "student_id": record.student_id,
            "student_name": record.student_name,
            "batch_id": record.batch_id,
            "attendance_date": record.attendance_date,
            "status": record.status,
            "notes": record.notes,
            "created_at": record.created_at,
            "updated_at": record.updated_at,
        }

    # ==========================================
    # Aggregation
    # ==========================================

    def count_present(
        self,
        batch_id: int,
        student_id: int,
        month_start: date,
        month_end: date,
    ) -> int:
        """Number of present days for a student in a batch between two dates."""
        result = self.db.execute(
            select(func.count()).where(
                AttendanceRecord.batch_id == batch_id,
                AttendanceRecord.student_id == student_id,
                AttendanceRecord.status == AttendanceStatus.PRESENT,
                AttendanceRecord.attendance_date >= month_start,
                AttendanceRecord.attendance_date <= month_end,
            )
        )
        return result.scalar() or 0

    def list_present(
        self,
        batch_id: int,
        month_start: date,
        month_end: date,
    ) -> list[AttendanceRecord]:
        """All present records of a batch between two dates."""
        result = self.db.execute(
            select(AttendanceRecord).where(
                AttendanceRecord.batch_id == batch_id,
                AttendanceRecord.status == AttendanceStatus.PRESENT,
                AttendanceRecord.attendance_date >= month_start,
                AttendanceRecord.attendance_date <= month_end,
            )
        )
        return list(result.scalars().all())

    def present_counts(
        self,
        batch_id: int,
        month_start: date,
        month_end: date,
    ) -> Counter:
        """Present-day count per student ID for a batch."""
        records = self.list_present(batch_id, month_start, month_end)
        return Counter(record.student_id for record in records)

    # ==========================================
    # Recording
    # ==========================================

    def mark_attendance(
        self,
        request: BulkAttendanceCreate,
        marked_by: int | None = None,
    ) -> BulkAttendanceResponse:
        """Create or update one record per student for a batch day."""
        students = StudentService(self.db).list_students_in_batch(request.batch_id)
        student_ids = {s.id for s in students}

        # Validate all student IDs before any DB operations
        unknown = [e.student_id for e in request.entries if e.student_id not in student_ids]
        if unknown:
            raise ValidationError(
                f"Students not in batch {request.batch_id}",
                details={"student_ids": unknown},
            )

        existing = {
            record.student_id: record
            for record in self.db.execute(
                select(AttendanceRecord).where(
                    AttendanceRecord.batch_id == request.batch_id,
                    AttendanceRecord.attendance_date == request.attendance_date,
                )
            ).scalars()
        }

        created = 0
        updated = 0
        for entry in request.entries:
            record = existing.get(entry.student_id)
            if record:
                record.status = entry.status
                record.notes = entry.notes
                record.marked_by = marked_by
                updated += 1
            else:
                self.db.add(
                    AttendanceRecord(
                        student_id=entry.student_id,
                        batch_id=request.batch_id,
                        attendance_date=request.attendance_date,
                        status=entry.status,
                        notes=entry.notes,
                        marked_by=marked_by,
                    )
                )
                created += 1

        self.db.flush()
        logger.info(
            f"[ATTENDANCE] Batch {request.batch_id} on {request.attendance_date}: "
            f"{created} created, {updated} updated"
        )

        return BulkAttendanceResponse(
            total_records=len(request.entries),
            created=created,
            updated=updated,
            message=f"Saved attendance for {created + updated} students",
        )

    def list_records(
        self,
        batch_id: int,
        year: int,
        month: int,
        status: AttendanceStatus | None = None,
    ) -> list[AttendanceRecordResponse]:
        """Attendance records of a batch for one month."""
        month_start, month_end = month_window(year, month)
        query = select(AttendanceRecord).where(
            AttendanceRecord.batch_id == batch_id,
            AttendanceRecord.attendance_date >= month_start,
            AttendanceRecord.attendance_date <= month_end,
        )
        if status:
            query = query.where(AttendanceRecord.status == status)

        result = self.db.execute(
            query.order_by(AttendanceRecord.attendance_date, AttendanceRecord.student_id)
        )
        return [
            AttendanceRecordResponse.model_validate(self._record_to_response(r))
            for r in result.scalars().all()
        ]
