from datetime import date

import pytest

from app.core.exceptions import ValidationError
from app.models.attendance import AttendanceStatus
from app.schemas.attendance import AttendanceEntry, BulkAttendanceCreate
from app.services.attendance import AttendanceService, month_window


def test_count_present_uses_inclusive_month_bounds(db, make_batch, make_user, add_present_days):
    batch = make_batch()
    student = make_user(batch=batch)
    add_present_days(student, batch, 2026, 1, 31)
    add_present_days(student, batch, 2026, 2, 28)

    start, end = month_window(2026, 2)

    assert AttendanceService(db).count_present(batch.id, student.id, start, end) == 28


def test_count_present_ignores_other_batches(db, make_batch, make_user, add_present_days):
    batch, other = make_batch(), make_batch(name="Batch B")
    student = make_user(batch=batch)
    add_present_days(student, other, 2026, 3, 5)

    start, end = month_window(2026, 3)

    assert AttendanceService(db).count_present(batch.id, student.id, start, end) == 0


def test_mark_attendance_upserts_per_day(db, make_batch, make_user):
    batch = make_batch()
    a, b = make_user(batch=batch), make_user(batch=batch)
    service = AttendanceService(db)

    first = service.mark_attendance(
        BulkAttendanceCreate(
            batch_id=batch.id,
            attendance_date=date(2026, 3, 9),
            entries=[AttendanceEntry(student_id=a.id), AttendanceEntry(student_id=b.id)],
        )
    )
    second = service.mark_attendance(
        BulkAttendanceCreate(
            batch_id=batch.id,
            attendance_date=date(2026, 3, 9),
            entries=[AttendanceEntry(student_id=b.id, status=AttendanceStatus.ABSENT)],
        )
    )

    assert (first.created, first.updated) == (2, 0)
    assert (second.created, second.updated) == (0, 1)
    counts = service.present_counts(batch.id, *month_window(2026, 3))
    assert counts == {a.id: 1}


def test_mark_attendance_rejects_students_outside_batch(db, make_batch, make_user):
    batch = make_batch()
    outsider = make_user()

    with pytest.raises(ValidationError) as exc_info:
        AttendanceService(db).mark_attendance(
            BulkAttendanceCreate(
                batch_id=batch.id,
                attendance_date=date(2026, 3, 9),
                entries=[AttendanceEntry(student_id=outsider.id)],
            )
        )

    assert exc_info.value.details == {"student_ids": [outsider.id]}
