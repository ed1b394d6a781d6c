from datetime import date
from decimal import Decimal

import pytest

from app.core.exceptions import AlreadyFinalizedError, ValidationError
from app.models.attendance import AttendanceRecord, AttendanceStatus
from app.schemas.monthly_exam import MonthlyMarkUpsert
from app.services.attendance import month_window
from app.services.monthly_exam import (
    MonthlyExamService,
    build_standing,
    calculate_gpa,
    rank_standings,
)


@pytest.fixture
def scenario(db, make_batch, make_user, make_exam, add_mark, add_present_days):
    """Two students, two 50-mark exams, March 2026."""
    batch = make_batch()
    x = make_user(batch=batch, first_name="Xavier")
    y = make_user(batch=batch, first_name="Yasmin")
    exam, (first, second) = make_exam(batch)

    add_mark(exam, first, x, 40)
    add_mark(exam, second, x, 45)
    add_mark(exam, first, y, 20)
    add_mark(exam, second, y, 20)
    add_present_days(x, batch, 2026, 3, 18)
    add_present_days(y, batch, 2026, 3, 10)

    service = MonthlyExamService(db)
    service.update_bonus_marks(exam.id, x.id, 2)
    return service, exam, x, y


def test_example_scenario(scenario):
    service, exam, x, y = scenario

    rows = {row.student_id: row for row in service.generate_final_ranking(exam.id)}

    assert rows[x.id].total_exam_marks == 85
    assert rows[x.id].attendance_marks == 18
    assert rows[x.id].bonus_marks == 2
    assert rows[x.id].final_total == 105
    assert rows[x.id].percentage == Decimal("85.00")
    assert rows[x.id].gpa == Decimal("5.00")
    assert rows[x.id].rank == 1

    assert rows[y.id].final_total == 50
    assert rows[y.id].percentage == Decimal("40.00")
    assert rows[y.id].gpa == Decimal("2.00")
    assert rows[y.id].rank == 2


def test_every_batch_student_gets_exactly_one_row(db, scenario, make_user):
    service, exam, x, y = scenario
    batch = exam.batch
    z = make_user(batch=batch, first_name="Zara")  # no marks, no attendance

    service.generate_final_ranking(exam.id)
    results = service.list_results(exam.id)

    assert sorted(r.student_id for r in results) == sorted([x.id, y.id, z.id])
    zara = next(r for r in results if r.student_id == z.id)
    assert zara.final_total == 0
    assert zara.percentage == Decimal("0.00")
    assert zara.gpa == Decimal("0.00")
    assert zara.rank == 3


def test_final_total_is_sum_of_parts(scenario):
    service, exam, _, _ = scenario

    for row in service.generate_final_ranking(exam.id):
        assert row.final_total == row.total_exam_marks + row.attendance_marks + row.bonus_marks


def test_ranks_follow_final_total(db, make_batch, make_user, make_exam, add_mark):
    batch = make_batch()
    students = [make_user(batch=batch) for _ in range(4)]
    exam, (component,) = make_exam(batch, component_marks=(100,))
    for student, marks in zip(students, [30, 90, 60, 75]):
        add_mark(exam, component, student, marks)

    results = MonthlyExamService(db).generate_final_ranking(exam.id)
    ordered = sorted(results, key=lambda r: r.rank)

    assert [r.rank for r in ordered] == [1, 2, 3, 4]
    assert [r.final_total for r in ordered] == [90, 75, 60, 30]


def test_equal_final_totals_prefer_exam_marks_then_student_id(
    db, make_batch, make_user, make_exam, add_mark, add_present_days
):
    batch = make_batch()
    a = make_user(batch=batch)
    b = make_user(batch=batch)
    c = make_user(batch=batch)
    exam, (component,) = make_exam(batch, component_marks=(100,))
    # a: 50 + 10 attendance = 60, b: 60 exam = 60, c: 60 exam = 60
    add_mark(exam, component, a, 50)
    add_mark(exam, component, b, 60)
    add_mark(exam, component, c, 60)
    add_present_days(a, batch, 2026, 3, 10)

    rows = {r.student_id: r.rank for r in MonthlyExamService(db).generate_final_ranking(exam.id)}

    assert rows[b.id] == 1
    assert rows[c.id] == 2
    assert rows[a.id] == 3


def test_regeneration_is_idempotent(scenario):
    service, exam, _, _ = scenario

    def snapshot():
        return [
            (r.student_id, r.total_exam_marks, r.attendance_marks, r.bonus_marks,
             r.final_total, r.rank, r.percentage, r.gpa)
            for r in service.list_results(exam.id)
        ]

    service.generate_final_ranking(exam.id)
    first = snapshot()
    service.generate_final_ranking(exam.id)

    assert snapshot() == first


def test_bonus_survives_regeneration(db, scenario, add_mark):
    service, exam, x, y = scenario
    service.update_bonus_marks(exam.id, y.id, 5)
    service.generate_final_ranking(exam.id)

    # New marks trigger another pass
    first = service.list_individual_exams(exam.id)[0]
    service.upsert_mark(
        MonthlyMarkUpsert(
            monthly_exam_id=exam.id,
            individual_exam_id=first.id,
            student_id=y.id,
            obtained_marks=25,
        )
    )
    rows = {r.student_id: r for r in service.generate_final_ranking(exam.id)}

    assert rows[y.id].bonus_marks == 5
    assert rows[y.id].total_exam_marks == 45
    assert rows[y.id].final_total == 45 + 10 + 5
    assert rows[x.id].bonus_marks == 2


def test_bonus_placeholder_row_before_ranking(db, make_batch, make_user, make_exam):
    batch = make_batch()
    student = make_user(batch=batch)
    exam, _ = make_exam(batch)

    row = MonthlyExamService(db).update_bonus_marks(exam.id, student.id, 7)

    assert row.bonus_marks == 7
    assert row.final_total == 7
    assert row.total_exam_marks == 0
    assert row.attendance_marks == 0
    assert row.rank is None


def test_bonus_rejected_for_student_outside_batch(db, make_batch, make_user, make_exam):
    batch, other = make_batch(), make_batch(name="Batch B")
    outsider = make_user(batch=other, first_name="Omar")
    exam, _ = make_exam(batch)
    service = MonthlyExamService(db)

    with pytest.raises(ValidationError) as exc_info:
        service.update_bonus_marks(exam.id, outsider.id, 99)

    assert exc_info.value.details == {"student_id": outsider.id, "batch_id": batch.id}
    assert service.list_results(exam.id) == []


def test_bonus_edit_leaves_final_total_until_next_ranking(scenario):
    service, exam, x, y = scenario
    service.generate_final_ranking(exam.id)

    row = service.update_bonus_marks(exam.id, y.id, 5)

    assert row.bonus_marks == 5
    assert row.final_total == 50
    rows = {r.student_id: r for r in service.generate_final_ranking(exam.id)}
    assert rows[y.id].final_total == 55


def test_attendance_outside_month_or_not_present_is_ignored(
    db, make_batch, make_user, make_exam
):
    batch = make_batch()
    student = make_user(batch=batch)
    exam, _ = make_exam(batch, month=3, year=2026)
    for day, status in [
        (date(2026, 2, 28), AttendanceStatus.PRESENT),
        (date(2026, 3, 1), AttendanceStatus.PRESENT),
        (date(2026, 3, 31), AttendanceStatus.PRESENT),
        (date(2026, 3, 15), AttendanceStatus.ABSENT),
        (date(2026, 3, 16), AttendanceStatus.EXCUSED),
        (date(2026, 4, 1), AttendanceStatus.PRESENT),
    ]:
        db.add(AttendanceRecord(student_id=student.id, batch_id=batch.id, attendance_date=day, status=status))
    db.flush()

    (row,) = MonthlyExamService(db).generate_final_ranking(exam.id)

    assert row.attendance_marks == 2


def test_student_who_left_batch_keeps_row_without_rank(db, scenario):
    service, exam, x, y = scenario
    service.generate_final_ranking(exam.id)

    y.batch_id = None
    db.flush()
    service.generate_final_ranking(exam.id)
    results = {r.student_id: r for r in service.list_results(exam.id)}

    assert results[x.id].rank == 1
    assert results[y.id].rank is None
    assert service.list_results(exam.id)[-1].student_id == y.id


def test_top_achievers_skip_students_who_left(db, scenario):
    service, exam, x, y = scenario
    service.generate_final_ranking(exam.id)
    y.batch_id = None
    db.flush()
    service.finalize(exam.id)

    top = service.top_achievers(date(2026, 3, 15))

    assert [(a.student_name, a.rank) for a in top] == [(x.full_name, 1)]


def test_no_individual_exams_gives_zero_percentage(db, make_batch, make_user, make_exam):
    batch = make_batch()
    make_user(batch=batch)
    exam, _ = make_exam(batch, component_marks=())

    (row,) = MonthlyExamService(db).generate_final_ranking(exam.id)

    assert row.percentage == Decimal("0.00")
    assert row.gpa == Decimal("0.00")


def test_ranking_rejected_once_finalized(db, scenario):
    service, exam, _, _ = scenario
    service.finalize(exam.id)

    with pytest.raises(AlreadyFinalizedError):
        service.generate_final_ranking(exam.id)


@pytest.mark.parametrize(
    "percentage, expected",
    [
        ("100", "5.00"),
        ("80", "5.00"),
        ("79.99", "4.00"),
        ("70", "4.00"),
        ("60", "3.50"),
        ("50", "3.00"),
        ("40", "2.00"),
        ("33", "1.00"),
        ("32.99", "0.00"),
        ("0", "0.00"),
    ],
)
def test_gpa_bands(percentage, expected):
    assert calculate_gpa(Decimal(percentage)) == Decimal(expected)


def test_percentage_rounds_half_up():
    # 1/8 = 12.5%, 1/3 = 33.333...%
    assert build_standing(1, 1, 0, 0, 8).percentage == Decimal("12.50")
    assert build_standing(1, 1, 0, 0, 3).percentage == Decimal("33.33")
    assert build_standing(1, 2, 0, 0, 3).percentage == Decimal("66.67")


def test_gpa_uses_unrounded_percentage():
    # 32.995% rounds to 33.00 for display but is still below the 33 band
    standing = build_standing(1, 6599, 0, 0, 20000)
    assert standing.percentage == Decimal("33.00")
    assert standing.gpa == Decimal("0.00")


def test_rank_standings_numbers_from_one():
    standings = [build_standing(i, marks, 0, 0, 100) for i, marks in [(3, 10), (1, 30), (2, 20)]]

    assert [(rank, s.student_id) for rank, s in rank_standings(standings)] == [(1, 1), (2, 2), (3, 3)]
    assert rank_standings([]) == []


def test_month_window_covers_whole_month():
    assert month_window(2026, 2) == (date(2026, 2, 1), date(2026, 2, 28))
    assert month_window(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))
    assert month_window(2026, 12) == (date(2026, 12, 1), date(2026, 12, 31))
