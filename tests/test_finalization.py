import pytest

from app.core.exceptions import (
    AlreadyFinalizedError,
    FinalizedExamImmutableError,
    NotFoundError,
    ValidationError,
)
from app.schemas.monthly_exam import IndividualExamCreate, MonthlyMarkUpsert
from app.services.monthly_exam import MonthlyExamService


@pytest.fixture
def finalized(db, make_batch, make_user, make_exam, add_mark):
    batch = make_batch()
    student = make_user(batch=batch)
    exam, (component, _) = make_exam(batch)
    add_mark(exam, component, student, 30)

    service = MonthlyExamService(db)
    service.finalize(exam.id)
    return service, exam, component, student


def test_finalize_ranks_then_locks(finalized):
    service, exam, _, student = finalized

    assert exam.is_finalized is True
    (result,) = service.list_results(exam.id)
    assert result.student_id == student.id
    assert result.rank == 1
    assert result.total_exam_marks == 30


def test_finalize_twice_is_rejected(finalized):
    service, exam, _, _ = finalized

    with pytest.raises(AlreadyFinalizedError):
        service.finalize(exam.id)


def test_bonus_locked_after_finalize(finalized):
    service, exam, _, student = finalized

    with pytest.raises(AlreadyFinalizedError):
        service.update_bonus_marks(exam.id, student.id, 3)

    (result,) = service.list_results(exam.id)
    assert result.bonus_marks == 0


def test_marks_locked_after_finalize(finalized):
    service, exam, component, student = finalized

    with pytest.raises(FinalizedExamImmutableError):
        service.upsert_mark(
            MonthlyMarkUpsert(
                monthly_exam_id=exam.id,
                individual_exam_id=component.id,
                student_id=student.id,
                obtained_marks=50,
            )
        )

    assert service.sum_by_student(exam.id, student.id) == 30


def test_individual_exams_locked_after_finalize(finalized):
    service, exam, _, _ = finalized

    with pytest.raises(FinalizedExamImmutableError):
        service.create_individual_exam(
            IndividualExamCreate(monthly_exam_id=exam.id, name="Late quiz", total_marks=10)
        )


def test_unfinalize_reopens_and_keeps_results(finalized):
    service, exam, component, student = finalized

    service.unfinalize(exam.id)

    assert exam.is_finalized is False
    (result,) = service.list_results(exam.id)
    assert result.rank == 1

    service.update_bonus_marks(exam.id, student.id, 4)
    service.upsert_mark(
        MonthlyMarkUpsert(
            monthly_exam_id=exam.id,
            individual_exam_id=component.id,
            student_id=student.id,
            obtained_marks=35,
        )
    )
    (row,) = service.generate_final_ranking(exam.id)
    assert row.final_total == 39


def test_finalize_unknown_exam(db):
    with pytest.raises(NotFoundError):
        MonthlyExamService(db).finalize(999)


# ==========================================
# Mark store validation
# ==========================================

def test_mark_above_total_rejected(db, make_batch, make_user, make_exam):
    batch = make_batch()
    student = make_user(batch=batch)
    exam, (component, _) = make_exam(batch)

    with pytest.raises(ValidationError):
        MonthlyExamService(db).upsert_mark(
            MonthlyMarkUpsert(
                monthly_exam_id=exam.id,
                individual_exam_id=component.id,
                student_id=student.id,
                obtained_marks=51,
            )
        )


def test_mark_for_component_of_other_exam_rejected(db, make_batch, make_user, make_exam):
    batch = make_batch()
    student = make_user(batch=batch)
    exam, _ = make_exam(batch)
    _, (foreign_component, _) = make_exam(batch, month=4, title="April Monthly")

    with pytest.raises(ValidationError):
        MonthlyExamService(db).upsert_mark(
            MonthlyMarkUpsert(
                monthly_exam_id=exam.id,
                individual_exam_id=foreign_component.id,
                student_id=student.id,
                obtained_marks=10,
            )
        )


def test_upsert_overwrites_existing_mark(db, make_batch, make_user, make_exam):
    batch = make_batch()
    student = make_user(batch=batch)
    exam, (first, second) = make_exam(batch)
    service = MonthlyExamService(db)

    def enter(component, marks):
        return service.upsert_mark(
            MonthlyMarkUpsert(
                monthly_exam_id=exam.id,
                individual_exam_id=component.id,
                student_id=student.id,
                obtained_marks=marks,
            )
        )

    original = enter(first, 20)
    updated = enter(first, 25)
    enter(second, 40)

    assert updated.id == original.id
    assert len(service.list_marks(exam.id)) == 2
    assert service.sum_by_student(exam.id, student.id) == 65
