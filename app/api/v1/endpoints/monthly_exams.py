"""Monthly exam, ranking and finalization endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import CurrentUser, StaffUser
from app.models.user import UserRole
from app.schemas.monthly_exam import (
    BonusMarksUpdate,
    IndividualExamResponse,
    MonthlyExamCreate,
    MonthlyExamResponse,
    MonthlyMarkResponse,
    MonthlyResultResponse,
    ResultNotificationResponse,
    TopAchiever,
)
from app.services.monthly_exam import MonthlyExamService

router = APIRouter()


@router.get("/top-achievers", response_model=list[TopAchiever])
def get_top_achievers(
    db: Annotated[Session, Depends(get_db)],
):
    """
    Top three students of every batch's finalized exam for the current month,
    falling back to the batch's latest finalized exam.
    Public endpoint.
    """
    return MonthlyExamService(db).top_achievers()


@router.get("", response_model=list[MonthlyExamResponse])
def list_monthly_exams(
    user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
    batch_id: int | None = None,
):
    """
    List monthly exams, newest first.
    Students only see exams of their own batch.
    """
    if user.role == UserRole.STUDENT:
        batch_id = user.batch_id
        if batch_id is None:
            return []
    return MonthlyExamService(db).list_monthly_exams(batch_id)


@router.post("", response_model=MonthlyExamResponse)
def create_monthly_exam(
    request: MonthlyExamCreate,
    user: StaffUser,
    db: Annotated[Session, Depends(get_db)],
):
    """Create a monthly exam for a batch. Teachers and super users only."""
    return MonthlyExamService(db).create_monthly_exam(request, created_by=user.id)


@router.get("/{monthly_exam_id}", response_model=MonthlyExamResponse)
def get_monthly_exam(
    monthly_exam_id: int,
    user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
):
    """Get a monthly exam."""
    service = MonthlyExamService(db)
    exam = service.get_monthly_exam(monthly_exam_id)
    service.ensure_can_view(exam, user)
    return exam


@router.get("/{monthly_exam_id}/exams", response_model=list[IndividualExamResponse])
def list_individual_exams(
    monthly_exam_id: int,
    user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
):
    """List the individual exams of a monthly exam."""
    service = MonthlyExamService(db)
    exam = service.get_monthly_exam(monthly_exam_id)
    service.ensure_can_view(exam, user)
    return service.list_individual_exams(exam.id)


@router.get("/{monthly_exam_id}/marks", response_model=list[MonthlyMarkResponse])
def list_monthly_marks(
    monthly_exam_id: int,
    user: StaffUser,
    db: Annotated[Session, Depends(get_db)],
):
    """All marks recorded for a monthly exam."""
    service = MonthlyExamService(db)
    service.get_monthly_exam(monthly_exam_id)
    return service.list_marks(monthly_exam_id)


@router.put("/{monthly_exam_id}/bonus-marks", response_model=MonthlyResultResponse)
def update_bonus_marks(
    monthly_exam_id: int,
    request: BonusMarksUpdate,
    user: StaffUser,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Set a student's bonus marks.
    The student must belong to the exam's batch. The bonus is kept across
    ranking regenerations. An existing result keeps its old final_total
    until the ranking is generated again.
    """
    service = MonthlyExamService(db)
    row = service.update_bonus_marks(monthly_exam_id, request.student_id, request.bonus_marks)
    return service.result_to_response(row)


@router.post("/{monthly_exam_id}/generate-ranking", response_model=list[MonthlyResultResponse])
def generate_ranking(
    monthly_exam_id: int,
    user: StaffUser,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Recompute results and ranks for every student of the batch.
    Rejected with 409 once the exam is finalized.
    """
    service = MonthlyExamService(db)
    service.generate_final_ranking(monthly_exam_id)
    return service.list_results(monthly_exam_id)


@router.post("/{monthly_exam_id}/finalize", response_model=MonthlyExamResponse)
def finalize_monthly_exam(
    monthly_exam_id: int,
    user: StaffUser,
    db: Annotated[Session, Depends(get_db)],
):
    """Generate the final ranking and lock the exam."""
    return MonthlyExamService(db).finalize(monthly_exam_id)


@router.patch("/{monthly_exam_id}/unfinalize", response_model=MonthlyExamResponse)
def unfinalize_monthly_exam(
    monthly_exam_id: int,
    user: StaffUser,
    db: Annotated[Session, Depends(get_db)],
):
    """Reopen a finalized exam for editing."""
    return MonthlyExamService(db).unfinalize(monthly_exam_id)


@router.get("/{monthly_exam_id}/results", response_model=list[MonthlyResultResponse])
def get_results(
    monthly_exam_id: int,
    user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
):
    """Result rows ordered by rank."""
    service = MonthlyExamService(db)
    exam = service.get_monthly_exam(monthly_exam_id)
    service.ensure_can_view(exam, user)
    return service.list_results(exam.id)


@router.post("/{monthly_exam_id}/notify-results", response_model=ResultNotificationResponse)
def notify_results(
    monthly_exam_id: int,
    user: StaffUser,
    db: Annotated[Session, Depends(get_db)],
):
    """
    SMS each ranked student their monthly result.
    The exam must be finalized and the SMS balance must cover every recipient.
    """
    return MonthlyExamService(db).notify_results(monthly_exam_id, sent_by=user.id)
