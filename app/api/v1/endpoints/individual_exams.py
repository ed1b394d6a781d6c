"""Individual exam endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import StaffUser
from app.schemas.monthly_exam import (
    IndividualExamCreate,
    IndividualExamResponse,
    MonthlyMarkResponse,
)
from app.services.monthly_exam import MonthlyExamService

router = APIRouter()


@router.post("", response_model=IndividualExamResponse)
def create_individual_exam(
    request: IndividualExamCreate,
    user: StaffUser,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Add an individual exam (graded component) to a monthly exam.
    Not allowed once the monthly exam is finalized.
    """
    return MonthlyExamService(db).create_individual_exam(request)


@router.get("/{individual_exam_id}/marks", response_model=list[MonthlyMarkResponse])
def list_individual_exam_marks(
    individual_exam_id: int,
    user: StaffUser,
    db: Annotated[Session, Depends(get_db)],
):
    """Marks recorded for one individual exam."""
    return MonthlyExamService(db).list_marks_for_individual_exam(individual_exam_id)
