"""Mark entry endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import StaffUser
from app.schemas.monthly_exam import (
    BulkMarkRequest,
    BulkMarkResponse,
    MonthlyMarkResponse,
    MonthlyMarkUpsert,
)
from app.services.monthly_exam import MonthlyExamService

router = APIRouter()


@router.post("", response_model=MonthlyMarkResponse)
def upsert_mark(
    request: MonthlyMarkUpsert,
    user: StaffUser,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Create or update one student's marks for an individual exam.
    Validates that obtained_marks <= total_marks.
    """
    return MonthlyExamService(db).upsert_mark(request)


@router.post("/bulk", response_model=BulkMarkResponse)
def bulk_upsert_marks(
    request: BulkMarkRequest,
    user: StaffUser,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Save marks for many students at once.
    With send_sms, the SMS balance is checked before any mark is saved,
    then each student with a phone number is notified.
    """
    return MonthlyExamService(db).bulk_upsert_marks(request, sent_by=user.id)
