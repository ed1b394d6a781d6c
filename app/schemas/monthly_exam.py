"""Monthly exam schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import Field, field_validator

from app.schemas.common import BaseSchema


# ==========================================
# Constants
# ==========================================

SUBJECTS = ["math", "higher_math", "science"]

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


# ==========================================
# Monthly Exam Schemas
# ==========================================

class MonthlyExamCreate(BaseSchema):
    """Monthly exam creation schema."""

    batch_id: int
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    title: str = Field(..., min_length=1, max_length=255)


class MonthlyExamResponse(BaseSchema):
    """Monthly exam response schema."""

    id: int
    batch_id: int
    month: int
    year: int
    title: str
    is_finalized: bool
    created_by: int | None
    created_at: datetime
    updated_at: datetime


# ==========================================
# Individual Exam Schemas
# ==========================================

class IndividualExamCreate(BaseSchema):
    """Individual exam creation schema."""

    monthly_exam_id: int
    name: str = Field(..., min_length=1, max_length=255)
    subject: str = Field("math", min_length=1, max_length=50)
    total_marks: int = Field(100, gt=0)

    @field_validator("subject")
    @classmethod
    def validate_subject(cls, v: str) -> str:
        if v not in SUBJECTS:
            raise ValueError(f"subject must be one of: {', '.join(SUBJECTS)}")
        return v


class IndividualExamResponse(BaseSchema):
    """Individual exam response schema."""

    id: int
    monthly_exam_id: int
    name: str
    subject: str
    total_marks: int
    created_at: datetime


# ==========================================
# Mark Schemas
# ==========================================

class MonthlyMarkUpsert(BaseSchema):
    """Create or update one student's marks for an individual exam."""

    monthly_exam_id: int
    individual_exam_id: int
    student_id: int
    obtained_marks: int = Field(..., ge=0)


class MonthlyMarkResponse(BaseSchema):
    """Monthly mark response schema."""

    id: int
    monthly_exam_id: int
    individual_exam_id: int
    student_id: int
    obtained_marks: int
    updated_at: datetime


class BulkMarkRequest(BaseSchema):
    """Bulk mark entry, optionally notifying parents by SMS."""

    marks: list[MonthlyMarkUpsert] = Field(..., min_length=1)
    send_sms: bool = False


class BulkMarkResponse(BaseSchema):
    """Result of a bulk mark entry."""

    success: bool = True
    marks_count: int
    sms_sent: int | None = None
    sms_failed: int | None = None
    new_balance: int | None = None


# ==========================================
# Result / Ranking Schemas
# ==========================================

class BonusMarksUpdate(BaseSchema):
    """Bonus marks for one student."""

    student_id: int
    bonus_marks: int = Field(..., ge=0)


class MonthlyResultResponse(BaseSchema):
    """Monthly result row."""

    id: int
    monthly_exam_id: int
    student_id: int
    student_name: str = ""
    total_exam_marks: int
    attendance_marks: int
    bonus_marks: int
    final_total: int
    rank: int | None
    percentage: Decimal | None
    gpa: Decimal | None


class TopAchiever(BaseSchema):
    """Top ranked student of a batch's latest finalized exam."""

    student_name: str
    batch_name: str
    rank: int | None
    final_total: int
    percentage: Decimal | None
    exam_title: str
    month_year: str


class ResultNotificationResponse(BaseSchema):
    """Outcome of sending monthly result SMS."""

    total: int
    sent: int
    failed: int
    new_balance: int
