"""Main API router aggregating all module routers."""

from fastapi import APIRouter

from app.api.v1.endpoints import (
    attendance,
    individual_exams,
    monthly_exams,
    monthly_marks,
    settings,
    sms,
)
from app.schemas.common import ErrorResponse

# Every error is returned in the same envelope
api_router = APIRouter(
    responses={
        status_code: {"model": ErrorResponse}
        for status_code in (400, 401, 403, 404, 409, 422)
    },
)

# Monthly exams, ranking and finalization
api_router.include_router(
    monthly_exams.router,
    prefix="/monthly-exams",
    tags=["Monthly Exams"],
)

# Individual exams within a monthly exam
api_router.include_router(
    individual_exams.router,
    prefix="/individual-exams",
    tags=["Monthly Exams"],
)

# Mark entry
api_router.include_router(
    monthly_marks.router,
    prefix="/monthly-marks",
    tags=["Marks"],
)

# Attendance
api_router.include_router(
    attendance.router,
    prefix="/attendance",
    tags=["Attendance"],
)

# SMS sending, logs and templates
api_router.include_router(
    sms.router,
    prefix="/sms",
    tags=["SMS"],
)

# System settings and SMS balance
api_router.include_router(
    settings.router,
    prefix="/settings",
    tags=["Settings"],
)
