"""Database models package."""

from app.models.attendance import AttendanceRecord, AttendanceStatus
from app.models.batch import Batch, BatchStatus
from app.models.monthly_exam import IndividualExam, MonthlyExam, MonthlyMark, MonthlyResult
from app.models.sms import SmsLog, SmsStatus, SmsTemplate, SmsType, SystemSettings
from app.models.user import User, UserRole

__all__ = [
    # User
    "User",
    "UserRole",
    # Batch
    "Batch",
    "BatchStatus",
    # Attendance
    "AttendanceRecord",
    "AttendanceStatus",
    # Monthly exams
    "MonthlyExam",
    "IndividualExam",
    "MonthlyMark",
    "MonthlyResult",
    # SMS
    "SmsLog",
    "SmsStatus",
    "SmsTemplate",
    "SmsType",
    "SystemSettings",
]
