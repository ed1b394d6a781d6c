"""SMS, template and settings schemas."""

from datetime import datetime

from pydantic import Field

from app.models.sms import SmsStatus, SmsType
from app.schemas.common import BaseSchema

# Longest message or template text accepted from a client
SMS_MESSAGE_MAX_LENGTH = 1000
# Rendered templates grow by their substituted values
SMS_RENDERED_MAX_LENGTH = 2000


# ==========================================
# Sending
# ==========================================

class SmsRecipient(BaseSchema):
    """One addressee of a bulk send."""

    phone: str = Field(..., min_length=3, max_length=50)
    name: str | None = None
    student_id: int | None = None
    type: str = "student"
    # Overrides the batch message for this recipient
    message: str | None = Field(None, max_length=SMS_RENDERED_MAX_LENGTH)


class SmsSendRequest(BaseSchema):
    """Bulk send request."""

    recipients: list[SmsRecipient] = Field(..., min_length=1)
    message: str = Field(..., min_length=1, max_length=SMS_MESSAGE_MAX_LENGTH)
    sms_type: SmsType = SmsType.NOTICE
    subject: str | None = "Notification"


class SmsTestRequest(BaseSchema):
    """Single test SMS request."""

    phone_number: str = Field(..., min_length=3, max_length=50)
    message: str = Field(..., min_length=1, max_length=SMS_MESSAGE_MAX_LENGTH)


class SmsLogResponse(BaseSchema):
    """SMS log row."""

    id: int
    recipient_type: str
    recipient_phone: str
    recipient_name: str | None
    student_id: int | None
    sms_type: SmsType
    subject: str | None
    message: str
    status: SmsStatus
    sent_by: int | None
    sent_at: datetime


class SmsSendResult(BaseSchema):
    """Outcome of a send operation."""

    success: bool = True
    total: int
    sent: int
    failed: int
    new_balance: int
    logs: list[SmsLogResponse] = []


# ==========================================
# Templates
# ==========================================

class SmsTemplateCreate(BaseSchema):
    """SMS template creation schema."""

    name: str = Field(..., min_length=1, max_length=255)
    template_type: str = Field(..., min_length=1, max_length=50)
    message: str = Field(..., min_length=1, max_length=SMS_MESSAGE_MAX_LENGTH)
    is_active: bool = True


class SmsTemplateUpdate(BaseSchema):
    """SMS template update schema."""

    name: str | None = Field(None, min_length=1, max_length=255)
    template_type: str | None = Field(None, min_length=1, max_length=50)
    message: str | None = Field(None, min_length=1, max_length=SMS_MESSAGE_MAX_LENGTH)
    is_active: bool | None = None


class SmsTemplateResponse(BaseSchema):
    """SMS template response schema."""

    id: int
    name: str
    template_type: str
    message: str
    is_active: bool
    created_by: int | None
    created_at: datetime
    updated_at: datetime


# ==========================================
# Settings
# ==========================================

class SettingsResponse(BaseSchema):
    """System settings; the API key is never echoed back."""

    sms_count: int
    sms_sender_id: str | None
    sms_api_url: str | None
    sms_api_key_configured: bool
    updated_at: datetime | None = None


class SettingsUpdate(BaseSchema):
    """Partial settings update."""

    sms_api_key: str | None = None
    sms_sender_id: str | None = Field(None, max_length=50)
    sms_api_url: str | None = Field(None, max_length=500)


class SmsCountUpdate(BaseSchema):
    """Direct balance assignment (super user only)."""

    sms_count: int = Field(..., ge=0)
