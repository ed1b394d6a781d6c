"""SMS dispatch, balance settlement, logs and templates."""

import logging
import re
from typing import Any

import httpx
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings as app_settings
from app.core.exceptions import GatewayFailure, InsufficientBalanceError, NotFoundError
from app.models.sms import SmsLog, SmsStatus, SmsTemplate, SmsType, SystemSettings
from app.schemas.sms import (
    SmsLogResponse,
    SmsRecipient,
    SmsSendResult,
    SmsTemplateCreate,
    SmsTemplateResponse,
    SmsTemplateUpdate,
)
from app.services.settings import SettingsService
from app.services.sms_gateway import SmsGateway

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{(\w+)\}")

DEFAULT_TEMPLATES = [
    {
        "name": "Attendance - Present",
        "template_type": "attendance",
        "message": "Assalamu Alaikum. {studentName} attended {batchName} on {date}. "
                   "Thank you for regular attendance.",
    },
    {
        "name": "Attendance - Absent",
        "template_type": "attendance_absent",
        "message": "Assalamu Alaikum. {studentName} was absent from {batchName} on {date}. "
                   "Please ensure regular attendance.",
    },
    {
        "name": "Exam Marks Notification",
        "template_type": "exam_marks",
        "message": "Dear Parent, {studentName} scored {marks}/{totalMarks} in {examName}. "
                   "Subject: {subject}. Keep up the good work!",
    },
    {
        "name": "Monthly Result",
        "template_type": "monthly_result",
        "message": "Assalamu Alaikum. {studentName} - Monthly Result: Total {totalMarks}, "
                   "Rank: {rank}. Attendance: {attendanceMarks}. Great effort!",
    },
    {
        "name": "Test SMS",
        "template_type": "custom",
        "message": "Assalamu Alaikum. This is a test SMS. Your SMS system is working correctly!",
    },
]


def render_template(text: str, values: dict[str, Any]) -> str:
    """Replace {key} tokens with values; unknown tokens are left as-is."""

    def _replace(match: re.Match) -> str:
        key = match.group(1)
        return str(values[key]) if key in values else match.group(0)

    return PLACEHOLDER_PATTERN.sub(_replace, text)


class SmsService:
    """Sends SMS against the prepaid balance and keeps the audit log."""

    def __init__(self, db: Session, transport: httpx.BaseTransport | None = None):
        self.db = db
        self.settings_service = SettingsService(db)
        self.transport = transport

    # ==========================================
    # Balance
    # ==========================================

    def ensure_balance(self, required: int) -> int:
        """Raise InsufficientBalanceError unless `required` SMS are available."""
        available = self.settings_service.get_balance()
        if available < required:
            raise InsufficientBalanceError(required=required, available=available)
        return available

    def _build_gateway(self, row: SystemSettings | None) -> SmsGateway | None:
        """Gateway for the configured credentials; None means sandbox mode."""
        if row is None or not row.sms_api_key:
            return None
        return SmsGateway(
            api_url=row.sms_api_url or app_settings.SMS_DEFAULT_API_URL,
            api_key=row.sms_api_key,
            sender_id=row.sms_sender_id or app_settings.SMS_DEFAULT_SENDER_ID,
            transport=self.transport,
        )

    # ==========================================
    # Sending
    # ==========================================

    def _deliver(self, gateway: SmsGateway | None, phone: str, message: str) -> SmsStatus:
        """Attempt one delivery; failures are logged, never raised."""
        if gateway is None:
            # Sandbox: no API key configured, count the message as sent
            return SmsStatus.SENT
        try:
            gateway.deliver(phone, message)
        except GatewayFailure as e:
            logger.warning(f"[SMS SEND] Failed for {phone}: {e.body}")
            return SmsStatus.FAILED
        return SmsStatus.SENT

    def send_bulk(
        self,
        recipients: list[SmsRecipient],
        message: str,
        sms_type: SmsType = SmsType.NOTICE,
        subject: str | None = "Notification",
        sent_by: int | None = None,
    ) -> SmsSendResult:
        """Send one message per recipient, paying only for delivered ones.

        The whole balance is checked up front and nothing is sent when it
        is short. Each attempt leaves one SmsLog row. Afterwards the balance
        is reduced by the number of delivered messages.
        """
        required = len(recipients)
        row = self.settings_service.get_settings()
        available = row.sms_count if row else 0
        if available < required:
            raise InsufficientBalanceError(required=required, available=available)

        if required == 0:
            return SmsSendResult(total=0, sent=0, failed=0, new_balance=available)

        gateway = self._build_gateway(row)
        if gateway is None:
            logger.info("[SMS SEND] No API key configured, running in sandbox mode")

        logs: list[SmsLog] = []
        for recipient in recipients:
            text = recipient.message or message
            status = self._deliver(gateway, recipient.phone, text)
            log = SmsLog(
                recipient_type=recipient.type,
                recipient_phone=recipient.phone,
                recipient_name=recipient.name,
                student_id=recipient.student_id,
                sms_type=sms_type,
                subject=subject,
                message=text,
                status=status,
                sent_by=sent_by,
            )
            self.db.add(log)
            logs.append(log)
        self.db.flush()

        sent = sum(1 for log in logs if log.status == SmsStatus.SENT)
        failed = len(logs) - sent

        new_balance = self.settings_service.consume_sms_balance(sent)
        if sent:
            logger.info(f"[SMS BALANCE] Reduced: {available} -> {new_balance} ({sent} SMS sent)")
        if failed:
            logger.warning(f"[SMS SEND] {failed} SMS failed - balance not reduced for them")

        return SmsSendResult(
            success=failed == 0,
            total=len(logs),
            sent=sent,
            failed=failed,
            new_balance=new_balance,
            logs=[SmsLogResponse.model_validate(log) for log in logs],
        )

    def send_test(
        self,
        phone_number: str,
        message: str,
        sent_by: int | None = None,
    ) -> SmsSendResult:
        """Send a single test message; requires a balance of at least 1."""
        recipient = SmsRecipient(
            phone=phone_number,
            name="Test Recipient",
            type="test",
        )
        return self.send_bulk(
            [recipient],
            message,
            sms_type=SmsType.NOTICE,
            subject="Test SMS",
            sent_by=sent_by,
        )

    # ==========================================
    # Logs
    # ==========================================

    def list_logs(self, limit: int = 500) -> list[SmsLogResponse]:
        """Most recent send attempts first."""
        result = self.db.execute(
            select(SmsLog).order_by(SmsLog.sent_at.desc(), SmsLog.id.desc()).limit(limit)
        )
        return [SmsLogResponse.model_validate(log) for log in result.scalars().all()]

    # ==========================================
    # Templates
    # ==========================================

    def get_template(self, template_id: int) -> SmsTemplate:
        """Get template by ID."""
        template = self.db.get(SmsTemplate, template_id)
        if not template:
            raise NotFoundError("SMS template", str(template_id))
        return template

    def get_active_template(self, template_type: str) -> SmsTemplate | None:
        """First active template of a type, if any."""
        result = self.db.execute(
            select(SmsTemplate)
            .where(
                SmsTemplate.template_type == template_type,
                SmsTemplate.is_active == True,  # noqa: E712
            )
            .order_by(SmsTemplate.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    def template_text(self, template_type: str) -> str:
        """Message of the active template of a type, else the stock text."""
        template = self.get_active_template(template_type)
        if template:
            return template.message
        for data in DEFAULT_TEMPLATES:
            if data["template_type"] == template_type:
                return data["message"]
        raise NotFoundError("SMS template", template_type)

    def list_templates(self) -> list[SmsTemplateResponse]:
        """All templates ordered by name."""
        result = self.db.execute(select(SmsTemplate).order_by(SmsTemplate.name))
        return [SmsTemplateResponse.model_validate(t) for t in result.scalars().all()]

    def create_template(
        self,
        request: SmsTemplateCreate,
        created_by: int | None = None,
    ) -> SmsTemplateResponse:
        """Create a new template."""
        template = SmsTemplate(**request.model_dump(), created_by=created_by)
        self.db.add(template)
        self.db.flush()
        self.db.refresh(template)
        return SmsTemplateResponse.model_validate(template)

    def update_template(
        self,
        template_id: int,
        request: SmsTemplateUpdate,
    ) -> SmsTemplateResponse:
        """Update a template."""
        template = self.get_template(template_id)
        for field, value in request.model_dump(exclude_unset=True).items():
            setattr(template, field, value)
        self.db.flush()
        self.db.refresh(template)
        return SmsTemplateResponse.model_validate(template)

    def delete_template(self, template_id: int) -> None:
        """Delete a template."""
        template = self.get_template(template_id)
        self.db.delete(template)
        self.db.flush()

    def seed_default_templates(self, created_by: int | None = None) -> list[SmsTemplateResponse]:
        """Create the stock templates whose type does not exist yet."""
        existing_types = set(self.db.execute(select(SmsTemplate.template_type)).scalars().all())
        created = []
        for data in DEFAULT_TEMPLATES:
            if data["template_type"] in existing_types:
                continue
            created.append(
                self.create_template(SmsTemplateCreate(**data), created_by=created_by)
            )
        return created
