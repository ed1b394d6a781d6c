"""SMS log, template and system settings models."""

import enum
from datetime import datetime, timezone

from sqlalchemy import BigInteger, Boolean, DateTime, Enum, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.base import IDMixin, TimestampMixin


class SmsType(str, enum.Enum):
    """Purpose of an outgoing SMS."""

    ATTENDANCE = "attendance"
    EXAM_RESULT = "exam_result"
    EXAM_NOTIFICATION = "exam_notification"
    NOTICE = "notice"
    REMINDER = "reminder"


class SmsStatus(str, enum.Enum):
    """Delivery outcome of one send attempt."""

    SENT = "sent"
    FAILED = "failed"


class SmsLog(Base, IDMixin):
    """Append-only audit row for one SMS send attempt."""

    __tablename__ = "sms_logs"

    recipient_type: Mapped[str] = mapped_column(String(50), nullable=False)
    recipient_phone: Mapped[str] = mapped_column(String(50), nullable=False)
    recipient_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    student_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    sms_type: Mapped[SmsType] = mapped_column(
        Enum(SmsType, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    subject: Mapped[str | None] = mapped_column(String(255), nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[SmsStatus] = mapped_column(
        Enum(SmsStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        index=True,
    )
    sent_by: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<SmsLog(id={self.id}, phone={self.recipient_phone}, status={self.status})>"


class SmsTemplate(Base, IDMixin, TimestampMixin):
    """Reusable message text with {placeholder} tokens."""

    __tablename__ = "sms_templates"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    template_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_by: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<SmsTemplate(id={self.id}, type={self.template_type})>"


class SystemSettings(Base, IDMixin):
    """Singleton row holding the SMS balance and gateway credentials."""

    __tablename__ = "system_settings"

    sms_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    sms_api_key: Mapped[str | None] = mapped_column(String(255), nullable=True)
    sms_sender_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    sms_api_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    updated_by: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<SystemSettings(sms_count={self.sms_count})>"
