"""System settings and SMS balance ledger."""

import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.core.config import settings as app_settings
from app.models.sms import SystemSettings
from app.schemas.sms import SettingsResponse, SettingsUpdate

logger = logging.getLogger(__name__)


class SettingsService:
    """Singleton settings row: SMS balance and gateway credentials."""

    def __init__(self, db: Session):
        self.db = db

    def get_settings(self) -> SystemSettings | None:
        """Current settings row, re-read from the database."""
        result = self.db.execute(
            select(SystemSettings)
            .order_by(SystemSettings.id)
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    def get_balance(self) -> int:
        """Remaining SMS count (0 when settings were never saved)."""
        row = self.get_settings()
        return row.sms_count if row else 0

    def to_response(self, row: SystemSettings | None) -> SettingsResponse:
        """Public view of the settings; defaults when no row exists."""
        if row is None:
            return SettingsResponse(
                sms_count=0,
                sms_sender_id=app_settings.SMS_DEFAULT_SENDER_ID,
                sms_api_url=app_settings.SMS_DEFAULT_API_URL,
                sms_api_key_configured=False,
            )
        return SettingsResponse(
            sms_count=row.sms_count,
            sms_sender_id=row.sms_sender_id or app_settings.SMS_DEFAULT_SENDER_ID,
            sms_api_url=row.sms_api_url or app_settings.SMS_DEFAULT_API_URL,
            sms_api_key_configured=bool(row.sms_api_key),
            updated_at=row.updated_at,
        )

    def _get_or_create(self) -> SystemSettings:
        row = self.get_settings()
        if row is None:
            row = SystemSettings(
                sms_count=0,
                sms_sender_id=app_settings.SMS_DEFAULT_SENDER_ID,
                sms_api_url=app_settings.SMS_DEFAULT_API_URL,
            )
            self.db.add(row)
            self.db.flush()
        return row

    def update_settings(
        self,
        request: SettingsUpdate,
        updated_by: int | None = None,
    ) -> SystemSettings:
        """Apply a partial update; creates the row on first write."""
        row = self._get_or_create()
        for field, value in request.model_dump(exclude_unset=True).items():
            setattr(row, field, value)
        row.updated_by = updated_by
        self.db.flush()
        self.db.refresh(row)
        return row

    def set_sms_count(self, sms_count: int, updated_by: int | None = None) -> SystemSettings:
        """Overwrite the SMS balance (top-up by a super user)."""
        row = self._get_or_create()
        previous = row.sms_count
        row.sms_count = sms_count
        row.updated_by = updated_by
        self.db.flush()
        self.db.refresh(row)
        logger.info(f"[SMS BALANCE] Set: {previous} -> {sms_count} by user {updated_by}")
        return row

    def consume_sms_balance(self, count: int) -> int:
        """Atomically deduct `count` SMS and return the new balance.

        The deduction is a single conditional UPDATE, so two concurrent
        settlements cannot both spend the same balance. When a concurrent
        spend already took the balance below `count`, it is clamped to zero.
        """
        row = self.get_settings()
        if row is None:
            return 0
        if count <= 0:
            return row.sms_count

        result = self.db.execute(
            update(SystemSettings)
            .where(
                SystemSettings.id == row.id,
                SystemSettings.sms_count >= count,
            )
            .values(sms_count=SystemSettings.sms_count - count)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.warning(f"[SMS BALANCE] Balance below {count} at settlement, clamping to 0")
            self.db.execute(
                update(SystemSettings)
                .where(SystemSettings.id == row.id, SystemSettings.sms_count < count)
                .values(sms_count=0)
                .execution_options(synchronize_session=False)
            )

        return self.get_balance()
