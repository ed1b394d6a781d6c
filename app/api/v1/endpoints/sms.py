"""SMS sending, logs and template endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import StaffUser
from app.schemas.common import MessageResponse
from app.schemas.sms import (
    SmsLogResponse,
    SmsSendRequest,
    SmsSendResult,
    SmsTemplateCreate,
    SmsTemplateResponse,
    SmsTemplateUpdate,
    SmsTestRequest,
)
from app.services.sms import SmsService

router = APIRouter()


# ==========================================
# Sending / Logs
# ==========================================

@router.get("/logs", response_model=list[SmsLogResponse])
def list_sms_logs(
    user: StaffUser,
    db: Annotated[Session, Depends(get_db)],
    limit: int = Query(500, ge=1, le=5000),
):
    """Most recent SMS attempts first."""
    return SmsService(db).list_logs(limit=limit)


@router.post("/send", response_model=SmsSendResult)
def send_sms(
    request: SmsSendRequest,
    user: StaffUser,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Send a message to many recipients.
    Nothing is sent when the balance cannot cover every recipient;
    only delivered messages are deducted.
    """
    return SmsService(db).send_bulk(
        request.recipients,
        request.message,
        sms_type=request.sms_type,
        subject=request.subject,
        sent_by=user.id,
    )


@router.post("/send-test", response_model=SmsSendResult)
def send_test_sms(
    request: SmsTestRequest,
    user: StaffUser,
    db: Annotated[Session, Depends(get_db)],
):
    """Send a single test message."""
    return SmsService(db).send_test(request.phone_number, request.message, sent_by=user.id)


# ==========================================
# Templates
# ==========================================

@router.get("/templates", response_model=list[SmsTemplateResponse])
def list_templates(
    user: StaffUser,
    db: Annotated[Session, Depends(get_db)],
):
    """List SMS templates."""
    return SmsService(db).list_templates()


@router.post("/templates", response_model=SmsTemplateResponse)
def create_template(
    request: SmsTemplateCreate,
    user: StaffUser,
    db: Annotated[Session, Depends(get_db)],
):
    """Create an SMS template."""
    return SmsService(db).create_template(request, created_by=user.id)


@router.post("/templates/seed-defaults", response_model=list[SmsTemplateResponse])
def seed_default_templates(
    user: StaffUser,
    db: Annotated[Session, Depends(get_db)],
):
    """Create the stock templates that do not exist yet."""
    return SmsService(db).seed_default_templates(created_by=user.id)


@router.put("/templates/{template_id}", response_model=SmsTemplateResponse)
def update_template(
    template_id: int,
    request: SmsTemplateUpdate,
    user: StaffUser,
    db: Annotated[Session, Depends(get_db)],
):
    """Update an SMS template."""
    return SmsService(db).update_template(template_id, request)


@router.delete("/templates/{template_id}", response_model=MessageResponse)
def delete_template(
    template_id: int,
    user: StaffUser,
    db: Annotated[Session, Depends(get_db)],
):
    """Delete an SMS template."""
    SmsService(db).delete_template(template_id)
    return MessageResponse(message="Template deleted successfully")
