"""System settings endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import StaffUser, SuperUser
from app.schemas.sms import SettingsResponse, SettingsUpdate, SmsCountUpdate
from app.services.settings import SettingsService

router = APIRouter()


@router.get("", response_model=SettingsResponse)
def get_settings(
    user: StaffUser,
    db: Annotated[Session, Depends(get_db)],
    response: Response,
):
    """
    Current SMS balance and gateway configuration.
    Never cached, so the balance shown is always current.
    """
    response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
    response.headers["Pragma"] = "no-cache"
    response.headers["Expires"] = "0"

    service = SettingsService(db)
    return service.to_response(service.get_settings())


@router.put("", response_model=SettingsResponse)
def update_settings(
    request: SettingsUpdate,
    user: StaffUser,
    db: Annotated[Session, Depends(get_db)],
):
    """Update gateway credentials and sender ID."""
    service = SettingsService(db)
    return service.to_response(service.update_settings(request, updated_by=user.id))


@router.put("/sms-count", response_model=SettingsResponse)
def set_sms_count(
    request: SmsCountUpdate,
    user: SuperUser,
    db: Annotated[Session, Depends(get_db)],
):
    """Set the SMS balance directly. Super users only."""
    service = SettingsService(db)
    return service.to_response(service.set_sms_count(request.sms_count, updated_by=user.id))
