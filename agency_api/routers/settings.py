"""Agency settings endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from agency_api.auth.session_auth import Principal, get_current_principal
from agency_api.db.session import get_db
from agency_api.schemas import SettingsOut, SettingsUpdate
from agency_api.services import settings

router = APIRouter(prefix="/api/v1/settings", tags=["settings"])


@router.get("", response_model=SettingsOut)
def get_settings(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    return settings.get_settings(db, principal)


@router.put("", response_model=SettingsOut)
def update_settings(
    body: SettingsUpdate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Owner only."""
    return settings.update_settings(db, principal, body)
