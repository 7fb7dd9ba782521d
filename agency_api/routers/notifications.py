"""Notification endpoints. Every caller sees only their own rows."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from agency_api.auth.session_auth import Principal, get_current_principal
from agency_api.db.session import get_db
from agency_api.schemas import MessageResponse, NotificationList, NotificationOut
from agency_api.services import notifications

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


@router.get("", response_model=NotificationList)
def list_notifications(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    return notifications.list_notifications(db, principal)


# Registered before /{notification_id}/read so "read-all" is never taken for an id
@router.patch("/read-all", response_model=MessageResponse)
def mark_all_read(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    notifications.mark_all_read(db, principal)
    return {"message": "All notifications marked as read"}


@router.patch("/{notification_id}/read", response_model=NotificationOut)
def mark_read(notification_id: int, principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    return notifications.mark_read(db, principal, notification_id)
