"""User administration endpoints (owner only, except /users/me/time-entries)."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from agency_api.auth.session_auth import Principal, get_current_principal
from agency_api.db.session import get_db
from agency_api.schemas import TimeEntryOut, UserCreate, UserDetail, UserStatusUpdate, UserUpdate
from agency_api.services import users

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("", response_model=list[UserDetail])
def list_users(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    return users.list_users(db, principal)


@router.post("", response_model=UserDetail, status_code=status.HTTP_201_CREATED)
def create_user(
    body: UserCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Create an active user directly (no invitation)."""
    return users.create_user(db, principal, body)


@router.get("/me/time-entries", response_model=list[TimeEntryOut])
def my_time_entries(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    campaign_id: Optional[str] = None,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return users.my_time_entries(db, principal, start_date, end_date, campaign_id)


@router.get("/{user_id}", response_model=UserDetail)
def get_user(user_id: str, principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    return users.get_user(db, principal, user_id)


@router.put("/{user_id}", response_model=UserDetail)
def update_user(
    user_id: str,
    body: UserUpdate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return users.update_user(db, principal, user_id, body)


@router.patch("/{user_id}/status", response_model=UserDetail)
def set_user_status(
    user_id: str,
    body: UserStatusUpdate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Activate or deactivate. A deactivated user's credential stops working
    on their very next request."""
    return users.set_status(db, principal, user_id, body.status)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: str, principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    users.delete_user(db, principal, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
