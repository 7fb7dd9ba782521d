"""Time entry endpoints."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from agency_api.auth.session_auth import Principal, get_current_principal
from agency_api.db.session import get_db
from agency_api.schemas import TimeEntryCreate, TimeEntryList, TimeEntryOut, TimeEntryUpdate
from agency_api.services import time_entries

router = APIRouter(prefix="/api/v1/time-entries", tags=["time-entries"])


@router.get("", response_model=TimeEntryList)
def list_time_entries(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    client_id: Optional[str] = None,
    campaign_id: Optional[str] = None,
    user_id: Optional[str] = None,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Entries visible to the caller plus their total.

    Owners see everything, managers their assigned clients, contributors
    their own entries. Client portal users are refused.
    """
    return time_entries.list_entries(db, principal, start_date, end_date, client_id, campaign_id, user_id)


@router.post("", response_model=TimeEntryOut, status_code=status.HTTP_201_CREATED)
def create_time_entry(
    body: TimeEntryCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Log hours against a campaign.

    Rules:
    - hours between 0.25 and 24.00
    - description of at least 10 characters
    - date not in the future
    - campaign visible to the caller and not completed
    """
    return time_entries.create_entry(db, principal, body)


@router.put("/{entry_id}", response_model=TimeEntryOut)
def update_time_entry(
    entry_id: str,
    body: TimeEntryUpdate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return time_entries.update_entry(db, principal, entry_id, body)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_time_entry(entry_id: str, principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    time_entries.delete_entry(db, principal, entry_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
