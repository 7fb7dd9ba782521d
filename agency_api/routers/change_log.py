"""Change-log endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from agency_api.auth.session_auth import Principal, get_current_principal
from agency_api.db.session import get_db
from agency_api.schemas import ChangeLogCreate, ChangeLogOut
from agency_api.services import change_log

router = APIRouter(prefix="/api/v1/change-log", tags=["change-log"])


@router.get("", response_model=list[ChangeLogOut])
def list_change_log(
    entity_type: Optional[str] = None,
    client_id: Optional[str] = None,
    limit: int = Query(change_log.DEFAULT_LIMIT, ge=1, le=change_log.MAX_LIMIT),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return change_log.list_entries(db, principal, entity_type, client_id, limit, offset)


@router.post("", response_model=ChangeLogOut, status_code=status.HTTP_201_CREATED)
def create_change_log_entry(
    body: ChangeLogCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Add a manual entry to a website or campaign the caller can see.

    The client is derived from the entity. Client portal users may not
    author entries.
    """
    return change_log.create_manual(db, principal, body)


@router.get("/website/{website_id}", response_model=list[ChangeLogOut])
def website_change_log(website_id: str, principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    return change_log.list_for_website(db, principal, website_id)


@router.get("/campaign/{campaign_id}", response_model=list[ChangeLogOut])
def campaign_change_log(campaign_id: str, principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    return change_log.list_for_campaign(db, principal, campaign_id)
