"""Campaign endpoints: listing, status changes and worker assignment."""

from typing import Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from agency_api.auth.session_auth import Principal, get_current_principal
from agency_api.db.session import get_db
from agency_api.schemas import (
    AssignUserRequest,
    CampaignDetail,
    CampaignOut,
    CampaignUpdate,
    MessageResponse,
)
from agency_api.services import campaigns

router = APIRouter(prefix="/api/v1/campaigns", tags=["campaigns"])


@router.get("", response_model=list[CampaignOut])
def list_campaigns(
    website_id: Optional[str] = None,
    client_id: Optional[str] = None,
    status: Optional[str] = None,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Campaigns visible to the caller, optionally filtered."""
    return campaigns.list_campaigns(db, principal, website_id, client_id, status)


@router.get("/{campaign_id}", response_model=CampaignDetail)
def get_campaign(campaign_id: str, principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    return campaigns.get_campaign(db, principal, campaign_id)


@router.put("/{campaign_id}", response_model=CampaignOut)
def update_campaign(
    campaign_id: str,
    body: CampaignUpdate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Update a campaign.

    A status change writes a system change-log entry and notifies the
    assigned contributors, the client's managers and every active owner.
    """
    return campaigns.update_campaign(db, principal, campaign_id, body)


@router.delete("/{campaign_id}", status_code=204)
def delete_campaign(campaign_id: str, principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    campaigns.delete_campaign(db, principal, campaign_id)
    return Response(status_code=204)


@router.post("/{campaign_id}/assign-worker", response_model=MessageResponse)
def assign_worker(
    campaign_id: str,
    body: AssignUserRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Assign a contributor. Repeating an existing assignment succeeds as a no-op."""
    created = campaigns.assign_worker(db, principal, campaign_id, body.user_id)
    return {"message": "Worker assigned" if created else "Worker already assigned"}


@router.delete("/{campaign_id}/remove-worker/{user_id}", response_model=MessageResponse)
def remove_worker(
    campaign_id: str,
    user_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    campaigns.remove_worker(db, principal, campaign_id, user_id)
    return {"message": "Worker removed successfully"}
