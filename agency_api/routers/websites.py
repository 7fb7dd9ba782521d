"""Website endpoints and the campaigns beneath a website."""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from agency_api.auth.session_auth import Principal, get_current_principal
from agency_api.db.session import get_db
from agency_api.schemas import CampaignCreate, CampaignOut, WebsiteOut, WebsiteUpdate
from agency_api.services import websites

router = APIRouter(prefix="/api/v1/websites", tags=["websites"])


@router.get("/{website_id}", response_model=WebsiteOut)
def get_website(website_id: str, principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    return websites.get_website(db, principal, website_id)


@router.put("/{website_id}", response_model=WebsiteOut)
def update_website(
    website_id: str,
    body: WebsiteUpdate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return websites.update_website(db, principal, website_id, body)


@router.delete("/{website_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_website(website_id: str, principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    websites.delete_website(db, principal, website_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{website_id}/campaigns", response_model=list[CampaignOut])
def list_campaigns(website_id: str, principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    return websites.list_campaigns(db, principal, website_id)


@router.post("/{website_id}/campaigns", response_model=CampaignOut, status_code=status.HTTP_201_CREATED)
def create_campaign(
    website_id: str,
    body: CampaignCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    return websites.create_campaign(db, principal, website_id, body)
