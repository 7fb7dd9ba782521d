"""Website handlers and website campaigns."""

import logging

from sqlalchemy.orm import Session

from agency_api.auth.session_auth import Principal
from agency_api.db.models import CAMPAIGN_STATUSES, ENTITY_CAMPAIGN, WEBSITE_STATUSES, Campaign, Website
from agency_api.events import change_log
from agency_api.policy import Action, Resource, authorize, get_visible, scoped_query
from agency_api.schemas import CampaignCreate, WebsiteUpdate
from agency_api.services.campaigns import check_dates
from agency_api.services.common import apply_updates, require_choice

logger = logging.getLogger(__name__)


def get_website(db: Session, principal: Principal, website_id: str) -> Website:
    return get_visible(db, principal, Resource.WEBSITE, website_id)


def update_website(db: Session, principal: Principal, website_id: str, payload: WebsiteUpdate) -> Website:
    website = get_visible(db, principal, Resource.WEBSITE, website_id, action=Action.UPDATE)
    if payload.status is not None:
        require_choice(payload.status, WEBSITE_STATUSES, "status")
    apply_updates(website, payload)
    db.commit()
    return website


def delete_website(db: Session, principal: Principal, website_id: str) -> None:
    website = get_visible(db, principal, Resource.WEBSITE, website_id, action=Action.DELETE)
    db.delete(website)
    db.commit()
    logger.info("Website deleted", extra={"event": "website.deleted", "website_id": website_id})


def list_campaigns(db: Session, principal: Principal, website_id: str) -> list[Campaign]:
    return (
        scoped_query(db, principal, Resource.CAMPAIGN)
        .filter(Campaign.website_id == website_id)
        .order_by(Campaign.created_at.desc())
        .all()
    )


def create_campaign(db: Session, principal: Principal, website_id: str, payload: CampaignCreate) -> Campaign:
    authorize(principal, Action.CREATE, Resource.CAMPAIGN)
    website = get_visible(db, principal, Resource.WEBSITE, website_id)
    check_dates(payload.start_date, payload.end_date)
    campaign = Campaign(
        website_id=website.id,
        client_id=website.client_id,
        name=payload.name.strip(),
        channel_category=payload.channel_category,
        channel_platform=payload.channel_platform,
        status=require_choice(payload.status or "active", CAMPAIGN_STATUSES, "status"),
        start_date=payload.start_date,
        end_date=payload.end_date,
        notes=payload.notes,
    )
    db.add(campaign)
    db.commit()
    logger.info(
        "Campaign created",
        extra={"event": "campaign.created", "campaign_id": campaign.id, "website_id": website.id},
    )

    change_log.record(
        db,
        ENTITY_CAMPAIGN,
        campaign.id,
        campaign.client_id,
        None,
        f"Campaign '{campaign.name}' was created",
        f"Campaign '{campaign.name}' ({campaign.channel_category or 'Unknown channel'}) was created.",
    )
    return campaign
