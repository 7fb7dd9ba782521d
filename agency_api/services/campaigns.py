"""Campaign handlers: listing, status transitions and worker assignment."""

import logging
from datetime import date
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from agency_api.auth.session_auth import Principal
from agency_api.db.models import (
    CAMPAIGN_STATUSES,
    ENTITY_CAMPAIGN,
    ROLE_CONTRIBUTOR,
    Campaign,
    CampaignWorker,
    User,
)
from agency_api.errors import InvalidInput
from agency_api.events import change_log, notifications
from agency_api.policy import Action, Resource, get_visible, scoped_query
from agency_api.schemas import CampaignUpdate
from agency_api.services.common import apply_updates, require_choice

logger = logging.getLogger(__name__)


def check_dates(start_date: Optional[date], end_date: Optional[date]) -> None:
    if start_date and end_date and end_date < start_date:
        raise InvalidInput("end_date must be on or after start_date")


def list_campaigns(
    db: Session,
    principal: Principal,
    website_id: Optional[str] = None,
    client_id: Optional[str] = None,
    status: Optional[str] = None,
) -> list[Campaign]:
    query = scoped_query(db, principal, Resource.CAMPAIGN)
    if website_id:
        query = query.filter(Campaign.website_id == website_id)
    if client_id:
        query = query.filter(Campaign.client_id == client_id)
    if status:
        query = query.filter(Campaign.status == require_choice(status, CAMPAIGN_STATUSES, "status"))
    return query.order_by(Campaign.created_at.desc()).all()


def campaign_workers(db: Session, campaign_id: str) -> list[User]:
    return (
        db.query(User)
        .join(CampaignWorker, CampaignWorker.user_id == User.id)
        .filter(CampaignWorker.campaign_id == campaign_id)
        .order_by(User.name.asc())
        .all()
    )


def get_campaign(db: Session, principal: Principal, campaign_id: str) -> dict[str, Any]:
    campaign = get_visible(db, principal, Resource.CAMPAIGN, campaign_id)
    return {
        **{column.key: getattr(campaign, column.key) for column in Campaign.__table__.columns},
        "website_name": campaign.website.name,
        "client_name": campaign.client.name,
        "workers": campaign_workers(db, campaign.id),
    }


def status_change_recipients(db: Session, campaign: Campaign) -> set[str]:
    """Assigned contributors, the client's managers and every active owner."""
    return (
        notifications.campaign_worker_ids(db, campaign.id)
        | notifications.client_manager_ids(db, campaign.client_id)
        | notifications.active_owner_ids(db)
    )


def update_campaign(db: Session, principal: Principal, campaign_id: str, payload: CampaignUpdate) -> Campaign:
    campaign = get_visible(db, principal, Resource.CAMPAIGN, campaign_id, action=Action.UPDATE)
    if payload.status is not None:
        require_choice(payload.status, CAMPAIGN_STATUSES, "status")

    changes = payload.model_dump(exclude_unset=True)
    check_dates(
        changes.get("start_date", campaign.start_date),
        changes.get("end_date", campaign.end_date),
    )

    old_status = campaign.status
    apply_updates(campaign, payload)
    db.commit()

    if campaign.status == old_status:
        return campaign

    logger.info(
        "Campaign status changed",
        extra={
            "event": "campaign.status_changed",
            "campaign_id": campaign.id,
            "old_status": old_status,
            "new_status": campaign.status,
        },
    )
    change_log.record(
        db,
        ENTITY_CAMPAIGN,
        campaign.id,
        campaign.client_id,
        None,
        "Campaign status changed",
        f"Campaign status changed from {old_status} to {campaign.status}.",
    )
    notifications.notify(
        db,
        status_change_recipients(db, campaign),
        notifications.CAMPAIGN_STATUS_CHANGED,
        f"Campaign '{campaign.name}' is now {campaign.status}",
        entity_type=ENTITY_CAMPAIGN,
        entity_id=campaign.id,
    )
    return campaign


def delete_campaign(db: Session, principal: Principal, campaign_id: str) -> None:
    campaign = get_visible(db, principal, Resource.CAMPAIGN, campaign_id, action=Action.DELETE)
    db.delete(campaign)
    db.commit()
    logger.info("Campaign deleted", extra={"event": "campaign.deleted", "campaign_id": campaign_id})


def assign_worker(db: Session, principal: Principal, campaign_id: str, user_id: str) -> bool:
    """Assign a contributor to a campaign. Re-assigning is a no-op.

    Returns:
        True when a new assignment was created
    """
    campaign = get_visible(db, principal, Resource.CAMPAIGN, campaign_id, action=Action.ASSIGN)
    worker = db.get(User, user_id)
    if worker is None or worker.role != ROLE_CONTRIBUTOR:
        raise InvalidInput("User must have the contributor role")

    existing = (
        db.query(CampaignWorker)
        .filter(CampaignWorker.campaign_id == campaign.id, CampaignWorker.user_id == worker.id)
        .first()
    )
    if existing is not None:
        return False

    db.add(CampaignWorker(campaign_id=campaign.id, user_id=worker.id))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return False

    logger.info(
        "Worker assigned",
        extra={"event": "campaign.worker_assigned", "campaign_id": campaign.id, "worker_id": worker.id},
    )
    change_log.record(
        db,
        ENTITY_CAMPAIGN,
        campaign.id,
        campaign.client_id,
        None,
        f"{worker.name} was assigned to this campaign",
        f"Worker {worker.name} was assigned to campaign '{campaign.name}'.",
    )
    notifications.notify(
        db,
        {worker.id},
        notifications.WORKER_ASSIGNED,
        f"You've been assigned to campaign '{campaign.name}'",
        entity_type=ENTITY_CAMPAIGN,
        entity_id=campaign.id,
    )
    return True


def remove_worker(db: Session, principal: Principal, campaign_id: str, user_id: str) -> None:
    campaign = get_visible(db, principal, Resource.CAMPAIGN, campaign_id, action=Action.ASSIGN)
    db.query(CampaignWorker).filter(
        CampaignWorker.campaign_id == campaign.id, CampaignWorker.user_id == user_id
    ).delete(synchronize_session=False)
    db.commit()
