"""Time entry handlers.

Creation rules:
- hours within [0.25, 24.00], description of at least 10 characters,
  date no later than today (calendar date, not timestamp)
- the campaign must be visible to the author and not completed, for every
  role; the campaign row is locked while the entry is inserted so a
  concurrent switch to completed cannot slip in between
- client_id and website_id are copied from the campaign

Edits: contributors edit their own entries on the day they logged them;
owners edit anything; nobody else edits.
"""

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from sqlalchemy.orm import Session

from agency_api.auth.session_auth import Principal
from agency_api.db.models import (
    ENTITY_CAMPAIGN,
    Campaign,
    Client,
    TimeEntry,
    User,
    Website,
)
from agency_api.errors import Forbidden, InvalidInput, NotFound
from agency_api.events import change_log, notifications
from agency_api.policy import Action, Resource, authorize, row_matches
from agency_api.schemas import TimeEntryCreate, TimeEntryUpdate
from agency_api.services.common import format_hours, round_hours

logger = logging.getLogger(__name__)

MIN_HOURS = Decimal("0.25")
MAX_HOURS = Decimal("24.00")
MIN_DESCRIPTION_LENGTH = 10


def validate_hours(hours: Any) -> Decimal:
    try:
        value = Decimal(str(hours))
    except ArithmeticError:
        raise InvalidInput("Hours must be between 0.25 and 24.00")
    if not value.is_finite() or value < MIN_HOURS or value > MAX_HOURS:
        raise InvalidInput("Hours must be between 0.25 and 24.00")
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def validate_description(description: Optional[str]) -> str:
    text = (description or "").strip()
    if len(text) < MIN_DESCRIPTION_LENGTH:
        raise InvalidInput(f"Description must be at least {MIN_DESCRIPTION_LENGTH} characters")
    return text


def validate_date(entry_date: date, today: date) -> date:
    if entry_date > today:
        raise InvalidInput("Date cannot be in the future")
    return entry_date


def entry_fields(
    entry: TimeEntry,
    worker_name: Optional[str] = None,
    client_name: Optional[str] = None,
    campaign_name: Optional[str] = None,
    website_name: Optional[str] = None,
) -> dict[str, Any]:
    return {
        "id": entry.id,
        "user_id": entry.user_id,
        "campaign_id": entry.campaign_id,
        "client_id": entry.client_id,
        "website_id": entry.website_id,
        "date": entry.date,
        "hours": float(entry.hours),
        "description": entry.description,
        "created_at": entry.created_at,
        "updated_at": entry.updated_at,
        "worker_name": worker_name,
        "client_name": client_name,
        "campaign_name": campaign_name,
        "website_name": website_name,
    }


def entries_query(db: Session):
    return (
        db.query(TimeEntry, User.name, Client.name, Campaign.name, Website.name)
        .join(User, TimeEntry.user_id == User.id)
        .join(Client, TimeEntry.client_id == Client.id)
        .join(Campaign, TimeEntry.campaign_id == Campaign.id)
        .join(Website, TimeEntry.website_id == Website.id)
    )


def list_entries(
    db: Session,
    principal: Principal,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    client_id: Optional[str] = None,
    campaign_id: Optional[str] = None,
    user_id: Optional[str] = None,
) -> dict[str, Any]:
    """Entries visible to the principal plus their rounded hour total."""
    decision = authorize(principal, Action.VIEW_LIST, Resource.TIME_ENTRY)
    query = decision.apply(entries_query(db))
    if start_date:
        query = query.filter(TimeEntry.date >= start_date)
    if end_date:
        query = query.filter(TimeEntry.date <= end_date)
    if client_id:
        query = query.filter(TimeEntry.client_id == client_id)
    if campaign_id:
        query = query.filter(TimeEntry.campaign_id == campaign_id)
    if user_id:
        query = query.filter(TimeEntry.user_id == user_id)

    rows = query.order_by(TimeEntry.date.desc(), TimeEntry.created_at.desc()).all()
    entries = [entry_fields(*row) for row in rows]
    total = sum((Decimal(str(e["hours"])) for e in entries), Decimal("0"))
    return {"entries": entries, "total_hours": round_hours(total)}


def _lock_visible_campaign(db: Session, principal: Principal, campaign_id: str) -> Campaign:
    decision = authorize(principal, Action.VIEW_ONE, Resource.CAMPAIGN)
    campaign = (
        decision.apply(db.query(Campaign).filter(Campaign.id == campaign_id))
        .with_for_update()
        .first()
    )
    if campaign is None:
        raise NotFound("Campaign not found")
    return campaign


def log_recipients(db: Session, client_id: str, author_id: str) -> set[str]:
    """The client's managers and every active owner, minus the author."""
    recipients = notifications.client_manager_ids(db, client_id) | notifications.active_owner_ids(db)
    recipients.discard(author_id)
    return recipients


def create_entry(
    db: Session,
    principal: Principal,
    payload: TimeEntryCreate,
    today: Optional[date] = None,
) -> dict[str, Any]:
    authorize(principal, Action.CREATE, Resource.TIME_ENTRY)
    current = today or date.today()
    hours = validate_hours(payload.hours)
    description = validate_description(payload.description)
    entry_date = validate_date(payload.date, current)

    campaign = _lock_visible_campaign(db, principal, payload.campaign_id)
    if campaign.status == "completed":
        db.rollback()
        raise InvalidInput("Cannot log hours against a completed campaign")

    entry = TimeEntry(
        user_id=principal.id,
        campaign_id=campaign.id,
        client_id=campaign.client_id,
        website_id=campaign.website_id,
        date=entry_date,
        hours=hours,
        description=description,
    )
    db.add(entry)
    db.commit()

    logger.info(
        "Time entry logged",
        extra={
            "event": "time_entry.created",
            "time_entry_id": entry.id,
            "campaign_id": campaign.id,
            "hours": float(hours),
        },
    )

    shown = format_hours(hours)
    change_log.record(
        db,
        ENTITY_CAMPAIGN,
        campaign.id,
        campaign.client_id,
        None,
        f"{shown} hours logged by {principal.name}",
        f"{shown} hours logged by {principal.name} on {entry_date.isoformat()}: {description}",
    )
    notifications.notify(
        db,
        log_recipients(db, campaign.client_id, principal.id),
        notifications.TIME_ENTRY_LOGGED,
        f"{principal.name} logged {shown} hrs on {campaign.name}",
        entity_type=ENTITY_CAMPAIGN,
        entity_id=campaign.id,
    )
    return entry_fields(entry, principal.name, campaign.client.name, campaign.name, campaign.website.name)


def update_entry(
    db: Session,
    principal: Principal,
    entry_id: str,
    payload: TimeEntryUpdate,
    today: Optional[date] = None,
) -> dict[str, Any]:
    current = today or date.today()
    decision = authorize(principal, Action.UPDATE, Resource.TIME_ENTRY, today=current)

    entry = db.get(TimeEntry, entry_id)
    if entry is None:
        raise NotFound("Time entry not found")

    if not row_matches(db, decision, TimeEntry, entry.id):
        reason = "not the author" if entry.user_id != principal.id else "not logged today"
        logger.info(
            "Time entry edit refused",
            extra={"event": "time_entry.edit_refused", "time_entry_id": entry.id, "reason": reason},
        )
        raise Forbidden()

    changes = payload.model_dump(exclude_unset=True)
    if "hours" in changes:
        changes["hours"] = validate_hours(changes["hours"])
    if "description" in changes:
        changes["description"] = validate_description(changes["description"])
    if "date" in changes:
        if changes["date"] is None:
            raise InvalidInput("Date is required")
        changes["date"] = validate_date(changes["date"], current)

    for key, value in changes.items():
        setattr(entry, key, value)
    db.commit()
    logger.info("Time entry updated", extra={"event": "time_entry.updated", "time_entry_id": entry.id})
    return entry_fields(
        entry, entry.user.name, entry.client.name, entry.campaign.name, entry.website.name
    )


def delete_entry(db: Session, principal: Principal, entry_id: str) -> None:
    authorize(principal, Action.DELETE, Resource.TIME_ENTRY)
    entry = db.get(TimeEntry, entry_id)
    if entry is None:
        raise NotFound("Time entry not found")
    db.delete(entry)
    db.commit()
    logger.info("Time entry deleted", extra={"event": "time_entry.deleted", "time_entry_id": entry_id})
