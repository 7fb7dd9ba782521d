"""Change-log queries and manual entries.

System entries are written by the mutation handlers through
events.change_log.record(); this module covers reading the log and the
manual-entry endpoint, where the entry itself is the primary write.
"""

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from agency_api.auth.session_auth import Principal
from agency_api.db.models import (
    CHANGE_LOG_ENTITY_TYPES,
    ENTITY_CAMPAIGN,
    ENTITY_WEBSITE,
    ENTRY_MANUAL,
    ChangeLogEntry,
    Client,
    User,
)
from agency_api.events import notifications
from agency_api.policy import Action, Resource, authorize, get_visible
from agency_api.schemas import ChangeLogCreate
from agency_api.services.common import require_choice

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50
MAX_LIMIT = 200

_ENTITY_RESOURCES = {
    ENTITY_WEBSITE: Resource.WEBSITE,
    ENTITY_CAMPAIGN: Resource.CAMPAIGN,
}


def entry_fields(entry: ChangeLogEntry, author_name: Optional[str], client_name: Optional[str]) -> dict[str, Any]:
    return {
        "id": entry.id,
        "entity_type": entry.entity_type,
        "entity_id": entry.entity_id,
        "client_id": entry.client_id,
        "user_id": entry.user_id,
        "entry_type": entry.entry_type,
        "title": entry.title,
        "body": entry.body,
        "created_at": entry.created_at,
        "author_name": author_name,
        "client_name": client_name,
    }


def _scoped_entries(db: Session, principal: Principal):
    decision = authorize(principal, Action.VIEW_LIST, Resource.CHANGE_LOG)
    query = (
        db.query(ChangeLogEntry, User.name, Client.name)
        .outerjoin(User, ChangeLogEntry.user_id == User.id)
        .join(Client, ChangeLogEntry.client_id == Client.id)
    )
    return decision.apply(query)


def list_entries(
    db: Session,
    principal: Principal,
    entity_type: Optional[str] = None,
    client_id: Optional[str] = None,
    limit: int = DEFAULT_LIMIT,
    offset: int = 0,
) -> list[dict[str, Any]]:
    """Newest-first page of the change log the principal may read."""
    query = _scoped_entries(db, principal)
    if entity_type:
        query = query.filter(
            ChangeLogEntry.entity_type == require_choice(entity_type, CHANGE_LOG_ENTITY_TYPES, "entity_type")
        )
    if client_id:
        query = query.filter(ChangeLogEntry.client_id == client_id)

    limit = max(1, min(limit, MAX_LIMIT))
    offset = max(0, offset)
    rows = (
        query.order_by(ChangeLogEntry.created_at.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
    return [entry_fields(*row) for row in rows]


def list_for_entity(db: Session, principal: Principal, entity_type: str, entity_id: str) -> list[dict[str, Any]]:
    """Full history of one website or campaign, which must be visible."""
    get_visible(db, principal, _ENTITY_RESOURCES[entity_type], entity_id)
    rows = (
        _scoped_entries(db, principal)
        .filter(ChangeLogEntry.entity_type == entity_type, ChangeLogEntry.entity_id == entity_id)
        .order_by(ChangeLogEntry.created_at.desc())
        .all()
    )
    return [entry_fields(*row) for row in rows]


def list_for_website(db: Session, principal: Principal, website_id: str) -> list[dict[str, Any]]:
    return list_for_entity(db, principal, ENTITY_WEBSITE, website_id)


def list_for_campaign(db: Session, principal: Principal, campaign_id: str) -> list[dict[str, Any]]:
    return list_for_entity(db, principal, ENTITY_CAMPAIGN, campaign_id)


def update_recipients(db: Session, client_id: str, author_id: str) -> set[str]:
    """Managers, active owners and active portal users of the client, minus the author."""
    recipients = (
        notifications.client_manager_ids(db, client_id)
        | notifications.active_owner_ids(db)
        | notifications.portal_user_ids(db, client_id)
    )
    recipients.discard(author_id)
    return recipients


def create_manual(db: Session, principal: Principal, payload: ChangeLogCreate) -> dict[str, Any]:
    """Add an authored entry to a visible website or campaign.

    The client is taken from the entity, never from the request.
    """
    authorize(principal, Action.CREATE, Resource.CHANGE_LOG)
    entity_type = require_choice(payload.entity_type, CHANGE_LOG_ENTITY_TYPES, "entity_type")
    entity = get_visible(db, principal, _ENTITY_RESOURCES[entity_type], payload.entity_id)

    entry = ChangeLogEntry(
        entity_type=entity_type,
        entity_id=entity.id,
        client_id=entity.client_id,
        user_id=principal.id,
        entry_type=ENTRY_MANUAL,
        title=payload.title.strip(),
        body=payload.body,
    )
    db.add(entry)
    db.commit()

    logger.info(
        "Manual change log entry added",
        extra={
            "event": "change_log.manual_added",
            "entity_type": entity_type,
            "entity_id": entity.id,
        },
    )
    notifications.notify(
        db,
        update_recipients(db, entity.client_id, principal.id),
        notifications.CHANGE_LOG_ADDED,
        f"New update on {entity.name} - added by {principal.name}",
        entity_type=entity_type,
        entity_id=entity.id,
    )
    client = db.get(Client, entity.client_id)
    return entry_fields(entry, principal.name, client.name if client else None)
