"""Client (tenant) handlers, manager assignment and client accounts."""

import logging
import re
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from agency_api.auth.session_auth import Principal
from agency_api.db.models import (
    CLIENT_STATUSES,
    ROLE_MANAGER,
    Account,
    Campaign,
    Client,
    ClientManager,
    User,
    Website,
)
from agency_api.errors import Conflict, InvalidInput
from agency_api.events import notifications
from agency_api.policy import Action, Resource, authorize, get_visible, scoped_query
from agency_api.schemas import AccountCreate, ClientCreate, ClientUpdate
from agency_api.services.common import apply_updates, require_choice

logger = logging.getLogger(__name__)

_SLUG_INVALID = re.compile(r"[^a-z0-9-]")
_SLUG_CONFLICT = "A client with this slug already exists"


def slugify(value: str) -> str:
    """Lower-case and replace anything outside [a-z0-9-] with '-'."""
    return _SLUG_INVALID.sub("-", value.lower())


def _valid_slug(raw: str) -> str:
    slug = slugify(raw)
    if not slug:
        raise InvalidInput("Slug cannot be empty")
    return slug


def _counts(db: Session, model: Any, client_ids: list[str]) -> dict[str, int]:
    if not client_ids:
        return {}
    rows = db.execute(
        select(model.client_id, func.count(model.id))
        .where(model.client_id.in_(client_ids))
        .group_by(model.client_id)
    )
    return {client_id: count for client_id, count in rows}


def list_clients(db: Session, principal: Principal) -> list[dict[str, Any]]:
    """Clients visible to the principal, with account/website/campaign counts."""
    clients = scoped_query(db, principal, Resource.CLIENT).order_by(Client.name.asc()).all()
    ids = [client.id for client in clients]
    accounts = _counts(db, Account, ids)
    websites = _counts(db, Website, ids)
    campaigns = _counts(db, Campaign, ids)
    return [
        {
            **client_fields(client),
            "account_count": accounts.get(client.id, 0),
            "website_count": websites.get(client.id, 0),
            "campaign_count": campaigns.get(client.id, 0),
        }
        for client in clients
    ]


def client_fields(client: Client) -> dict[str, Any]:
    return {
        "id": client.id,
        "name": client.name,
        "slug": client.slug,
        "status": client.status,
        "logo_url": client.logo_url,
        "notes": client.notes,
        "created_at": client.created_at,
        "updated_at": client.updated_at,
    }


def client_managers(db: Session, client_id: str) -> list[User]:
    return (
        db.query(User)
        .join(ClientManager, ClientManager.user_id == User.id)
        .filter(ClientManager.client_id == client_id)
        .order_by(User.name.asc())
        .all()
    )


def get_client(db: Session, principal: Principal, client_id: str) -> dict[str, Any]:
    client = get_visible(db, principal, Resource.CLIENT, client_id)
    return {**client_fields(client), "managers": client_managers(db, client.id)}


def create_client(db: Session, principal: Principal, payload: ClientCreate) -> Client:
    authorize(principal, Action.CREATE, Resource.CLIENT)
    client = Client(
        name=payload.name.strip(),
        slug=_valid_slug(payload.slug or payload.name),
        status=require_choice(payload.status or "active", CLIENT_STATUSES, "status"),
        logo_url=payload.logo_url,
        notes=payload.notes,
    )
    db.add(client)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict(_SLUG_CONFLICT)

    logger.info(
        "Client created",
        extra={"event": "client.created", "client_id": client.id, "slug": client.slug},
    )
    return client


def update_client(db: Session, principal: Principal, client_id: str, payload: ClientUpdate) -> Client:
    client = get_visible(db, principal, Resource.CLIENT, client_id, action=Action.UPDATE)
    if payload.slug is not None:
        payload = payload.model_copy(update={"slug": _valid_slug(payload.slug)})
    if payload.status is not None:
        require_choice(payload.status, CLIENT_STATUSES, "status")
    apply_updates(client, payload)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict(_SLUG_CONFLICT)
    return client


def delete_client(db: Session, principal: Principal, client_id: str) -> None:
    """Delete a client and, by cascade, everything beneath it."""
    client = get_visible(db, principal, Resource.CLIENT, client_id, action=Action.DELETE)
    db.delete(client)
    db.commit()
    logger.info("Client deleted", extra={"event": "client.deleted", "client_id": client_id})


def assign_manager(db: Session, principal: Principal, client_id: str, user_id: str) -> bool:
    """Assign a manager to a client. Re-assigning is a no-op.

    Returns:
        True when a new assignment was created
    """
    client = get_visible(db, principal, Resource.CLIENT, client_id, action=Action.ASSIGN)
    manager = db.get(User, user_id)
    if manager is None or manager.role != ROLE_MANAGER:
        raise InvalidInput("User must have the manager role")

    existing = (
        db.query(ClientManager)
        .filter(ClientManager.client_id == client.id, ClientManager.user_id == manager.id)
        .first()
    )
    if existing is not None:
        return False

    db.add(ClientManager(client_id=client.id, user_id=manager.id))
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with an identical assignment
        db.rollback()
        return False

    logger.info(
        "Manager assigned",
        extra={"event": "client.manager_assigned", "client_id": client.id, "manager_id": manager.id},
    )
    notifications.notify(
        db,
        {manager.id},
        notifications.MANAGER_ASSIGNED,
        f"You've been assigned to manage {client.name}",
        entity_type="client",
        entity_id=client.id,
    )
    return True


def remove_manager(db: Session, principal: Principal, client_id: str, user_id: str) -> None:
    client = get_visible(db, principal, Resource.CLIENT, client_id, action=Action.ASSIGN)
    db.query(ClientManager).filter(
        ClientManager.client_id == client.id, ClientManager.user_id == user_id
    ).delete(synchronize_session=False)
    db.commit()


def list_accounts(db: Session, principal: Principal, client_id: str) -> list[Account]:
    return (
        scoped_query(db, principal, Resource.ACCOUNT)
        .filter(Account.client_id == client_id)
        .order_by(Account.name.asc())
        .all()
    )


def create_account(db: Session, principal: Principal, client_id: str, payload: AccountCreate) -> Account:
    authorize(principal, Action.CREATE, Resource.ACCOUNT)
    client = get_visible(db, principal, Resource.CLIENT, client_id)
    account = Account(
        client_id=client.id,
        name=payload.name.strip(),
        type=payload.type,
        notes=payload.notes,
    )
    db.add(account)
    db.commit()
    logger.info(
        "Account created",
        extra={"event": "account.created", "account_id": account.id, "client_id": client.id},
    )
    return account
