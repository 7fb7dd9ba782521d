"""Account handlers and account websites."""

import logging

from sqlalchemy.orm import Session

from agency_api.auth.session_auth import Principal
from agency_api.db.models import ENTITY_WEBSITE, WEBSITE_STATUSES, Account, Website
from agency_api.events import change_log
from agency_api.policy import Action, Resource, authorize, get_visible, scoped_query
from agency_api.schemas import AccountUpdate, WebsiteCreate
from agency_api.services.common import apply_updates, require_choice

logger = logging.getLogger(__name__)


def get_account(db: Session, principal: Principal, account_id: str) -> Account:
    return get_visible(db, principal, Resource.ACCOUNT, account_id)


def update_account(db: Session, principal: Principal, account_id: str, payload: AccountUpdate) -> Account:
    account = get_visible(db, principal, Resource.ACCOUNT, account_id, action=Action.UPDATE)
    apply_updates(account, payload)
    db.commit()
    return account


def delete_account(db: Session, principal: Principal, account_id: str) -> None:
    account = get_visible(db, principal, Resource.ACCOUNT, account_id, action=Action.DELETE)
    db.delete(account)
    db.commit()
    logger.info("Account deleted", extra={"event": "account.deleted", "account_id": account_id})


def list_websites(db: Session, principal: Principal, account_id: str) -> list[Website]:
    return (
        scoped_query(db, principal, Resource.WEBSITE)
        .filter(Website.account_id == account_id)
        .order_by(Website.name.asc())
        .all()
    )


def create_website(db: Session, principal: Principal, account_id: str, payload: WebsiteCreate) -> Website:
    authorize(principal, Action.CREATE, Resource.WEBSITE)
    account = get_visible(db, principal, Resource.ACCOUNT, account_id)
    website = Website(
        account_id=account.id,
        client_id=account.client_id,
        name=payload.name.strip(),
        url=payload.url,
        platform=payload.platform,
        status=require_choice(payload.status or "active", WEBSITE_STATUSES, "status"),
        notes=payload.notes,
    )
    db.add(website)
    db.commit()
    logger.info(
        "Website created",
        extra={"event": "website.created", "website_id": website.id, "account_id": account.id},
    )

    change_log.record(
        db,
        ENTITY_WEBSITE,
        website.id,
        website.client_id,
        None,
        f"Website '{website.name}' was added",
        f"Website '{website.url or website.name}' was added to the account.",
    )
    return website
