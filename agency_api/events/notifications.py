"""Notification fan-out.

notify() writes one row per recipient and then trims that recipient's
history to the newest MAX_NOTIFICATIONS_PER_USER rows. Each recipient is
its own transaction: a failure for one is rolled back and logged, and the
loop moves on to the next.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from agency_api.db.models import (
    ROLE_OWNER,
    ROLE_TENANT,
    CampaignWorker,
    ClientManager,
    Notification,
    User,
)

logger = logging.getLogger(__name__)

MAX_NOTIFICATIONS_PER_USER = 100

# Event types
MANAGER_ASSIGNED = "manager_assigned"
WORKER_ASSIGNED = "worker_assigned"
CAMPAIGN_STATUS_CHANGED = "campaign_status_changed"
TIME_ENTRY_LOGGED = "time_entry_logged"
CHANGE_LOG_ADDED = "change_log_added"


def prune(db: Session, user_id: str, keep: int = MAX_NOTIFICATIONS_PER_USER) -> None:
    """Delete all but the user's `keep` newest notifications.

    Newest is created_at descending, ties broken by insertion order (id).
    Does not commit.
    """
    newest = (
        select(Notification.id)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(keep)
    )
    db.execute(
        delete(Notification)
        .where(Notification.user_id == user_id, Notification.id.not_in(newest))
        .execution_options(synchronize_session=False)
    )


def deliver(
    db: Session,
    user_id: str,
    type: str,
    message: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
) -> Notification:
    """Insert one notification and prune the recipient's history, then commit."""
    notification = Notification(
        user_id=user_id,
        type=type,
        message=message,
        entity_type=entity_type,
        entity_id=entity_id,
    )
    db.add(notification)
    db.flush()
    prune(db, user_id)
    db.commit()
    return notification


def notify(
    db: Session,
    recipient_ids: Iterable[str],
    type: str,
    message: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
) -> int:
    """Fan a notification out to every recipient.

    Returns:
        Number of recipients that received the notification
    """
    recipients = sorted({rid for rid in recipient_ids if rid})
    if not recipients:
        return 0

    delivered = 0
    for user_id in recipients:
        try:
            deliver(db, user_id, type, message, entity_type, entity_id)
            delivered += 1
        except Exception:
            db.rollback()
            logger.warning(
                "Notification delivery failed",
                exc_info=True,
                extra={
                    "event": "notification.deliver_failed",
                    "recipient_id": user_id,
                    "type": type,
                },
            )

    logger.info(
        "Notifications fanned out",
        extra={
            "event": "notification.fanout",
            "type": type,
            "recipients": len(recipients),
            "delivered": delivered,
        },
    )
    return delivered


# --- recipient sets ----------------------------------------------------------


def client_manager_ids(db: Session, client_id: str) -> set[str]:
    rows = db.execute(select(ClientManager.user_id).where(ClientManager.client_id == client_id))
    return {row[0] for row in rows}


def active_owner_ids(db: Session) -> set[str]:
    rows = db.execute(select(User.id).where(User.role == ROLE_OWNER, User.status == "active"))
    return {row[0] for row in rows}


def campaign_worker_ids(db: Session, campaign_id: str) -> set[str]:
    rows = db.execute(select(CampaignWorker.user_id).where(CampaignWorker.campaign_id == campaign_id))
    return {row[0] for row in rows}


def portal_user_ids(db: Session, client_id: str) -> set[str]:
    """Active client-portal users affiliated with the client."""
    rows = db.execute(
        select(User.id).where(
            User.role == ROLE_TENANT, User.client_id == client_id, User.status == "active"
        )
    )
    return {row[0] for row in rows}
