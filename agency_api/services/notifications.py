"""Reading and acknowledging the caller's own notifications."""

from typing import Any

from sqlalchemy.orm import Session

from agency_api.auth.session_auth import Principal
from agency_api.db.models import Notification
from agency_api.events.notifications import MAX_NOTIFICATIONS_PER_USER
from agency_api.policy import Action, Resource, get_visible, scoped_query


def list_notifications(db: Session, principal: Principal) -> dict[str, Any]:
    """Newest notifications first, with the unread count over the same rows."""
    query = scoped_query(db, principal, Resource.NOTIFICATION)
    rows = (
        query.order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(MAX_NOTIFICATIONS_PER_USER)
        .all()
    )
    unread = query.filter(Notification.read.is_(False)).count()
    return {"notifications": rows, "unread_count": unread}


def mark_read(db: Session, principal: Principal, notification_id: int) -> Notification:
    notification = get_visible(db, principal, Resource.NOTIFICATION, notification_id, action=Action.UPDATE)
    notification.read = True
    db.commit()
    return notification


def mark_all_read(db: Session, principal: Principal) -> int:
    """Returns the number of notifications that changed."""
    updated = (
        scoped_query(db, principal, Resource.NOTIFICATION, action=Action.UPDATE)
        .filter(Notification.read.is_(False))
        .update({Notification.read: True}, synchronize_session=False)
    )
    db.commit()
    return updated
