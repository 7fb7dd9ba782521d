"""Tests for notification fan-out and per-user retention.

Test Coverage:
N1: One row per distinct recipient
N2: Each user keeps only the newest 100 notifications
N3: Pruning one user never touches another user's rows
N4: A failed delivery is logged and the loop continues
"""

from unittest.mock import patch

from agency_api.db.models import Notification
from agency_api.events import notifications
from agency_api.events.notifications import MAX_NOTIFICATIONS_PER_USER


def _messages(db, user_id):
    rows = (
        db.query(Notification)
        .filter(Notification.user_id == user_id)
        .order_by(Notification.id.asc())
        .all()
    )
    return [row.message for row in rows]


# ============================================================================
# N1: Fan-out
# ============================================================================


def test_notify_writes_one_row_per_distinct_recipient(db_session, factory):
    a = factory.user("manager")
    b = factory.user("owner")

    delivered = notifications.notify(
        db_session,
        [a.id, b.id, a.id, None, ""],
        notifications.CAMPAIGN_STATUS_CHANGED,
        "Campaign 'Spring Launch' is now paused",
        entity_type="campaign",
        entity_id="c-1",
    )

    assert delivered == 2
    row = db_session.query(Notification).filter(Notification.user_id == a.id).one()
    assert row.type == "campaign_status_changed"
    assert row.read is False
    assert row.entity_type == "campaign"
    assert row.entity_id == "c-1"


def test_notify_with_no_recipients_is_a_noop(db_session):
    assert notifications.notify(db_session, set(), notifications.WORKER_ASSIGNED, "hello") == 0
    assert db_session.query(Notification).count() == 0


# ============================================================================
# N2/N3: Retention
# ============================================================================


def test_each_user_keeps_newest_hundred(db_session, factory):
    user = factory.user("manager")

    for i in range(MAX_NOTIFICATIONS_PER_USER + 5):
        notifications.deliver(db_session, user.id, notifications.TIME_ENTRY_LOGGED, f"message {i}")

    messages = _messages(db_session, user.id)
    assert len(messages) == MAX_NOTIFICATIONS_PER_USER
    assert messages[0] == "message 5"
    assert messages[-1] == f"message {MAX_NOTIFICATIONS_PER_USER + 4}"


def test_pruning_is_per_user(db_session, factory):
    busy = factory.user("manager")
    quiet = factory.user("owner")
    notifications.deliver(db_session, quiet.id, notifications.MANAGER_ASSIGNED, "keep me")

    for i in range(MAX_NOTIFICATIONS_PER_USER + 1):
        notifications.deliver(db_session, busy.id, notifications.TIME_ENTRY_LOGGED, f"message {i}")

    assert _messages(db_session, quiet.id) == ["keep me"]
    assert len(_messages(db_session, busy.id)) == MAX_NOTIFICATIONS_PER_USER


# ============================================================================
# N4: Failure isolation
# ============================================================================


def test_failed_delivery_does_not_stop_the_loop(db_session, factory):
    first = factory.user("manager")
    second = factory.user("owner")
    broken = min(first.id, second.id)
    healthy = max(first.id, second.id)
    real_deliver = notifications.deliver

    def flaky(db, user_id, *args, **kwargs):
        if user_id == broken:
            raise RuntimeError("database went away")
        return real_deliver(db, user_id, *args, **kwargs)

    with patch("agency_api.events.notifications.deliver", side_effect=flaky):
        delivered = notifications.notify(
            db_session, {first.id, second.id}, notifications.CHANGE_LOG_ADDED, "New update"
        )

    assert delivered == 1
    assert _messages(db_session, broken) == []
    assert _messages(db_session, healthy) == ["New update"]


# ============================================================================
# Recipient sets
# ============================================================================


def test_recipient_sets(db_session, factory):
    client = factory.client()
    campaign = factory.campaign_tree(client)
    manager = factory.user("manager")
    worker = factory.user("contributor")
    owner = factory.user("owner")
    factory.user("owner", status="inactive")
    portal = factory.user("tenant", client=client)
    factory.user("tenant", client=client, status="inactive")
    factory.assign_manager(client, manager)
    factory.assign_worker(campaign, worker)

    assert notifications.client_manager_ids(db_session, client.id) == {manager.id}
    assert notifications.campaign_worker_ids(db_session, campaign.id) == {worker.id}
    assert notifications.active_owner_ids(db_session) == {owner.id}
    assert notifications.portal_user_ids(db_session, client.id) == {portal.id}
