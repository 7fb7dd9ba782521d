"""Notification endpoint tests: listing, read flags and privacy."""

from agency_api.db.models import Notification
from agency_api.events import notifications


def _seed(db, user, count):
    for i in range(count):
        notifications.deliver(db, user.id, notifications.TIME_ENTRY_LOGGED, f"message {i}")


def test_list_is_newest_first_with_unread_count(client, db_session, owner, owner_headers):
    _seed(db_session, owner, 3)

    body = client.get("/api/v1/notifications", headers=owner_headers).json()

    assert [n["message"] for n in body["notifications"]] == ["message 2", "message 1", "message 0"]
    assert body["unread_count"] == 3


def test_list_shows_only_own_notifications(client, db_session, factory, owner_headers, owner):
    other = factory.user("manager")
    _seed(db_session, other, 2)
    _seed(db_session, owner, 1)

    body = client.get("/api/v1/notifications", headers=owner_headers).json()
    assert len(body["notifications"]) == 1


def test_mark_one_read(client, db_session, owner, owner_headers):
    _seed(db_session, owner, 2)
    first = client.get("/api/v1/notifications", headers=owner_headers).json()["notifications"][0]

    response = client.patch(f"/api/v1/notifications/{first['id']}/read", headers=owner_headers)

    assert response.status_code == 200
    assert response.json()["read"] is True
    assert client.get("/api/v1/notifications", headers=owner_headers).json()["unread_count"] == 1


def test_cannot_mark_someone_elses_notification(client, db_session, factory, headers_for, owner):
    _seed(db_session, owner, 1)
    owner_note = db_session.query(Notification).filter_by(user_id=owner.id).one()
    intruder = factory.user("manager")

    response = client.patch(f"/api/v1/notifications/{owner_note.id}/read", headers=headers_for(intruder))

    assert response.status_code == 404
    assert response.json()["detail"] == "Notification not found"


def test_mark_all_read_touches_only_own_rows(client, db_session, factory, owner, owner_headers, headers_for):
    other = factory.user("contributor")
    _seed(db_session, owner, 3)
    _seed(db_session, other, 2)

    response = client.patch("/api/v1/notifications/read-all", headers=owner_headers)

    assert response.json() == {"message": "All notifications marked as read"}
    assert client.get("/api/v1/notifications", headers=owner_headers).json()["unread_count"] == 0
    assert client.get("/api/v1/notifications", headers=headers_for(other)).json()["unread_count"] == 2


def test_portal_users_have_notifications_too(client, db_session, factory, headers_for):
    portal = factory.user("tenant", client=factory.client())
    _seed(db_session, portal, 1)

    body = client.get("/api/v1/notifications", headers=headers_for(portal)).json()
    assert body["unread_count"] == 1
