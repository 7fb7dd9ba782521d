"""Tests for the best-effort change-log emitter."""

from unittest.mock import MagicMock

from sqlalchemy.exc import OperationalError

from agency_api.db.models import ChangeLogEntry
from agency_api.events import change_log


def test_system_entry_has_no_author(db_session, factory):
    campaign = factory.campaign_tree()

    entry = change_log.record(
        db_session,
        "campaign",
        campaign.id,
        campaign.client_id,
        None,
        "Campaign status changed",
        "Campaign status changed from active to paused.",
    )

    assert entry is not None
    stored = db_session.get(ChangeLogEntry, entry.id)
    assert stored.entry_type == "system"
    assert stored.user_id is None
    assert stored.client_id == campaign.client_id


def test_authored_entry_is_manual(db_session, factory):
    campaign = factory.campaign_tree()
    author = factory.user("manager")

    entry = change_log.record(
        db_session, "campaign", campaign.id, campaign.client_id, author.id, "Budget raised", "Raised to 500/day"
    )

    assert entry.entry_type == "manual"
    assert entry.user_id == author.id


def test_title_is_capped(db_session, factory):
    campaign = factory.campaign_tree()
    entry = change_log.record(db_session, "campaign", campaign.id, campaign.client_id, None, "x" * 250, "body")
    assert len(entry.title) == 200


def test_write_failure_is_swallowed_and_rolled_back():
    db = MagicMock()
    db.commit.side_effect = OperationalError("INSERT", {}, Exception("disk I/O error"))

    result = change_log.record(db, "website", "w-1", "c-1", None, "Website added", "body")

    assert result is None
    db.rollback.assert_called_once()
