"""Tests for the authorization policy.

Test Coverage:
P1: Role/action matrix (allow vs deny)
P2: Row filters narrow list queries to the principal's scope
P3: Single-row lookups use the same filter (404 outside scope)
P4: Same-day edit rule for contributors
"""

from datetime import date, timedelta

import pytest

from agency_api.auth.session_auth import Principal
from agency_api.db.models import Campaign, TimeEntry
from agency_api.errors import Forbidden, NotFound
from agency_api.policy import Action, Resource, authorize, can, get_visible, row_matches, scoped_query


def _principal(role: str, client_id=None) -> Principal:
    return Principal(id=f"{role}-id", role=role, status="active", name=role, client_id=client_id)


# ============================================================================
# P1: Role/action matrix
# ============================================================================


@pytest.mark.parametrize("resource", list(Resource))
def test_owner_may_do_everything(resource):
    owner = _principal("owner")
    for action in Action:
        assert can(owner, action, resource).allowed


@pytest.mark.parametrize(
    "role,action,resource",
    [
        ("manager", Action.CREATE, Resource.CLIENT),
        ("manager", Action.DELETE, Resource.CAMPAIGN),
        ("manager", Action.UPDATE, Resource.TIME_ENTRY),
        ("manager", Action.VIEW_LIST, Resource.USER),
        ("manager", Action.UPDATE, Resource.SETTINGS),
        ("contributor", Action.VIEW_LIST, Resource.CLIENT),
        ("contributor", Action.UPDATE, Resource.CAMPAIGN),
        ("contributor", Action.DELETE, Resource.TIME_ENTRY),
        ("contributor", Action.VIEW_LIST, Resource.REPORT),
        ("tenant", Action.VIEW_LIST, Resource.CLIENT),
        ("tenant", Action.VIEW_LIST, Resource.TIME_ENTRY),
        ("tenant", Action.CREATE, Resource.CHANGE_LOG),
        ("tenant", Action.VIEW_LIST, Resource.REPORT),
    ],
)
def test_denied_actions(role, action, resource):
    decision = can(_principal(role, client_id="c1"), action, resource)
    assert not decision.allowed
    assert decision.reason


@pytest.mark.parametrize(
    "role,action,resource",
    [
        ("manager", Action.ASSIGN, Resource.CAMPAIGN),
        ("manager", Action.CREATE, Resource.TIME_ENTRY),
        ("contributor", Action.CREATE, Resource.CHANGE_LOG),
        ("contributor", Action.UPDATE, Resource.TIME_ENTRY),
        ("tenant", Action.VIEW_ONE, Resource.CLIENT),
        ("tenant", Action.VIEW_LIST, Resource.HOURS_SUMMARY),
        ("tenant", Action.UPDATE, Resource.NOTIFICATION),
    ],
)
def test_allowed_actions_carry_row_filter(role, action, resource):
    decision = can(_principal(role, client_id="c1"), action, resource)
    assert decision.allowed
    assert decision.row_filter is not None


def test_authorize_raises_forbidden_without_reason_in_detail():
    with pytest.raises(Forbidden) as exc_info:
        authorize(_principal("contributor"), Action.CREATE, Resource.CLIENT)
    assert exc_info.value.detail == "Insufficient permissions"


def test_unknown_role_is_denied():
    assert not can(_principal("auditor"), Action.VIEW_LIST, Resource.CLIENT).allowed


def test_owner_notifications_are_still_private():
    decision = can(_principal("owner"), Action.VIEW_LIST, Resource.NOTIFICATION)
    assert decision.allowed
    assert decision.row_filter is not None


# ============================================================================
# P2/P3: Scoped queries and single-row lookups
# ============================================================================


def test_manager_sees_only_assigned_clients(db_session, factory):
    manager = factory.user("manager")
    mine = factory.client("Assigned Co")
    factory.client("Other Co")
    factory.assign_manager(mine, manager)

    rows = scoped_query(db_session, Principal.from_user(manager), Resource.CLIENT).all()
    assert [c.id for c in rows] == [mine.id]


def test_get_visible_outside_scope_is_not_found(db_session, factory):
    manager = factory.user("manager")
    other = factory.client("Other Co")

    with pytest.raises(NotFound) as exc_info:
        get_visible(db_session, Principal.from_user(manager), Resource.CLIENT, other.id)
    assert exc_info.value.detail == "Client not found"


def test_get_visible_missing_row_reads_the_same(db_session, factory):
    owner = factory.user("owner")
    with pytest.raises(NotFound) as exc_info:
        get_visible(db_session, Principal.from_user(owner), Resource.TIME_ENTRY, "missing")
    assert exc_info.value.detail == "Time entry not found"


def test_contributor_sees_only_assigned_campaigns(db_session, factory):
    worker = factory.user("contributor")
    assigned = factory.campaign_tree()
    factory.campaign_tree()
    factory.assign_worker(assigned, worker)

    rows = scoped_query(db_session, Principal.from_user(worker), Resource.CAMPAIGN).all()
    assert [c.id for c in rows] == [assigned.id]


def test_tenant_without_affiliation_sees_nothing(db_session, factory):
    factory.campaign_tree()
    orphan = Principal(id="t-1", role="tenant", status="active", client_id=None)

    assert scoped_query(db_session, orphan, Resource.CAMPAIGN).count() == 0


def test_tenant_sees_only_own_client(db_session, factory):
    own = factory.client("Portal Co")
    other = factory.client("Someone Else")
    tenant = factory.user("tenant", client=own)
    principal = Principal.from_user(tenant)

    assert get_visible(db_session, principal, Resource.CLIENT, own.id).id == own.id
    with pytest.raises(NotFound):
        get_visible(db_session, principal, Resource.CLIENT, other.id)


# ============================================================================
# P4: Same-day edits
# ============================================================================


def test_contributor_update_filter_requires_author_and_today(db_session, factory):
    worker = factory.user("contributor")
    campaign = factory.campaign_tree()
    today = date(2024, 3, 14)
    todays = factory.time_entry(worker, campaign, entry_date=today)
    yesterdays = factory.time_entry(worker, campaign, entry_date=today - timedelta(days=1))
    someone_elses = factory.time_entry(factory.user("contributor"), campaign, entry_date=today)

    decision = can(Principal.from_user(worker), Action.UPDATE, Resource.TIME_ENTRY, today=today)

    assert row_matches(db_session, decision, TimeEntry, todays.id)
    assert not row_matches(db_session, decision, TimeEntry, yesterdays.id)
    assert not row_matches(db_session, decision, TimeEntry, someone_elses.id)


def test_row_matches_without_filter_is_true(db_session, factory):
    campaign = factory.campaign_tree()
    decision = can(_principal("owner"), Action.UPDATE, Resource.CAMPAIGN)
    assert row_matches(db_session, decision, Campaign, campaign.id)
