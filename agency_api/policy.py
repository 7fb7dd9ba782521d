"""Authorization policy.

Every resource access goes through can(principal, action, resource). The
answer is either a denial or an allowance carrying an optional row filter:
a SQLAlchemy boolean expression that narrows a query to the rows the
principal may touch. List endpoints AND the filter into their query and
single-row lookups use the very same filter, so the two never disagree.

can() performs no I/O. Filters are correlated subqueries over the
assignment tables, evaluated by the database when the caller runs its query.
"""

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Callable, Optional

from sqlalchemy import ColumnElement, and_, false, or_, select
from sqlalchemy.orm import Query, Session

from agency_api.auth.session_auth import Principal
from agency_api.db.models import (
    ENTITY_CAMPAIGN,
    ENTITY_WEBSITE,
    ROLE_CONTRIBUTOR,
    ROLE_MANAGER,
    ROLE_OWNER,
    ROLE_TENANT,
    Account,
    AgencySettings,
    Campaign,
    CampaignWorker,
    ChangeLogEntry,
    Client,
    ClientManager,
    Notification,
    TimeEntry,
    User,
    Website,
)
from agency_api.errors import Forbidden, NotFound

logger = logging.getLogger(__name__)


class Action(str, Enum):
    VIEW_LIST = "view_list"
    VIEW_ONE = "view_one"
    CREATE = "create"
    UPDATE = "update"
    ASSIGN = "assign"
    DELETE = "delete"


class Resource(str, Enum):
    CLIENT = "client"
    ACCOUNT = "account"
    WEBSITE = "website"
    CAMPAIGN = "campaign"
    TIME_ENTRY = "time_entry"
    USER = "user"
    CHANGE_LOG = "change_log"
    NOTIFICATION = "notification"
    # Staff breakdown reports (hours by employee/client/campaign)
    REPORT = "report"
    # Aggregate hour totals shown on dashboards and the client portal
    HOURS_SUMMARY = "hours_summary"
    SETTINGS = "settings"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    row_filter: Optional[ColumnElement[bool]] = None
    reason: Optional[str] = None

    @classmethod
    def allow(cls, row_filter: Optional[ColumnElement[bool]] = None) -> "Decision":
        return cls(allowed=True, row_filter=row_filter)

    @classmethod
    def deny(cls, reason: str) -> "Decision":
        return cls(allowed=False, reason=reason)

    def apply(self, query: Query) -> Query:
        """AND the row filter into a query (no-op when unrestricted)."""
        if self.row_filter is None:
            return query
        return query.filter(self.row_filter)


_ALL = frozenset(Action)
_READ = frozenset({Action.VIEW_LIST, Action.VIEW_ONE})
_READ_WRITE = _READ | {Action.CREATE, Action.UPDATE}

# Actions each role may attempt per resource. Missing entries are denied.
_PERMISSIONS: dict[str, dict[Resource, frozenset[Action]]] = {
    ROLE_OWNER: {resource: _ALL for resource in Resource},
    ROLE_MANAGER: {
        Resource.CLIENT: _READ,
        Resource.ACCOUNT: _READ_WRITE,
        Resource.WEBSITE: _READ_WRITE,
        Resource.CAMPAIGN: _READ_WRITE | {Action.ASSIGN},
        Resource.TIME_ENTRY: _READ | {Action.CREATE},
        Resource.CHANGE_LOG: _READ | {Action.CREATE},
        Resource.NOTIFICATION: _READ | {Action.UPDATE},
        Resource.REPORT: _READ,
        Resource.HOURS_SUMMARY: _READ,
        Resource.SETTINGS: frozenset({Action.VIEW_ONE}),
    },
    ROLE_CONTRIBUTOR: {
        Resource.ACCOUNT: _READ,
        Resource.WEBSITE: _READ,
        Resource.CAMPAIGN: _READ,
        Resource.TIME_ENTRY: _READ | {Action.CREATE, Action.UPDATE},
        Resource.CHANGE_LOG: _READ | {Action.CREATE},
        Resource.NOTIFICATION: _READ | {Action.UPDATE},
        Resource.HOURS_SUMMARY: _READ,
        Resource.SETTINGS: frozenset({Action.VIEW_ONE}),
    },
    ROLE_TENANT: {
        Resource.CLIENT: frozenset({Action.VIEW_ONE}),
        Resource.ACCOUNT: _READ,
        Resource.WEBSITE: _READ,
        Resource.CAMPAIGN: _READ,
        Resource.CHANGE_LOG: _READ,
        Resource.NOTIFICATION: _READ | {Action.UPDATE},
        Resource.HOURS_SUMMARY: _READ,
        Resource.SETTINGS: frozenset({Action.VIEW_ONE}),
    },
}


# --- assignment subqueries ---------------------------------------------------


def assigned_client_ids(principal: Principal):
    """Clients a manager is assigned to."""
    return select(ClientManager.client_id).where(ClientManager.user_id == principal.id)


def assigned_campaign_ids(principal: Principal):
    """Campaigns a contributor is assigned to."""
    return select(CampaignWorker.campaign_id).where(CampaignWorker.user_id == principal.id)


def assigned_website_ids(principal: Principal):
    return select(Campaign.website_id).where(Campaign.id.in_(assigned_campaign_ids(principal)))


def assigned_account_ids(principal: Principal):
    return select(Website.account_id).where(Website.id.in_(assigned_website_ids(principal)))


def _own_client(column: Any, principal: Principal) -> ColumnElement[bool]:
    if not principal.client_id:
        return false()
    return column == principal.client_id


def _contributor_change_log(principal: Principal) -> ColumnElement[bool]:
    return or_(
        and_(
            ChangeLogEntry.entity_type == ENTITY_CAMPAIGN,
            ChangeLogEntry.entity_id.in_(assigned_campaign_ids(principal)),
        ),
        and_(
            ChangeLogEntry.entity_type == ENTITY_WEBSITE,
            ChangeLogEntry.entity_id.in_(assigned_website_ids(principal)),
        ),
    )


_ScopeBuilder = Callable[[Principal], ColumnElement[bool]]

# Row scope per role and resource. Owners are unrestricted except for
# notifications, which are always private to their recipient.
_SCOPES: dict[str, dict[Resource, _ScopeBuilder]] = {
    ROLE_OWNER: {
        Resource.NOTIFICATION: lambda p: Notification.user_id == p.id,
    },
    ROLE_MANAGER: {
        Resource.CLIENT: lambda p: Client.id.in_(assigned_client_ids(p)),
        Resource.ACCOUNT: lambda p: Account.client_id.in_(assigned_client_ids(p)),
        Resource.WEBSITE: lambda p: Website.client_id.in_(assigned_client_ids(p)),
        Resource.CAMPAIGN: lambda p: Campaign.client_id.in_(assigned_client_ids(p)),
        Resource.TIME_ENTRY: lambda p: TimeEntry.client_id.in_(assigned_client_ids(p)),
        Resource.CHANGE_LOG: lambda p: ChangeLogEntry.client_id.in_(assigned_client_ids(p)),
        Resource.NOTIFICATION: lambda p: Notification.user_id == p.id,
        Resource.REPORT: lambda p: TimeEntry.client_id.in_(assigned_client_ids(p)),
        Resource.HOURS_SUMMARY: lambda p: TimeEntry.client_id.in_(assigned_client_ids(p)),
    },
    ROLE_CONTRIBUTOR: {
        Resource.ACCOUNT: lambda p: Account.id.in_(assigned_account_ids(p)),
        Resource.WEBSITE: lambda p: Website.id.in_(assigned_website_ids(p)),
        Resource.CAMPAIGN: lambda p: Campaign.id.in_(assigned_campaign_ids(p)),
        Resource.TIME_ENTRY: lambda p: TimeEntry.user_id == p.id,
        Resource.CHANGE_LOG: _contributor_change_log,
        Resource.NOTIFICATION: lambda p: Notification.user_id == p.id,
        Resource.HOURS_SUMMARY: lambda p: TimeEntry.user_id == p.id,
    },
    ROLE_TENANT: {
        Resource.CLIENT: lambda p: _own_client(Client.id, p),
        Resource.ACCOUNT: lambda p: _own_client(Account.client_id, p),
        Resource.WEBSITE: lambda p: _own_client(Website.client_id, p),
        Resource.CAMPAIGN: lambda p: _own_client(Campaign.client_id, p),
        Resource.CHANGE_LOG: lambda p: _own_client(ChangeLogEntry.client_id, p),
        Resource.NOTIFICATION: lambda p: Notification.user_id == p.id,
        Resource.HOURS_SUMMARY: lambda p: _own_client(TimeEntry.client_id, p),
    },
}

_MODELS: dict[Resource, type] = {
    Resource.CLIENT: Client,
    Resource.ACCOUNT: Account,
    Resource.WEBSITE: Website,
    Resource.CAMPAIGN: Campaign,
    Resource.TIME_ENTRY: TimeEntry,
    Resource.USER: User,
    Resource.CHANGE_LOG: ChangeLogEntry,
    Resource.NOTIFICATION: Notification,
    Resource.SETTINGS: AgencySettings,
}


def can(
    principal: Principal,
    action: Action,
    resource: Resource,
    today: Optional[date] = None,
) -> Decision:
    """Decide whether the principal may perform action on resource.

    Args:
        principal: Acting identity
        action: Requested action
        resource: Target resource type
        today: Calendar date for same-day rules (defaults to date.today())

    Returns:
        Decision.allow(row_filter) or Decision.deny(reason)
    """
    allowed_actions = _PERMISSIONS.get(principal.role, {}).get(resource, frozenset())
    if action not in allowed_actions:
        return Decision.deny(f"role '{principal.role}' may not {action.value} {resource.value}")

    # Contributors edit only their own entries, and only on the day they logged them
    if principal.role == ROLE_CONTRIBUTOR and resource is Resource.TIME_ENTRY and action is Action.UPDATE:
        return Decision.allow(
            and_(TimeEntry.user_id == principal.id, TimeEntry.date == (today or date.today()))
        )

    builder = _SCOPES.get(principal.role, {}).get(resource)
    return Decision.allow(builder(principal) if builder else None)


def require(decision: Decision, action: Action, resource: Resource) -> Decision:
    """Raise Forbidden for a denial; the reason goes to the log only."""
    if not decision.allowed:
        logger.info(
            "Access denied",
            extra={
                "event": "policy.denied",
                "action": action.value,
                "resource": resource.value,
                "reason": decision.reason,
            },
        )
        raise Forbidden()
    return decision


def authorize(
    principal: Principal,
    action: Action,
    resource: Resource,
    today: Optional[date] = None,
) -> Decision:
    """can() + require() in one call."""
    return require(can(principal, action, resource, today=today), action, resource)


def scoped_query(db: Session, principal: Principal, resource: Resource, action: Action = Action.VIEW_LIST) -> Query:
    """Return a query over the resource's model narrowed to the principal's rows."""
    decision = authorize(principal, action, resource)
    return decision.apply(db.query(_MODELS[resource]))


def get_visible(
    db: Session,
    principal: Principal,
    resource: Resource,
    row_id: Any,
    action: Action = Action.VIEW_ONE,
):
    """Load one row through the principal's scope.

    Raises:
        Forbidden: The role may never perform the action on this resource
        NotFound: The row does not exist or lies outside the principal's
            scope; callers cannot tell the two apart
    """
    model = _MODELS[resource]
    decision = authorize(principal, action, resource)
    row = decision.apply(db.query(model).filter(model.id == row_id)).first()
    if row is None:
        raise NotFound(f"{resource.value.replace('_', ' ').capitalize()} not found")
    return row


def row_matches(db: Session, decision: Decision, model: type, row_id: Any) -> bool:
    """Check an already-loaded row against a decision's row filter."""
    if decision.row_filter is None:
        return True
    query = db.query(model.id).filter(model.id == row_id, decision.row_filter)
    return query.first() is not None
