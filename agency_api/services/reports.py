"""Hour reports and dashboard figures.

Every report takes an inclusive [start_date, end_date] range that defaults
to the current calendar month. Scoping comes from the policy: staff
breakdowns use the REPORT filter, aggregate totals use HOURS_SUMMARY.
"""

from collections import OrderedDict
from datetime import date
from typing import Any, Optional

from sqlalchemy import distinct, func
from sqlalchemy.orm import Session

from agency_api.auth.session_auth import Principal
from agency_api.db.models import (
    ROLE_CONTRIBUTOR,
    Campaign,
    CampaignWorker,
    Client,
    TimeEntry,
    User,
)
from agency_api.policy import Action, Resource, authorize, can, get_visible
from agency_api.services.common import resolve_range, round_hours, week_start


def _in_range(query, start: date, end: date):
    return query.filter(TimeEntry.date >= start, TimeEntry.date <= end)


def _report(start: date, end: date, data: list[dict[str, Any]]) -> dict[str, Any]:
    return {"start_date": start, "end_date": end, "data": data}


def hours_by_employee(
    db: Session,
    principal: Principal,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    today: Optional[date] = None,
) -> dict[str, Any]:
    """Hours per person, each with a per-client breakdown."""
    decision = authorize(principal, Action.VIEW_LIST, Resource.REPORT)
    start, end = resolve_range(start_date, end_date, today)

    query = (
        db.query(User, Client.id, Client.name, func.sum(TimeEntry.hours))
        .join(TimeEntry, TimeEntry.user_id == User.id)
        .join(Client, TimeEntry.client_id == Client.id)
        .group_by(User.id, Client.id, Client.name)
    )
    rows = _in_range(decision.apply(query), start, end).all()

    people: "OrderedDict[str, dict[str, Any]]" = OrderedDict()
    for user, client_id, client_name, hours in rows:
        person = people.setdefault(
            user.id,
            {
                "id": user.id,
                "name": user.name,
                "email": user.email,
                "avatar_url": user.avatar_url,
                "total_hours": 0.0,
                "client_breakdown": [],
            },
        )
        person["client_breakdown"].append(
            {"client_id": client_id, "client_name": client_name, "hours": round_hours(hours)}
        )
        person["total_hours"] = round_hours(person["total_hours"] + float(hours or 0))

    data = sorted(people.values(), key=lambda p: p["total_hours"], reverse=True)
    return _report(start, end, data)


def hours_by_client(
    db: Session,
    principal: Principal,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    today: Optional[date] = None,
) -> dict[str, Any]:
    """Hours per client, each with a per-campaign breakdown."""
    decision = authorize(principal, Action.VIEW_LIST, Resource.REPORT)
    start, end = resolve_range(start_date, end_date, today)

    query = (
        db.query(Client, Campaign.id, Campaign.name, func.sum(TimeEntry.hours))
        .join(TimeEntry, TimeEntry.client_id == Client.id)
        .join(Campaign, TimeEntry.campaign_id == Campaign.id)
        .group_by(Client.id, Campaign.id, Campaign.name)
    )
    rows = _in_range(decision.apply(query), start, end).all()

    clients: "OrderedDict[str, dict[str, Any]]" = OrderedDict()
    for client, campaign_id, campaign_name, hours in rows:
        item = clients.setdefault(
            client.id,
            {
                "id": client.id,
                "name": client.name,
                "logo_url": client.logo_url,
                "total_hours": 0.0,
                "campaign_breakdown": [],
            },
        )
        item["campaign_breakdown"].append(
            {"campaign_id": campaign_id, "campaign_name": campaign_name, "hours": round_hours(hours)}
        )
        item["total_hours"] = round_hours(item["total_hours"] + float(hours or 0))

    data = sorted(clients.values(), key=lambda c: c["total_hours"], reverse=True)
    return _report(start, end, data)


def hours_by_campaign(
    db: Session,
    principal: Principal,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    today: Optional[date] = None,
) -> dict[str, Any]:
    decision = authorize(principal, Action.VIEW_LIST, Resource.REPORT)
    start, end = resolve_range(start_date, end_date, today)

    total = func.sum(TimeEntry.hours).label("total_hours")
    query = (
        db.query(Campaign, Client.name, total)
        .join(TimeEntry, TimeEntry.campaign_id == Campaign.id)
        .join(Client, TimeEntry.client_id == Client.id)
        .group_by(Campaign.id, Client.name)
    )
    rows = _in_range(decision.apply(query), start, end).order_by(total.desc()).all()

    data = [
        {
            "id": campaign.id,
            "name": campaign.name,
            "channel_category": campaign.channel_category,
            "channel_platform": campaign.channel_platform,
            "status": campaign.status,
            "client_name": client_name,
            "total_hours": round_hours(hours),
        }
        for campaign, client_name, hours in rows
    ]
    return _report(start, end, data)


def my_hours(
    db: Session,
    principal: Principal,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    today: Optional[date] = None,
) -> dict[str, Any]:
    """The caller's own entries in range, with their total."""
    start, end = resolve_range(start_date, end_date, today)
    query = (
        db.query(TimeEntry, Client.name, Campaign.name)
        .join(Client, TimeEntry.client_id == Client.id)
        .join(Campaign, TimeEntry.campaign_id == Campaign.id)
        .filter(TimeEntry.user_id == principal.id)
    )
    rows = _in_range(query, start, end).order_by(TimeEntry.date.desc(), TimeEntry.created_at.desc()).all()

    entries = [
        {
            "date": entry.date,
            "hours": float(entry.hours),
            "description": entry.description,
            "client_name": client_name,
            "campaign_name": campaign_name,
        }
        for entry, client_name, campaign_name in rows
    ]
    return {
        "start_date": start,
        "end_date": end,
        "total_hours": round_hours(sum(e["hours"] for e in entries)),
        "entries": entries,
    }


def _campaign_summary(campaign: Campaign, hours: Any = None) -> dict[str, Any]:
    return {
        "id": campaign.id,
        "name": campaign.name,
        "status": campaign.status,
        "channel_category": campaign.channel_category,
        "channel_platform": campaign.channel_platform,
        "start_date": campaign.start_date,
        "end_date": campaign.end_date,
        "total_hours": round_hours(hours) if hours is not None else None,
    }


def client_summary(
    db: Session,
    principal: Principal,
    client_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    today: Optional[date] = None,
) -> dict[str, Any]:
    """Portal view of one client: hours, open campaigns and the team on them."""
    authorize(principal, Action.VIEW_LIST, Resource.HOURS_SUMMARY)
    client = get_visible(db, principal, Resource.CLIENT, client_id)
    start, end = resolve_range(start_date, end_date, today)

    total_hours = _in_range(
        db.query(func.sum(TimeEntry.hours)).filter(TimeEntry.client_id == client.id), start, end
    ).scalar()

    total = func.sum(TimeEntry.hours).label("total_hours")
    by_campaign = _in_range(
        db.query(Campaign, total)
        .join(TimeEntry, TimeEntry.campaign_id == Campaign.id)
        .filter(TimeEntry.client_id == client.id)
        .group_by(Campaign.id),
        start,
        end,
    ).order_by(total.desc()).all()

    active = (
        db.query(Campaign)
        .filter(Campaign.client_id == client.id, Campaign.status != "completed")
        .order_by(Campaign.name.asc())
        .all()
    )

    team = (
        db.query(User)
        .join(CampaignWorker, CampaignWorker.user_id == User.id)
        .join(Campaign, CampaignWorker.campaign_id == Campaign.id)
        .filter(Campaign.client_id == client.id, User.status == "active")
        .distinct()
        .order_by(User.name.asc())
        .all()
    )

    return {
        "start_date": start,
        "end_date": end,
        "total_hours": round_hours(total_hours),
        "hours_by_campaign": [_campaign_summary(c, hours) for c, hours in by_campaign],
        "active_campaigns": [_campaign_summary(c) for c in active],
        "team": [
            {"id": u.id, "name": u.name, "role": u.role, "avatar_url": u.avatar_url} for u in team
        ],
    }


def _client_count(db: Session, principal: Principal) -> int:
    if principal.role == ROLE_CONTRIBUTOR:
        # Contributors see clients only through their assigned campaigns
        decision = can(principal, Action.VIEW_LIST, Resource.CAMPAIGN)
        query = decision.apply(db.query(func.count(distinct(Campaign.client_id))))
        return int(query.scalar() or 0)

    decision = can(principal, Action.VIEW_ONE, Resource.CLIENT)
    if not decision.allowed:
        return 0
    return int(decision.apply(db.query(func.count(Client.id))).scalar() or 0)


def dashboard_stats(db: Session, principal: Principal, today: Optional[date] = None) -> dict[str, Any]:
    """KPI tiles: visible clients, visible active campaigns, hours since Sunday."""
    campaigns = can(principal, Action.VIEW_LIST, Resource.CAMPAIGN)
    active_campaigns = 0
    if campaigns.allowed:
        active_campaigns = int(
            campaigns.apply(db.query(func.count(Campaign.id)))
            .filter(Campaign.status == "active")
            .scalar()
            or 0
        )

    hours = can(principal, Action.VIEW_LIST, Resource.HOURS_SUMMARY)
    hours_this_week = 0.0
    if hours.allowed:
        hours_this_week = round_hours(
            hours.apply(db.query(func.sum(TimeEntry.hours)))
            .filter(TimeEntry.date >= week_start(today))
            .scalar()
        )

    return {
        "total_clients": _client_count(db, principal),
        "active_campaigns": active_campaigns,
        "hours_this_week": hours_this_week,
    }
