"""User administration (owner only) and the caller's own time entries."""

import logging
from datetime import date
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from agency_api.auth.passwords import hash_password, validate_new_password
from agency_api.auth.session_auth import Principal
from agency_api.db.models import ROLE_TENANT, ROLES, Client, TimeEntry, User
from agency_api.errors import Conflict, InvalidInput
from agency_api.policy import Action, Resource, authorize, get_visible
from agency_api.schemas import UserCreate, UserUpdate
from agency_api.services.common import require_choice, require_email
from agency_api.services.time_entries import entries_query, entry_fields

logger = logging.getLogger(__name__)

_EMAIL_CONFLICT = "Email already in use"
_HAS_HOURS = "User has logged time entries; set their status to inactive instead"


def user_fields(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "status": user.status,
        "client_id": user.client_id,
        "avatar_url": user.avatar_url,
        "created_at": user.created_at,
        "client_name": user.client.name if user.client else None,
    }


def email_taken(db: Session, email: str, exclude_id: Optional[str] = None) -> bool:
    query = db.query(User.id).filter(func.lower(User.email) == email)
    if exclude_id:
        query = query.filter(User.id != exclude_id)
    return query.first() is not None


def resolve_affiliation(db: Session, role: str, client_id: Optional[str]) -> Optional[str]:
    """Portal users must belong to an existing client; staff belong to none."""
    if role != ROLE_TENANT:
        return None
    if not client_id:
        raise InvalidInput("Client portal users require a client_id")
    if db.get(Client, client_id) is None:
        raise InvalidInput("client_id does not reference an existing client")
    return client_id


def list_users(db: Session, principal: Principal) -> list[dict[str, Any]]:
    authorize(principal, Action.VIEW_LIST, Resource.USER)
    users = db.query(User).order_by(User.created_at.desc()).all()
    return [user_fields(user) for user in users]


def get_user(db: Session, principal: Principal, user_id: str) -> dict[str, Any]:
    return user_fields(get_visible(db, principal, Resource.USER, user_id))


def create_user(db: Session, principal: Principal, payload: UserCreate) -> dict[str, Any]:
    """Create an active user directly, optionally with a password."""
    authorize(principal, Action.CREATE, Resource.USER)
    email = require_email(payload.email)
    role = require_choice(payload.role, ROLES, "role")
    client_id = resolve_affiliation(db, role, payload.client_id)

    password_hash = None
    if payload.password:
        validate_new_password(payload.password)
        password_hash = hash_password(payload.password)

    if email_taken(db, email):
        raise Conflict(_EMAIL_CONFLICT)

    user = User(
        name=payload.name.strip(),
        email=email,
        password_hash=password_hash,
        role=role,
        status="active",
        client_id=client_id,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict(_EMAIL_CONFLICT)

    logger.info(
        "User created",
        extra={"event": "user.created", "target_user_id": user.id, "role": role},
    )
    return user_fields(user)


def update_user(db: Session, principal: Principal, user_id: str, payload: UserUpdate) -> dict[str, Any]:
    user = get_visible(db, principal, Resource.USER, user_id, action=Action.UPDATE)
    changes = payload.model_dump(exclude_unset=True)

    if changes.get("email") is not None:
        changes["email"] = require_email(changes["email"])
        if email_taken(db, changes["email"], exclude_id=user.id):
            raise Conflict(_EMAIL_CONFLICT)
    if changes.get("role") is not None:
        require_choice(changes["role"], ROLES, "role")

    role = changes.get("role") or user.role
    if "role" in changes or "client_id" in changes:
        changes["client_id"] = resolve_affiliation(db, role, changes.get("client_id", user.client_id))

    password = changes.pop("password", None)
    if password:
        validate_new_password(password)
        user.password_hash = hash_password(password)

    for key, value in changes.items():
        if value is None and key in ("name", "email", "role"):
            continue
        setattr(user, key, value)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict(_EMAIL_CONFLICT)
    return user_fields(user)


def set_status(db: Session, principal: Principal, user_id: str, status: str) -> dict[str, Any]:
    """Activate or deactivate a user. Takes effect on their next request."""
    if status not in ("active", "inactive"):
        raise InvalidInput("Status must be active or inactive")
    user = get_visible(db, principal, Resource.USER, user_id, action=Action.UPDATE)
    user.status = status
    db.commit()
    logger.info(
        "User status changed",
        extra={"event": "user.status_changed", "target_user_id": user.id, "status": status},
    )
    return user_fields(user)


def delete_user(db: Session, principal: Principal, user_id: str) -> None:
    """Delete a user with no logged hours.

    Raises:
        InvalidInput: The caller targets their own account
        Conflict: The user has time entries; deactivate them instead
    """
    user = get_visible(db, principal, Resource.USER, user_id, action=Action.DELETE)
    if user.id == principal.id:
        raise InvalidInput("You cannot delete your own account")
    if db.query(TimeEntry.id).filter(TimeEntry.user_id == user.id).first() is not None:
        raise Conflict(_HAS_HOURS)
    db.delete(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict(_HAS_HOURS)
    logger.info("User deleted", extra={"event": "user.deleted", "target_user_id": user_id})


def my_time_entries(
    db: Session,
    principal: Principal,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    campaign_id: Optional[str] = None,
) -> list[dict[str, Any]]:
    """The caller's own entries; every role may read its own rows."""
    query = entries_query(db).filter(TimeEntry.user_id == principal.id)
    if start_date:
        query = query.filter(TimeEntry.date >= start_date)
    if end_date:
        query = query.filter(TimeEntry.date <= end_date)
    if campaign_id:
        query = query.filter(TimeEntry.campaign_id == campaign_id)
    rows = query.order_by(TimeEntry.date.desc(), TimeEntry.created_at.desc()).all()
    return [entry_fields(*row) for row in rows]
