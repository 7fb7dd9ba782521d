"""Tests for bearer credentials and the per-request session verifier."""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from agency_api.auth import session_auth
from agency_api.auth.credentials import (
    ALGORITHM,
    PORTAL_TOKEN_TTL,
    STAFF_TOKEN_TTL,
    decode_access_token,
    issue_access_token,
)
from agency_api.config import env
from agency_api.errors import Unauthenticated


def _claims(token: str) -> dict:
    return jwt.get_unverified_claims(token)


@pytest.mark.parametrize("role", ["owner", "manager", "contributor"])
def test_staff_credentials_last_eight_hours(factory, role):
    claims = _claims(issue_access_token(factory.user(role)))
    assert claims["exp"] - claims["iat"] == int(STAFF_TOKEN_TTL.total_seconds()) == 8 * 3600


def test_portal_credentials_last_a_day(factory):
    tenant = factory.user("tenant", client=factory.client())
    claims = _claims(issue_access_token(tenant))
    assert claims["exp"] - claims["iat"] == int(PORTAL_TOKEN_TTL.total_seconds()) == 24 * 3600


def test_claims_carry_identity(factory):
    user = factory.user("manager", email="m@agency.test")
    claims = decode_access_token(issue_access_token(user))
    assert claims["sub"] == user.id
    assert claims["role"] == "manager"
    assert claims["email"] == "m@agency.test"


def test_expired_credential_is_rejected(factory):
    user = factory.user("owner")
    token = issue_access_token(user, now=datetime.now(timezone.utc) - timedelta(hours=9))
    with pytest.raises(Unauthenticated):
        decode_access_token(token)


def test_forged_credential_is_rejected(factory):
    user = factory.user("owner")
    forged = jwt.encode({"sub": user.id, "exp": 4102444800}, "not-the-secret", algorithm=ALGORITHM)
    with pytest.raises(Unauthenticated):
        decode_access_token(forged)


def test_credential_without_subject_is_rejected():
    token = jwt.encode({"exp": 4102444800}, env.get_jwt_secret(), algorithm=ALGORITHM)
    with pytest.raises(Unauthenticated):
        decode_access_token(token)


# ============================================================================
# Session verifier: role and status always come from the database
# ============================================================================


def test_verify_rejects_missing_credential(db_session):
    with pytest.raises(Unauthenticated):
        session_auth.verify(db_session, None)


def test_verify_uses_current_role_not_claim(db_session, factory):
    user = factory.user("manager")
    token = issue_access_token(user)

    user.role = "owner"
    db_session.commit()

    principal = session_auth.verify(db_session, token)
    assert principal.role == "owner"
    assert principal.is_owner


def test_verify_rejects_deactivated_user(db_session, factory):
    user = factory.user("contributor")
    token = issue_access_token(user)

    user.status = "inactive"
    db_session.commit()

    with pytest.raises(Unauthenticated):
        session_auth.verify(db_session, token)


def test_verify_rejects_deleted_user(db_session, factory):
    user = factory.user("contributor")
    token = issue_access_token(user)

    db_session.delete(user)
    db_session.commit()

    with pytest.raises(Unauthenticated):
        session_auth.verify(db_session, token)


def test_verify_accepts_invited_user_with_credential(db_session, factory):
    user = factory.user("contributor", status="invited")
    principal = session_auth.verify(db_session, issue_access_token(user))
    assert principal.id == user.id
    assert principal.status == "invited"
