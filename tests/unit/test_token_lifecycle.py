"""Tests for invite and reset token lifecycle.

Test Coverage:
T1: Only the sha256 digest is stored
T2: Invite tokens live 72 hours, reset tokens 1 hour
T3: A token redeems exactly once
T4: Expired and unknown tokens are rejected
T5: Invite tokens require the invited state
"""

import hashlib
from datetime import datetime, timedelta, timezone

import pytest

from agency_api.auth import token_lifecycle
from agency_api.auth.token_lifecycle import KIND_INVITE, KIND_RESET, generate_token, hash_token
from agency_api.errors import InvalidOrExpired

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def test_generate_token_is_256_bits_hex():
    token = generate_token()
    assert len(token) == 64
    int(token, 16)
    assert generate_token() != token


def test_hash_token_is_sha256_hex():
    assert hash_token("abc") == hashlib.sha256(b"abc").hexdigest()


# ============================================================================
# T1/T2: Issuance
# ============================================================================


def test_issue_invite_stores_digest_only(db_session, factory):
    user = factory.user("contributor", status="invited", password=None)

    issued = token_lifecycle.issue(user, KIND_INVITE, now=NOW)
    db_session.commit()

    assert user.invite_token == hash_token(issued.plaintext)
    assert user.invite_token != issued.plaintext
    assert issued.expires_at == NOW + timedelta(hours=72)


def test_issue_reset_expires_in_one_hour(db_session, factory):
    user = factory.user("manager")

    issued = token_lifecycle.issue(user, KIND_RESET, now=NOW)

    assert user.reset_token == hash_token(issued.plaintext)
    assert issued.expires_at == NOW + timedelta(hours=1)


def test_unknown_kind_is_a_programming_error(factory):
    user = factory.user("owner")
    with pytest.raises(ValueError):
        token_lifecycle.issue(user, "magic-link")


# ============================================================================
# T3/T4: Redemption
# ============================================================================


def test_redeem_clears_token_so_it_works_once(db_session, factory):
    user = factory.user("contributor", status="invited", password=None)
    issued = token_lifecycle.issue(user, KIND_INVITE, now=NOW)
    db_session.commit()

    redeemed = token_lifecycle.redeem(db_session, KIND_INVITE, issued.plaintext, now=NOW + timedelta(hours=1))
    assert redeemed.id == user.id
    assert redeemed.invite_token is None
    assert redeemed.invite_expires is None
    db_session.commit()

    with pytest.raises(InvalidOrExpired) as exc_info:
        token_lifecycle.redeem(db_session, KIND_INVITE, issued.plaintext, now=NOW + timedelta(hours=1))
    assert exc_info.value.detail == "Invalid or expired invitation link"


def test_expired_reset_token_is_rejected(db_session, factory):
    user = factory.user("manager")
    issued = token_lifecycle.issue(user, KIND_RESET, now=NOW)
    db_session.commit()

    with pytest.raises(InvalidOrExpired) as exc_info:
        token_lifecycle.redeem(db_session, KIND_RESET, issued.plaintext, now=NOW + timedelta(minutes=61))
    assert exc_info.value.detail == "Invalid or expired reset token"


def test_reset_token_valid_just_before_expiry(db_session, factory):
    user = factory.user("manager")
    issued = token_lifecycle.issue(user, KIND_RESET, now=NOW)
    db_session.commit()

    redeemed = token_lifecycle.redeem(db_session, KIND_RESET, issued.plaintext, now=NOW + timedelta(minutes=59))
    assert redeemed.id == user.id


@pytest.mark.parametrize("raw", ["", "not-a-real-token"])
def test_unknown_token_is_rejected(db_session, factory, raw):
    factory.user("owner")
    with pytest.raises(InvalidOrExpired):
        token_lifecycle.redeem(db_session, KIND_RESET, raw, now=NOW)


def test_reset_token_cannot_redeem_an_invite(db_session, factory):
    user = factory.user("contributor", status="invited", password=None)
    issued = token_lifecycle.issue(user, KIND_INVITE, now=NOW)
    db_session.commit()

    with pytest.raises(InvalidOrExpired):
        token_lifecycle.redeem(db_session, KIND_RESET, issued.plaintext, now=NOW)


# ============================================================================
# T5: Invite state
# ============================================================================


def test_invite_for_already_active_user_is_rejected(db_session, factory):
    user = factory.user("contributor", status="invited", password=None)
    issued = token_lifecycle.issue(user, KIND_INVITE, now=NOW)
    user.status = "active"
    db_session.commit()

    with pytest.raises(InvalidOrExpired):
        token_lifecycle.redeem(db_session, KIND_INVITE, issued.plaintext, now=NOW)
