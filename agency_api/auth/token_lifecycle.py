"""Invite and password-reset token lifecycle.

SECURITY:
- Tokens are 32 random bytes (256 bits), hex-encoded for transport
- Only sha256(token) is stored on the user row, with an expiry
- Plaintext tokens are returned once at issuance and never persisted
- Redeeming clears the hash and expiry, so a token works exactly once
"""

import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from agency_api.db.models import User
from agency_api.errors import InvalidOrExpired

logger = logging.getLogger(__name__)

KIND_INVITE = "invite"
KIND_RESET = "reset"

TOKEN_TTL = {
    KIND_INVITE: timedelta(hours=72),
    KIND_RESET: timedelta(hours=1),
}

INVALID_MESSAGES = {
    KIND_INVITE: "Invalid or expired invitation link",
    KIND_RESET: "Invalid or expired reset token",
}


@dataclass(frozen=True)
class IssuedToken:
    plaintext: str
    expires_at: datetime


def generate_token() -> str:
    """Generate a new plaintext token.

    Security:
    - Uses secrets.token_bytes() for CSPRNG
    - 32 bytes = 256 bits of entropy
    """
    return secrets.token_bytes(32).hex()


def hash_token(raw_token: str) -> str:
    """One-way hash used both at issuance and at lookup (sha256 hex)."""
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def _columns(kind: str) -> tuple[str, str]:
    if kind == KIND_INVITE:
        return "invite_token", "invite_expires"
    if kind == KIND_RESET:
        return "reset_token", "reset_expires"
    raise ValueError(f"Unknown token kind: {kind}")


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def issue(user: User, kind: str, now: Optional[datetime] = None) -> IssuedToken:
    """Stamp a fresh token hash and expiry onto the user row.

    The caller owns the transaction and commits.

    Args:
        user: Subject of the token
        kind: KIND_INVITE or KIND_RESET
        now: Issue time (defaults to current UTC time)

    Returns:
        IssuedToken with the plaintext (display once) and expiry
    """
    token_col, expires_col = _columns(kind)
    issued_at = now or datetime.now(timezone.utc)
    plaintext = generate_token()
    expires_at = issued_at + TOKEN_TTL[kind]

    setattr(user, token_col, hash_token(plaintext))
    setattr(user, expires_col, expires_at)

    logger.info(
        "Token issued",
        extra={"event": f"token.{kind}.issued", "target_user_id": user.id},
    )
    return IssuedToken(plaintext=plaintext, expires_at=expires_at)


def redeem(db: Session, kind: str, raw_token: str, now: Optional[datetime] = None) -> User:
    """Resolve a plaintext token to its user and clear it.

    Invites additionally require the user to still be in the invited state.
    The caller owns the transaction and commits.

    Raises:
        InvalidOrExpired: Unknown, already used or expired token
    """
    token_col, expires_col = _columns(kind)
    current = now or datetime.now(timezone.utc)
    if not raw_token:
        raise InvalidOrExpired(INVALID_MESSAGES[kind])

    token_hash = hash_token(raw_token)
    query = db.query(User).filter(getattr(User, token_col) == token_hash)
    if kind == KIND_INVITE:
        query = query.filter(User.status == "invited")
    user = query.first()

    if user is None:
        raise InvalidOrExpired(INVALID_MESSAGES[kind])

    stored_hash = getattr(user, token_col) or ""
    expires_at = getattr(user, expires_col)
    if (
        not hmac.compare_digest(stored_hash, token_hash)
        or expires_at is None
        or _as_utc(expires_at) <= current
    ):
        logger.info(
            "Token rejected",
            extra={"event": f"token.{kind}.rejected", "target_user_id": user.id},
        )
        raise InvalidOrExpired(INVALID_MESSAGES[kind])

    setattr(user, token_col, None)
    setattr(user, expires_col, None)
    logger.info(
        "Token redeemed",
        extra={"event": f"token.{kind}.redeemed", "target_user_id": user.id},
    )
    return user
