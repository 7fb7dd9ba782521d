"""Bearer credential signing and verification (HS256 JWT).

Claims: sub (user id), role, email, iat, exp. Only the identity claim is
trusted on the way back in; role and status are re-read from the database
by the session verifier.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import ExpiredSignatureError, JWTError, jwt

from agency_api.config import env
from agency_api.db.models import ROLE_TENANT, User
from agency_api.errors import Unauthenticated

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
STAFF_TOKEN_TTL = timedelta(hours=8)
PORTAL_TOKEN_TTL = timedelta(hours=24)


def token_ttl_for_role(role: str) -> timedelta:
    """Portal users get a day; staff get a working shift."""
    return PORTAL_TOKEN_TTL if role == ROLE_TENANT else STAFF_TOKEN_TTL


def issue_access_token(user: User, now: Optional[datetime] = None) -> str:
    """Sign a credential for the user.

    Args:
        user: Authenticated user row
        now: Issue time (defaults to current UTC time)

    Returns:
        Encoded JWT string
    """
    issued_at = now or datetime.now(timezone.utc)
    expires_at = issued_at + token_ttl_for_role(user.role)
    claims = {
        "sub": user.id,
        "role": user.role,
        "email": user.email,
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    return jwt.encode(claims, env.get_jwt_secret(), algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify signature and expiry and return the claims.

    Raises:
        Unauthenticated: For any malformed, forged or expired credential
    """
    try:
        claims = jwt.decode(
            token,
            env.get_jwt_secret(),
            algorithms=[ALGORITHM],
            options={"verify_signature": True, "verify_exp": True},
        )
    except ExpiredSignatureError:
        logger.info("Credential expired", extra={"event": "auth.token.expired"})
        raise Unauthenticated()
    except JWTError as e:
        logger.warning(
            "Credential rejected",
            extra={"event": "auth.token.invalid", "error_type": type(e).__name__},
        )
        raise Unauthenticated()

    if not claims.get("sub"):
        raise Unauthenticated()
    return claims
