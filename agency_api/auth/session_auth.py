"""Session authentication for every protected endpoint.

FLOW:
1. User logs in via POST /api/v1/auth/login -> receives a signed credential
2. User calls an endpoint with Authorization: Bearer <credential>
3. get_current_principal verifies signature/expiry, then re-reads the user row
4. Returns a Principal built from the row, never from the token claims

SECURITY:
- Role and status come from the database on every request, so deactivation
  and role changes take effect immediately
- Missing, inactive or unknown users are all rejected as Unauthenticated
"""

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from agency_api.auth.credentials import decode_access_token
from agency_api.context import user_id_var, user_role_var
from agency_api.db.models import ROLE_OWNER, ROLE_TENANT, User
from agency_api.db.session import get_db
from agency_api.errors import Unauthenticated

logger = logging.getLogger(__name__)

bearer_security = HTTPBearer(auto_error=False, description="Signed session credential")


class Principal:
    """The acting identity for one request."""

    def __init__(
        self,
        id: str,
        role: str,
        status: str,
        name: str = "",
        email: str = "",
        client_id: Optional[str] = None,
    ):
        self.id = id
        self.role = role
        self.status = status
        self.name = name
        self.email = email
        self.client_id = client_id

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(
            id=user.id,
            role=user.role,
            status=user.status,
            name=user.name,
            email=user.email,
            client_id=user.client_id,
        )

    @property
    def is_owner(self) -> bool:
        return self.role == ROLE_OWNER

    @property
    def is_portal(self) -> bool:
        return self.role == ROLE_TENANT

    def __repr__(self) -> str:
        return f"Principal(id={self.id!r}, role={self.role!r})"


def verify(db: Session, credential: Optional[str]) -> Principal:
    """Resolve a bearer credential to the current principal.

    Raises:
        Unauthenticated: Missing/invalid/expired credential, unknown or inactive user
    """
    if not credential:
        raise Unauthenticated()

    claims = decode_access_token(credential)
    user = db.get(User, claims["sub"], populate_existing=True)

    if user is None:
        logger.warning(
            "Credential subject no longer exists",
            extra={"event": "session.user_missing", "subject": claims["sub"]},
        )
        raise Unauthenticated()

    if user.status == "inactive":
        logger.info(
            "Inactive user rejected",
            extra={"event": "session.user_inactive", "subject": user.id},
        )
        raise Unauthenticated()

    return Principal.from_user(user)


def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_security),
    db: Session = Depends(get_db),
) -> Principal:
    """FastAPI dependency: authenticate the request and tag the log context."""
    principal = verify(db, credentials.credentials if credentials else None)
    user_id_var.set(principal.id)
    user_role_var.set(principal.role)
    return principal
