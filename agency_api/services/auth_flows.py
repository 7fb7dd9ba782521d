"""Authentication flows: login, invitations, password reset, Google sign-in.

SECURITY:
- Invite and reset tokens are issued and redeemed by auth.token_lifecycle;
  only their sha256 digests touch the database
- forgot_password answers identically whether or not the email exists
- Outbound mail is best-effort; the invite link is always returned to the
  inviting owner so it can be shared by hand
"""

import logging
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from agency_api.auth import identity_bridge, token_lifecycle
from agency_api.auth.credentials import issue_access_token
from agency_api.auth.passwords import hash_password, validate_new_password, verify_password
from agency_api.auth.session_auth import Principal
from agency_api.config import env
from agency_api.db.models import ROLES, User
from agency_api.errors import Conflict, NotFound, Unauthenticated
from agency_api.events import mail
from agency_api.policy import Action, Resource, authorize
from agency_api.schemas import InviteRequest
from agency_api.services.common import normalize_email, require_choice, require_email
from agency_api.services.users import email_taken, resolve_affiliation, user_fields

logger = logging.getLogger(__name__)

INVALID_LOGIN = "Invalid email or password"
INACTIVE_ACCOUNT = "Account is inactive. Contact your administrator."
GOOGLE_ONLY_ACCOUNT = "This account uses Google Sign-In. Please use the Google button."
RESET_REQUESTED = "If that email exists, a reset link has been sent."


def _find_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(func.lower(User.email) == email).first()


def _session(user: User, message: Optional[str] = None) -> dict[str, Any]:
    payload: dict[str, Any] = {"token": issue_access_token(user), "user": user_fields(user)}
    if message:
        payload["message"] = message
    return payload


def login(db: Session, email: str, password: str) -> dict[str, Any]:
    """Password login. An invited user becomes active on first success.

    Raises:
        Unauthenticated: With the specific reason the login failed
    """
    user = _find_by_email(db, normalize_email(email))
    if user is None:
        logger.info("Login failed", extra={"event": "auth.login_failed", "reason": "unknown_email"})
        raise Unauthenticated(INVALID_LOGIN)

    if user.status == "inactive":
        logger.info(
            "Login refused for inactive user",
            extra={"event": "auth.login_failed", "reason": "inactive", "target_user_id": user.id},
        )
        raise Unauthenticated(INACTIVE_ACCOUNT)

    if not user.password_hash:
        raise Unauthenticated(GOOGLE_ONLY_ACCOUNT)

    if not verify_password(password, user.password_hash):
        logger.info(
            "Login failed",
            extra={"event": "auth.login_failed", "reason": "bad_password", "target_user_id": user.id},
        )
        raise Unauthenticated(INVALID_LOGIN)

    if user.status == "invited":
        user.status = "active"
        db.commit()
        logger.info(
            "Invited user activated by login",
            extra={"event": "auth.invite_activated", "target_user_id": user.id},
        )

    logger.info("Login succeeded", extra={"event": "auth.login", "target_user_id": user.id})
    return _session(user)


def forgot_password(db: Session, email: str) -> dict[str, str]:
    """Issue a reset token and mail it. The answer never reveals whether
    the address exists."""
    user = _find_by_email(db, normalize_email(email))
    if user is None:
        return {"message": RESET_REQUESTED}

    issued = token_lifecycle.issue(user, token_lifecycle.KIND_RESET)
    db.commit()

    link = f"{env.get_frontend_url()}/reset-password?token={issued.plaintext}"
    try:
        mail.send_password_reset_email(user.email, user.name, link)
    except Exception:
        logger.warning(
            "Password reset email not sent",
            exc_info=True,
            extra={"event": "mail.send_failed", "template": "password_reset", "target_user_id": user.id},
        )
    return {"message": RESET_REQUESTED}


def reset_password(db: Session, raw_token: str, password: str) -> dict[str, str]:
    """Redeem a reset token and set a new password.

    Raises:
        InvalidInput: Password too short
        InvalidOrExpired: Unknown, used or expired token
    """
    validate_new_password(password)
    user = token_lifecycle.redeem(db, token_lifecycle.KIND_RESET, raw_token)
    user.password_hash = hash_password(password)
    user.status = "active"
    db.commit()
    logger.info("Password reset", extra={"event": "auth.password_reset", "target_user_id": user.id})
    return {"message": "Password reset successfully. You can now log in."}


def invite(db: Session, principal: Principal, payload: InviteRequest) -> dict[str, Any]:
    """Create an invited user and hand back the one-time link.

    Raises:
        Forbidden: Caller is not an owner
        Conflict: Email already registered (case-insensitive)
    """
    authorize(principal, Action.CREATE, Resource.USER)
    email = require_email(payload.email)
    role = require_choice(payload.role, ROLES, "role")
    client_id = resolve_affiliation(db, role, payload.client_id)

    if email_taken(db, email):
        raise Conflict("A user with this email already exists")

    user = User(name=payload.name.strip(), email=email, role=role, status="invited", client_id=client_id)
    db.add(user)
    db.flush()
    issued = token_lifecycle.issue(user, token_lifecycle.KIND_INVITE)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("A user with this email already exists")

    link = f"{env.get_frontend_url()}/accept-invite?token={issued.plaintext}"
    logger.info(
        "User invited",
        extra={"event": "auth.invited", "target_user_id": user.id, "role": role},
    )
    try:
        mail.send_invite_email(user.email, user.name, link, role)
    except Exception:
        logger.warning(
            "Invite email not sent; link returned to inviter",
            exc_info=True,
            extra={"event": "mail.send_failed", "template": "invite", "target_user_id": user.id},
        )

    return {
        "message": "Invitation created",
        "user": user_fields(user),
        "invite_link": link,
        "invite_token": issued.plaintext,
        "expires_at": issued.expires_at,
    }


def accept_invite(db: Session, raw_token: str, password: str) -> dict[str, Any]:
    """Redeem an invite, set the password and sign the user straight in."""
    validate_new_password(password)
    user = token_lifecycle.redeem(db, token_lifecycle.KIND_INVITE, raw_token)
    user.password_hash = hash_password(password)
    user.status = "active"
    db.commit()
    logger.info("Invite accepted", extra={"event": "auth.invite_accepted", "target_user_id": user.id})
    return _session(user, "Account activated successfully")


def me(db: Session, principal: Principal) -> dict[str, Any]:
    user = db.get(User, principal.id)
    if user is None:
        raise NotFound("User not found")
    return user_fields(user)


def google_sign_in(db: Session, code: str) -> str:
    """Finish the Google flow and return a session credential.

    Raises:
        IdentityProviderError: The code exchange failed
        Unauthenticated: No invited account, or the account is inactive
    """
    identity = identity_bridge.exchange_code(code)
    user = identity_bridge.resolve_external_identity(db, identity)
    logger.info("Google sign-in succeeded", extra={"event": "auth.google.login", "target_user_id": user.id})
    return issue_access_token(user)
