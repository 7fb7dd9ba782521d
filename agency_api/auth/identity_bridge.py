"""Google sign-in bridge.

Resolves an external Google identity to an existing, invited account. The
bridge never creates accounts: a Google email with no matching staff user is
refused.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

import httpx
from sqlalchemy import func
from sqlalchemy.orm import Session

from agency_api.config import env
from agency_api.db.models import ROLE_TENANT, User
from agency_api.errors import Unauthenticated

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"

NO_INVITED_ACCOUNT = (
    "No account found for this Google email. Please ask your admin to invite you first."
)


class IdentityProviderError(Exception):
    """The identity provider rejected the exchange or returned garbage."""


@dataclass(frozen=True)
class ExternalIdentity:
    google_id: str
    email: Optional[str]
    name: Optional[str] = None
    picture: Optional[str] = None


def _require_config() -> dict[str, str]:
    config = env.get_google_oauth_config()
    if config is None:
        raise IdentityProviderError("Google sign-in is not configured")
    return config


def is_configured() -> bool:
    return env.get_google_oauth_config() is not None


def build_authorization_url(state: str) -> str:
    """URL the browser is redirected to for Google consent."""
    config = _require_config()
    params = {
        "client_id": config["client_id"],
        "redirect_uri": config["callback_url"],
        "response_type": "code",
        "scope": "openid email profile",
        "state": state,
        "prompt": "select_account",
    }
    return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"


def exchange_code(code: str, client: Optional[httpx.Client] = None) -> ExternalIdentity:
    """Trade an authorization code for the user's Google profile.

    Raises:
        IdentityProviderError: Token or userinfo call failed
    """
    config = _require_config()
    owns_client = client is None
    http = client or httpx.Client(timeout=10.0)
    try:
        token_response = http.post(
            GOOGLE_TOKEN_URL,
            data={
                "code": code,
                "client_id": config["client_id"],
                "client_secret": config["client_secret"],
                "redirect_uri": config["callback_url"],
                "grant_type": "authorization_code",
            },
        )
        token_response.raise_for_status()
        access_token = token_response.json()["access_token"]

        profile_response = http.get(
            GOOGLE_USERINFO_URL,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        profile_response.raise_for_status()
        profile = profile_response.json()
    except (httpx.HTTPError, KeyError, ValueError) as e:
        logger.warning(
            "Google code exchange failed",
            extra={"event": "auth.google.exchange_failed", "error_type": type(e).__name__},
        )
        raise IdentityProviderError("Google sign-in failed") from e
    finally:
        if owns_client:
            http.close()

    if not profile.get("sub"):
        raise IdentityProviderError("Google profile has no subject")

    return ExternalIdentity(
        google_id=str(profile["sub"]),
        email=(profile.get("email") or "").strip().lower() or None,
        name=profile.get("name"),
        picture=profile.get("picture"),
    )


def resolve_external_identity(db: Session, identity: ExternalIdentity) -> User:
    """Map a Google identity onto an existing user.

    1. A user already linked to this google_id
    2. Otherwise a non-portal user with the same email, which gets linked
       and activated
    3. Otherwise refused

    Raises:
        Unauthenticated: No invited account, or the account is inactive
    """
    user = db.query(User).filter(User.google_id == identity.google_id).first()

    if user is None and identity.email:
        user = (
            db.query(User)
            .filter(func.lower(User.email) == identity.email, User.role != ROLE_TENANT)
            .first()
        )
        if user is not None:
            if user.status == "inactive":
                raise Unauthenticated("Account is inactive. Contact your administrator.")
            user.google_id = identity.google_id
            user.status = "active"
            if identity.picture and not user.avatar_url:
                user.avatar_url = identity.picture
            db.commit()
            logger.info(
                "Google identity linked",
                extra={"event": "auth.google.linked", "target_user_id": user.id},
            )

    if user is None:
        logger.info("Google sign-in refused", extra={"event": "auth.google.no_account"})
        raise Unauthenticated(NO_INVITED_ACCOUNT)

    if user.status == "inactive":
        raise Unauthenticated("Account is inactive. Contact your administrator.")

    return user
