"""Authentication endpoints.

Public: login, forgot-password, reset-password, accept-invite and the Google
redirect pair. Everything else requires a bearer credential.
"""

import logging
import secrets
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from agency_api.auth import identity_bridge
from agency_api.auth.session_auth import Principal, get_current_principal
from agency_api.config import env
from agency_api.db.session import get_db
from agency_api.errors import Unauthenticated
from agency_api.schemas import (
    AcceptInviteRequest,
    AuthTokenResponse,
    ForgotPasswordRequest,
    InviteRequest,
    InviteResponse,
    LoginRequest,
    MessageResponse,
    ResetPasswordRequest,
    UserDetail,
)
from agency_api.services import auth_flows

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])
logger = logging.getLogger(__name__)

OAUTH_STATE_COOKIE = "agency_oauth_state"


@router.post("/login", response_model=AuthTokenResponse)
def login(body: LoginRequest, db: Session = Depends(get_db)):
    """Email/password login.

    Returns:
        Signed credential (8h staff, 24h client portal) and the user

    Raises:
        Unauthenticated 401: Wrong credentials, inactive account, or a
            Google-only account with no password
    """
    return auth_flows.login(db, body.email, body.password)


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(body: ForgotPasswordRequest, db: Session = Depends(get_db)):
    return auth_flows.forgot_password(db, body.email)


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(body: ResetPasswordRequest, db: Session = Depends(get_db)):
    return auth_flows.reset_password(db, body.token, body.password)


@router.post("/invite", response_model=InviteResponse, status_code=status.HTTP_201_CREATED)
def invite(
    body: InviteRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Invite a user (owner only).

    The plaintext invite token and link are returned ONCE. Only the sha256
    digest is stored; the link cannot be recovered later.
    """
    return auth_flows.invite(db, principal, body)


@router.post("/accept-invite", response_model=AuthTokenResponse)
def accept_invite(body: AcceptInviteRequest, db: Session = Depends(get_db)):
    return auth_flows.accept_invite(db, body.token, body.password)


@router.get("/me", response_model=UserDetail)
def me(principal: Principal = Depends(get_current_principal), db: Session = Depends(get_db)):
    return auth_flows.me(db, principal)


@router.post("/logout", response_model=MessageResponse)
def logout(principal: Principal = Depends(get_current_principal)):
    # Credentials are stateless; the client drops its copy
    return {"message": "Logged out successfully"}


def _login_redirect(error: str) -> RedirectResponse:
    query = urlencode({"error": error})
    return RedirectResponse(f"{env.get_frontend_url()}/login?{query}", status_code=status.HTTP_302_FOUND)


@router.get("/google", include_in_schema=False)
def google_start():
    """Redirect the browser to Google's consent screen."""
    if not identity_bridge.is_configured():
        return _login_redirect("google_not_configured")

    state = secrets.token_urlsafe(24)
    response = RedirectResponse(
        identity_bridge.build_authorization_url(state), status_code=status.HTTP_302_FOUND
    )
    response.set_cookie(
        OAUTH_STATE_COOKIE,
        state,
        max_age=600,
        httponly=True,
        secure=env.is_production(),
        samesite="lax",
    )
    return response


@router.get("/google/callback", include_in_schema=False)
def google_callback(
    request: Request,
    code: str = Query(""),
    state: str = Query(""),
    db: Session = Depends(get_db),
):
    """Finish Google sign-in and hand the credential to the frontend."""
    expected_state = request.cookies.get(OAUTH_STATE_COOKIE, "")
    if not code or not expected_state or not secrets.compare_digest(state, expected_state):
        logger.warning("Google callback state mismatch", extra={"event": "auth.google.state_mismatch"})
        return _login_redirect("google_failed")

    try:
        token = auth_flows.google_sign_in(db, code)
    except identity_bridge.IdentityProviderError:
        return _login_redirect("google_failed")
    except Unauthenticated as e:
        return _login_redirect(e.detail)

    response = RedirectResponse(
        f"{env.get_frontend_url()}/auth/callback?{urlencode({'token': token})}",
        status_code=status.HTTP_302_FOUND,
    )
    response.delete_cookie(OAUTH_STATE_COOKIE)
    return response
