"""
Roomly Backend - Authentication Routes
=======================================

What:  Registration, email verification, password login, logout and the
       GitHub / Google OAuth login flow under /v1/auth.
How:   Thin handlers. UserService and TokenService own the rules. This
       module owns the HTTP side: session cookies, OAuth state cookies,
       redirects and background email sends.

Session issuance (verify, login, OAuth callback):
    1. TokenService.new_token(user, ttl)  → plaintext + expiry
    2. Set-Cookie: session=<plaintext>; HttpOnly; SameSite=Lax; Path=/
    3. Body {"token": <plaintext>} for non-browser clients (password flows)
"""

import logging
import secrets
from datetime import timedelta

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, Response
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from roomly.config import settings
from roomly.database import get_db_session
from roomly.dependencies import (
    RecordID,
    clear_session_cookie,
    require_activated_user,
    require_anonymous_user,
    set_session_cookie,
)
from roomly.exceptions import BadRequestError
from roomly.models.user import User
from roomly.schemas.common import ErrorResponse, MessageResponse
from roomly.schemas.user import (
    LoginRequest,
    RegisterRequest,
    RegisterResponse,
    SessionResponse,
    VerifyRequest,
)
from roomly.security import SCOPE_AUTHENTICATION
from roomly.services.mailer_service import mailer_service, verification_email
from roomly.services.oauth_service import oauth_service
from roomly.services.token_service import token_service
from roomly.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/auth", tags=["Auth"])

OAUTH_STATE_COOKIE = "oauth_state"


async def _start_session(db: AsyncSession, response: Response, user: User, ttl: timedelta) -> str:
    token, expiry = await token_service.new_token(db, user.id, ttl, SCOPE_AUTHENTICATION)
    set_session_cookie(response, token, expiry)
    return token


@router.post(
    "/register",
    status_code=201,
    response_model=RegisterResponse,
    responses={422: {"description": "Invalid input or email taken", "model": ErrorResponse}},
    summary="Register a new account",
)
async def register(
    body: RegisterRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db_session),
) -> RegisterResponse:
    """Creates an inactive account and emails its verification code."""
    user = await user_service.register(db, email=body.email, name=body.name, password=body.password)
    background_tasks.add_task(
        mailer_service.deliver,
        verification_email(user.email, user.name, user.verification_token),
    )
    return RegisterResponse(user_id=user.id)


@router.post(
    "/verify/{user_id}",
    response_model=SessionResponse,
    responses={
        404: {"description": "Unknown user", "model": ErrorResponse},
        422: {"description": "Already activated or wrong code", "model": ErrorResponse},
    },
    summary="Activate an account with the emailed code",
)
async def verify(
    user_id: RecordID,
    body: VerifyRequest,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> SessionResponse:
    user = await user_service.verify(db, user_id=user_id, code=body.code)
    token = await _start_session(db, response, user, timedelta(days=settings.session_ttl_days))
    return SessionResponse(token=token)


@router.post(
    "/login",
    response_model=SessionResponse,
    responses={
        401: {"description": "Wrong password", "model": ErrorResponse},
        403: {"description": "Account not activated", "model": ErrorResponse},
        404: {"description": "Unknown email", "model": ErrorResponse},
    },
    summary="Log in with email and password",
)
async def login(
    body: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> SessionResponse:
    user = await user_service.authenticate(db, email=body.email, password=body.password)
    token = await _start_session(db, response, user, timedelta(days=settings.session_ttl_days))
    logger.info("User %s logged in", user.id)
    return SessionResponse(token=token)


@router.delete(
    "/logout",
    response_model=MessageResponse,
    summary="End every session of the current user",
)
async def logout(
    response: Response,
    user: User = Depends(require_activated_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await token_service.delete_all_for_user(db, SCOPE_AUTHENTICATION, user.id)
    clear_session_cookie(response)
    logger.info("User %s logged out", user.id)
    return MessageResponse(message="you have been logged out")


# ── OAuth ─────────────────────────────────────────────────────────────────
def _oauth_login(provider: str) -> RedirectResponse:
    state = secrets.token_urlsafe(24)
    redirect = RedirectResponse(
        url=oauth_service.authorization_url(provider, state),
        status_code=307,
    )
    redirect.set_cookie(
        key=OAUTH_STATE_COOKIE,
        value=state,
        max_age=settings.oauth_state_ttl_seconds,
        path="/v1/auth",
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
    )
    return redirect


async def _oauth_callback(
    provider: str,
    request: Request,
    code: str,
    state: str,
    db: AsyncSession,
) -> RedirectResponse:
    expected_state = request.cookies.get(OAUTH_STATE_COOKIE, "")
    if not expected_state or not secrets.compare_digest(expected_state, state):
        raise BadRequestError(message="invalid or expired OAuth state")

    access_token = await oauth_service.exchange_code(provider, code)
    profile = await oauth_service.fetch_profile(provider, access_token)
    user = await user_service.upsert_oauth_user(
        db, name=profile.name, email=profile.email, image=profile.image
    )

    redirect = RedirectResponse(url=settings.client_redirect_url, status_code=307)
    await _start_session(db, redirect, user, timedelta(hours=settings.oauth_session_ttl_hours))
    redirect.delete_cookie(OAUTH_STATE_COOKIE, path="/v1/auth")
    logger.info("User %s logged in with %s", user.id, provider)
    return redirect


@router.get(
    "/github/login",
    status_code=307,
    dependencies=[Depends(require_anonymous_user)],
    summary="Start GitHub login",
)
async def github_login() -> RedirectResponse:
    return _oauth_login("github")


@router.get(
    "/github/callback",
    status_code=307,
    dependencies=[Depends(require_anonymous_user)],
    responses={502: {"description": "GitHub failed", "model": ErrorResponse}},
    summary="GitHub OAuth callback",
)
async def github_callback(
    request: Request,
    code: str = Query(default=""),
    state: str = Query(default=""),
    db: AsyncSession = Depends(get_db_session),
) -> RedirectResponse:
    return await _oauth_callback("github", request, code, state, db)


@router.get(
    "/google/login",
    status_code=307,
    dependencies=[Depends(require_anonymous_user)],
    summary="Start Google login",
)
async def google_login() -> RedirectResponse:
    return _oauth_login("google")


@router.get(
    "/google/callback",
    status_code=307,
    dependencies=[Depends(require_anonymous_user)],
    responses={502: {"description": "Google failed", "model": ErrorResponse}},
    summary="Google OAuth callback",
)
async def google_callback(
    request: Request,
    code: str = Query(default=""),
    state: str = Query(default=""),
    db: AsyncSession = Depends(get_db_session),
) -> RedirectResponse:
    return await _oauth_callback("google", request, code, state, db)
