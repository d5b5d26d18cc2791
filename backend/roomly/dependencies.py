"""
Roomly Backend - Request Authentication
========================================

What:  Resolves the caller of every request and guards protected routes.
How:   `authenticate` is registered as an application-wide dependency. It
       reads the session token from the session cookie (falling back to an
       `Authorization: Bearer` header), resolves it through TokenService and
       stores the user on `request.state.user`. No token means an anonymous
       caller; a bad token is rejected with 401 and the cookie is cleared by
       the InvalidAuthenticationTokenError handler.

Guards:
    require_authenticated_user  → anonymous caller gets 401
    require_activated_user      → additionally, inactive account gets 403
    require_anonymous_user      → logged-in caller gets 400 (OAuth login)
"""

from datetime import datetime
from typing import Annotated, Optional, Union

from fastapi import Depends, Path, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from roomly.config import settings
from roomly.database import get_db_session
from roomly.exceptions import (
    AlreadyAuthenticatedError,
    AuthenticationRequiredError,
    InactiveAccountError,
    InvalidAuthenticationTokenError,
)
from roomly.models.user import User
from roomly.security import SCOPE_AUTHENTICATION, validate_token_plaintext
from roomly.services.token_service import token_service
from roomly.validator import MAX_INT64, Validator


class AnonymousUser:
    """Placeholder stored on request.state for callers without a session."""

    id = None
    activated = False

    def __repr__(self) -> str:
        return "<AnonymousUser>"


ANONYMOUS_USER = AnonymousUser()

# BIGINT ids; larger values are a 400 from request validation, never a query
RecordID = Annotated[int, Path(le=MAX_INT64)]

Caller = Union[User, AnonymousUser]


def is_anonymous(user: Caller) -> bool:
    return user is ANONYMOUS_USER


def _token_from_request(request: Request) -> Optional[str]:
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        return token

    header = request.headers.get("Authorization")
    if not header:
        return None
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() != "bearer" or not credentials.strip():
        raise InvalidAuthenticationTokenError()
    return credentials.strip()


async def authenticate(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
) -> Caller:
    response.headers.append("Vary", "Authorization")
    request.state.user = ANONYMOUS_USER
    request.state.user_id = None

    token = _token_from_request(request)
    if token is None:
        return ANONYMOUS_USER

    v = Validator()
    validate_token_plaintext(v, token)
    if not v.valid():
        raise InvalidAuthenticationTokenError()

    user = await token_service.get_user_for_token(db, SCOPE_AUTHENTICATION, token)
    if user is None:
        raise InvalidAuthenticationTokenError()

    request.state.user = user
    # plain id for the access log; the ORM instance expires on rollback
    request.state.user_id = user.id
    return user


async def require_authenticated_user(user: Caller = Depends(authenticate)) -> User:
    if is_anonymous(user):
        raise AuthenticationRequiredError()
    return user


async def require_activated_user(user: User = Depends(require_authenticated_user)) -> User:
    if not user.activated:
        raise InactiveAccountError()
    return user


async def require_anonymous_user(user: Caller = Depends(authenticate)) -> None:
    if not is_anonymous(user):
        raise AlreadyAuthenticatedError()


# ── Session Cookie ────────────────────────────────────────────────────────
def set_session_cookie(response: Response, token: str, expiry: datetime) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        expires=expiry,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
    )
