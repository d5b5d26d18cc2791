"""
Roomly Backend - User Account Routes
=====================================

What:  /v1/user: profile read/update/delete, password reset (anonymous),
       password change and email change (authenticated).
How:   Thin handlers over UserService; codes are mailed in the background.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from roomly.database import get_db_session
from roomly.dependencies import clear_session_cookie, require_activated_user
from roomly.models.user import User
from roomly.schemas.common import ErrorResponse, MessageResponse
from roomly.schemas.user import (
    ChangeEmailRequest,
    ChangePasswordRequest,
    EmailResponse,
    NewPasswordRequest,
    PasswordResetRequest,
    UpdateProfileRequest,
    UserEnvelope,
    UserResponse,
)
from roomly.services.mailer_service import (
    email_change_email,
    mailer_service,
    password_reset_email,
)
from roomly.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/user", tags=["User"])


@router.get("/", response_model=UserEnvelope, summary="Current user")
async def get_user(user: User = Depends(require_activated_user)) -> UserEnvelope:
    return UserEnvelope(user=UserResponse.model_validate(user))


@router.post(
    "/reset-password",
    response_model=EmailResponse,
    responses={404: {"description": "Unknown email", "model": ErrorResponse}},
    summary="Email a password reset code",
)
async def reset_password(
    body: PasswordResetRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db_session),
) -> EmailResponse:
    user = await user_service.request_password_reset(db, email=body.email)
    background_tasks.add_task(
        mailer_service.deliver,
        password_reset_email(user.email, user.name, user.reset_token),
    )
    return EmailResponse(email=user.email)


@router.post(
    "/new-password/{email}",
    response_model=MessageResponse,
    responses={
        401: {"description": "Wrong reset code", "model": ErrorResponse},
        404: {"description": "Unknown email", "model": ErrorResponse},
    },
    summary="Set a new password with the emailed reset code",
)
async def new_password(
    email: str,
    body: NewPasswordRequest,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await user_service.confirm_password_reset(
        db, email=email, code=body.reset_token, new_password=body.new_password
    )
    return MessageResponse(message="success")


@router.delete("/", response_model=MessageResponse, summary="Delete the current account")
async def delete_user(
    response: Response,
    user: User = Depends(require_activated_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await user_service.delete(db, user)
    clear_session_cookie(response)
    return MessageResponse(message="success")


@router.patch("/", response_model=UserEnvelope, summary="Update name and avatar")
async def update_user(
    body: UpdateProfileRequest,
    user: User = Depends(require_activated_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserEnvelope:
    user = await user_service.update_profile(db, user, name=body.name, image=body.image)
    return UserEnvelope(user=UserResponse.model_validate(user))


@router.patch(
    "/password",
    response_model=MessageResponse,
    responses={401: {"description": "Wrong current password", "model": ErrorResponse}},
    summary="Change password",
)
async def change_password(
    body: ChangePasswordRequest,
    user: User = Depends(require_activated_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await user_service.change_password(
        db, user, old_password=body.old_password, new_password=body.new_password
    )
    return MessageResponse(message="success")


@router.post(
    "/change-email/request",
    response_model=MessageResponse,
    summary="Email a code confirming an email address change",
)
async def request_change_email(
    background_tasks: BackgroundTasks,
    user: User = Depends(require_activated_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    code = await user_service.request_email_change(db, user)
    background_tasks.add_task(
        mailer_service.deliver,
        email_change_email(user.email, user.name, code),
    )
    return MessageResponse(message="ok")


@router.post(
    "/change-email",
    response_model=UserEnvelope,
    responses={
        401: {"description": "Wrong code", "model": ErrorResponse},
        422: {"description": "Invalid or taken email", "model": ErrorResponse},
    },
    summary="Change email address with the emailed code",
)
async def change_email(
    body: ChangeEmailRequest,
    user: User = Depends(require_activated_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserEnvelope:
    user = await user_service.change_email(db, user, code=body.reset_token, new_email=body.new_email)
    return UserEnvelope(user=UserResponse.model_validate(user))
