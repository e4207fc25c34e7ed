"""
Meganote Backend - Auth Route Handlers
=======================================

Public routes (no session required):
    POST  /auth                        login (rate limited per IP)
    POST  /auth/register               self-registration
    POST  /auth/forgotpassword         mail a one-time reset link
    PATCH /auth/resetpassword/{token}  consume the reset link
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from meganote.database import get_db_session
from meganote.dependencies import get_mail_service
from meganote.schemas.account import (
    AccountCreatedResponse,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    ResetPasswordRequest,
)
from meganote.schemas.common import ErrorResponse, MessageResponse
from meganote.services.account_service import account_service
from meganote.services.auth_service import auth_service
from meganote.services.mail_base import MailService
from meganote.services.password_reset_service import password_reset_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post(
    "",
    response_model=LoginResponse,
    responses={
        401: {"description": "Unknown username or wrong password", "model": ErrorResponse},
        429: {"description": "Too many login attempts", "model": ErrorResponse},
    },
    summary="Log in and receive a session token",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> LoginResponse:
    user, token = await auth_service.login(db, body.username, body.password)
    return LoginResponse(message="Logged in successfully!", user=user, access_token=token)


@router.post(
    "/register",
    response_model=AccountCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "Username or email taken", "model": ErrorResponse}},
    summary="Register a new account",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AccountCreatedResponse:
    user = await account_service.register(db, body)
    return AccountCreatedResponse(
        message=f"New user {user.username} registered successfully!",
        user=user,
    )


@router.post(
    "/forgotpassword",
    response_model=MessageResponse,
    responses={
        400: {"description": "No live account with that email", "model": ErrorResponse},
        500: {"description": "Reset mail could not be delivered", "model": ErrorResponse},
    },
    summary="Mail a password reset link",
)
async def forgot_password(
    body: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db_session),
    mailer: MailService = Depends(get_mail_service),
) -> MessageResponse:
    await password_reset_service.request_reset(db, body.email, mailer)
    return MessageResponse(message="Password reset link sent! Please check your email.")


@router.patch(
    "/resetpassword/{token}",
    response_model=MessageResponse,
    responses={400: {"description": "Invalid or expired token", "model": ErrorResponse}},
    summary="Set a new password with a reset token",
)
async def reset_password(
    token: str,
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await password_reset_service.reset_password(db, token, body.password)
    return MessageResponse(message="Password reset successfully! You can now log in.")
