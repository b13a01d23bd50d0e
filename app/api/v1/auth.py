"""
Authentication API Endpoints
============================

Handles registration with email verification, login, logout, password
reset and token refresh.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.config import settings
from app.core.errors import ErrorCodes
from app.core.rate_limit import create_rate_limit_dependency
from app.core.security import create_tokens_for_user
from app.dependencies import CurrentUser, DBSession, EmailSender
from app.schemas.auth import (
    EmailRequest,
    PasswordChange,
    PasswordResetConfirm,
    RefreshTokenRequest,
    UserLogin,
    UserRegister,
    VerifyRequest,
)
from app.schemas.common import BaseResponse, ErrorResponse
from app.services.auth_service import AuthService, user_to_dict

logger = logging.getLogger(__name__)

router = APIRouter()

auth_rate_limit = Depends(create_rate_limit_dependency("auth"))
email_rate_limit = Depends(create_rate_limit_dependency("email"))


def _set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


@router.post(
    "/register",
    response_model=BaseResponse[dict],
    status_code=status.HTTP_201_CREATED,
    dependencies=[auth_rate_limit],
    responses={
        409: {"model": ErrorResponse, "description": "User already exists"},
    },
)
async def register(
    user_data: UserRegister,
    db: DBSession,
    dispatcher: EmailSender,
):
    """
    Register a new account.

    The account stays unverified until the emailed 6-digit code is
    confirmed through ``/verify``.
    """
    user = await AuthService(db, dispatcher).register(user_data)

    return BaseResponse(
        data={"email": user.email, "username": user.username},
        message="Registration successful. Please check your email for the verification code.",
    )


@router.post(
    "/verify",
    response_model=BaseResponse[dict],
    dependencies=[auth_rate_limit],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid or expired code"},
    },
)
async def verify(
    body: VerifyRequest,
    response: Response,
    db: DBSession,
    dispatcher: EmailSender,
):
    """Confirm the verification code and sign the user in."""
    user, tokens = await AuthService(db, dispatcher).verify_email(body.email, body.code)
    _set_auth_cookie(response, tokens["access_token"])

    return BaseResponse(
        data={"user": user_to_dict(user), "tokens": tokens},
        message="Email verified successfully",
    )


@router.post(
    "/resend-code",
    response_model=BaseResponse[dict],
    dependencies=[email_rate_limit],
)
async def resend_code(
    body: EmailRequest,
    db: DBSession,
    dispatcher: EmailSender,
):
    await AuthService(db, dispatcher).resend_code(body.email)
    return BaseResponse(data={"email": body.email}, message="Verification code sent")


@router.post(
    "/login",
    response_model=BaseResponse[dict],
    dependencies=[auth_rate_limit],
    responses={
        401: {"model": ErrorResponse, "description": "Invalid credentials or unverified account"},
    },
)
async def login(
    credentials: UserLogin,
    response: Response,
    db: DBSession,
):
    """
    Authenticate with username or email and password.

    Returns tokens and also sets them as an HTTP-only cookie.
    """
    user = await AuthService(db).authenticate_user(credentials.identifier, credentials.password)
    tokens = create_tokens_for_user(user.user_id, user.username)
    _set_auth_cookie(response, tokens["access_token"])
    logger.info("User %s logged in", user.user_id)

    return BaseResponse(data={"user": user_to_dict(user), "tokens": tokens})


@router.post("/logout", response_model=BaseResponse[dict])
async def logout(response: Response):
    """Clear the auth cookie. Bearer tokens simply expire client-side."""
    response.delete_cookie(settings.AUTH_COOKIE_NAME)
    return BaseResponse(data={}, message="Logged out successfully")


@router.get("/me", response_model=BaseResponse[dict])
async def me(current_user: CurrentUser):
    return BaseResponse(data=user_to_dict(current_user))


@router.post(
    "/forgot-password",
    response_model=BaseResponse[dict],
    dependencies=[email_rate_limit],
)
async def forgot_password(
    body: EmailRequest,
    db: DBSession,
    dispatcher: EmailSender,
):
    await AuthService(db, dispatcher).forgot_password(body.email)
    return BaseResponse(data={"email": body.email}, message="Password reset code sent")


@router.post(
    "/reset-password",
    response_model=BaseResponse[dict],
    dependencies=[auth_rate_limit],
)
async def reset_password(body: PasswordResetConfirm, db: DBSession):
    await AuthService(db).reset_password(body.email, body.code, body.new_password)
    return BaseResponse(data={}, message="Password reset successfully")


@router.post("/change-password", response_model=BaseResponse[dict])
async def change_password(
    body: PasswordChange,
    current_user: CurrentUser,
    db: DBSession,
):
    await AuthService(db).change_password(current_user, body.current_password, body.new_password)
    return BaseResponse(data={}, message="Password changed successfully")


@router.post(
    "/refresh-token",
    response_model=BaseResponse[dict],
    responses={
        401: {"model": ErrorResponse, "description": "Invalid refresh token"},
    },
)
async def refresh_token(body: RefreshTokenRequest, response: Response, db: DBSession):
    """Exchange a refresh token for a new token pair."""
    tokens = await AuthService(db).refresh_tokens(body.refresh_token)

    if tokens is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "code": ErrorCodes.AUTH_INVALID_TOKEN,
                "message": "Invalid or expired refresh token",
            },
        )

    _set_auth_cookie(response, tokens["access_token"])
    return BaseResponse(data={"tokens": tokens})
