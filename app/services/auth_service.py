"""
Authentication Service
======================

Business logic for registration, email verification, login, password
reset and token management.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
import uuid

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.errors import (
    AuthenticationError,
    ConflictError,
    ErrorCodes,
    ValidationError,
)
from app.core.security import (
    create_tokens_for_user,
    decode_token,
    generate_code,
    hash_password,
    verify_password,
)
from app.models.user import DEFAULT_PREFERENCES, User
from app.schemas.auth import UserRegister
from app.services.email_service import EmailDispatcher
from app.services.email_templates import (
    password_reset_email,
    verification_email,
    welcome_email,
)

logger = logging.getLogger(__name__)


def user_to_dict(user: User) -> dict:
    """Public account fields returned by auth endpoints."""
    return {
        "id": str(user.user_id),
        "username": user.username,
        "email": user.email,
        "isVerified": user.is_verified,
        "xp": user.xp,
        "level": user.level,
        "preferences": user.prefs,
    }


class AuthService:
    """Service for authentication operations."""

    def __init__(self, db: AsyncSession, dispatcher: Optional[EmailDispatcher] = None):
        self.db = db
        self.dispatcher = dispatcher

    def _code_expiry(self) -> datetime:
        return datetime.now(timezone.utc) + timedelta(minutes=settings.VERIFICATION_CODE_TTL_MINUTES)

    async def _send(self, to: str, subject: str, html: str) -> None:
        """Send an account email; delivery problems are logged, not raised."""
        if self.dispatcher is None:
            logger.warning("No email dispatcher configured; '%s' to %s not sent", subject, to)
            return
        result = await self.dispatcher.send(to, subject, html)
        if not result.success:
            logger.error("Account email '%s' to %s failed: %s", subject, to, result.error)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email address."""
        stmt = select(User).where(func.lower(User.email) == email.lower())
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_user_by_identifier(self, identifier: str) -> Optional[User]:
        """Get user by email or username (case-insensitive)."""
        ident = identifier.lower()
        stmt = select(User).where(
            or_(func.lower(User.email) == ident, func.lower(User.username) == ident)
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        """Get user by ID."""
        return await self.db.get(User, user_id)

    async def register(self, user_data: UserRegister) -> User:
        """
        Create an unverified account and email the verification code.

        Raises:
            ConflictError: if the email or username is taken
        """
        stmt = select(User).where(
            or_(
                func.lower(User.email) == user_data.email.lower(),
                func.lower(User.username) == user_data.username.lower(),
            )
        )
        if (await self.db.execute(stmt)).scalars().first() is not None:
            raise ConflictError(
                code=ErrorCodes.AUTH_USER_EXISTS,
                message="User already exists",
            )

        code = generate_code()
        user = User(
            username=user_data.username,
            email=user_data.email,
            password_hash=hash_password(user_data.password),
            is_verified=False,
            verification_code=code,
            verification_code_expires=self._code_expiry(),
            preferences=dict(DEFAULT_PREFERENCES),
            followers=[],
            following=[],
            xp=0,
            level=1,
        )
        self.db.add(user)
        await self.db.flush()

        subject, html = verification_email(code, user.username)
        await self._send(user.email, subject, html)
        logger.info("Registered user %s", user.user_id)
        return user

    async def verify_email(self, email: str, code: str) -> tuple[User, dict]:
        """
        Activate an account when the code matches before expiry.

        Returns:
            (user, tokens)
        """
        user = await self.get_user_by_email(email)
        if user is None:
            raise ValidationError(message="User not found", field="email", code=ErrorCodes.USER_NOT_FOUND)
        if user.is_verified:
            raise ValidationError(message="Email already verified", code=ErrorCodes.AUTH_ALREADY_VERIFIED)
        if user.verification_code != code:
            raise ValidationError(message="Invalid verification code", field="code", code=ErrorCodes.AUTH_INVALID_CODE)
        if user.verification_code_expires is None or datetime.now(timezone.utc) > user.verification_code_expires:
            raise ValidationError(message="Verification code expired", field="code", code=ErrorCodes.AUTH_CODE_EXPIRED)

        user.is_verified = True
        user.verification_code = None
        user.verification_code_expires = None
        await self.db.flush()

        subject, html = welcome_email(user.username)
        await self._send(user.email, subject, html)

        return user, create_tokens_for_user(user.user_id, user.username)

    async def resend_code(self, email: str) -> None:
        user = await self.get_user_by_email(email)
        if user is None:
            raise ValidationError(message="User not found", field="email", code=ErrorCodes.USER_NOT_FOUND)
        if user.is_verified:
            raise ValidationError(message="Email already verified", code=ErrorCodes.AUTH_ALREADY_VERIFIED)

        user.verification_code = generate_code()
        user.verification_code_expires = self._code_expiry()
        await self.db.flush()

        subject, html = verification_email(user.verification_code, user.username)
        await self._send(user.email, subject, html)

    async def authenticate_user(self, identifier: str, password: str) -> User:
        """
        Authenticate by username or email and password.

        Raises:
            AuthenticationError: on bad credentials or an unverified account
        """
        user = await self.get_user_by_identifier(identifier)

        if user is None or not verify_password(password, user.password_hash):
            raise AuthenticationError(message="Invalid credentials")

        if not user.is_verified:
            raise AuthenticationError(
                code=ErrorCodes.AUTH_NOT_VERIFIED,
                message="Please verify your email first",
                needs_verification=True,
            )

        return user

    async def forgot_password(self, email: str) -> None:
        user = await self.get_user_by_email(email)
        if user is None:
            raise ValidationError(message="User not found", field="email", code=ErrorCodes.USER_NOT_FOUND)

        user.reset_password_code = generate_code()
        user.reset_password_expires = self._code_expiry()
        await self.db.flush()

        subject, html = password_reset_email(user.reset_password_code, user.username)
        await self._send(user.email, subject, html)

    async def reset_password(self, email: str, code: str, new_password: str) -> None:
        user = await self.get_user_by_email(email)
        if user is None:
            raise ValidationError(message="User not found", field="email", code=ErrorCodes.USER_NOT_FOUND)
        if user.reset_password_code is None or user.reset_password_code != code:
            raise ValidationError(message="Invalid reset code", field="code", code=ErrorCodes.AUTH_INVALID_CODE)
        if user.reset_password_expires is None or datetime.now(timezone.utc) > user.reset_password_expires:
            raise ValidationError(message="Reset code expired", field="code", code=ErrorCodes.AUTH_CODE_EXPIRED)

        user.password_hash = hash_password(new_password)
        user.reset_password_code = None
        user.reset_password_expires = None
        await self.db.flush()

    async def change_password(self, user: User, current_password: str, new_password: str) -> None:
        if not verify_password(current_password, user.password_hash):
            raise AuthenticationError(message="Current password is incorrect")
        user.password_hash = hash_password(new_password)
        await self.db.flush()

    async def verify_token(self, token: str) -> Optional[User]:
        """
        Verify an access token and return the associated user.
        """
        payload = decode_token(token)

        if payload is None or payload.get("type") != "access":
            return None

        user_id_str = payload.get("sub")
        if user_id_str is None:
            return None

        try:
            user_id = uuid.UUID(user_id_str)
        except ValueError:
            return None

        return await self.get_user_by_id(user_id)

    async def refresh_tokens(self, refresh_token: str) -> Optional[dict]:
        """
        Generate new tokens from a refresh token.

        Returns:
            New tokens if refresh token is valid, None otherwise
        """
        payload = decode_token(refresh_token)

        if payload is None or payload.get("type") != "refresh":
            return None

        try:
            user_id = uuid.UUID(payload.get("sub", ""))
        except ValueError:
            return None

        user = await self.get_user_by_id(user_id)
        if user is None:
            return None

        return create_tokens_for_user(user.user_id, user.username)
