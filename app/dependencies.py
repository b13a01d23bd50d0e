"""
Common Dependencies
===================

Shared dependencies used across the application.
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.errors import ErrorCodes, ForbiddenError, ServiceUnavailableError
from app.db.session import get_db
from app.models.user import User
from app.services.auth_service import AuthService
from app.services.email_service import EmailDispatcher
from app.services.goal_reminders import ReminderSweep

logger = logging.getLogger(__name__)

# Database session dependency
DBSession = Annotated[AsyncSession, Depends(get_db)]

# Security scheme for JWT authentication
security = HTTPBearer(auto_error=False)


def _extract_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    """
    Find the access token on the request.

    Checked in order: ``Authorization: Bearer``, the ``x-auth-token``
    header, then the auth cookie.
    """
    if credentials is not None:
        return credentials.credentials
    header_token = request.headers.get("x-auth-token")
    if header_token:
        return header_token
    return request.cookies.get(settings.AUTH_COOKIE_NAME)


async def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: DBSession,
) -> User:
    """
    Get current authenticated user.

    Raises 401 if not authenticated or token is invalid.
    """
    token = _extract_token(request, credentials)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "code": ErrorCodes.UNAUTHORIZED,
                "message": "No token, authorization denied",
            },
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await AuthService(db).verify_token(token)

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "code": ErrorCodes.AUTH_INVALID_TOKEN,
                "message": "Token is not valid",
            },
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Picked up by the New Relic middleware
    request.state.user_id = str(user.user_id)
    return user


# Type alias for authenticated user dependency
CurrentUser = Annotated[User, Depends(get_current_user)]


def is_admin(user: User) -> bool:
    admin = settings.ADMIN_USERNAME
    return bool(admin) and user.username.lower() == admin.lower()


async def get_admin_user(current_user: CurrentUser) -> User:
    """Allow only the account named by ``ADMIN_USERNAME``."""
    if not is_admin(current_user):
        raise ForbiddenError(
            code=ErrorCodes.ADMIN_ONLY,
            message="Access denied. Admin only.",
        )
    return current_user


AdminUser = Annotated[User, Depends(get_admin_user)]


def get_email_dispatcher(request: Request) -> EmailDispatcher:
    """The dispatcher built in the application lifespan."""
    dispatcher = getattr(request.app.state, "email_dispatcher", None)
    if dispatcher is None:
        raise ServiceUnavailableError(
            code=ErrorCodes.EMAIL_DELIVERY_FAILED,
            message="Email service is not available",
        )
    return dispatcher


def get_reminder_sweep(request: Request) -> ReminderSweep:
    sweep = getattr(request.app.state, "reminder_sweep", None)
    if sweep is None:
        raise ServiceUnavailableError(
            code=ErrorCodes.REMINDER_SWEEP_RUNNING,
            message="Goal reminders are not available",
        )
    return sweep


EmailSender = Annotated[EmailDispatcher, Depends(get_email_dispatcher)]
Sweep = Annotated[ReminderSweep, Depends(get_reminder_sweep)]
