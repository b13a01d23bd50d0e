"""
Profile Service
===============

User profiles, preferences, user search and the follow graph.

Follow edges are stored on both users (``following`` on the follower,
``followers`` on the followee) and are always updated together.
"""

import logging
from typing import Any
import uuid

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError, ErrorCodes, NotFoundError, ValidationError
from app.models.achievement import Achievement
from app.models.goal import Goal
from app.models.habit import Habit
from app.models.user import User
from app.schemas.profile import PreferencesUpdate, ProfileUpdate
from app.services.cache import CacheInvalidator

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 20


def follow(current: User, target: User) -> None:
    """
    Add a follow edge from ``current`` to ``target`` on both users.

    Raises:
        ValidationError: when following yourself
        ConflictError: when already following
    """
    current_id, target_id = str(current.user_id), str(target.user_id)
    if current_id == target_id:
        raise ValidationError(
            message="Cannot follow yourself",
            code=ErrorCodes.SOCIAL_SELF_FOLLOW,
        )
    if target_id in (current.following or []):
        raise ConflictError(
            code=ErrorCodes.SOCIAL_ALREADY_FOLLOWING,
            message="Already following this user",
        )

    # Reassign so the JSON columns are flagged dirty
    current.following = [*(current.following or []), target_id]
    if current_id not in (target.followers or []):
        target.followers = [*(target.followers or []), current_id]


def unfollow(current: User, target: User) -> None:
    """Remove the follow edge from ``current`` to ``target`` on both users."""
    current_id, target_id = str(current.user_id), str(target.user_id)
    current.following = [uid for uid in (current.following or []) if uid != target_id]
    target.followers = [uid for uid in (target.followers or []) if uid != current_id]


def user_summary(user: User) -> dict[str, Any]:
    return {
        "id": str(user.user_id),
        "username": user.username,
        "avatar": user.avatar,
        "bio": user.bio,
    }


class ProfileService:
    """Service for profile and social operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, user_id: uuid.UUID) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError(code=ErrorCodes.USER_NOT_FOUND, message="User not found")
        return user

    async def _summaries(self, ids: list[str]) -> list[dict[str, Any]]:
        if not ids:
            return []
        result = await self.db.execute(
            select(User).where(User.user_id.in_([uuid.UUID(i) for i in ids]))
        )
        return [user_summary(u) for u in result.scalars().all()]

    async def _count(self, model, *criteria) -> int:
        result = await self.db.execute(select(func.count()).select_from(model).where(*criteria))
        return result.scalar_one()

    async def get_own_profile(self, user: User) -> dict[str, Any]:
        """Full profile of the signed-in user, including preferences."""
        return {
            "id": str(user.user_id),
            "username": user.username,
            "email": user.email,
            "isVerified": user.is_verified,
            "profile": {
                "bio": user.bio,
                "avatar": user.avatar,
                "location": user.location,
                "website": user.website,
            },
            "preferences": user.prefs,
            "xp": user.xp,
            "level": user.level,
            "followers": await self._summaries(user.followers or []),
            "following": await self._summaries(user.following or []),
            "createdAt": user.created_at.isoformat() if user.created_at else None,
            "stats": {
                "habits": await self._count(Habit, Habit.user_id == user.user_id),
                "goals": await self._count(Goal, Goal.user_id == user.user_id),
                "achievements": await self._count(Achievement, Achievement.user_id == user.user_id),
                "followers": len(user.followers or []),
                "following": len(user.following or []),
            },
        }

    async def get_public_profile(self, user_id: uuid.UUID) -> dict[str, Any]:
        """
        Profile as seen by other users.

        Email and preferences are omitted; only public habits and shared
        achievements are counted.
        """
        user = await self.get_user(user_id)
        return {
            "id": str(user.user_id),
            "username": user.username,
            "profile": {
                "bio": user.bio,
                "avatar": user.avatar,
                "location": user.location,
                "website": user.website,
            },
            "xp": user.xp,
            "level": user.level,
            "followers": await self._summaries(user.followers or []),
            "following": await self._summaries(user.following or []),
            "createdAt": user.created_at.isoformat() if user.created_at else None,
            "stats": {
                "habits": await self._count(Habit, Habit.user_id == user.user_id, Habit.is_public.is_(True)),
                "goals": await self._count(Goal, Goal.user_id == user.user_id),
                "achievements": await self._count(
                    Achievement,
                    Achievement.user_id == user.user_id,
                    Achievement.is_shared.is_(True),
                ),
                "followers": len(user.followers or []),
                "following": len(user.following or []),
            },
        }

    async def update_profile(self, user: User, data: ProfileUpdate) -> User:
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(user, key, value if value is not None else "")
        await self.db.flush()
        await CacheInvalidator.on_profile_update(str(user.user_id))
        return user

    async def update_preferences(self, user: User, data: PreferencesUpdate) -> dict[str, Any]:
        """Merge the provided preference fields into the stored preferences."""
        changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        user.preferences = {**user.prefs, **changes}
        await self.db.flush()
        await CacheInvalidator.on_profile_update(str(user.user_id))
        return user.prefs

    async def search(self, query: str) -> list[dict[str, Any]]:
        """Case-insensitive substring search over username and bio."""
        term = query.strip()
        if not term:
            return []
        pattern = f"%{term}%"
        stmt = (
            select(User)
            .where(or_(User.username.ilike(pattern), User.bio.ilike(pattern)))
            .order_by(User.username)
            .limit(SEARCH_LIMIT)
        )
        result = await self.db.execute(stmt)
        return [user_summary(u) for u in result.scalars().all()]

    async def follow(self, current: User, target_id: uuid.UUID) -> None:
        target = await self.get_user(target_id)
        follow(current, target)
        await self.db.flush()
        await CacheInvalidator.on_profile_update(str(current.user_id))
        await CacheInvalidator.on_profile_update(str(target.user_id))
        logger.info("User %s followed %s", current.user_id, target.user_id)

    async def unfollow(self, current: User, target_id: uuid.UUID) -> None:
        target = await self.get_user(target_id)
        unfollow(current, target)
        await self.db.flush()
        await CacheInvalidator.on_profile_update(str(current.user_id))
        await CacheInvalidator.on_profile_update(str(target.user_id))
