"""
Habit Service
=============

Business logic for habits, daily check-ins, notes and habit templates.

Streak accounting is a plain toggle on today's check-in: checking in adds
one to the streak, unchecking removes one (never below zero). The streak is
not recomputed from ``completed_dates``.
"""

from dataclasses import dataclass, field
from datetime import datetime
import logging
from typing import Any, Optional
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ErrorCodes, ForbiddenError, NotFoundError
from app.models.achievement import ActivityType
from app.models.habit import Habit, HabitTemplate
from app.models.user import User
from app.schemas.habit import HabitCreate, HabitTemplateCreate, HabitUpdate
from app.services.achievement_service import AchievementService, achievement_to_dict
from app.services.cache import CacheInvalidator
from app.services.gamification import GamificationService, XPValues
from app.utils.helpers import day_window, parse_date

logger = logging.getLogger(__name__)

STREAK_BONUS_XP = {7: XPValues.STREAK_7, 30: XPValues.STREAK_30}


def is_completed_on(completed_dates: list[str], moment: datetime) -> bool:
    """Whether any check-in falls on ``moment``'s calendar day."""
    start, end = day_window(moment)
    return any(start <= parse_date(d, moment.tzinfo) < end for d in completed_dates)


def toggle_completion(
    completed_dates: list[str],
    streak: int,
    now: datetime,
) -> tuple[list[str], int, bool]:
    """
    Toggle today's check-in.

    Args:
        completed_dates: ISO timestamps of previous check-ins
        streak: current streak counter
        now: timezone-aware current time; "today" is its calendar day

    Returns:
        (new_completed_dates, new_streak, checked_in)
    """
    start, end = day_window(now)
    remaining = [
        d for d in completed_dates
        if not (start <= parse_date(d, now.tzinfo) < end)
    ]

    if len(remaining) != len(completed_dates):
        return remaining, max(streak - 1, 0), False

    return [*completed_dates, now.isoformat()], streak + 1, True


@dataclass
class CheckInResult:
    habit: Habit
    checked_in: bool
    xp: Optional[dict[str, Any]] = None
    achievements: list[dict[str, Any]] = field(default_factory=list)


def habit_to_dict(habit: Habit, now: Optional[datetime] = None) -> dict[str, Any]:
    """Serialize a habit for API responses."""
    data = {
        "id": str(habit.habit_id),
        "userId": str(habit.user_id),
        "title": habit.title,
        "description": habit.description,
        "frequency": habit.frequency.value,
        "streak": habit.streak,
        "completedDates": list(habit.completed_dates or []),
        "icon": habit.icon,
        "color": habit.color,
        "category": habit.category,
        "tags": list(habit.tags or []),
        "reminderTime": habit.reminder_time,
        "isPublic": habit.is_public,
        "notes": list(habit.notes or []),
        "createdAt": habit.created_at.isoformat() if habit.created_at else None,
    }
    if now is not None:
        data["completedToday"] = is_completed_on(data["completedDates"], now)
    return data


def template_to_dict(template: HabitTemplate) -> dict[str, Any]:
    return {
        "id": str(template.template_id),
        "title": template.title,
        "description": template.description,
        "category": template.category,
        "icon": template.icon,
        "color": template.color,
        "frequency": template.frequency.value,
        "tags": list(template.tags or []),
        "popularity": template.popularity,
    }


class HabitService:
    """Service for habit operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.achievements = AchievementService(db)
        self.gamification = GamificationService(db)

    async def list_for_user(self, user_id: uuid.UUID) -> list[Habit]:
        """All habits of a user, newest first."""
        stmt = (
            select(Habit)
            .where(Habit.user_id == user_id)
            .order_by(Habit.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_owned(self, habit_id: uuid.UUID, user_id: uuid.UUID) -> Habit:
        """Load a habit and ensure it belongs to ``user_id``."""
        habit = await self.db.get(Habit, habit_id)
        if habit is None:
            raise NotFoundError(code=ErrorCodes.HABIT_NOT_FOUND, message="Habit not found")
        if habit.user_id != user_id:
            raise ForbiddenError(message="Not authorized to access this habit")
        return habit

    async def count_for_user(self, user_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(func.count(Habit.habit_id)).where(Habit.user_id == user_id)
        )
        return result.scalar_one()

    async def create(self, user: User, data: HabitCreate) -> tuple[Habit, list[dict]]:
        """
        Create a habit. The user's first habit unlocks ``first_habit``.

        Returns:
            (habit, unlocked achievements)
        """
        habit = Habit(
            user_id=user.user_id,
            title=data.title,
            description=data.description,
            frequency=data.frequency,
            icon=data.icon,
            color=data.color,
            category=data.category,
            tags=data.tags,
            reminder_time=data.reminder_time,
            is_public=data.is_public,
            completed_dates=[],
            notes=[],
        )
        self.db.add(habit)
        await self.db.flush()

        unlocked = []
        achievement = await self.achievements.check_first_habit(
            user.user_id, await self.count_for_user(user.user_id),
        )
        if achievement is not None:
            unlocked.append(achievement_to_dict(achievement))

        await CacheInvalidator.on_habit_change(str(user.user_id))
        return habit, unlocked

    async def update(self, habit: Habit, data: HabitUpdate) -> Habit:
        """Apply the fields present in the request body."""
        for key, value in data.model_dump(exclude_unset=True).items():
            if value is None and key not in ("description", "reminder_time"):
                continue
            setattr(habit, key, value)
        await self.db.flush()
        await CacheInvalidator.on_habit_change(str(habit.user_id))
        return habit

    async def delete(self, habit: Habit) -> None:
        await self.db.delete(habit)
        await self.db.flush()
        await CacheInvalidator.on_habit_change(str(habit.user_id))

    async def check(self, user: User, habit: Habit, now: datetime) -> CheckInResult:
        """
        Toggle today's check-in for a habit.

        A check-in grants XP, records a ``habit_completed`` activity, and
        when the streak lands exactly on 7 or 30 unlocks the matching badge
        with bonus XP. Unchecking only reverts the check-in and streak.
        """
        dates, streak, checked_in = toggle_completion(
            list(habit.completed_dates or []), habit.streak, now,
        )
        habit.completed_dates = dates
        habit.streak = streak
        await self.db.flush()

        result = CheckInResult(habit=habit, checked_in=checked_in)

        if checked_in:
            await self.achievements.record_activity(
                user.user_id,
                ActivityType.HABIT_COMPLETED,
                title=habit.title,
                description=f"Completed {habit.title} ({streak} day streak)",
                reference_id=habit.habit_id,
                icon=habit.icon,
                value=streak,
            )

            xp_amount = XPValues.HABIT_COMPLETE + STREAK_BONUS_XP.get(streak, 0)
            award = await self.gamification.award_xp(user, xp_amount)
            result.xp = award.to_dict() if award else None

            achievement = await self.achievements.check_streak(user.user_id, streak)
            if achievement is not None:
                result.achievements.append(achievement_to_dict(achievement))

            perfect = await self.achievements.check_perfect_week(user.user_id, now)
            if perfect is not None:
                result.achievements.append(achievement_to_dict(perfect))

        logger.debug(
            "Habit %s %s (streak=%d)",
            habit.habit_id,
            "checked" if checked_in else "unchecked",
            streak,
        )
        await CacheInvalidator.on_habit_change(str(user.user_id))
        return result

    async def add_note(self, habit: Habit, text: str, now: datetime) -> Habit:
        """Append a ``{text, created_at}`` note to a habit."""
        habit.notes = [*(habit.notes or []), {"text": text, "created_at": now.isoformat()}]
        await self.db.flush()
        return habit

    # -- templates ---------------------------------------------------------

    async def list_templates(self, category: Optional[str] = None) -> list[HabitTemplate]:
        """Templates ordered by popularity, optionally filtered by category."""
        stmt = select(HabitTemplate)
        if category:
            stmt = stmt.where(HabitTemplate.category == category)
        stmt = stmt.order_by(HabitTemplate.popularity.desc(), HabitTemplate.title)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def create_template(self, data: HabitTemplateCreate) -> HabitTemplate:
        template = HabitTemplate(**data.model_dump())
        self.db.add(template)
        await self.db.flush()
        return template

    async def create_from_template(
        self,
        user: User,
        template_id: uuid.UUID,
    ) -> tuple[Habit, list[dict]]:
        """Instantiate a habit from a template and bump its popularity."""
        template = await self.db.get(HabitTemplate, template_id)
        if template is None:
            raise NotFoundError(
                code=ErrorCodes.HABIT_TEMPLATE_NOT_FOUND,
                message="Habit template not found",
            )

        template.popularity += 1
        return await self.create(user, HabitCreate(
            title=template.title,
            description=template.description,
            frequency=template.frequency,
            icon=template.icon,
            color=template.color,
            category=template.category,
            tags=list(template.tags or []),
        ))
