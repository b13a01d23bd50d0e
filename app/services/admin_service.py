"""
Admin Service
=============

System-wide queries behind the admin panel.
"""

from datetime import datetime, timedelta
from typing import Any
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ErrorCodes, NotFoundError
from app.models.goal import Goal, GoalStatus
from app.models.habit import Habit
from app.models.user import User
from app.services.goal_service import goal_to_dict

RECENT_GOALS_LIMIT = 10
UPCOMING_DAYS = 7


class AdminService:
    """Service for admin-only reads and maintenance."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _count(self, model, *criteria) -> int:
        result = await self.db.execute(select(func.count()).select_from(model).where(*criteria))
        return result.scalar_one()

    async def system_stats(self, now: datetime) -> dict[str, int]:
        today = now.date()
        return {
            "users": await self._count(User),
            "goals": await self._count(Goal),
            "habits": await self._count(Habit),
            "activeGoals": await self._count(Goal, Goal.status != GoalStatus.COMPLETED),
            "upcomingDeadlines": await self._count(
                Goal,
                Goal.status != GoalStatus.COMPLETED,
                Goal.target_date >= today,
                Goal.target_date <= today + timedelta(days=UPCOMING_DAYS),
            ),
        }

    async def recent_goals(self) -> list[dict[str, Any]]:
        """The ten most recently created goals with their owners."""
        stmt = (
            select(Goal, User.username, User.email)
            .join(User, User.user_id == Goal.user_id)
            .order_by(Goal.created_at.desc())
            .limit(RECENT_GOALS_LIMIT)
        )
        result = await self.db.execute(stmt)

        goals = []
        for goal, username, email in result.all():
            item = goal_to_dict(goal)
            item["user"] = {"id": str(goal.user_id), "username": username, "email": email}
            goals.append(item)
        return goals

    async def list_users(self) -> list[dict[str, Any]]:
        result = await self.db.execute(select(User).order_by(User.created_at.desc()))
        return [
            {
                "id": str(u.user_id),
                "username": u.username,
                "email": u.email,
                "preferences": u.prefs,
                "createdAt": u.created_at.isoformat() if u.created_at else None,
            }
            for u in result.scalars().all()
        ]

    async def reset_reminder(self, goal_id: uuid.UUID) -> Goal:
        """Clear a goal's reminder guard so the next sweep may remind again."""
        goal = await self.db.get(Goal, goal_id)
        if goal is None:
            raise NotFoundError(code=ErrorCodes.GOAL_NOT_FOUND, message="Goal not found")

        goal.reminder_sent = False
        goal.last_reminder_date = None
        await self.db.flush()
        return goal
