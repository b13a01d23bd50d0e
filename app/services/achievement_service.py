"""
Achievement Service
===================

Achievement unlocking, the append-only activity feed, the social
achievement feed and the global leaderboard.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
from typing import Any, Iterable, Optional
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ErrorCodes, ForbiddenError, NotFoundError
from app.models.achievement import Achievement, AchievementType, Activity, ActivityType
from app.models.goal import Goal, GoalStatus
from app.models.habit import Habit
from app.models.user import User
from app.utils.helpers import day_window, parse_date

logger = logging.getLogger(__name__)

FEED_LIMIT = 50
LEADERBOARD_POOL = 100
LEADERBOARD_SIZE = 50
ACTIVITY_LIMIT = 20


@dataclass(frozen=True)
class Badge:
    """Static description of an unlockable achievement."""

    type: AchievementType
    title: str
    icon: str
    description: str


FIRST_HABIT = Badge(AchievementType.FIRST_HABIT, "First Step", "🌱", "Created your first habit!")
PERFECT_WEEK = Badge(
    AchievementType.PERFECT_WEEK, "Perfect Week", "💎", "Completed every habit for 7 days straight!",
)

STREAK_BADGES = {
    7: Badge(AchievementType.WEEK_STREAK, "Week Warrior", "🔥", "Kept a habit going for 7 days!"),
    30: Badge(AchievementType.MONTH_STREAK, "Monthly Master", "🏅", "Kept a habit going for 30 days!"),
}

GOAL_BADGES = {
    1: Badge(AchievementType.FIRST_GOAL, "First Victory", "🎯", "Completed your first big goal!"),
    3: Badge(AchievementType.GOAL_COMPLETED, "Steady Climber", "🏔️", "Successfully conquered 3 major goals!"),
    5: Badge(AchievementType.GOAL_COMPLETED, "Summit Seeker", "🧗", "Reached the peak with 5 goals completed!"),
}

JOURNAL_BADGES = {
    1: Badge(AchievementType.JOURNAL_ENTRY, "First Reflection", "📝", "Started your journaling journey!"),
    5: Badge(AchievementType.JOURNAL_ENTRY, "Introspective Mind", "🧠", "Deepened self-awareness with 5 entries!"),
    10: Badge(AchievementType.JOURNAL_ENTRY, "Journaling Sensei", "📜", "Mastered the art of reflection with 10 entries!"),
}


def leaderboard_score(total_streak: int, completed_goals: int, achievements: int) -> int:
    """Leaderboard ranking score."""
    return total_streak * 10 + completed_goals * 50 + achievements * 25


def is_perfect_week(completed_dates_per_habit: Iterable[list[str]], now: datetime) -> bool:
    """
    True when every habit has a check-in on each of the 7 days ending today.

    A user without habits never has a perfect week.
    """
    habits = [
        [parse_date(d, now.tzinfo) for d in dates]
        for dates in completed_dates_per_habit
    ]
    if not habits:
        return False

    for offset in range(7):
        start, end = day_window(now - timedelta(days=offset))
        for stamps in habits:
            if not any(start <= stamp < end for stamp in stamps):
                return False
    return True


def achievement_to_dict(achievement: Achievement) -> dict[str, Any]:
    """Serialize an achievement for API responses."""
    return {
        "id": str(achievement.achievement_id),
        "userId": str(achievement.user_id),
        "type": achievement.type.value,
        "title": achievement.title,
        "description": achievement.description,
        "icon": achievement.icon,
        "isShared": achievement.is_shared,
        "createdAt": achievement.created_at.isoformat() if achievement.created_at else None,
    }


def activity_to_dict(activity: Activity) -> dict[str, Any]:
    """Serialize an activity for API responses."""
    return {
        "id": str(activity.activity_id),
        "userId": str(activity.user_id),
        "type": activity.type.value,
        "title": activity.title,
        "description": activity.description,
        "metadata": activity.details or {},
        "createdAt": activity.created_at.isoformat() if activity.created_at else None,
    }


class AchievementService:
    """Service for achievements and activity."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # -- activity ----------------------------------------------------------

    async def record_activity(
        self,
        user_id: uuid.UUID,
        activity_type: ActivityType,
        title: str,
        description: Optional[str] = None,
        reference_id: Optional[uuid.UUID] = None,
        icon: Optional[str] = None,
        value: Optional[int] = None,
    ) -> Activity:
        """Append an activity feed entry."""
        details: dict[str, Any] = {}
        if reference_id is not None:
            details["reference_id"] = str(reference_id)
        if icon is not None:
            details["icon"] = icon
        if value is not None:
            details["value"] = value

        activity = Activity(
            user_id=user_id,
            type=activity_type,
            title=title,
            description=description,
            details=details,
        )
        self.db.add(activity)
        await self.db.flush()
        return activity

    async def list_activity(self, user_id: uuid.UUID, limit: int = ACTIVITY_LIMIT) -> list[Activity]:
        """Most recent activity for a user, newest first."""
        stmt = (
            select(Activity)
            .where(Activity.user_id == user_id)
            .order_by(Activity.created_at.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    # -- unlocking ---------------------------------------------------------

    async def unlock(self, user_id: uuid.UUID, badge: Badge) -> Achievement:
        """Create an achievement and its ``achievement_unlocked`` activity."""
        achievement = Achievement(
            user_id=user_id,
            type=badge.type,
            title=badge.title,
            description=badge.description,
            icon=badge.icon,
        )
        self.db.add(achievement)
        await self.db.flush()

        await self.record_activity(
            user_id,
            ActivityType.ACHIEVEMENT_UNLOCKED,
            title=badge.title,
            description=f"Unlocked: {badge.title} - {badge.description}",
            reference_id=achievement.achievement_id,
            icon=badge.icon,
        )
        logger.info("User %s unlocked '%s'", user_id, badge.title)
        return achievement

    async def check_streak(self, user_id: uuid.UUID, streak: int) -> Optional[Achievement]:
        """Unlock the week/month badge when a streak lands exactly on 7 or 30."""
        badge = STREAK_BADGES.get(streak)
        if badge is None:
            return None
        return await self.unlock(user_id, badge)

    async def check_first_habit(self, user_id: uuid.UUID, habit_count: int) -> Optional[Achievement]:
        if habit_count != 1 or await self._has_type(user_id, AchievementType.FIRST_HABIT):
            return None
        return await self.unlock(user_id, FIRST_HABIT)

    async def check_goal_milestones(self, user_id: uuid.UUID, completed_count: int) -> Optional[Achievement]:
        """Badges at 1, 3 and 5 completed goals."""
        badge = GOAL_BADGES.get(completed_count)
        if badge is None or await self._has_title(user_id, badge.title):
            return None
        return await self.unlock(user_id, badge)

    async def check_journal_milestones(self, user_id: uuid.UUID, entry_count: int) -> Optional[Achievement]:
        """Badges at 1, 5 and 10 journal entries."""
        badge = JOURNAL_BADGES.get(entry_count)
        if badge is None or await self._has_title(user_id, badge.title):
            return None
        return await self.unlock(user_id, badge)

    async def check_perfect_week(self, user_id: uuid.UUID, now: datetime) -> Optional[Achievement]:
        """Unlock ``perfect_week`` at most once per rolling 7 days."""
        result = await self.db.execute(
            select(Habit.completed_dates).where(Habit.user_id == user_id)
        )
        if not is_perfect_week(result.scalars().all(), now):
            return None

        recent = await self.db.execute(
            select(func.count(Achievement.achievement_id)).where(
                Achievement.user_id == user_id,
                Achievement.type == AchievementType.PERFECT_WEEK,
                Achievement.created_at >= now - timedelta(days=7),
            )
        )
        if recent.scalar_one() > 0:
            return None
        return await self.unlock(user_id, PERFECT_WEEK)

    async def _has_type(self, user_id: uuid.UUID, achievement_type: AchievementType) -> bool:
        result = await self.db.execute(
            select(func.count(Achievement.achievement_id)).where(
                Achievement.user_id == user_id,
                Achievement.type == achievement_type,
            )
        )
        return result.scalar_one() > 0

    async def _has_title(self, user_id: uuid.UUID, title: str) -> bool:
        result = await self.db.execute(
            select(func.count(Achievement.achievement_id)).where(
                Achievement.user_id == user_id,
                Achievement.title == title,
            )
        )
        return result.scalar_one() > 0

    # -- reads -------------------------------------------------------------

    async def list_for_user(self, user_id: uuid.UUID) -> list[Achievement]:
        stmt = (
            select(Achievement)
            .where(Achievement.user_id == user_id)
            .order_by(Achievement.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def share(self, achievement_id: uuid.UUID, user_id: uuid.UUID) -> Achievement:
        """Mark an achievement as shared with followers."""
        achievement = await self.db.get(Achievement, achievement_id)
        if achievement is None:
            raise NotFoundError(
                code=ErrorCodes.ACHIEVEMENT_NOT_FOUND,
                message="Achievement not found",
            )
        if achievement.user_id != user_id:
            raise ForbiddenError(message="Not authorized to share this achievement")

        achievement.is_shared = True
        await self.db.flush()
        return achievement

    async def feed(self, user: User) -> list[dict[str, Any]]:
        """Shared achievements of the users ``user`` follows, newest first."""
        following = [uuid.UUID(uid) for uid in (user.following or [])]
        if not following:
            return []

        stmt = (
            select(Achievement, User.username, User.avatar)
            .join(User, User.user_id == Achievement.user_id)
            .where(
                Achievement.user_id.in_(following),
                Achievement.is_shared.is_(True),
            )
            .order_by(Achievement.created_at.desc())
            .limit(FEED_LIMIT)
        )
        result = await self.db.execute(stmt)

        feed = []
        for achievement, username, avatar in result.all():
            item = achievement_to_dict(achievement)
            item["user"] = {"id": str(achievement.user_id), "username": username, "avatar": avatar}
            feed.append(item)
        return feed

    async def leaderboard(self) -> list[dict[str, Any]]:
        """
        Rank up to 100 users by score and return the top 50.
        """
        users = (await self.db.execute(
            select(User.user_id, User.username, User.avatar)
            .order_by(User.created_at)
            .limit(LEADERBOARD_POOL)
        )).all()
        if not users:
            return []

        ids = [row.user_id for row in users]

        streak_rows = await self.db.execute(
            select(
                Habit.user_id,
                func.coalesce(func.sum(Habit.streak), 0),
                func.coalesce(func.max(Habit.streak), 0),
            )
            .where(Habit.user_id.in_(ids))
            .group_by(Habit.user_id)
        )
        streaks = {uid: (int(total), int(longest)) for uid, total, longest in streak_rows.all()}

        goal_rows = await self.db.execute(
            select(Goal.user_id, func.count(Goal.goal_id))
            .where(Goal.user_id.in_(ids), Goal.status == GoalStatus.COMPLETED)
            .group_by(Goal.user_id)
        )
        completed_goals = dict(goal_rows.all())

        achievement_rows = await self.db.execute(
            select(Achievement.user_id, func.count(Achievement.achievement_id))
            .where(Achievement.user_id.in_(ids))
            .group_by(Achievement.user_id)
        )
        achievements = dict(achievement_rows.all())

        board = []
        for row in users:
            total_streak, longest_streak = streaks.get(row.user_id, (0, 0))
            goals_done = completed_goals.get(row.user_id, 0)
            badges = achievements.get(row.user_id, 0)
            board.append({
                "userId": str(row.user_id),
                "username": row.username,
                "avatar": row.avatar,
                "stats": {
                    "totalStreak": total_streak,
                    "longestStreak": longest_streak,
                    "completedGoals": goals_done,
                    "achievements": badges,
                    "score": leaderboard_score(total_streak, goals_done, badges),
                },
            })

        board.sort(key=lambda entry: entry["stats"]["score"], reverse=True)
        return board[:LEADERBOARD_SIZE]
