"""
Gamification Service
====================

XP awards and level progression.

Leaving level L requires ``floor(100 * L ** 1.5)`` cumulative XP, so level
2 is reached at 100 XP, level 3 at 282 XP, level 4 at 519 XP. XP is
cumulative and never reset.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.achievement import Activity, ActivityType
from app.models.user import User

logger = logging.getLogger(__name__)


class XPValues:
    """XP granted per action."""

    HABIT_COMPLETE = 10
    STREAK_7 = 50
    STREAK_30 = 200
    GOAL_CREATE = 20
    GOAL_COMPLETE = 100
    JOURNAL_ENTRY = 30


@dataclass
class XPAward:
    """Result of an XP award."""

    xp: int
    level: int
    leveled_up: bool
    xp_gained: int

    def to_dict(self) -> dict:
        return {
            "xp": self.xp,
            "level": self.level,
            "leveledUp": self.leveled_up,
            "xpGained": self.xp_gained,
        }


def level_threshold(level: int) -> int:
    """Cumulative XP needed to leave ``level``."""
    return math.floor(100 * level ** 1.5)


def apply_xp(xp: int, level: int, amount: int) -> tuple[int, int]:
    """
    Add ``amount`` XP and advance the level across every crossed threshold.

    Returns:
        (new_xp, new_level)
    """
    xp += amount
    while xp >= level_threshold(level):
        level += 1
    return xp, level


class GamificationService:
    """Awards XP and records level-up activity."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def award_xp(self, user: User, amount: int) -> Optional[XPAward]:
        """
        Award XP to a user.

        Returns None without touching the user when gamification is
        disabled in their preferences.
        """
        if not user.prefs.get("gamification_enabled", True):
            return None

        previous_level = user.level or 1
        user.xp, user.level = apply_xp(user.xp or 0, previous_level, amount)
        leveled_up = user.level > previous_level

        if leveled_up:
            logger.info("User %s reached level %d", user.user_id, user.level)
            self.db.add(Activity(
                user_id=user.user_id,
                type=ActivityType.LEVEL_UP,
                title=f"Level {user.level}",
                description=f"Leveled up to level {user.level}!",
                details={"icon": "⭐", "value": user.level},
            ))

        await self.db.flush()

        return XPAward(
            xp=user.xp,
            level=user.level,
            leveled_up=leveled_up,
            xp_gained=amount,
        )
