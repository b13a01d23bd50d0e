"""
Stats Service
=============

Dashboard analytics: habit, goal and journal totals plus a 7-day habit
completion series.
"""

from datetime import datetime, timedelta
from typing import Any, Sequence
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.goal import Goal, GoalStatus
from app.models.habit import Habit
from app.models.journal import JournalEntry
from app.utils.helpers import day_window, parse_date, round_half_up

DAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def habit_stats(streaks: Sequence[int], completed_dates: Sequence[list[str]]) -> dict[str, int]:
    """
    Habit totals.

    ``completionRate`` is all recorded check-ins over ``habits * 7``, as a
    rounded percentage.
    """
    total = len(streaks)
    total_completions = sum(len(dates) for dates in completed_dates)
    return {
        "total": total,
        "activeStreaks": sum(1 for s in streaks if s > 0),
        "longestStreak": max(streaks, default=0),
        "completionRate": round_half_up(total_completions / (total * 7) * 100) if total else 0,
    }


def weekly_series(completed_dates: Sequence[list[str]], now: datetime) -> list[dict[str, Any]]:
    """
    Share of habits checked in on each of the last 7 days, oldest first.
    """
    total = len(completed_dates)
    parsed = [[parse_date(d, now.tzinfo) for d in dates] for dates in completed_dates]

    series = []
    for offset in range(6, -1, -1):
        day = now - timedelta(days=offset)
        start, end = day_window(day)
        done = sum(1 for stamps in parsed if any(start <= s < end for s in stamps))
        series.append({
            "name": DAY_NAMES[day.weekday()],
            "completion": round_half_up(done / total * 100) if total else 0,
        })
    return series


class StatsService:
    """Service for dashboard statistics."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_stats(self, user_id: uuid.UUID, now: datetime) -> dict[str, Any]:
        habits = (await self.db.execute(
            select(Habit.streak, Habit.completed_dates).where(Habit.user_id == user_id)
        )).all()
        streaks = [row.streak for row in habits]
        dates = [list(row.completed_dates or []) for row in habits]

        goal_rows = await self.db.execute(
            select(Goal.status, func.count(Goal.goal_id))
            .where(Goal.user_id == user_id)
            .group_by(Goal.status)
        )
        by_status = {status: count for status, count in goal_rows.all()}

        journal_total = (await self.db.execute(
            select(func.count(JournalEntry.entry_id)).where(JournalEntry.user_id == user_id)
        )).scalar_one()

        return {
            "habits": habit_stats(streaks, dates),
            "goals": {
                "total": sum(by_status.values()),
                "completed": by_status.get(GoalStatus.COMPLETED, 0),
                "inProgress": by_status.get(GoalStatus.IN_PROGRESS, 0),
            },
            "journal": {"totalEntries": journal_total},
            "weeklyData": weekly_series(dates, now),
        }
