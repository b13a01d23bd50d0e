"""
Goal Deadline Reminders
=======================

Daily sweep that emails users about goals approaching their target date.

For every user who has both ``goal_reminders`` and ``email_notifications``
enabled, goals that are not completed and fall due within
``[today, today + reminder_days_before]`` are collected into a single email.
A goal is reminded at most once per 24 hours: after a successful send every
listed goal gets ``reminder_sent = True`` and ``last_reminder_date = now``.

Failure handling:
    - A failed send is logged and leaves that user's goals unmarked; the
      sweep moves on to the next user.
    - A store failure aborts the whole run.

The sweep itself never reads the clock; callers pass ``now``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from html import escape
import logging
from typing import Any, Optional, Protocol, Sequence
import uuid

from sqlalchemy import Boolean, and_, func, literal, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.core.errors import ConflictError, ErrorCodes
from app.models.goal import Goal, GoalStatus
from app.models.user import DEFAULT_PREFERENCES, User
from app.services.email_service import EmailDispatcher

logger = logging.getLogger(__name__)

DEFAULT_REMINDER_DAYS = 3
REMINDER_INTERVAL = timedelta(hours=24)

URGENT_COLOR = "#ef4444"
WARNING_COLOR = "#f59e0b"
INFO_COLOR = "#3b82f6"


class SweepInProgressError(ConflictError):
    """Raised when a sweep is requested while another one is running."""

    def __init__(self):
        super().__init__(
            code=ErrorCodes.REMINDER_SWEEP_RUNNING,
            message="A goal reminder sweep is already running",
        )


# ---------------------------------------------------------------------------
# Records exchanged with the store
# ---------------------------------------------------------------------------

@dataclass
class ReminderRecipient:
    user_id: uuid.UUID
    username: str
    email: str
    reminder_days_before: Optional[int] = None


@dataclass
class ReminderGoal:
    goal_id: uuid.UUID
    title: str
    target_date: date
    progress: int = 0
    description: Optional[str] = None
    status: GoalStatus = GoalStatus.PENDING
    reminder_sent: bool = False
    last_reminder_date: Optional[datetime] = None


class ReminderStore(Protocol):
    """Persistence the sweep depends on."""

    async def recipients(self) -> Sequence[ReminderRecipient]:
        """Users with goal reminders and email notifications enabled."""
        ...

    async def due_goals(
        self,
        user_id: uuid.UUID,
        start: date,
        end: date,
        now: datetime,
    ) -> Sequence[ReminderGoal]:
        """Goals of ``user_id`` due for a reminder, target date ascending."""
        ...

    async def mark_reminded(self, goal_ids: Sequence[uuid.UUID], now: datetime) -> None:
        ...


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def reminder_window(now: datetime, days_before: Optional[int]) -> tuple[date, date]:
    """Inclusive date window ``[today, today + days_before]``."""
    today = now.date()
    return today, today + timedelta(days=days_before or DEFAULT_REMINDER_DAYS)


def days_left(target_date: date, now: datetime) -> int:
    return (target_date - now.date()).days


def urgency_color(remaining: int) -> str:
    if remaining <= 1:
        return URGENT_COLOR
    if remaining <= 3:
        return WARNING_COLOR
    return INFO_COLOR


def is_due_for_reminder(goal: ReminderGoal, start: date, end: date, now: datetime) -> bool:
    """
    Whether ``goal`` belongs in a reminder sent at ``now``.

    The goal must be open, due inside the window and either never
    reminded or last reminded at least 24 hours ago.
    """
    if goal.status == GoalStatus.COMPLETED or goal.target_date is None:
        return False
    if not start <= goal.target_date <= end:
        return False
    if not goal.reminder_sent:
        return True
    return goal.last_reminder_date is not None and goal.last_reminder_date <= now - REMINDER_INTERVAL


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def reminder_subject(count: int) -> str:
    return f"⏰ Reminder: {count} Goal{'' if count == 1 else 's'} Due Soon"


def _goal_card(goal: ReminderGoal, now: datetime) -> str:
    remaining = days_left(goal.target_date, now)
    color = urgency_color(remaining)
    deadline = f"{goal.target_date:%A, %B} {goal.target_date.day}, {goal.target_date.year}"
    description = ""
    if goal.description:
        description = (
            '<p style="margin: 0; color: #4b5563; font-size: 13px; font-style: italic;">'
            f"{escape(goal.description)}</p>"
        )
    return f"""
      <div style="background: #f9fafb; border-left: 4px solid {color}; padding: 16px; margin-bottom: 12px; border-radius: 8px;">
        <h3 style="margin: 0 0 8px 0; color: #111827; font-size: 18px; font-weight: 600;">🎯 {escape(goal.title)}</h3>
        <p style="margin: 0 0 4px 0; color: #6b7280; font-size: 14px;"><strong>Deadline:</strong> {deadline}</p>
        <p style="margin: 0 0 4px 0; color: #6b7280; font-size: 14px;">
          <strong>Days Left:</strong> <span style="color: {color}; font-weight: 600;">{_plural(remaining, "day")}</span>
        </p>
        <p style="margin: 0 0 8px 0; color: #6b7280; font-size: 14px;"><strong>Progress:</strong> {goal.progress}%</p>
        {description}
      </div>"""


def render_reminder_email(
    username: str,
    goals: Sequence[ReminderGoal],
    reminder_days: int,
    now: datetime,
    client_url: Optional[str] = None,
) -> tuple[str, str]:
    """
    Build the reminder email for one user.

    Returns:
        (subject, html)
    """
    client_url = client_url or settings.CLIENT_URL
    count = len(goals)
    several = count != 1
    cards = "".join(_goal_card(goal, now) for goal in goals)

    html = f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="margin: 0; padding: 0; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif; background-color: #f3f4f6;">
  <div style="max-width: 600px; margin: 0 auto; padding: 40px 20px;">
    <div style="background: white; border-radius: 16px; box-shadow: 0 4px 6px rgba(0, 0, 0, 0.1); overflow: hidden;">
      <div style="background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); padding: 40px 30px; text-align: center;">
        <h1 style="margin: 0; color: white; font-size: 28px; font-weight: 700;">⏰ Goal Deadline Reminder</h1>
        <p style="margin: 12px 0 0 0; color: rgba(255, 255, 255, 0.9); font-size: 16px;">
          You have {_plural(count, "goal")} approaching {"their" if several else "its"} deadline
        </p>
      </div>
      <div style="padding: 30px;">
        <p style="margin: 0 0 24px 0; color: #374151; font-size: 16px; line-height: 1.6;">Hi <strong>{escape(username)}</strong>,</p>
        <p style="margin: 0 0 24px 0; color: #374151; font-size: 16px; line-height: 1.6;">
          This is a friendly reminder that the following goal{"s are" if several else " is"} due within the next <strong>{_plural(reminder_days, "day")}</strong>:
        </p>
        {cards}
        <div style="margin-top: 32px; padding: 20px; background: #eff6ff; border-radius: 8px; border: 1px solid #bfdbfe;">
          <p style="margin: 0; color: #1e40af; font-size: 14px; line-height: 1.6;">
            💡 <strong>Pro Tip:</strong> Break down your goals into smaller sub-goals to make them more achievable. You've got this!
          </p>
        </div>
        <div style="text-align: center; margin-top: 32px;">
          <a href="{escape(client_url)}/goals" style="display: inline-block; background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: white; text-decoration: none; padding: 14px 32px; border-radius: 8px; font-weight: 600; font-size: 16px;">View Your Goals</a>
        </div>
      </div>
      <div style="background: #f9fafb; padding: 24px 30px; border-top: 1px solid #e5e7eb;">
        <p style="margin: 0 0 8px 0; color: #6b7280; font-size: 13px; text-align: center;">You're receiving this because you have goal reminders enabled.</p>
        <p style="margin: 0; color: #9ca3af; font-size: 12px; text-align: center;">
          <a href="{escape(client_url)}/settings" style="color: #667eea; text-decoration: none;">Manage notification preferences</a>
        </p>
      </div>
    </div>
    <p style="margin: 24px 0 0 0; color: #9ca3af; font-size: 12px; text-align: center;">© {now.year} Progress. Keep pushing forward! 💪</p>
  </div>
</body>
</html>"""

    return reminder_subject(count), html


# ---------------------------------------------------------------------------
# SQL store
# ---------------------------------------------------------------------------

def _pref_enabled(key: str):
    """SQL test for a boolean preference, falling back to its default when unset."""
    return func.coalesce(
        User.preferences[key].as_boolean(),
        literal(bool(DEFAULT_PREFERENCES[key]), Boolean),
    ).is_(True)


class SqlReminderStore:
    """
    ReminderStore backed by the application database.

    Every call uses its own session, so marks for one user are committed
    before the next user is processed.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def recipients(self) -> list[ReminderRecipient]:
        """Users opted in to goal reminders and email; unset keys take the defaults."""
        stmt = (
            select(User)
            .where(
                _pref_enabled("goal_reminders"),
                _pref_enabled("email_notifications"),
            )
            .order_by(User.created_at)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            users = result.scalars().all()

        return [
            ReminderRecipient(
                user_id=user.user_id,
                username=user.username,
                email=user.email,
                reminder_days_before=user.prefs.get("reminder_days_before"),
            )
            for user in users
        ]

    async def due_goals(
        self,
        user_id: uuid.UUID,
        start: date,
        end: date,
        now: datetime,
    ) -> list[ReminderGoal]:
        stmt = (
            select(Goal)
            .where(
                Goal.user_id == user_id,
                Goal.status != GoalStatus.COMPLETED,
                Goal.target_date.is_not(None),
                Goal.target_date >= start,
                Goal.target_date <= end,
                or_(
                    Goal.reminder_sent.is_(False),
                    and_(
                        Goal.last_reminder_date.is_not(None),
                        Goal.last_reminder_date <= now - REMINDER_INTERVAL,
                    ),
                ),
            )
            .order_by(Goal.target_date.asc(), Goal.created_at.asc())
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            goals = result.scalars().all()

        return [
            ReminderGoal(
                goal_id=g.goal_id,
                title=g.title,
                target_date=g.target_date,
                progress=g.progress,
                description=g.description,
                status=g.status,
                reminder_sent=g.reminder_sent,
                last_reminder_date=g.last_reminder_date,
            )
            for g in goals
        ]

    async def mark_reminded(self, goal_ids: Sequence[uuid.UUID], now: datetime) -> None:
        if not goal_ids:
            return
        async with self._session_factory() as session:
            try:
                await session.execute(
                    update(Goal)
                    .where(Goal.goal_id.in_(list(goal_ids)))
                    .values(reminder_sent=True, last_reminder_date=now)
                )
                await session.commit()
            except Exception:
                await session.rollback()
                raise


# ---------------------------------------------------------------------------
# Sweep
# ---------------------------------------------------------------------------

class ReminderSweep:
    """
    Runs the reminder sweep against a store and an email dispatcher.

    Only one run may be in flight at a time; a concurrent request raises
    ``SweepInProgressError``.
    """

    def __init__(
        self,
        store: ReminderStore,
        dispatcher: EmailDispatcher,
        client_url: Optional[str] = None,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.client_url = client_url
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    async def run_sweep(self, now: datetime) -> dict[str, Any]:
        """
        Remind every opted-in user about goals due soon.

        Returns:
            ``{usersChecked, totalReminders, results}`` where ``results``
            lists users that had at least one goal due.
        """
        if self._lock.locked():
            raise SweepInProgressError()

        async with self._lock:
            logger.info("Running goal deadline reminder sweep at %s", now.isoformat())
            recipients = await self.store.recipients()

            total = 0
            results = []
            for recipient in recipients:
                reminder_days = recipient.reminder_days_before or DEFAULT_REMINDER_DAYS
                start, end = reminder_window(now, reminder_days)
                goals = list(await self.store.due_goals(recipient.user_id, start, end, now))
                if not goals:
                    continue

                sent = await self._remind(recipient, goals, reminder_days, now)
                if sent:
                    await self.store.mark_reminded([g.goal_id for g in goals], now)
                    logger.info("Sent reminder to %s for %d goal(s)", recipient.email, len(goals))

                total += len(goals)
                results.append({
                    "user": recipient.username,
                    "email": recipient.email,
                    "goalsFound": len(goals),
                    "emailSent": sent,
                })

            logger.info(
                "Goal reminder sweep finished: %d user(s) checked, %d goal(s) due",
                len(recipients),
                total,
            )
            return {
                "usersChecked": len(recipients),
                "totalReminders": total,
                "results": results,
            }

    async def _remind(
        self,
        recipient: ReminderRecipient,
        goals: list[ReminderGoal],
        reminder_days: int,
        now: datetime,
    ) -> bool:
        subject, html = render_reminder_email(
            recipient.username, goals, reminder_days, now, self.client_url,
        )
        try:
            result = await self.dispatcher.send(recipient.email, subject, html)
        except Exception:
            logger.exception("Reminder email to %s raised", recipient.email)
            return False

        if not result.success:
            logger.error("Reminder email to %s failed: %s", recipient.email, result.error)
        return result.success
