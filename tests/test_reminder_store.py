"""
Reminder Store Tests
====================

Runs the SQL reminder store against a real async SQLite database.
"""

from datetime import date, datetime, timedelta, timezone
import uuid

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.db.base import Base
from app.models import Goal, GoalStatus, User
from app.services.goal_reminders import SqlReminderStore, reminder_window

NOW = datetime(2026, 10, 19, 6, 0, tzinfo=timezone.utc)
TODAY = NOW.date()


def on_day(offset: int) -> date:
    return TODAY + timedelta(days=offset)


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'reminders.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


async def seed(factory, *rows) -> None:
    async with factory() as session:
        session.add_all(rows)
        await session.commit()


def make_user(username: str, preferences: dict, minutes: int = 0) -> User:
    return User(
        user_id=uuid.uuid4(),
        username=username,
        email=f"{username}@example.com",
        password_hash="x",
        preferences=preferences,
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=minutes),
    )


def make_goal(user: User, title: str, target: date, **fields) -> Goal:
    return Goal(goal_id=uuid.uuid4(), user_id=user.user_id, title=title, target_date=target, **fields)


# ---------------------------------------------------------------------------
# Recipients
# ---------------------------------------------------------------------------


class TestRecipients:
    @pytest.mark.asyncio
    async def test_preference_filter(self, session_factory):
        await seed(
            session_factory,
            make_user("opted_in", {"goal_reminders": True, "email_notifications": True,
                                   "reminder_days_before": 5}, minutes=0),
            make_user("defaults", {"dark_mode": True}, minutes=1),
            make_user("no_email", {"goal_reminders": True, "email_notifications": False}, minutes=2),
            make_user("no_goals", {"goal_reminders": False}, minutes=3),
        )

        recipients = await SqlReminderStore(session_factory).recipients()

        assert [r.username for r in recipients] == ["opted_in", "defaults"]
        assert recipients[0].reminder_days_before == 5
        assert recipients[0].email == "opted_in@example.com"
        # Unset keys fall back to the default of 3 days
        assert recipients[1].reminder_days_before == 3

    @pytest.mark.asyncio
    async def test_no_users(self, session_factory):
        assert await SqlReminderStore(session_factory).recipients() == []


# ---------------------------------------------------------------------------
# Due goals and batch marking
# ---------------------------------------------------------------------------


class TestDueGoals:
    @pytest_asyncio.fixture
    async def seeded(self, session_factory):
        owner = make_user("owner", {})
        other = make_user("other", {}, minutes=1)
        await seed(
            session_factory,
            owner,
            other,
            make_goal(owner, "Due today", on_day(0)),
            make_goal(owner, "Due in two days", on_day(2)),
            make_goal(owner, "Due in three days", on_day(3)),
            make_goal(owner, "Due in four days", on_day(4)),
            make_goal(owner, "Finished", on_day(1), status=GoalStatus.COMPLETED),
            make_goal(owner, "Reminded 23h ago", on_day(1), reminder_sent=True,
                      last_reminder_date=NOW - timedelta(hours=23)),
            make_goal(owner, "Reminded 24h ago", on_day(1), reminder_sent=True,
                      last_reminder_date=NOW - timedelta(hours=24)),
            make_goal(owner, "Sent without a date", on_day(1), reminder_sent=True),
            make_goal(owner, "Undated", None),
            make_goal(other, "Someone else's", on_day(0)),
        )
        return owner

    @pytest.mark.asyncio
    async def test_window_and_guard(self, session_factory, seeded):
        start, end = reminder_window(NOW, 3)

        goals = await SqlReminderStore(session_factory).due_goals(seeded.user_id, start, end, NOW)

        assert [g.title for g in goals] == [
            "Due today",
            "Reminded 24h ago",
            "Due in two days",
            "Due in three days",
        ]
        assert [g.target_date for g in goals] == [on_day(0), on_day(1), on_day(2), on_day(3)]
        assert all(g.status == GoalStatus.PENDING for g in goals)

    @pytest.mark.asyncio
    async def test_mark_reminded_updates_the_batch(self, session_factory, seeded):
        store = SqlReminderStore(session_factory)
        start, end = reminder_window(NOW, 3)
        due = await store.due_goals(seeded.user_id, start, end, NOW)

        await store.mark_reminded([g.goal_id for g in due], NOW)

        async with session_factory() as session:
            for goal in due:
                row = await session.get(Goal, goal.goal_id)
                assert row.reminder_sent is True
                assert row.last_reminder_date.replace(tzinfo=timezone.utc) == NOW

        assert await store.due_goals(seeded.user_id, start, end, NOW) == []

        # A day later the whole batch is due again, and so is the 23h goal
        later = NOW + timedelta(hours=24)
        again = await store.due_goals(seeded.user_id, start, end, later)
        assert {g.title for g in again} == {g.title for g in due} | {"Reminded 23h ago"}

    @pytest.mark.asyncio
    async def test_mark_nothing_is_a_no_op(self, session_factory, seeded):
        store = SqlReminderStore(session_factory)
        start, end = reminder_window(NOW, 3)

        await store.mark_reminded([], NOW)

        assert len(await store.due_goals(seeded.user_id, start, end, NOW)) == 4
