"""
Goal Reminder Tests
===================

Tests for the goal deadline reminder sweep: who gets reminded, the
24 hour per-goal guard, failure handling and the email body.
"""

import asyncio
from datetime import date, datetime, timedelta, timezone
import uuid

import pytest

from app.models.goal import GoalStatus
from app.services.email_service import EmailDispatcher, EmailResult
from app.services.goal_reminders import (
    INFO_COLOR,
    URGENT_COLOR,
    WARNING_COLOR,
    ReminderGoal,
    ReminderRecipient,
    ReminderSweep,
    SweepInProgressError,
    is_due_for_reminder,
    reminder_subject,
    reminder_window,
    render_reminder_email,
    urgency_color,
)

TZ = timezone(timedelta(hours=2))
NOW = datetime(2026, 10, 19, 9, 0, tzinfo=TZ)
TODAY = NOW.date()


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeStore:
    """In-memory store that applies the same due rule as the SQL store."""

    def __init__(self):
        self.users = []
        self.goals = {}
        self.marked = []
        self.fail_due_goals = False

    def add_user(self, username, email_notifications=True, goal_reminders=True, days_before=None):
        user = {
            "recipient": ReminderRecipient(
                user_id=uuid.uuid4(),
                username=username,
                email=f"{username}@example.com",
                reminder_days_before=days_before,
            ),
            "email_notifications": email_notifications,
            "goal_reminders": goal_reminders,
        }
        self.users.append(user)
        self.goals[user["recipient"].user_id] = []
        return user["recipient"]

    def add_goal(self, recipient, title, days_from_today, **fields):
        goal = ReminderGoal(
            goal_id=uuid.uuid4(),
            title=title,
            target_date=TODAY + timedelta(days=days_from_today),
            **fields,
        )
        self.goals[recipient.user_id].append(goal)
        return goal

    async def recipients(self):
        return [
            u["recipient"] for u in self.users
            if u["email_notifications"] and u["goal_reminders"]
        ]

    async def due_goals(self, user_id, start, end, now):
        if self.fail_due_goals:
            raise RuntimeError("database unavailable")
        due = [g for g in self.goals[user_id] if is_due_for_reminder(g, start, end, now)]
        return sorted(due, key=lambda g: g.target_date)

    async def mark_reminded(self, goal_ids, now):
        self.marked.append(list(goal_ids))
        for goals in self.goals.values():
            for goal in goals:
                if goal.goal_id in goal_ids:
                    goal.reminder_sent = True
                    goal.last_reminder_date = now


class FakeDispatcher(EmailDispatcher):
    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    async def send(self, to, subject, html):
        self.sent.append({"to": to, "subject": subject, "html": html})
        if to in self.fail_for:
            return EmailResult(success=False, error="mailbox unavailable")
        return EmailResult(success=True, message_id=f"<{len(self.sent)}@test>")


def make_sweep(store, dispatcher=None):
    return ReminderSweep(store, dispatcher or FakeDispatcher(), client_url="https://progress.test")


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

class TestReminderWindow:
    def test_default_is_three_days(self):
        assert reminder_window(NOW, None) == (TODAY, date(2026, 10, 22))

    def test_custom_days(self):
        assert reminder_window(NOW, 7) == (TODAY, date(2026, 10, 26))


class TestIsDueForReminder:
    start, end = TODAY, TODAY + timedelta(days=3)

    def goal(self, days=1, **fields):
        return ReminderGoal(uuid.uuid4(), "Ship it", TODAY + timedelta(days=days), **fields)

    def test_never_reminded_goal_in_window(self):
        assert is_due_for_reminder(self.goal(), self.start, self.end, NOW)

    def test_window_is_inclusive(self):
        assert is_due_for_reminder(self.goal(days=0), self.start, self.end, NOW)
        assert is_due_for_reminder(self.goal(days=3), self.start, self.end, NOW)
        assert not is_due_for_reminder(self.goal(days=4), self.start, self.end, NOW)
        assert not is_due_for_reminder(self.goal(days=-1), self.start, self.end, NOW)

    def test_completed_goal_is_skipped(self):
        goal = self.goal(status=GoalStatus.COMPLETED, progress=100)

        assert not is_due_for_reminder(goal, self.start, self.end, NOW)

    def test_reminded_within_24_hours_is_skipped(self):
        goal = self.goal(reminder_sent=True, last_reminder_date=NOW - timedelta(hours=23))

        assert not is_due_for_reminder(goal, self.start, self.end, NOW)

    def test_reminded_exactly_24_hours_ago_is_due(self):
        goal = self.goal(reminder_sent=True, last_reminder_date=NOW - timedelta(hours=24))

        assert is_due_for_reminder(goal, self.start, self.end, NOW)


def test_urgency_color():
    assert urgency_color(0) == URGENT_COLOR
    assert urgency_color(1) == URGENT_COLOR
    assert urgency_color(2) == WARNING_COLOR
    assert urgency_color(3) == WARNING_COLOR
    assert urgency_color(4) == INFO_COLOR


def test_reminder_subject():
    assert reminder_subject(1) == "⏰ Reminder: 1 Goal Due Soon"
    assert reminder_subject(3) == "⏰ Reminder: 3 Goals Due Soon"


class TestRenderReminderEmail:
    def test_lists_each_goal_with_its_urgency(self):
        goals = [
            ReminderGoal(uuid.uuid4(), "Finish thesis", TODAY + timedelta(days=1), progress=80),
            ReminderGoal(uuid.uuid4(), "Book flights", TODAY + timedelta(days=5), description="Lisbon"),
        ]

        subject, html = render_reminder_email("alice", goals, 7, NOW, "https://progress.test")

        assert subject == "⏰ Reminder: 2 Goals Due Soon"
        assert "Finish thesis" in html
        assert "Book flights" in html
        assert "Lisbon" in html
        assert "80%" in html
        assert URGENT_COLOR in html
        assert INFO_COLOR in html
        assert "1 day<" in html
        assert "5 days" in html
        assert "https://progress.test/goals" in html
        assert "https://progress.test/settings" in html
        assert "© 2026 Progress" in html

    def test_user_content_is_escaped(self):
        goal = ReminderGoal(uuid.uuid4(), "<script>alert(1)</script>", TODAY)

        _, html = render_reminder_email("<b>eve</b>", [goal], 3, NOW, "https://progress.test")

        assert "<script>" not in html
        assert "&lt;script&gt;" in html
        assert "&lt;b&gt;eve&lt;/b&gt;" in html


# ---------------------------------------------------------------------------
# Sweep
# ---------------------------------------------------------------------------

class TestReminderSweep:
    @pytest.mark.asyncio
    async def test_reminds_and_marks_goals_due_today(self):
        store = FakeStore()
        alice = store.add_user("alice")
        goal = store.add_goal(alice, "Submit report", 0)
        store.add_goal(alice, "Far away", 10)
        dispatcher = FakeDispatcher()

        summary = await make_sweep(store, dispatcher).run_sweep(NOW)

        assert summary == {
            "usersChecked": 1,
            "totalReminders": 1,
            "results": [{
                "user": "alice",
                "email": "alice@example.com",
                "goalsFound": 1,
                "emailSent": True,
            }],
        }
        assert len(dispatcher.sent) == 1
        assert dispatcher.sent[0]["to"] == "alice@example.com"
        assert "Submit report" in dispatcher.sent[0]["html"]
        assert "Far away" not in dispatcher.sent[0]["html"]
        assert store.marked == [[goal.goal_id]]
        assert goal.reminder_sent is True
        assert goal.last_reminder_date == NOW

    @pytest.mark.asyncio
    async def test_second_run_same_day_sends_nothing(self):
        store = FakeStore()
        alice = store.add_user("alice")
        store.add_goal(alice, "Submit report", 1)
        dispatcher = FakeDispatcher()
        sweep = make_sweep(store, dispatcher)

        await sweep.run_sweep(NOW)
        summary = await sweep.run_sweep(NOW + timedelta(hours=6))

        assert summary["totalReminders"] == 0
        assert summary["results"] == []
        assert len(dispatcher.sent) == 1

    @pytest.mark.asyncio
    async def test_next_day_reminds_again(self):
        store = FakeStore()
        alice = store.add_user("alice")
        store.add_goal(alice, "Submit report", 2)
        dispatcher = FakeDispatcher()
        sweep = make_sweep(store, dispatcher)

        await sweep.run_sweep(NOW)
        summary = await sweep.run_sweep(NOW + timedelta(days=1))

        assert summary["totalReminders"] == 1
        assert len(dispatcher.sent) == 2

    @pytest.mark.asyncio
    async def test_opted_out_users_are_not_checked(self):
        store = FakeStore()
        muted = store.add_user("muted", email_notifications=False)
        quiet = store.add_user("quiet", goal_reminders=False)
        store.add_goal(muted, "Hidden", 1)
        store.add_goal(quiet, "Also hidden", 1)
        dispatcher = FakeDispatcher()

        summary = await make_sweep(store, dispatcher).run_sweep(NOW)

        assert summary == {"usersChecked": 0, "totalReminders": 0, "results": []}
        assert dispatcher.sent == []

    @pytest.mark.asyncio
    async def test_users_without_due_goals_are_left_out_of_results(self):
        store = FakeStore()
        store.add_user("idle")
        busy = store.add_user("busy", days_before=7)
        store.add_goal(busy, "Later", 6)
        store.add_goal(busy, "Sooner", 2)
        dispatcher = FakeDispatcher()

        summary = await make_sweep(store, dispatcher).run_sweep(NOW)

        assert summary["usersChecked"] == 2
        assert summary["totalReminders"] == 2
        assert [r["user"] for r in summary["results"]] == ["busy"]
        html = dispatcher.sent[0]["html"]
        assert html.index("Sooner") < html.index("Later")
        assert "7 days" in html

    @pytest.mark.asyncio
    async def test_failed_email_continues_and_leaves_goals_unmarked(self):
        store = FakeStore()
        bounce = store.add_user("bounce")
        ok = store.add_user("ok")
        bounced_goal = store.add_goal(bounce, "Bounced", 1)
        store.add_goal(ok, "Delivered", 1)
        dispatcher = FakeDispatcher(fail_for={"bounce@example.com"})
        sweep = make_sweep(store, dispatcher)

        summary = await sweep.run_sweep(NOW)

        assert [(r["user"], r["emailSent"]) for r in summary["results"]] == [
            ("bounce", False),
            ("ok", True),
        ]
        assert summary["totalReminders"] == 2
        assert bounced_goal.reminder_sent is False

        # Still due on the next run
        again = await sweep.run_sweep(NOW + timedelta(hours=1))
        assert [r["user"] for r in again["results"]] == ["bounce"]

    @pytest.mark.asyncio
    async def test_dispatcher_exception_counts_as_not_sent(self):
        class ExplodingDispatcher(EmailDispatcher):
            async def send(self, to, subject, html):
                raise ConnectionError("smtp down")

        store = FakeStore()
        alice = store.add_user("alice")
        goal = store.add_goal(alice, "Submit report", 1)

        summary = await make_sweep(store, ExplodingDispatcher()).run_sweep(NOW)

        assert summary["results"][0]["emailSent"] is False
        assert goal.reminder_sent is False

    @pytest.mark.asyncio
    async def test_store_failure_aborts_the_sweep(self):
        store = FakeStore()
        store.add_user("alice")
        store.fail_due_goals = True
        sweep = make_sweep(store)

        with pytest.raises(RuntimeError):
            await sweep.run_sweep(NOW)

        assert sweep.is_running is False

    @pytest.mark.asyncio
    async def test_concurrent_sweep_is_rejected(self):
        release = asyncio.Event()

        class SlowStore(FakeStore):
            async def recipients(self):
                await release.wait()
                return []

        sweep = make_sweep(SlowStore())
        first = asyncio.create_task(sweep.run_sweep(NOW))
        await asyncio.sleep(0)

        assert sweep.is_running is True
        with pytest.raises(SweepInProgressError):
            await sweep.run_sweep(NOW)

        release.set()
        summary = await first
        assert summary["usersChecked"] == 0
        assert sweep.is_running is False
