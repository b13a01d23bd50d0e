"""
Reminder Scheduler Tests
========================
"""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.services.goal_reminders import SweepInProgressError
from app.services.reminder_scheduler import ReminderScheduler, seconds_until_next_run

TZ = timezone(timedelta(hours=2))


class TestSecondsUntilNextRun:
    def test_later_today(self):
        now = datetime(2026, 10, 19, 8, 30, tzinfo=TZ)

        assert seconds_until_next_run(now, 9, 0) == 30 * 60

    def test_already_passed_runs_tomorrow(self):
        now = datetime(2026, 10, 19, 9, 0, 1, tzinfo=TZ)

        assert seconds_until_next_run(now, 9, 0) == 24 * 3600 - 1

    def test_exactly_on_time_waits_a_full_day(self):
        now = datetime(2026, 10, 19, 9, 0, tzinfo=TZ)

        assert seconds_until_next_run(now, 9, 0) == 24 * 3600


def make_scheduler(side_effect=None, return_value=None):
    sweep = MagicMock()
    sweep.run_sweep = AsyncMock(side_effect=side_effect, return_value=return_value)
    now = datetime(2026, 10, 19, 9, 0, tzinfo=TZ)
    return ReminderScheduler(sweep, hour=9, minute=0, clock=lambda: now), sweep, now


class TestRunOnce:
    @pytest.mark.asyncio
    async def test_returns_summary(self):
        summary = {"usersChecked": 2, "totalReminders": 1, "results": []}
        scheduler, sweep, now = make_scheduler(return_value=summary)

        assert await scheduler.run_once() == summary
        sweep.run_sweep.assert_awaited_once_with(now)

    @pytest.mark.asyncio
    async def test_busy_sweep_is_skipped(self):
        scheduler, _, _ = make_scheduler(side_effect=SweepInProgressError())

        assert await scheduler.run_once() is None

    @pytest.mark.asyncio
    async def test_errors_are_logged_not_raised(self, caplog):
        scheduler, _, _ = make_scheduler(side_effect=RuntimeError("db down"))

        assert await scheduler.run_once() is None
        assert "Error in scheduled goal reminder sweep" in caplog.text


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_stop_cancels_pending_sleep(self):
        scheduler, sweep, _ = make_scheduler()

        await scheduler.start()
        await asyncio.sleep(0)
        await scheduler.stop()

        assert scheduler._task is None
        sweep.run_sweep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        scheduler, _, _ = make_scheduler()

        await scheduler.stop()
