"""
Reminder Scheduler
==================

Background asyncio worker that runs the goal reminder sweep once a day at
``GOAL_REMINDER_HOUR:GOAL_REMINDER_MINUTE`` server local time.

Lifecycle:
    1. ``start()`` is called during the FastAPI lifespan startup.
    2. The worker sleeps until the next scheduled time, runs the sweep and
       goes back to sleep.
    3. ``stop()`` is called during shutdown and cancels the pending sleep.

A failed run is logged; the next day's run tries again.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
import logging
from typing import Callable, Optional

from app.services.goal_reminders import ReminderSweep, SweepInProgressError
from app.utils.helpers import local_now

logger = logging.getLogger(__name__)


def seconds_until_next_run(now: datetime, hour: int, minute: int) -> float:
    """Seconds from ``now`` until the next ``hour:minute`` on the wall clock."""
    target = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


class ReminderScheduler:
    """Runs ``ReminderSweep.run_sweep`` daily."""

    def __init__(
        self,
        sweep: ReminderSweep,
        hour: int = 9,
        minute: int = 0,
        clock: Callable[[], datetime] = local_now,
    ) -> None:
        self.sweep = sweep
        self.hour = hour
        self.minute = minute
        self._clock = clock
        self._running = False
        self._task: Optional[asyncio.Task] = None

    # -- lifecycle ---------------------------------------------------------

    async def start(self) -> None:
        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info(
            "Goal reminder scheduler started (runs daily at %02d:%02d)",
            self.hour,
            self.minute,
        )

    async def stop(self) -> None:
        """Cancel the loop and wait for it to exit."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Goal reminder scheduler stopped")

    # -- main loop ---------------------------------------------------------

    async def _loop(self) -> None:
        while self._running:
            delay = seconds_until_next_run(self._clock(), self.hour, self.minute)
            await asyncio.sleep(delay)
            await self.run_once()

    async def run_once(self) -> Optional[dict]:
        """Run one sweep, logging instead of raising."""
        try:
            return await self.sweep.run_sweep(self._clock())
        except SweepInProgressError:
            logger.warning("Skipping scheduled reminder sweep; a sweep is already running")
        except Exception:
            logger.exception("Error in scheduled goal reminder sweep")
        return None
