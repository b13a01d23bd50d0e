"""
Habit Check-in Tests
====================

Tests for the daily check-in toggle, streak counter, and streak badges.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch
import uuid

import pytest

from app.models.achievement import Achievement, AchievementType
from app.models.habit import Habit
from app.services.achievement_service import STREAK_BADGES, AchievementService
from app.services.habit_service import HabitService, is_completed_on, toggle_completion

TZ = timezone(timedelta(hours=2))


def at(day: int, hour: int = 12) -> datetime:
    return datetime(2026, 10, day, hour, 0, tzinfo=TZ)


class TestToggleCompletion:
    def test_first_check_in_records_today(self):
        dates, streak, checked_in = toggle_completion([], 0, at(19))

        assert checked_in is True
        assert streak == 1
        assert len(dates) == 1
        assert is_completed_on(dates, at(19, 23))

    def test_second_toggle_same_day_undoes(self):
        dates, streak, _ = toggle_completion([], 4, at(19, 8))
        dates, streak, checked_in = toggle_completion(dates, streak, at(19, 22))

        assert checked_in is False
        assert dates == []
        assert streak == 4

    def test_odd_toggles_leave_day_completed(self):
        dates, streak = [], 0
        for _ in range(3):
            dates, streak, _ = toggle_completion(dates, streak, at(19))

        assert is_completed_on(dates, at(19))
        assert streak == 1

    def test_undo_never_drops_streak_below_zero(self):
        today = at(19).isoformat()
        dates, streak, checked_in = toggle_completion([today], 0, at(19, 15))

        assert checked_in is False
        assert streak == 0

    def test_yesterday_is_kept_and_streak_grows(self):
        yesterday = at(18).isoformat()
        dates, streak, checked_in = toggle_completion([yesterday], 1, at(19))

        assert checked_in is True
        assert streak == 2
        assert dates[0] == yesterday
        assert len(dates) == 2

    def test_undo_removes_only_todays_entry(self):
        yesterday = at(18).isoformat()
        today = at(19, 7).isoformat()
        dates, _, _ = toggle_completion([yesterday, today], 2, at(19, 20))

        assert dates == [yesterday]


class TestIsCompletedOn:
    def test_day_boundaries_use_local_midnight(self):
        # 23:30 UTC on the 18th is 01:30 on the 19th at UTC+2
        stamp = "2026-10-18T23:30:00Z"

        assert is_completed_on([stamp], at(19))
        assert not is_completed_on([stamp], at(18))

    def test_naive_timestamps_take_the_local_zone(self):
        assert is_completed_on(["2026-10-19T00:10:00"], at(19))

    def test_empty_history(self):
        assert not is_completed_on([], at(19))


# ---------------------------------------------------------------------------
# Check-in rewards
# ---------------------------------------------------------------------------


def mock_db() -> MagicMock:
    db = MagicMock()
    db.flush = AsyncMock()
    return db


def make_habit(user_id: uuid.UUID, streak: int) -> Habit:
    return Habit(
        habit_id=uuid.uuid4(),
        user_id=user_id,
        title="Read",
        icon="📚",
        streak=streak,
        completed_dates=[at(18).isoformat()],
    )


def unlocked(db: MagicMock) -> list[Achievement]:
    return [c.args[0] for c in db.add.call_args_list if isinstance(c.args[0], Achievement)]


@pytest.fixture
def quiet_side_effects():
    with patch(
        "app.services.habit_service.CacheInvalidator.on_habit_change", new=AsyncMock(),
    ), patch.object(
        AchievementService, "check_perfect_week", new=AsyncMock(return_value=None),
    ):
        yield


class TestCheckStreak:
    @pytest.mark.asyncio
    async def test_seven_unlocks_week_badge(self):
        db = mock_db()
        user_id = uuid.uuid4()

        achievement = await AchievementService(db).check_streak(user_id, 7)

        assert achievement.type == AchievementType.WEEK_STREAK
        assert achievement.title == STREAK_BADGES[7].title
        assert unlocked(db) == [achievement]

    @pytest.mark.asyncio
    async def test_thirty_unlocks_month_badge(self):
        achievement = await AchievementService(mock_db()).check_streak(uuid.uuid4(), 30)

        assert achievement.type == AchievementType.MONTH_STREAK
        assert achievement.title == "Monthly Master"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("streak", [1, 6, 8, 29, 31])
    async def test_other_streaks_unlock_nothing(self, streak):
        db = mock_db()

        assert await AchievementService(db).check_streak(uuid.uuid4(), streak) is None
        db.add.assert_not_called()


@pytest.mark.usefixtures("quiet_side_effects")
class TestCheckInRewards:
    @pytest.mark.asyncio
    async def test_six_to_seven_unlocks_week_badge_with_bonus(self, user_factory):
        db = mock_db()
        user = user_factory()
        habit = make_habit(user.user_id, streak=6)

        result = await HabitService(db).check(user, habit, at(19))

        assert result.checked_in is True
        assert habit.streak == 7
        assert result.xp["xpGained"] == 10 + 50
        assert user.xp == 60
        assert [a["type"] for a in result.achievements] == [AchievementType.WEEK_STREAK.value]
        assert len(unlocked(db)) == 1

    @pytest.mark.asyncio
    async def test_twenty_nine_to_thirty_unlocks_month_badge(self, user_factory):
        db = mock_db()
        user = user_factory()
        habit = make_habit(user.user_id, streak=29)

        result = await HabitService(db).check(user, habit, at(19))

        assert habit.streak == 30
        assert result.xp["xpGained"] == 10 + 200
        assert [a["title"] for a in result.achievements] == ["Monthly Master"]

    @pytest.mark.asyncio
    async def test_seven_to_eight_is_plain_check_in(self, user_factory):
        db = mock_db()
        user = user_factory()
        habit = make_habit(user.user_id, streak=7)

        result = await HabitService(db).check(user, habit, at(19))

        assert habit.streak == 8
        assert result.xp["xpGained"] == 10
        assert result.achievements == []
        assert unlocked(db) == []

    @pytest.mark.asyncio
    async def test_recheck_at_seven_unlocks_again(self, user_factory):
        db = mock_db()
        user = user_factory()
        habit = make_habit(user.user_id, streak=6)
        service = HabitService(db)

        await service.check(user, habit, at(19, 8))
        undone = await service.check(user, habit, at(19, 9))
        redone = await service.check(user, habit, at(19, 10))

        assert undone.checked_in is False
        assert undone.achievements == []
        assert redone.checked_in is True
        assert habit.streak == 7
        assert len(redone.achievements) == 1
        assert [a.type for a in unlocked(db)] == [AchievementType.WEEK_STREAK] * 2
        # Unchecking never takes XP back
        assert user.xp == 120

    @pytest.mark.asyncio
    async def test_uncheck_awards_nothing(self, user_factory):
        db = mock_db()
        user = user_factory()
        habit = make_habit(user.user_id, streak=3)
        habit.completed_dates = [*habit.completed_dates, at(19, 7).isoformat()]

        result = await HabitService(db).check(user, habit, at(19))

        assert result.checked_in is False
        assert habit.streak == 2
        assert result.xp is None
        db.add.assert_not_called()
