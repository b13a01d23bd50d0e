"""
Gamification Tests
==================

Tests for XP awards and level progression.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.models.achievement import ActivityType
from app.services.gamification import GamificationService, apply_xp, level_threshold


def mock_db() -> MagicMock:
    db = MagicMock()
    db.flush = AsyncMock()
    return db


class TestLevelThresholds:
    def test_thresholds(self):
        assert level_threshold(1) == 100
        assert level_threshold(2) == 282
        assert level_threshold(3) == 519

    def test_below_threshold_keeps_level(self):
        assert apply_xp(0, 1, 99) == (99, 1)

    def test_reaching_threshold_levels_up(self):
        assert apply_xp(0, 1, 100) == (100, 2)

    def test_crossing_two_thresholds_in_one_award(self):
        assert apply_xp(90, 1, 210) == (300, 3)


class TestAwardXP:
    @pytest.mark.asyncio
    async def test_fresh_user_reaches_level_two(self, user_factory):
        db = mock_db()
        user = user_factory()

        award = await GamificationService(db).award_xp(user, 100)

        assert award.to_dict() == {"xp": 100, "level": 2, "leveledUp": True, "xpGained": 100}
        assert (user.xp, user.level) == (100, 2)
        activity = db.add.call_args.args[0]
        assert activity.type == ActivityType.LEVEL_UP
        assert activity.title == "Level 2"
        db.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_level_up_records_no_activity(self, user_factory):
        db = mock_db()
        user = user_factory()

        award = await GamificationService(db).award_xp(user, 10)

        assert award.leveled_up is False
        assert user.xp == 10
        db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_disabled_gamification_is_a_no_op(self, user_factory):
        db = mock_db()
        user = user_factory(preferences={"gamification_enabled": False})

        award = await GamificationService(db).award_xp(user, 500)

        assert award is None
        assert (user.xp, user.level) == (0, 1)
        db.flush.assert_not_awaited()
