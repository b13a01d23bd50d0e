"""
Achievement Tests
=================

Tests for leaderboard scoring and the perfect week check.
"""

from datetime import datetime, timedelta, timezone

from app.services.achievement_service import is_perfect_week, leaderboard_score

TZ = timezone(timedelta(hours=2))
NOW = datetime(2026, 10, 19, 20, 0, tzinfo=TZ)


def week(skip: int | None = None) -> list[str]:
    return [(NOW - timedelta(days=i)).isoformat() for i in range(7) if i != skip]


def test_leaderboard_score():
    assert leaderboard_score(total_streak=12, completed_goals=2, achievements=3) == 120 + 100 + 75
    assert leaderboard_score(0, 0, 0) == 0


class TestPerfectWeek:
    def test_every_habit_every_day(self):
        assert is_perfect_week([week(), week()], NOW)

    def test_one_missed_day_breaks_it(self):
        assert not is_perfect_week([week(), week(skip=3)], NOW)

    def test_today_must_be_checked_in(self):
        assert not is_perfect_week([week(skip=0)], NOW)

    def test_no_habits_is_never_perfect(self):
        assert not is_perfect_week([], NOW)

    def test_check_ins_older_than_a_week_do_not_count(self):
        old = [(NOW - timedelta(days=i)).isoformat() for i in range(1, 8)]

        assert not is_perfect_week([old], NOW)
