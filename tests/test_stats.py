"""
Stats Tests
===========

Tests for the dashboard habit totals and weekly completion series.
"""

from datetime import datetime, timedelta, timezone

from app.services.stats_service import habit_stats, weekly_series

TZ = timezone(timedelta(hours=2))
# A Monday
NOW = datetime(2026, 10, 19, 18, 0, tzinfo=TZ)


def days_ago(n: int) -> str:
    return (NOW - timedelta(days=n)).isoformat()


class TestHabitStats:
    def test_totals(self):
        stats = habit_stats([3, 0, 7], [[days_ago(0)] * 3, [], [days_ago(i) for i in range(7)]])

        assert stats == {
            "total": 3,
            "activeStreaks": 2,
            "longestStreak": 7,
            # 10 check-ins over 21 habit-days
            "completionRate": 48,
        }

    def test_no_habits(self):
        assert habit_stats([], []) == {
            "total": 0,
            "activeStreaks": 0,
            "longestStreak": 0,
            "completionRate": 0,
        }


class TestWeeklySeries:
    def test_seven_days_oldest_first(self):
        series = weekly_series([[days_ago(0)], [days_ago(0), days_ago(6)]], NOW)

        assert [d["name"] for d in series] == ["Tue", "Wed", "Thu", "Fri", "Sat", "Sun", "Mon"]
        assert series[-1]["completion"] == 100
        assert series[0]["completion"] == 50
        assert all(d["completion"] == 0 for d in series[1:-1])

    def test_halves_round_up(self):
        # 1 of 8 habits is 12.5%
        series = weekly_series([[days_ago(0)]] + [[] for _ in range(7)], NOW)

        assert series[-1]["completion"] == 13

    def test_no_habits_is_all_zero(self):
        series = weekly_series([], NOW)

        assert len(series) == 7
        assert {d["completion"] for d in series} == {0}
