"""
Goal Progress Tests
===================

Tests for sub-goal driven progress, status toggling and template
milestones.
"""

from datetime import date

import pytest

from app.models.goal import GoalStatus
from app.services.goal_service import derive_progress, milestones_from_template, toggled_status
from app.utils.helpers import round_half_up


def subs(done: int, total: int) -> list[dict]:
    return [{"title": f"Step {i}", "completed": i < done} for i in range(total)]


class TestDeriveProgress:
    def test_one_of_eight_rounds_half_up(self):
        progress, status = derive_progress(subs(1, 8))

        assert progress == 13
        assert status == GoalStatus.IN_PROGRESS

    def test_two_of_three(self):
        assert derive_progress(subs(2, 3)) == (67, GoalStatus.IN_PROGRESS)

    def test_none_completed_is_in_progress(self):
        assert derive_progress(subs(0, 4)) == (0, GoalStatus.IN_PROGRESS)

    def test_all_completed(self):
        assert derive_progress(subs(5, 5)) == (100, GoalStatus.COMPLETED)

    def test_rounding_up_to_100_counts_as_completed(self):
        # 199/200 is 99.5%
        assert derive_progress(subs(199, 200)) == (100, GoalStatus.COMPLETED)

    def test_no_sub_goals_raises(self):
        with pytest.raises(ValueError):
            derive_progress([])


def test_round_half_up():
    assert round_half_up(12.5) == 13
    assert round_half_up(2.5) == 3
    assert round_half_up(66.66) == 67
    assert round_half_up(0.49) == 0


class TestToggledStatus:
    def test_completed_reopens_as_pending(self):
        assert toggled_status(GoalStatus.COMPLETED) == (GoalStatus.PENDING, 0)

    @pytest.mark.parametrize("status", [GoalStatus.PENDING, GoalStatus.IN_PROGRESS])
    def test_anything_else_completes(self, status):
        assert toggled_status(status) == (GoalStatus.COMPLETED, 100)


def test_milestones_from_template_dates_relative_to_today():
    today = date(2026, 10, 19)
    milestones = milestones_from_template(
        [{"title": "Week one", "relative_days": 7}, {"title": "Start"}],
        today,
    )

    assert milestones == [
        {"title": "Week one", "date": "2026-10-26", "completed": False},
        {"title": "Start", "date": "2026-10-19", "completed": False},
    ]
