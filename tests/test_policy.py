"""Tests for the energy cost/reward tables, limits and recommendations."""

import pytest
from dataclasses import dataclass
from datetime import timedelta

from timebank.energy.policy import (
    ALL_CLEAR,
    EnergyConfig,
    column_move_impact,
    config_from_mapping,
    daily_recovery,
    energy_impact_summary,
    energy_limits_check,
    focus_session_reward,
    overdue_bonus,
    round_half_up,
    task_completion_reward,
    task_recommendations,
    task_start_cost,
)
from timebank.tasks import TaskSnapshot

from helpers import START


def _task(priority="medium", due=None, id="T-1"):
    return TaskSnapshot(id, priority, due)


@dataclass
class _Levels:
    current_energy: int
    max_energy: int = 200
    daily_expenditure: int = 0


# ═══════════════════════════════════════════════════════════════════════════
#  COSTS & REWARDS
# ═══════════════════════════════════════════════════════════════════════════


class TestRounding:

    @pytest.mark.parametrize("value, expected", [
        (4.5, 5), (4.49, 4), (1.5, 2), (-4.5, -4), (-4.51, -5), (0.0, 0),
    ])
    def test_half_up(self, value, expected):
        assert round_half_up(value) == expected


class TestTaskStartCost:

    @pytest.mark.parametrize("priority, cost", [
        ("low", 5), ("medium", 15), ("high", 30), ("urgent", 50),
    ])
    def test_default_costs(self, priority, cost):
        assert task_start_cost(_task(priority)) == cost

    def test_unknown_priority_falls_back_to_medium(self):
        assert task_start_cost(_task("whenever")) == 15


class TestCompletionReward:

    @pytest.mark.parametrize("priority, reward", [
        ("low", 8), ("medium", 25), ("high", 50), ("urgent", 75),
    ])
    def test_on_time(self, priority, reward):
        assert task_completion_reward(_task(priority), START) == reward

    def test_future_due_date_adds_nothing(self):
        task = _task(due=START + timedelta(days=3))
        assert task_completion_reward(task, START) == 25

    def test_partial_day_counts_as_a_full_day(self):
        task = _task(due=START - timedelta(days=2, hours=1))
        assert overdue_bonus(task.due_date, START) == 15
        assert task_completion_reward(task, START) == 40

    def test_overdue_bonus_is_capped(self):
        task = _task("high", due=START - timedelta(days=10))
        assert task_completion_reward(task, START) == 75

    def test_due_exactly_now_is_not_overdue(self):
        assert overdue_bonus(START, START) == 0
        assert overdue_bonus(None, START) == 0


class TestColumnMoves:

    @pytest.mark.parametrize("priority, src, dst, delta", [
        ("medium", "backlog", "todo", 3),
        ("medium", "todo", "doing", 12),
        ("medium", "backlog", "doing", 15),
        ("medium", "doing", "backlog", -15),
        ("medium", "doing", "todo", 5),
        ("low", "doing", "todo", 2),
        ("urgent", "doing", "todo", 15),
        ("high", "todo", "doing", 24),
        ("medium", "backlog", "backlog", 0),
    ])
    def test_move_deltas(self, priority, src, dst, delta):
        assert column_move_impact(_task(priority), src, dst, START) == delta

    @pytest.mark.parametrize("src", ["backlog", "todo", "doing"])
    def test_move_to_done_is_completion(self, src):
        assert column_move_impact(_task("high"), src, "done", START) == 50

    def test_unknown_column_has_zero_modifier(self):
        assert column_move_impact(_task(), "review", "doing", START) == 15


class TestTimeRewards:

    @pytest.mark.parametrize("minutes, reward", [
        (0, 0), (24, 0), (24.9, 0), (25, 10), (49, 10), (50, 20), (75, 30),
    ])
    def test_focus_reward_counts_whole_units(self, minutes, reward):
        assert focus_session_reward(minutes) == reward

    @pytest.mark.parametrize("slept, rested, energy", [
        (8, 0, 100), (4, 0, 50), (10, 0, 100), (8, 2, 110), (6, 1, 80), (0, 0, 0),
    ])
    def test_daily_recovery(self, slept, rested, energy):
        assert daily_recovery(slept, rested) == energy


# ═══════════════════════════════════════════════════════════════════════════
#  CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════


class TestConfig:

    def test_overrides_merge_into_tables(self):
        config = EnergyConfig().with_overrides({"priority_costs": {"medium": 20}})
        assert task_start_cost(_task("medium"), config) == 20
        assert task_start_cost(_task("high"), config) == 30

    def test_overrides_do_not_touch_defaults(self):
        EnergyConfig().with_overrides({"priority_costs": {"medium": 99}})
        assert task_start_cost(_task("medium")) == 15

    def test_unknown_tables_are_ignored(self):
        assert EnergyConfig().with_overrides({"mood": {"x": 1}}) == EnergyConfig()

    def test_focus_reward_override(self):
        config = config_from_mapping({"time_factors": {"focus_session_reward": 12}})
        assert focus_session_reward(50, config) == 24

    def test_empty_mapping_is_default(self):
        assert config_from_mapping(None) == EnergyConfig()
        assert config_from_mapping({}) == EnergyConfig()


# ═══════════════════════════════════════════════════════════════════════════
#  LIMITS
# ═══════════════════════════════════════════════════════════════════════════


class TestLimits:

    @pytest.mark.parametrize("current, spent, level", [
        (150, 0, "none"),
        (101, 119, "none"),
        (100, 0, "caution"),
        (150, 120, "caution"),
        (50, 0, "warning"),
        (150, 160, "warning"),
        (20, 0, "critical"),
        (150, 200, "critical"),
        (-30, 0, "critical"),
    ])
    def test_levels(self, current, spent, level):
        assert energy_limits_check(_Levels(current, 200, spent)).warning_level == level

    def test_most_severe_ratio_wins(self):
        result = energy_limits_check(_Levels(100, 200, 200))
        assert result.warning_level == "critical"

    def test_only_critical_is_over_limit(self):
        assert energy_limits_check(_Levels(20)).is_over_limit
        assert not energy_limits_check(_Levels(50)).is_over_limit

    def test_all_clear_message(self):
        assert energy_limits_check(_Levels(150)).recommendation == ALL_CLEAR

    def test_critical_message(self):
        message = energy_limits_check(_Levels(10)).recommendation
        assert message.startswith("Take a break!")

    def test_zero_max_energy_is_critical(self):
        assert energy_limits_check(_Levels(0, 0)).warning_level == "critical"

    def test_custom_daily_cap(self):
        config = EnergyConfig().with_overrides({"daily_limits": {"max_energy_expenditure": 100}})
        assert energy_limits_check(_Levels(150, 200, 100), config).warning_level == "critical"


# ═══════════════════════════════════════════════════════════════════════════
#  RECOMMENDATIONS
# ═══════════════════════════════════════════════════════════════════════════


class TestRecommendations:

    def _board(self):
        return [
            _task("low", id="low"),
            _task("urgent", id="urgent-undated"),
            _task("high", START + timedelta(days=5), id="high"),
            _task("urgent", START + timedelta(hours=6), id="urgent-soon"),
            _task("medium", START + timedelta(days=1), id="medium"),
        ]

    @staticmethod
    def _ids(tasks):
        return [t.id for t in tasks]

    def test_full_energy_recommends_everything_sorted(self):
        result = task_recommendations(self._board(), 180, 200, START)
        assert self._ids(result.recommended) == [
            "urgent-soon", "urgent-undated", "high", "medium", "low",
        ]
        assert result.avoid == []

    def test_seventy_percent_exactly_drops_urgent(self):
        result = task_recommendations(self._board(), 140, 200, START)
        assert self._ids(result.recommended) == ["high", "medium", "low"]
        assert sorted(self._ids(result.avoid)) == ["urgent-soon", "urgent-undated"]

    def test_forty_percent_keeps_low_and_medium(self):
        result = task_recommendations(self._board(), 80, 200, START)
        assert self._ids(result.recommended) == ["medium", "low"]

    def test_nearly_empty_only_urgent_due_within_a_day(self):
        result = task_recommendations(self._board(), 40, 200, START)
        assert self._ids(result.recommended) == ["urgent-soon"]
        assert len(result.avoid) == 4

    def test_energy_budget_keeps_reserve(self):
        assert task_recommendations([], 200, 200, START).energy_budget == 140

    def test_every_task_lands_somewhere(self):
        board = self._board()
        result = task_recommendations(board, 90, 200, START)
        assert len(result.recommended) + len(result.avoid) == len(board)


# ═══════════════════════════════════════════════════════════════════════════
#  PREVIEWS
# ═══════════════════════════════════════════════════════════════════════════


class TestImpactSummary:

    def test_start_is_negative(self):
        impact = energy_impact_summary(_task("high"), "start")
        assert impact.energy_delta == -30
        assert impact.description == "Starting high priority task"

    def test_complete(self):
        impact = energy_impact_summary(_task(), "complete", now=START)
        assert impact.energy_delta == 25

    def test_move(self):
        impact = energy_impact_summary(_task(), "move", "todo", "doing", START)
        assert impact.energy_delta == 12
        assert impact.description == "Moved task from todo to doing"

    def test_move_without_columns_is_zero(self):
        assert energy_impact_summary(_task(), "move").energy_delta == 0

    def test_unknown_operation(self):
        with pytest.raises(ValueError):
            energy_impact_summary(_task(), "juggle")
