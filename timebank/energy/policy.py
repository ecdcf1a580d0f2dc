"""Energy policy: how much mental energy things cost and give back.

Energy Costs & Rewards
----------------------
Starting a task costs ``priority_costs[priority] * column_modifiers.doing``::

    low 5   medium 15   high 30   urgent 50

Completing a task gives ``completion_rewards[priority]``::

    low 8   medium 25   high 50   urgent 75

plus an overdue "relief" bonus of 5 per day late, capped at 25.

Focus sessions pay ``focus_session_reward`` (10) per *complete*
25-minute unit.  A 24-minute session earns nothing.

Warning Levels
--------------
``energy_limits_check`` looks at two ratios and picks the more severe:

    critical   ≤10% energy left   or ≥100% of the daily cap spent
    warning    ≤25%               or ≥80%
    caution    ≤50%               or ≥60%
    none       otherwise

Everything here is a pure function of an :class:`EnergyConfig` and its
inputs.  Values round half up, so ``4.5`` becomes ``5``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timedelta
from typing import Any, Mapping, Protocol, Sequence

from ..clock import as_utc, utcnow
from ..tasks import PRIORITY_ORDER, TaskSnapshot


# ── configuration ────────────────────────────────────────────────────────


def _priority_costs() -> dict[str, float]:
    return {"low": 5, "medium": 15, "high": 30, "urgent": 50}


def _completion_rewards() -> dict[str, float]:
    return {"low": 8, "medium": 25, "high": 50, "urgent": 75}


def _column_modifiers() -> dict[str, float]:
    # done is negative: moving work there is a reward, not a cost
    return {"backlog": 0, "todo": 0.2, "doing": 1.0, "done": -0.5}


def _time_factors() -> dict[str, float]:
    return {"focus_session_reward": 10, "overtime_multiplier": 1.5, "break_bonus": 5}


def _daily_limits() -> dict[str, float]:
    return {"max_energy_expenditure": 200, "recovery_rate": 8, "sleep_recovery": 100}


@dataclass(frozen=True)
class EnergyConfig:
    """Tunable tables.  Every value can be overridden by the caller."""

    priority_costs: dict[str, float] = field(default_factory=_priority_costs)
    completion_rewards: dict[str, float] = field(default_factory=_completion_rewards)
    column_modifiers: dict[str, float] = field(default_factory=_column_modifiers)
    time_factors: dict[str, float] = field(default_factory=_time_factors)
    daily_limits: dict[str, float] = field(default_factory=_daily_limits)

    def with_overrides(self, overrides: Mapping[str, Mapping[str, float]]) -> "EnergyConfig":
        """Return a copy with the given table entries replaced.

        Unknown table names are ignored; entries inside a known table are
        merged over the current values.
        """
        changes: dict[str, dict[str, float]] = {}
        for f in fields(self):
            patch = overrides.get(f.name)
            if patch:
                merged = dict(getattr(self, f.name))
                merged.update(patch)
                changes[f.name] = merged
        return replace(self, **changes)


DEFAULT_ENERGY_CONFIG = EnergyConfig()

INTERRUPTION_FACTOR = 0.3        # doing → todo context-switch cost
OVERDUE_BONUS_PER_DAY = 5
OVERDUE_BONUS_CAP = 25
FOCUS_UNIT_MINUTES = 25
FULL_NIGHT_HOURS = 8
ENERGY_BUDGET_SHARE = 0.7        # keep 30% in reserve


# ── helpers ──────────────────────────────────────────────────────────────


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties toward +infinity."""
    return math.floor(value + 0.5)


def _priority_cost(task: TaskSnapshot, config: EnergyConfig) -> float:
    costs = config.priority_costs
    return costs.get(task.priority, costs["medium"])


def _completion_base(task: TaskSnapshot, config: EnergyConfig) -> float:
    rewards = config.completion_rewards
    return rewards.get(task.priority, rewards["medium"])


# ── task costs & rewards ─────────────────────────────────────────────────


def task_start_cost(task: TaskSnapshot, config: EnergyConfig = DEFAULT_ENERGY_CONFIG) -> int:
    """Energy spent by starting work on *task* (a positive number)."""
    return round_half_up(_priority_cost(task, config) * config.column_modifiers["doing"])


def overdue_bonus(due_date: datetime | None, now: datetime) -> int:
    """5 per started day past *due_date*, capped at 25; 0 if not overdue."""
    if due_date is None:
        return 0
    late = as_utc(now) - as_utc(due_date)
    if late <= timedelta(0):
        return 0
    days_overdue = math.ceil(late / timedelta(days=1))
    return min(days_overdue * OVERDUE_BONUS_PER_DAY, OVERDUE_BONUS_CAP)


def task_completion_reward(
    task: TaskSnapshot,
    now: datetime | None = None,
    config: EnergyConfig = DEFAULT_ENERGY_CONFIG,
) -> int:
    """Energy returned when *task* is completed, including overdue relief."""
    if now is None:
        now = utcnow()
    return round_half_up(_completion_base(task, config) + overdue_bonus(task.due_date, now))


def column_move_impact(
    task: TaskSnapshot,
    from_column: str,
    to_column: str,
    now: datetime | None = None,
    config: EnergyConfig = DEFAULT_ENERGY_CONFIG,
) -> int:
    """Energy delta for moving *task* between board columns.

    Moving to ``done`` always yields the completion reward, and
    ``doing → todo`` (an interruption) costs 30% of the priority cost.
    Any other move is the modifier difference times the priority cost.
    """
    if to_column == "done":
        return task_completion_reward(task, now, config)

    base = _priority_cost(task, config)
    if from_column == "doing" and to_column == "todo":
        return round_half_up(base * INTERRUPTION_FACTOR)

    mods = config.column_modifiers
    return round_half_up(base * (mods.get(to_column, 0) - mods.get(from_column, 0)))


# ── time-based rewards ───────────────────────────────────────────────────


def focus_session_reward(
    duration_minutes: float, config: EnergyConfig = DEFAULT_ENERGY_CONFIG,
) -> int:
    """Reward per complete 25-minute unit.  Never pro-rated."""
    if duration_minutes < FOCUS_UNIT_MINUTES:
        return 0
    units = math.floor(duration_minutes / FOCUS_UNIT_MINUTES)
    return round_half_up(units * config.time_factors["focus_session_reward"])


def daily_recovery(
    hours_slept: float,
    hours_rested: float,
    config: EnergyConfig = DEFAULT_ENERGY_CONFIG,
) -> int:
    sleep = min(hours_slept / FULL_NIGHT_HOURS, 1) * config.daily_limits["sleep_recovery"]
    rest = hours_rested * config.time_factors["break_bonus"]
    return round_half_up(sleep + rest)


# ── limits ───────────────────────────────────────────────────────────────


class EnergyLevels(Protocol):
    current_energy: int
    max_energy: int
    daily_expenditure: int


@dataclass(frozen=True)
class EnergyLimits:
    is_over_limit: bool
    warning_level: str       # none | caution | warning | critical
    recommendation: str


# Ordered most severe first: (level, max energy ratio, min daily ratio, message)
WARNING_TIERS: list[tuple[str, float, float, str]] = [
    ("critical", 0.10, 1.00,
     "Take a break! Your mental energy is critically low. "
     "Consider stopping work for today."),
    ("warning", 0.25, 0.80,
     "Your mental energy is running low. Consider taking a break "
     "or working on lower-priority tasks."),
    ("caution", 0.50, 0.60,
     "You're using significant mental energy. Plan some breaks to "
     "maintain productivity."),
]

ALL_CLEAR = "Your mental energy levels look good. Keep up the great work!"


def energy_limits_check(
    state: EnergyLevels, config: EnergyConfig = DEFAULT_ENERGY_CONFIG,
) -> EnergyLimits:
    energy_ratio = state.current_energy / state.max_energy if state.max_energy > 0 else 0.0
    cap = config.daily_limits["max_energy_expenditure"]
    daily_ratio = state.daily_expenditure / cap if cap > 0 else 0.0

    for level, energy_cutoff, daily_cutoff, message in WARNING_TIERS:
        if energy_ratio <= energy_cutoff or daily_ratio >= daily_cutoff:
            return EnergyLimits(level == "critical", level, message)
    return EnergyLimits(False, "none", ALL_CLEAR)


# ── recommendations ──────────────────────────────────────────────────────


@dataclass
class TaskRecommendations:
    recommended: list[TaskSnapshot]
    avoid: list[TaskSnapshot]
    energy_budget: int


def _fits_band(task: TaskSnapshot, energy_ratio: float, now: datetime) -> bool:
    if energy_ratio > 0.7:
        return True
    if energy_ratio > 0.4:
        return task.priority != "urgent"
    if energy_ratio > 0.2:
        return task.priority in ("low", "medium")
    # Nearly empty: only urgent work that is due within a day.
    if task.priority != "urgent" or task.due_date is None:
        return False
    return as_utc(task.due_date) - as_utc(now) < timedelta(hours=24)


def _recommendation_key(task: TaskSnapshot) -> tuple:
    due = as_utc(task.due_date) if task.due_date else None
    return (-PRIORITY_ORDER.get(task.priority, 2), due is None, due or datetime.max)


def task_recommendations(
    tasks: Sequence[TaskSnapshot],
    current_energy: float,
    max_energy: float,
    now: datetime | None = None,
) -> TaskRecommendations:
    """Split *tasks* into what to work on now and what to leave for later.

    ``recommended`` is sorted urgent → low, then by earliest due date;
    undated tasks go last within their priority.
    """
    if now is None:
        now = utcnow()
    ratio = current_energy / max_energy if max_energy > 0 else 0.0

    recommended: list[TaskSnapshot] = []
    avoid: list[TaskSnapshot] = []
    for task in tasks:
        (recommended if _fits_band(task, ratio, now) else avoid).append(task)

    recommended.sort(key=_recommendation_key)
    return TaskRecommendations(
        recommended=recommended,
        avoid=avoid,
        energy_budget=math.floor(current_energy * ENERGY_BUDGET_SHARE),
    )


# ── previews ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class EnergyImpact:
    energy_delta: int
    description: str


def energy_impact_summary(
    task: TaskSnapshot,
    operation: str,
    from_column: str | None = None,
    to_column: str | None = None,
    now: datetime | None = None,
    config: EnergyConfig = DEFAULT_ENERGY_CONFIG,
) -> EnergyImpact:
    """Preview the delta an operation would record, for tooltips."""
    if operation == "start":
        return EnergyImpact(
            -task_start_cost(task, config),
            f"Starting {task.priority} priority task",
        )
    if operation == "complete":
        return EnergyImpact(
            task_completion_reward(task, now, config),
            f"Completed {task.priority} priority task",
        )
    if operation == "move":
        if not from_column or not to_column:
            return EnergyImpact(0, "")
        return EnergyImpact(
            column_move_impact(task, from_column, to_column, now, config),
            f"Moved task from {from_column} to {to_column}",
        )
    raise ValueError(f"unknown operation: {operation!r}")


def config_from_mapping(data: Mapping[str, Any] | None) -> EnergyConfig:
    """Build a config from (possibly partial) nested overrides."""
    if not data:
        return EnergyConfig()
    return EnergyConfig().with_overrides(data)
