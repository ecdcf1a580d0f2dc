"""Energy package."""

from .policy import (
    EnergyConfig,
    EnergyLimits,
    EnergyImpact,
    TaskRecommendations,
    DEFAULT_ENERGY_CONFIG,
    task_start_cost,
    task_completion_reward,
    column_move_impact,
    focus_session_reward,
    daily_recovery,
    energy_limits_check,
    task_recommendations,
    energy_impact_summary,
)
from .ledger import (
    EnergyLedger,
    EnergyTransaction,
    TransactionType,
    MentalBankState,
    WeeklyStats,
    current_balance,
    daily_expenditure,
    clamp_energy,
)

__all__ = [
    "EnergyConfig",
    "EnergyLimits",
    "EnergyImpact",
    "TaskRecommendations",
    "DEFAULT_ENERGY_CONFIG",
    "task_start_cost",
    "task_completion_reward",
    "column_move_impact",
    "focus_session_reward",
    "daily_recovery",
    "energy_limits_check",
    "task_recommendations",
    "energy_impact_summary",
    "EnergyLedger",
    "EnergyTransaction",
    "TransactionType",
    "MentalBankState",
    "WeeklyStats",
    "current_balance",
    "daily_expenditure",
    "clamp_energy",
]
