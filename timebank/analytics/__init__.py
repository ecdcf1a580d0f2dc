"""Analytics package."""

from .aggregator import (
    CompletedSession,
    PeriodTotals,
    PeriodBoundaries,
    PeriodAggregates,
    get_aggregates,
    period_boundaries,
)

__all__ = [
    "CompletedSession",
    "PeriodTotals",
    "PeriodBoundaries",
    "PeriodAggregates",
    "get_aggregates",
    "period_boundaries",
]
