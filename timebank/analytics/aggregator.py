"""Period rollups over completed sessions: today, this week, this month, all time.

Boundaries (all UTC, so client and server always agree)
-------------------------------------------------------
today   00:00:00 of the current date
week    00:00:00 of this week's Monday (Sunday belongs to the week that
        started six days earlier)
month   00:00:00 on day 1 of the current month

A session is in a bucket when ``started_at >= bucket_start``.  There is
no upper bound; "now" is always inside the current bucket.

Money
-----
Earnings are summed as :class:`~decimal.Decimal` and rounded to cents
only once, at the very end.  A session with ``earnings_usd=None`` had no
hourly rate: its hours count everywhere (including the denominator of
``average_hourly_rate``) but it adds nothing to earnings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, Mapping

from ..clock import as_utc, parse_timestamp, utcnow

CENTS = Decimal("0.01")
SECONDS_PER_HOUR = Decimal(3600)
DEFAULT_TARGET_BALANCE = Decimal(1000)


@dataclass(frozen=True)
class CompletedSession:
    """Server-of-record view of one finished timer interval."""

    duration_seconds: int
    earnings_usd: Decimal | None
    started_at: datetime
    task_id: str | None = None
    id: int | None = None

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> "CompletedSession":
        """Accept the raw API/database shape.

        ``earnings_usd`` may be a string, number, or null;
        ``duration_seconds`` may be null (treated as 0).
        """
        return cls(
            duration_seconds=max(0, int(data.get("duration_seconds") or 0)),
            earnings_usd=_to_money(data.get("earnings_usd")),
            started_at=parse_timestamp(data["started_at"]),
            task_id=data.get("task_id"),
            id=data.get("id"),
        )


def _to_money(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


@dataclass
class PeriodTotals:
    earnings: Decimal = Decimal("0.00")
    hours: float = 0.0
    session_count: int = 0


@dataclass
class _Accumulator:
    earnings: Decimal = Decimal(0)
    seconds: int = 0
    count: int = 0

    def add(self, session: CompletedSession) -> None:
        if session.earnings_usd is not None:
            self.earnings += session.earnings_usd
        self.seconds += session.duration_seconds
        self.count += 1

    def totals(self) -> PeriodTotals:
        hours = (Decimal(self.seconds) / SECONDS_PER_HOUR).quantize(CENTS, ROUND_HALF_UP)
        return PeriodTotals(
            earnings=self.earnings.quantize(CENTS, ROUND_HALF_UP),
            hours=float(hours),
            session_count=self.count,
        )


@dataclass
class PeriodBoundaries:
    today_start: datetime
    week_start: datetime
    month_start: datetime
    now: datetime


@dataclass
class PeriodAggregates:
    today: PeriodTotals
    week: PeriodTotals
    month: PeriodTotals
    total: PeriodTotals
    average_hourly_rate: Decimal
    period: PeriodBoundaries
    target_balance: Decimal = field(default=DEFAULT_TARGET_BALANCE)

    def as_dict(self) -> dict[str, Any]:
        """Flat dashboard shape (``today_earnings``, ``week_hours``, ...)."""
        data: dict[str, Any] = {}
        for name in ("today", "week", "month", "total"):
            totals: PeriodTotals = getattr(self, name)
            data[f"{name}_earnings"] = float(totals.earnings)
            data[f"{name}_hours"] = totals.hours
        data["average_hourly_rate"] = float(self.average_hourly_rate)
        data["target_balance"] = float(self.target_balance)
        data["sessions_count"] = {
            name: getattr(self, name).session_count
            for name in ("today", "week", "month", "total")
        }
        return data


def period_boundaries(now: datetime | None = None) -> PeriodBoundaries:
    """UTC start of today, of this ISO week (Monday), and of this month."""
    now = as_utc(now or utcnow())
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    # weekday(): Monday=0 … Sunday=6, so Sunday steps back six days
    week = today - timedelta(days=today.weekday())
    month = today.replace(day=1)
    return PeriodBoundaries(today, week, month, now)


def get_aggregates(
    sessions: Iterable[CompletedSession | Mapping[str, Any]],
    now: datetime | None = None,
    target_balance: Decimal = DEFAULT_TARGET_BALANCE,
) -> PeriodAggregates:
    """Roll *sessions* up into today/week/month/total buckets."""
    bounds = period_boundaries(now)
    today, week, month, total = (_Accumulator() for _ in range(4))

    for raw in sessions:
        s = raw if isinstance(raw, CompletedSession) else CompletedSession.from_record(raw)
        started = as_utc(s.started_at)
        total.add(s)
        if started >= bounds.today_start:
            today.add(s)
        if started >= bounds.week_start:
            week.add(s)
        if started >= bounds.month_start:
            month.add(s)

    if total.seconds > 0:
        rate = total.earnings * SECONDS_PER_HOUR / Decimal(total.seconds)
    else:
        rate = Decimal(0)

    return PeriodAggregates(
        today=today.totals(),
        week=week.totals(),
        month=month.totals(),
        total=total.totals(),
        average_hourly_rate=rate.quantize(CENTS, ROUND_HALF_UP),
        period=bounds,
        target_balance=target_balance,
    )
