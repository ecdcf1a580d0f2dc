"""Tests for today/week/month/total earnings rollups."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from timebank.analytics import CompletedSession, get_aggregates, period_boundaries

from helpers import START

UTC = timezone.utc
TODAY = datetime(2026, 3, 11, tzinfo=UTC)


def _session(earnings, seconds, started, task_id=None):
    money = Decimal(earnings) if earnings is not None else None
    return CompletedSession(seconds, money, started, task_id)


# ═══════════════════════════════════════════════════════════════════════════
#  BOUNDARIES
# ═══════════════════════════════════════════════════════════════════════════


class TestBoundaries:

    def test_midweek(self):
        bounds = period_boundaries(START)
        assert bounds.today_start == TODAY
        assert bounds.week_start == datetime(2026, 3, 9, tzinfo=UTC)
        assert bounds.month_start == datetime(2026, 3, 1, tzinfo=UTC)

    def test_sunday_belongs_to_previous_monday(self):
        bounds = period_boundaries(datetime(2026, 3, 15, 23, 59, 59, tzinfo=UTC))
        assert bounds.week_start == datetime(2026, 3, 9, tzinfo=UTC)

    def test_monday_starts_new_week(self):
        bounds = period_boundaries(datetime(2026, 3, 16, tzinfo=UTC))
        assert bounds.week_start == datetime(2026, 3, 16, tzinfo=UTC)

    def test_non_utc_now_is_converted(self):
        # 01:00 on the 12th at +05:00 is still the 11th in UTC
        now = datetime(2026, 3, 12, 1, tzinfo=timezone(timedelta(hours=5)))
        assert period_boundaries(now).today_start == TODAY


# ═══════════════════════════════════════════════════════════════════════════
#  TOTALS
# ═══════════════════════════════════════════════════════════════════════════


class TestAggregates:

    def test_two_sessions_today(self):
        sessions = [
            _session("100.00", 3600, TODAY),
            _session("50.00", 1800, TODAY + timedelta(hours=2)),
        ]
        result = get_aggregates(sessions, START)
        assert result.today.earnings == Decimal("150.00")
        assert result.today.hours == 1.5
        assert result.today.session_count == 2
        assert result.average_hourly_rate == Decimal("100.00")

    def test_null_earnings_count_hours_only(self):
        sessions = [
            _session("100.00", 3600, TODAY),
            _session(None, 1800, TODAY + timedelta(hours=3)),
        ]
        result = get_aggregates(sessions, START)
        assert result.total.earnings == Decimal("100.00")
        assert result.total.hours == 1.5
        assert result.total.session_count == 2
        assert result.average_hourly_rate == Decimal("66.67")

    def test_empty(self):
        result = get_aggregates([], START)
        for name in ("today", "week", "month", "total"):
            totals = getattr(result, name)
            assert totals.earnings == Decimal("0.00")
            assert totals.hours == 0.0
            assert totals.session_count == 0
        assert result.average_hourly_rate == Decimal("0.00")

    def test_zero_hours_never_divides(self):
        result = get_aggregates([_session("5.00", 0, TODAY)], START)
        assert result.average_hourly_rate == Decimal("0.00")
        assert result.total.earnings == Decimal("5.00")

    def test_buckets_nest(self):
        sessions = [
            _session("10", 600, TODAY + timedelta(hours=1)),           # today
            _session("20", 600, datetime(2026, 3, 9, 8, tzinfo=UTC)),  # this week
            _session("40", 600, datetime(2026, 3, 2, tzinfo=UTC)),     # this month
            _session("80", 600, datetime(2026, 1, 20, tzinfo=UTC)),    # earlier
        ]
        result = get_aggregates(sessions, START)
        assert result.today.earnings == Decimal("10.00")
        assert result.week.earnings == Decimal("30.00")
        assert result.month.earnings == Decimal("70.00")
        assert result.total.earnings == Decimal("150.00")
        assert [result.today.session_count, result.week.session_count,
                result.month.session_count, result.total.session_count] == [1, 2, 3, 4]

    def test_sunday_last_second_stays_in_its_week(self):
        sunday = datetime(2026, 3, 15, 23, 59, 59, tzinfo=UTC)
        sessions = [_session("25", 900, sunday)]

        same_day = get_aggregates(sessions, sunday + timedelta(microseconds=1))
        assert same_day.week.session_count == 1

        next_monday = get_aggregates(sessions, datetime(2026, 3, 16, 9, tzinfo=UTC))
        assert next_monday.week.session_count == 0
        assert next_monday.month.session_count == 1

    def test_week_can_reach_into_previous_month(self):
        # Sunday 2026-03-01: week started Monday 2026-02-23
        now = datetime(2026, 3, 1, 10, tzinfo=UTC)
        sessions = [_session("12", 600, datetime(2026, 2, 27, tzinfo=UTC))]
        result = get_aggregates(sessions, now)
        assert result.week.session_count == 1
        assert result.month.session_count == 0

    def test_money_rounded_only_at_the_end(self):
        sessions = [_session("0.005", 60, TODAY) for _ in range(3)]
        assert get_aggregates(sessions, START).today.earnings == Decimal("0.02")

    def test_hours_rounded_to_hundredths(self):
        result = get_aggregates([_session(None, 1000, TODAY)], START)
        assert result.total.hours == 0.28

    def test_target_balance_passes_through(self):
        result = get_aggregates([], START, target_balance=Decimal("2500"))
        assert result.target_balance == Decimal("2500")


class TestRecordInput:

    def test_raw_records_accepted(self):
        records = [
            {"duration_seconds": 3600, "earnings_usd": "80.00",
             "started_at": "2026-03-11T08:00:00Z", "task_id": "T-1"},
            {"duration_seconds": None, "earnings_usd": None,
             "started_at": "2026-03-10T08:00:00+00:00"},
            {"duration_seconds": 1800, "earnings_usd": 12.5,
             "started_at": "2026-02-10T08:00:00"},
        ]
        result = get_aggregates(records, START)
        assert result.today.earnings == Decimal("80.00")
        assert result.week.session_count == 2
        assert result.total.earnings == Decimal("92.50")
        assert result.total.hours == 1.5

    def test_from_record_defaults(self):
        s = CompletedSession.from_record({"started_at": "2026-03-11T00:00:00Z"})
        assert s.duration_seconds == 0
        assert s.earnings_usd is None
        assert s.started_at == TODAY

    def test_unparseable_money_is_null(self):
        s = CompletedSession.from_record({"started_at": TODAY, "earnings_usd": "n/a"})
        assert s.earnings_usd is None


class TestAsDict:

    def test_flat_dashboard_shape(self):
        sessions = [
            _session("100.00", 3600, TODAY),
            _session("50.00", 1800, TODAY + timedelta(hours=2)),
        ]
        data = get_aggregates(sessions, START).as_dict()
        assert data["today_earnings"] == 150.0
        assert data["today_hours"] == 1.5
        assert data["average_hourly_rate"] == 100.0
        assert data["target_balance"] == 1000.0
        assert data["sessions_count"] == {"today": 2, "week": 2, "month": 2, "total": 2}
