"""Energy ledger: the append-only record behind the mental bank balance.

Every energy change is an :class:`EnergyTransaction`.  Transactions are
only ever appended; the balance is ``initial + sum(deltas)`` and is
*not* clamped here.  ``display_energy`` on :class:`MentalBankState` is
the only place the value is squeezed into ``[0, max_energy]``.

``record`` never refuses a transaction, whatever it does to the balance.

Focus sessions
--------------
``record_focus_completion`` writes at most one ``focus_session`` row per
stopped focus timer, and none at all when the reward is 0 (anything
under 25 minutes) so the ledger stays free of zero-value noise.

Persistence
-----------
With ``persist=True`` each transaction is also inserted into the
``energy_transactions`` table, and :meth:`EnergyLedger.load` rebuilds a
ledger from it.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo
from enum import Enum
from typing import Any, Iterable, Mapping, Sequence

from PyQt6.QtCore import QObject, pyqtSignal

from ..clock import Clock, as_utc, utcnow
from ..tasks import TaskSnapshot
from ..timer.session import CompletionResult, SessionKind
from . import policy
from .policy import EnergyConfig, EnergyLimits, TaskRecommendations

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_ENERGY = 150
DEFAULT_MAX_ENERGY = 200
WEEKLY_WINDOW_DAYS = 7


class TransactionType(Enum):
    TASK_START = "task_start"
    TASK_COMPLETE = "task_complete"
    TASK_MOVE = "task_move"
    FOCUS_SESSION = "focus_session"
    BREAK = "break"
    SLEEP = "sleep"


@dataclass(frozen=True)
class EnergyTransaction:
    id: str
    type: TransactionType
    energy_delta: int
    timestamp: datetime
    task_id: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass
class WeeklyStats:
    energy_spent: int = 0
    energy_gained: int = 0
    tasks_completed: int = 0
    focus_time: int = 0          # minutes


@dataclass
class MentalBankState:
    """Derived view of the ledger.  Recomputed, never stored."""

    current_energy: int
    max_energy: int
    daily_expenditure: int
    streak_days: int = 0
    total_tasks_completed: int = 0
    weekly_stats: WeeklyStats = field(default_factory=WeeklyStats)

    @property
    def display_energy(self) -> int:
        return clamp_energy(self.current_energy, self.max_energy)


# ── pure helpers ─────────────────────────────────────────────────────────


def current_balance(initial: int, transactions: Iterable[EnergyTransaction]) -> int:
    return initial + sum(t.energy_delta for t in transactions)


def daily_expenditure(
    transactions: Iterable[EnergyTransaction], since: datetime,
) -> int:
    """Energy spent (negative deltas, as a positive total) at/after *since*."""
    since = as_utc(since)
    return sum(
        max(0, -t.energy_delta)
        for t in transactions
        if as_utc(t.timestamp) >= since
    )


def clamp_energy(value: int, max_energy: int) -> int:
    return max(0, min(max_energy, value))


def local_midnight(now: datetime, tz: tzinfo | None = None) -> datetime:
    """Start of *now*'s calendar day in *tz* (system local time if None)."""
    local = as_utc(now).astimezone(tz)
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


def _streak_days(days: set[date], today: date) -> int:
    """Consecutive active days ending today.

    A day with no activity *yet* doesn't break the streak, so counting
    starts from yesterday when today is still empty.
    """
    cursor = today if today in days else today - timedelta(days=1)
    streak = 0
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


# ── ledger ───────────────────────────────────────────────────────────────


class EnergyLedger(QObject):
    """Single-writer, append-only energy log.

    Signals
    -------
    transaction_recorded(tx: EnergyTransaction)
        Emitted after every append.
    """

    transaction_recorded = pyqtSignal(object)

    def __init__(
        self,
        initial_energy: int = DEFAULT_INITIAL_ENERGY,
        max_energy: int = DEFAULT_MAX_ENERGY,
        *,
        config: EnergyConfig | None = None,
        clock: Clock = utcnow,
        persist: bool = False,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self.initial_energy = initial_energy
        self.max_energy = max_energy
        self.config = config or policy.DEFAULT_ENERGY_CONFIG
        self._clock = clock
        self._persist = persist
        self._transactions: list[EnergyTransaction] = []

    @classmethod
    def load(cls, **kwargs: Any) -> "EnergyLedger":
        """Build a persisting ledger pre-filled from the database."""
        from ..database.db import get_session
        from ..database.models import EnergyTransactionRow

        kwargs["persist"] = True
        ledger = cls(**kwargs)
        with get_session() as db:
            rows = (
                db.query(EnergyTransactionRow)
                .order_by(EnergyTransactionRow.timestamp)
                .all()
            )
            for row in rows:
                ledger._transactions.append(EnergyTransaction(
                    id=row.id,
                    type=TransactionType(row.type),
                    energy_delta=row.energy_delta,
                    timestamp=as_utc(row.timestamp),
                    task_id=row.task_id,
                    metadata=dict(row.metadata_json or {}),
                ))
        logger.debug("Loaded %d energy transactions", len(ledger._transactions))
        return ledger

    # ── reads ────────────────────────────────────────────────────────────

    @property
    def transactions(self) -> tuple[EnergyTransaction, ...]:
        return tuple(self._transactions)

    @property
    def balance(self) -> int:
        """Raw, unclamped balance."""
        return current_balance(self.initial_energy, self._transactions)

    def recent(self, limit: int = 50) -> list[EnergyTransaction]:
        """Newest first."""
        return list(reversed(self._transactions[-limit:]))

    def state(self, now: datetime | None = None, tz: tzinfo | None = None) -> MentalBankState:
        now = now or self._clock()
        midnight = local_midnight(now, tz)
        week_start = as_utc(now) - timedelta(days=WEEKLY_WINDOW_DAYS)

        weekly = WeeklyStats()
        active_days: set[date] = set()
        tasks_completed = 0
        for tx in self._transactions:
            ts = as_utc(tx.timestamp)
            if tx.type == TransactionType.TASK_COMPLETE:
                tasks_completed += 1
            if tx.type in (TransactionType.TASK_COMPLETE, TransactionType.FOCUS_SESSION):
                active_days.add(ts.astimezone(tz).date())
            if ts < week_start:
                continue
            if tx.energy_delta < 0:
                weekly.energy_spent += -tx.energy_delta
            else:
                weekly.energy_gained += tx.energy_delta
            if tx.type == TransactionType.TASK_COMPLETE:
                weekly.tasks_completed += 1
            if tx.type == TransactionType.FOCUS_SESSION:
                weekly.focus_time += int(tx.metadata.get("session_duration") or 0)

        return MentalBankState(
            current_energy=self.balance,
            max_energy=self.max_energy,
            daily_expenditure=daily_expenditure(self._transactions, midnight),
            streak_days=_streak_days(active_days, midnight.date()),
            total_tasks_completed=tasks_completed,
            weekly_stats=weekly,
        )

    def limits(self, now: datetime | None = None, tz: tzinfo | None = None) -> EnergyLimits:
        return policy.energy_limits_check(self.state(now, tz), self.config)

    def recommendations(
        self, tasks: Sequence[TaskSnapshot], now: datetime | None = None,
    ) -> TaskRecommendations:
        return policy.task_recommendations(
            tasks, self.balance, self.max_energy, now or self._clock(),
        )

    # ── writes ───────────────────────────────────────────────────────────

    def record(
        self,
        type: TransactionType | str,
        energy_delta: int,
        task_id: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> EnergyTransaction:
        """Append one transaction.  Never rejected on balance grounds."""
        tx = EnergyTransaction(
            id=f"tx_{uuid.uuid4().hex}",
            type=TransactionType(type),
            energy_delta=int(energy_delta),
            timestamp=self._clock(),
            task_id=task_id,
            metadata=dict(metadata or {}),
        )
        if self._persist:
            self._insert(tx)
        self._transactions.append(tx)
        logger.debug("Energy %+d (%s)", tx.energy_delta, tx.type.value)
        self.transaction_recorded.emit(tx)
        return tx

    def _insert(self, tx: EnergyTransaction) -> None:
        from ..database.db import get_session
        from ..database.models import EnergyTransactionRow

        with get_session() as db:
            db.add(EnergyTransactionRow(
                id=tx.id,
                task_id=tx.task_id,
                type=tx.type.value,
                energy_delta=tx.energy_delta,
                timestamp=as_utc(tx.timestamp).replace(tzinfo=None),
                metadata_json=dict(tx.metadata),
            ))

    def record_task_start(self, task: TaskSnapshot) -> EnergyTransaction:
        return self.record(
            TransactionType.TASK_START,
            -policy.task_start_cost(task, self.config),
            task.id,
            {"task_title": task.title, "priority": task.priority},
        )

    def record_task_completion(self, task: TaskSnapshot) -> EnergyTransaction:
        return self.record(
            TransactionType.TASK_COMPLETE,
            policy.task_completion_reward(task, self._clock(), self.config),
            task.id,
            {"task_title": task.title, "priority": task.priority},
        )

    def record_task_move(
        self, task: TaskSnapshot, from_column: str, to_column: str,
    ) -> EnergyTransaction | None:
        """Record a board move; zero-impact moves are not recorded."""
        delta = policy.column_move_impact(
            task, from_column, to_column, self._clock(), self.config,
        )
        if delta == 0:
            return None
        return self.record(
            TransactionType.TASK_MOVE,
            delta,
            task.id,
            {
                "task_title": task.title,
                "from_column": from_column,
                "to_column": to_column,
                "priority": task.priority,
            },
        )

    def record_focus_completion(self, result: CompletionResult) -> EnergyTransaction | None:
        """Reward a stopped focus timer, if it earned anything."""
        session = result.session
        if session.kind != SessionKind.FOCUS or result.actual_minutes < 1:
            return None
        reward = policy.focus_session_reward(result.actual_minutes, self.config)
        if reward <= 0:
            return None
        return self.record(
            TransactionType.FOCUS_SESSION,
            reward,
            session.task_id,
            {
                "session_duration": result.actual_minutes,
                "task_title": session.metadata.task_title,
                "priority": session.metadata.task_priority,
                "session_id": session.id,
            },
        )

    def record_sleep(self, hours_slept: float, hours_rested: float = 0) -> EnergyTransaction:
        return self.record(
            TransactionType.SLEEP,
            policy.daily_recovery(hours_slept, hours_rested, self.config),
            metadata={"hours_slept": hours_slept, "hours_rested": hours_rested},
        )

    def add_energy(self, amount: int, reason: str = "") -> EnergyTransaction:
        """Manual top-up, booked as a break."""
        return self.record(TransactionType.BREAK, abs(amount), metadata={"notes": reason})

    def subtract_energy(self, amount: int, reason: str = "") -> EnergyTransaction:
        """Manual drain, booked as a task start."""
        return self.record(TransactionType.TASK_START, -abs(amount), metadata={"notes": reason})
