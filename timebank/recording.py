"""Completed-session recording and the post-stop handoff.

``SessionRecorder`` is a local, SQLAlchemy-backed stand-in for the
session persistence API: it stores finished timer intervals in the
``time_sessions`` table and serves them back for analytics.

``SessionHandoff`` listens to a registry's ``timer_stopped`` signal and
does the two things a stop implies:

1. book the focus reward in the energy ledger
2. record the completed session

Both are best-effort.  The registry has already removed the timer by the
time the handoff runs, and a failure here is logged and reported through
``handoff_failed``.  It never undoes the local transition.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from PyQt6.QtCore import QObject, Qt, pyqtSignal
from sqlalchemy.exc import SQLAlchemyError

from .analytics.aggregator import CompletedSession
from .clock import as_utc
from .database.db import get_session
from .database.models import TimeSessionRow
from .energy.ledger import EnergyLedger
from .timer.registry import MultiTimerRegistry
from .timer.session import CompletionResult

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def compute_earnings(duration_seconds: int, hourly_rate: Decimal | None) -> Decimal | None:
    """``duration/3600 * rate`` in cents, or None when no rate is set."""
    if not hourly_rate:
        return None
    return (Decimal(duration_seconds) / 3600 * hourly_rate).quantize(CENTS, ROUND_HALF_UP)


def _naive_utc(value: datetime) -> datetime:
    return as_utc(value).replace(tzinfo=None)


def _to_completed(row: TimeSessionRow) -> CompletedSession:
    return CompletedSession(
        duration_seconds=row.duration_seconds,
        earnings_usd=Decimal(row.earnings_usd) if row.earnings_usd is not None else None,
        started_at=as_utc(row.started_at),
        task_id=row.task_id,
        id=row.id,
    )


class SessionRecorder:
    """Write path and read path for completed sessions."""

    def record(
        self,
        task_id: str | None,
        started_at: datetime,
        ended_at: datetime,
        duration_seconds: int,
        hourly_rate: Decimal | None = None,
        *,
        kind: str = "focus",
        notes: str | None = None,
    ) -> CompletedSession:
        if duration_seconds < 0:
            raise ValueError("duration_seconds must be >= 0")
        earnings = compute_earnings(duration_seconds, hourly_rate)
        with get_session() as db:
            row = TimeSessionRow(
                task_id=task_id,
                session_kind=kind,
                started_at=_naive_utc(started_at),
                ended_at=_naive_utc(ended_at),
                duration_seconds=duration_seconds,
                hourly_rate_usd=hourly_rate,
                earnings_usd=earnings,
                notes=notes or None,
            )
            db.add(row)
            db.flush()
            recorded = _to_completed(row)
        logger.info(
            "Recorded session %s for %s: %ss, earnings=%s",
            recorded.id, task_id, duration_seconds, earnings,
        )
        return recorded

    def record_completion(self, result: CompletionResult) -> CompletedSession:
        """Record a session straight from a registry ``stop_timer`` result."""
        session = result.session
        return self.record(
            session.task_id,
            session.created_at,
            session.ended_at or session.started_at,
            session.elapsed_seconds,
            session.metadata.hourly_rate,
            kind=session.kind.value,
            notes=session.metadata.notes,
        )

    def sessions(
        self,
        since: datetime | None = None,
        until: datetime | None = None,
        task_id: str | None = None,
    ) -> list[CompletedSession]:
        """Stored sessions, newest first, optionally filtered by start time."""
        with get_session() as db:
            query = db.query(TimeSessionRow)
            if since is not None:
                query = query.filter(TimeSessionRow.started_at >= _naive_utc(since))
            if until is not None:
                query = query.filter(TimeSessionRow.started_at < _naive_utc(until))
            if task_id is not None:
                query = query.filter(TimeSessionRow.task_id == task_id)
            rows = query.order_by(TimeSessionRow.started_at.desc()).all()
            return [_to_completed(row) for row in rows]


class SessionHandoff(QObject):
    """Routes stopped timers to the energy ledger and the recorder.

    Signals
    -------
    session_recorded(session: CompletedSession)
    handoff_failed(message: str)

    With ``deferred=True`` the work is queued on the event loop, so
    ``stop_timer`` returns before anything is written.

    Without an explicit *parent* the handoff is parented to *registry*
    and lives as long as it does.
    """

    session_recorded = pyqtSignal(object)
    handoff_failed = pyqtSignal(str)

    def __init__(
        self,
        registry: MultiTimerRegistry,
        recorder: SessionRecorder,
        ledger: EnergyLedger,
        parent: QObject | None = None,
        *,
        deferred: bool = True,
    ) -> None:
        super().__init__(parent if parent is not None else registry)
        self._recorder = recorder
        self._ledger = ledger
        conn = (
            Qt.ConnectionType.QueuedConnection if deferred
            else Qt.ConnectionType.DirectConnection
        )
        registry.timer_stopped.connect(self.handle_stopped, type=conn)

    def handle_stopped(self, result: CompletionResult) -> None:
        try:
            self._ledger.record_focus_completion(result)
        except SQLAlchemyError as exc:
            logger.warning("Could not book energy for %s: %s", result.session.id, exc)
            self.handoff_failed.emit(str(exc))

        try:
            recorded = self._recorder.record_completion(result)
        except SQLAlchemyError as exc:
            logger.warning("Could not record session %s: %s", result.session.id, exc)
            self.handoff_failed.emit(str(exc))
            return
        self.session_recorded.emit(recorded)
