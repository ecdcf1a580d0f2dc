"""Per-task timer session state machine.

States
------
RUNNING     Counting up.  ``started_at`` marks the start of the current
            running segment.
PAUSED      Frozen.  All running time has been folded into
            ``elapsed_seconds``.
COMPLETED   Finalized.  Never changes again.

Transitions
-----------
create                      → RUNNING
RUNNING → PAUSED            (pause: folds the running segment)
PAUSED → RUNNING            (resume: opens a new segment)
RUNNING | PAUSED → COMPLETED (complete: folds any running segment)

``elapsed_seconds`` only ever holds *folded* segments.  Live elapsed time
for a running session is ``elapsed_seconds + (now - started_at)`` and is
computed on read, so a display tick never has to write anything.

Anything else raises :class:`~timebank.errors.InvalidStateError`.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

from ..clock import parse_timestamp, utcnow
from ..errors import InvalidStateError, RestoreCorruptionError


# ── enums ─────────────────────────────────────────────────────────────────


class SessionState(Enum):
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


class SessionKind(Enum):
    FOCUS = "focus"
    BREAK = "break"
    LONG_BREAK = "long_break"


# ── constants ─────────────────────────────────────────────────────────────

# Planned minutes per kind.  A UI hint only; nothing stops at zero.
DEFAULT_DURATIONS: dict[SessionKind, int] = {
    SessionKind.FOCUS: 25,
    SessionKind.BREAK: 5,
    SessionKind.LONG_BREAK: 15,
}

FULL_FOCUS_MINUTES = 25
DEEP_WORK_MINUTES = 45

ACHIEVEMENT_FULL_FOCUS = "Completed a full focus session!"
ACHIEVEMENT_DEEP_WORK = "Deep work session completed!"
ACHIEVEMENT_BREAK = "Good job taking a break!"


# ── data ──────────────────────────────────────────────────────────────────


@dataclass
class SessionMetadata:
    """Task details captured when the timer started."""

    task_title: str = ""
    task_priority: str | None = None
    hourly_rate: Decimal | None = None
    notes: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_title": self.task_title,
            "task_priority": self.task_priority,
            "hourly_rate": str(self.hourly_rate) if self.hourly_rate is not None else None,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SessionMetadata":
        if not isinstance(data, Mapping):
            raise RestoreCorruptionError(f"metadata is not an object: {data!r}")
        rate = data.get("hourly_rate")
        return cls(
            task_title=str(data.get("task_title") or ""),
            task_priority=data.get("task_priority"),
            hourly_rate=Decimal(str(rate)) if rate is not None else None,
            notes=str(data.get("notes") or ""),
        )


@dataclass
class TimerSession:
    id: str
    kind: SessionKind
    planned_duration_minutes: int
    started_at: datetime
    created_at: datetime
    task_id: str | None = None
    elapsed_seconds: int = 0
    state: SessionState = SessionState.RUNNING
    metadata: SessionMetadata = field(default_factory=SessionMetadata)
    ended_at: datetime | None = None

    @property
    def is_running(self) -> bool:
        return self.state == SessionState.RUNNING

    @property
    def is_active(self) -> bool:
        """Running or paused (anything not yet completed)."""
        return self.state != SessionState.COMPLETED

    # ── serialization ────────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "kind": self.kind.value,
            "planned_duration_minutes": self.planned_duration_minutes,
            "started_at": self.started_at.isoformat(),
            "created_at": self.created_at.isoformat(),
            "elapsed_seconds": self.elapsed_seconds,
            "state": self.state.value,
            "metadata": self.metadata.to_dict(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TimerSession":
        """Rebuild a session from :meth:`to_dict` output.

        Raises :class:`RestoreCorruptionError` for anything malformed, so
        the caller can drop just this entry.
        """
        try:
            elapsed = data["elapsed_seconds"]
            if isinstance(elapsed, bool) or not isinstance(elapsed, int) or elapsed < 0:
                raise ValueError(f"bad elapsed_seconds: {elapsed!r}")
            started_at = parse_timestamp(data["started_at"])
            ended = data.get("ended_at")
            return cls(
                id=str(data["id"]),
                task_id=data.get("task_id"),
                kind=SessionKind(data["kind"]),
                planned_duration_minutes=int(data["planned_duration_minutes"]),
                started_at=started_at,
                created_at=parse_timestamp(data.get("created_at") or started_at),
                elapsed_seconds=elapsed,
                state=SessionState(data["state"]),
                metadata=SessionMetadata.from_dict(data.get("metadata") or {}),
                ended_at=parse_timestamp(ended) if ended else None,
            )
        except (KeyError, TypeError, ValueError, ArithmeticError) as exc:
            raise RestoreCorruptionError(str(exc)) from exc


@dataclass
class CompletionResult:
    """What ``complete`` hands back: the frozen session plus extras."""

    session: TimerSession
    actual_minutes: int
    achievements: list[str] = field(default_factory=list)


# ── transitions ───────────────────────────────────────────────────────────


def _segment_seconds(session: TimerSession, now: datetime) -> int:
    """Whole seconds in the current running segment (never negative)."""
    return max(0, int((now - session.started_at).total_seconds()))


def create(
    kind: SessionKind | str,
    task_id: str | None = None,
    *,
    durations: Mapping[SessionKind, int] | None = None,
    metadata: SessionMetadata | None = None,
    now: datetime | None = None,
) -> TimerSession:
    """Start a new running session."""
    kind = SessionKind(kind)
    if now is None:
        now = utcnow()
    table = durations if durations is not None else DEFAULT_DURATIONS
    return TimerSession(
        id=uuid.uuid4().hex,
        task_id=task_id,
        kind=kind,
        planned_duration_minutes=table.get(kind, DEFAULT_DURATIONS[kind]),
        started_at=now,
        created_at=now,
        metadata=metadata or SessionMetadata(),
    )


def pause(session: TimerSession, now: datetime | None = None) -> TimerSession:
    if session.state != SessionState.RUNNING:
        raise InvalidStateError(f"cannot pause a {session.state.value} session")
    if now is None:
        now = utcnow()
    session.elapsed_seconds += _segment_seconds(session, now)
    session.state = SessionState.PAUSED
    return session


def resume(session: TimerSession, now: datetime | None = None) -> TimerSession:
    if session.state != SessionState.PAUSED:
        raise InvalidStateError(f"cannot resume a {session.state.value} session")
    if now is None:
        now = utcnow()
    session.started_at = now
    session.state = SessionState.RUNNING
    return session


def complete(
    session: TimerSession,
    actual_duration_override: int | None = None,
    now: datetime | None = None,
) -> CompletionResult:
    """Finalize *session* and work out its achievements.

    ``actual_minutes`` is the override when given, otherwise the folded
    elapsed time rounded to the nearest minute (30 s rounds up).
    """
    if session.state == SessionState.COMPLETED:
        raise InvalidStateError("session is already completed")
    if now is None:
        now = utcnow()

    if session.state == SessionState.RUNNING:
        session.elapsed_seconds += _segment_seconds(session, now)
    session.state = SessionState.COMPLETED
    session.ended_at = now

    if actual_duration_override is not None:
        actual_minutes = actual_duration_override
    else:
        actual_minutes = (session.elapsed_seconds + 30) // 60

    achievements: list[str] = []
    if session.kind == SessionKind.FOCUS:
        if actual_minutes >= FULL_FOCUS_MINUTES:
            achievements.append(ACHIEVEMENT_FULL_FOCUS)
        if actual_minutes >= DEEP_WORK_MINUTES:
            achievements.append(ACHIEVEMENT_DEEP_WORK)
    else:
        achievements.append(ACHIEVEMENT_BREAK)

    return CompletionResult(session, actual_minutes, achievements)


def live_elapsed_seconds(session: TimerSession, now: datetime | None = None) -> int:
    """Folded time plus the in-progress segment, without mutating anything."""
    if session.state != SessionState.RUNNING:
        return session.elapsed_seconds
    if now is None:
        now = utcnow()
    return session.elapsed_seconds + _segment_seconds(session, now)
