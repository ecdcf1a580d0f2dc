"""Multi-timer registry: every active timer, mirrored to durable storage.

One ``MultiTimerRegistry`` is built at process start, handed to whoever
needs it, and asked to ``restore()`` once.  After that each mutation
writes the full set back to the store as a single JSON blob::

    {"version": 1, "timers": [{"key": ..., <TimerSession.to_dict()>}, ...]}

Restore rules
-------------
- Entries whose ``started_at`` is older than the staleness window (24 h)
  are dropped silently.  They are never resumed or auto-completed.
- Running entries are restored untouched.  Live time is always
  ``elapsed_seconds + (now - started_at)``, so nothing is lost or counted
  twice across a reload.
- A malformed entry is dropped on its own; the rest still load.

Write failures never escape.  They are logged, emitted through
``persistence_warning``, and the in-memory set stays authoritative.

Signals
-------
timer_started(session: TimerSession)
timer_paused(session: TimerSession)
timer_resumed(session: TimerSession)
timer_stopped(result: CompletionResult)
    The registry never talks to the network.  Listeners (see
    :class:`~timebank.recording.SessionHandoff`) record the session and
    its energy transaction.
persistence_warning(message: str)
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Mapping

from PyQt6.QtCore import QObject, pyqtSignal

from ..clock import Clock, utcnow
from ..errors import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    PersistenceWriteError,
    RestoreCorruptionError,
)
from ..tasks import TaskSnapshot
from . import session as sm
from .session import CompletionResult, SessionKind, SessionMetadata, TimerSession
from .store import DurableStore

logger = logging.getLogger(__name__)

STORAGE_KEY = "mbb_active_timers"
SNAPSHOT_VERSION = 1
STALENESS_WINDOW = timedelta(hours=24)
CENTS = Decimal("0.01")


class MultiTimerRegistry(QObject):
    """Owns the set of concurrently active per-task timers."""

    timer_started = pyqtSignal(object)
    timer_paused = pyqtSignal(object)
    timer_resumed = pyqtSignal(object)
    timer_stopped = pyqtSignal(object)
    persistence_warning = pyqtSignal(str)

    def __init__(
        self,
        store: DurableStore,
        *,
        clock: Clock = utcnow,
        durations: Mapping[SessionKind, int] | None = None,
        staleness_window: timedelta = STALENESS_WINDOW,
        storage_key: str = STORAGE_KEY,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._store = store
        self._clock = clock
        self._durations = dict(durations) if durations else dict(sm.DEFAULT_DURATIONS)
        self._staleness_window = staleness_window
        self._storage_key = storage_key
        self._timers: dict[str, TimerSession] = {}
        self.last_persist_error: str | None = None

    # ══════════════════════════════════════════════════════════════════
    #  QUERIES
    # ══════════════════════════════════════════════════════════════════

    def timers(self) -> dict[str, TimerSession]:
        """Copy of the key → session mapping."""
        return dict(self._timers)

    def get(self, key: str) -> TimerSession:
        try:
            return self._timers[key]
        except KeyError:
            raise NotFoundError(f"no timer for {key!r}") from None

    def __contains__(self, key: object) -> bool:
        return key in self._timers

    def __len__(self) -> int:
        return len(self._timers)

    @property
    def active_count(self) -> int:
        """Timers currently running (paused ones excluded)."""
        return sum(1 for s in self._timers.values() if s.is_running)

    def live_elapsed(self, key: str, now: datetime | None = None) -> int:
        return sm.live_elapsed_seconds(self.get(key), now or self._clock())

    def live_snapshot(self, now: datetime | None = None) -> dict[str, int]:
        """Live elapsed seconds for every tracked timer."""
        now = now or self._clock()
        return {
            key: sm.live_elapsed_seconds(s, now)
            for key, s in self._timers.items()
        }

    def live_earnings(self, key: str, now: datetime | None = None) -> Decimal:
        """Money earned so far on *key* at its snapshot hourly rate."""
        session = self.get(key)
        rate = session.metadata.hourly_rate
        if not rate:
            return Decimal("0.00")
        seconds = sm.live_elapsed_seconds(session, now or self._clock())
        return (Decimal(seconds) / 3600 * rate).quantize(CENTS, ROUND_HALF_UP)

    def total_live_earnings(self, now: datetime | None = None) -> Decimal:
        now = now or self._clock()
        return sum(
            (self.live_earnings(key, now) for key in self._timers),
            Decimal("0.00"),
        )

    # ══════════════════════════════════════════════════════════════════
    #  CONTROLS
    # ══════════════════════════════════════════════════════════════════

    def start_timer(
        self,
        task_id: str | None,
        snapshot: TaskSnapshot | None = None,
        kind: SessionKind | str = SessionKind.FOCUS,
        notes: str = "",
    ) -> TimerSession:
        """Start timing *task_id*.

        ``task_id=None`` starts a task-less session (e.g. a break) under
        a synthetic ``"<kind>:<session id>"`` key.  Raises
        :class:`ConflictError` if the task already has an active timer.
        """
        if task_id is not None and task_id in self._timers:
            raise ConflictError(f"timer already active for {task_id!r}")

        metadata = SessionMetadata(notes=notes)
        if snapshot is not None:
            metadata.task_title = snapshot.title
            metadata.task_priority = snapshot.priority
            metadata.hourly_rate = snapshot.hourly_rate

        session = sm.create(
            kind,
            task_id,
            durations=self._durations,
            metadata=metadata,
            now=self._clock(),
        )
        key = task_id if task_id is not None else f"{session.kind.value}:{session.id}"
        self._timers[key] = session
        logger.info("Started %s timer %s", session.kind.value, key)

        self._persist()
        self.timer_started.emit(session)
        return session

    def pause_timer(self, key: str) -> TimerSession:
        session = self.get(key)
        try:
            sm.pause(session, self._clock())
        except InvalidStateError as exc:
            logger.warning("Ignoring pause of %s: %s", key, exc)
            return session
        self._persist()
        self.timer_paused.emit(session)
        return session

    def resume_timer(self, key: str) -> TimerSession:
        session = self.get(key)
        try:
            sm.resume(session, self._clock())
        except InvalidStateError as exc:
            logger.warning("Ignoring resume of %s: %s", key, exc)
            return session
        self._persist()
        self.timer_resumed.emit(session)
        return session

    def stop_timer(
        self, key: str, actual_duration_override: int | None = None,
    ) -> CompletionResult:
        """Complete *key*, drop it from the registry, and hand it back.

        The caller (or a ``timer_stopped`` listener) is responsible for
        recording the session and its energy transaction.
        """
        session = self.get(key)
        result = sm.complete(session, actual_duration_override, self._clock())
        del self._timers[key]
        logger.info(
            "Stopped %s timer %s after %ss",
            session.kind.value, key, session.elapsed_seconds,
        )
        self._persist()
        self.timer_stopped.emit(result)
        return result

    def discard_timer(self, key: str) -> TimerSession:
        """Forget *key* without completing it (nothing gets recorded)."""
        session = self.get(key)
        del self._timers[key]
        self._persist()
        return session

    def pause_all(self) -> list[TimerSession]:
        now = self._clock()
        paused = []
        for session in self._timers.values():
            if session.is_running:
                paused.append(sm.pause(session, now))
        if paused:
            self._persist()
            for session in paused:
                self.timer_paused.emit(session)
        return paused

    def stop_all(self) -> list[CompletionResult]:
        return [self.stop_timer(key) for key in list(self._timers)]

    # ══════════════════════════════════════════════════════════════════
    #  PERSISTENCE
    # ══════════════════════════════════════════════════════════════════

    def restore(self) -> None:
        """Load the durable snapshot, replacing whatever is in memory."""
        self._timers = {}
        blob = self._store.get(self._storage_key)
        if not blob:
            return

        try:
            payload = json.loads(blob)
        except (UnicodeDecodeError, ValueError):
            logger.warning("Active-timer snapshot is unreadable; starting empty")
            return

        entries = payload.get("timers") if isinstance(payload, dict) else payload
        if not isinstance(entries, list):
            logger.warning("Active-timer snapshot has no timer list; starting empty")
            return

        now = self._clock()
        dropped = 0
        for entry in entries:
            try:
                key, session = self._decode_entry(entry)
            except RestoreCorruptionError as exc:
                logger.debug("Dropping corrupt timer entry: %s", exc)
                dropped += 1
                continue
            if now - session.started_at > self._staleness_window:
                logger.debug("Dropping stale timer %s", key)
                dropped += 1
                continue
            if not session.is_active or key in self._timers:
                dropped += 1
                continue
            self._timers[key] = session

        logger.info("Restored %d timer(s), dropped %d", len(self._timers), dropped)
        if dropped:
            self._persist()

    def close(self) -> None:
        """Final write before the process goes away."""
        self._persist()

    def _decode_entry(self, entry: object) -> tuple[str, TimerSession]:
        if not isinstance(entry, dict):
            raise RestoreCorruptionError(f"entry is not an object: {entry!r}")
        session = TimerSession.from_dict(entry)
        key = entry.get("key") or session.task_id
        if not isinstance(key, str) or not key:
            raise RestoreCorruptionError("entry has no key")
        return key, session

    def _encode(self) -> bytes:
        timers = [
            {"key": key, **session.to_dict()}
            for key, session in self._timers.items()
        ]
        return json.dumps({"version": SNAPSHOT_VERSION, "timers": timers}).encode("utf-8")

    def _persist(self) -> None:
        try:
            try:
                blob = self._encode()
            except (TypeError, ValueError) as exc:
                raise PersistenceWriteError(f"serializing timers: {exc}") from exc
            self._store.set(self._storage_key, blob)
        except PersistenceWriteError as exc:
            self.last_persist_error = str(exc)
            logger.warning("Could not persist active timers: %s", exc)
            self.persistence_warning.emit(str(exc))
            return
        self.last_persist_error = None
