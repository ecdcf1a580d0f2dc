"""Once-a-second display refresh for running timers.

The refresher only *reads* live elapsed time from the registry and
emits it.  It never folds segments or writes the snapshot, so the tick
rate has no effect on what gets persisted.
"""

from __future__ import annotations

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from .registry import MultiTimerRegistry

TICK_INTERVAL_MS = 1000


class DisplayRefresher(QObject):
    """Periodic read-only view of every timer's live elapsed seconds.

    Signals
    -------
    tick(data: dict)
        ``{key: live_elapsed_seconds}`` for all tracked timers.  Only
        emitted while at least one timer is running.
    """

    tick = pyqtSignal(object)

    def __init__(
        self,
        registry: MultiTimerRegistry,
        parent: QObject | None = None,
        *,
        interval_ms: int = TICK_INTERVAL_MS,
    ) -> None:
        super().__init__(parent)
        self._registry = registry
        self._qt_timer = QTimer(self)
        self._qt_timer.setInterval(interval_ms)
        self._qt_timer.timeout.connect(self._on_tick)

    @property
    def is_active(self) -> bool:
        return self._qt_timer.isActive()

    def start(self) -> None:
        self._qt_timer.start()

    def stop(self) -> None:
        self._qt_timer.stop()

    def _on_tick(self) -> None:
        if self._registry.active_count == 0:
            return
        self.tick.emit(self._registry.live_snapshot())
