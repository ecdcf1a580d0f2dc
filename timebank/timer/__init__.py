"""Timer package."""

from .session import (
    TimerSession,
    SessionState,
    SessionKind,
    SessionMetadata,
    CompletionResult,
    DEFAULT_DURATIONS,
)
from .store import DurableStore, MemoryStore, JsonFileStore, SqlStore
from .registry import MultiTimerRegistry, STALENESS_WINDOW, STORAGE_KEY
from .refresher import DisplayRefresher

__all__ = [
    "TimerSession",
    "SessionState",
    "SessionKind",
    "SessionMetadata",
    "CompletionResult",
    "DEFAULT_DURATIONS",
    "DurableStore",
    "MemoryStore",
    "JsonFileStore",
    "SqlStore",
    "MultiTimerRegistry",
    "STALENESS_WINDOW",
    "STORAGE_KEY",
    "DisplayRefresher",
]
