"""Shared test helpers for TimeBank."""

from datetime import datetime, timedelta, timezone

START = datetime(2026, 3, 11, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 0, **kwargs) -> datetime:
        self.now += timedelta(seconds=seconds, **kwargs)
        return self.now

    def set(self, now: datetime) -> datetime:
        self.now = now
        return self.now


class SignalCollector:
    """Slot that records every emission; single-argument payloads are unwrapped."""

    def __init__(self):
        self.items: list = []

    def __call__(self, *args):
        self.items.append(args[0] if len(args) == 1 else args)

    def __len__(self):
        return len(self.items)

    @property
    def last(self):
        return self.items[-1] if self.items else None
