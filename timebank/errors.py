"""Exception taxonomy for TimeBank.

Only :class:`ConflictError` and :class:`NotFoundError` are meant to reach
UI callers.  State-machine violations are logged no-ops at the registry
level, and persistence faults degrade to a warning signal.
"""


class TimeBankError(Exception):
    """Base class for every TimeBank error."""


class ConflictError(TimeBankError):
    """A timer is already active for this task."""


class NotFoundError(TimeBankError):
    """No tracked timer exists for this task."""


class InvalidStateError(TimeBankError):
    """Transition not allowed from the session's current state."""


class PersistenceWriteError(TimeBankError):
    """Writing the durable snapshot failed (quota, I/O, serialization)."""


class RestoreCorruptionError(TimeBankError):
    """A single persisted timer entry could not be decoded."""
