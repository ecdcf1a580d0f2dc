"""Database package."""

from .db import get_session, init_db, configure_engine
from .models import KeyValueEntry, EnergyTransactionRow, TimeSessionRow

__all__ = [
    "get_session",
    "init_db",
    "configure_engine",
    "KeyValueEntry",
    "EnergyTransactionRow",
    "TimeSessionRow",
]
