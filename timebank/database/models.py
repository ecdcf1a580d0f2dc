"""SQLAlchemy ORM models for TimeBank."""

from sqlalchemy import (
    Column, Integer, String, DateTime, LargeBinary, Numeric, JSON,
)
from sqlalchemy.orm import DeclarativeBase

from ..clock import naive_utcnow


class Base(DeclarativeBase):
    pass


class KeyValueEntry(Base):
    """Durable key-value blobs (the active-timer snapshot lives here)."""

    __tablename__ = "kv_entries"

    key = Column(String(128), primary_key=True)
    value = Column(LargeBinary, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=naive_utcnow)

    def __repr__(self) -> str:
        return f"<KeyValueEntry key={self.key} bytes={len(self.value or b'')}>"


class EnergyTransactionRow(Base):
    """Append-only energy ledger.  Rows are inserted, never updated."""

    __tablename__ = "energy_transactions"

    id = Column(String(64), primary_key=True)
    task_id = Column(String(64), nullable=True)
    type = Column(String(20), nullable=False)   # task_start | task_complete | task_move | focus_session | break | sleep
    energy_delta = Column(Integer, nullable=False)
    timestamp = Column(DateTime, nullable=False)
    metadata_json = Column(JSON, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<EnergyTransactionRow type={self.type} "
            f"delta={self.energy_delta}>"
        )


class TimeSessionRow(Base):
    """A finished timer interval (the server-of-record for analytics)."""

    __tablename__ = "time_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    task_id = Column(String(64), nullable=True)
    session_kind = Column(String(20), nullable=False, default="focus")
    started_at = Column(DateTime, nullable=False)
    ended_at = Column(DateTime, nullable=False)
    duration_seconds = Column(Integer, nullable=False, default=0)
    hourly_rate_usd = Column(Numeric(10, 2), nullable=True)
    earnings_usd = Column(Numeric(12, 2), nullable=True)
    notes = Column(String(1000), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<TimeSessionRow id={self.id} task={self.task_id} "
            f"seconds={self.duration_seconds}>"
        )
