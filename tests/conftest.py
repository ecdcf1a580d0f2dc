"""Shared pytest fixtures for TimeBank tests."""

import sys
import pytest

from PyQt6.QtCore import QCoreApplication

from timebank.database.db import configure_engine, init_db
from timebank.energy.ledger import EnergyLedger
from timebank.timer.registry import MultiTimerRegistry
from timebank.timer.store import MemoryStore

from helpers import FakeClock


@pytest.fixture(scope="session")
def qapp():
    """A single QCoreApplication instance shared across the entire test run."""
    app = QCoreApplication.instance() or QCoreApplication(sys.argv)
    yield app


@pytest.fixture(autouse=True)
def test_db(tmp_path, monkeypatch):
    """Point every test at a fresh in-memory SQLite database and a
    throwaway settings directory."""
    monkeypatch.setenv("TIMEBANK_HOME", str(tmp_path / "home"))
    monkeypatch.delenv("TIMEBANK_DATABASE_URL", raising=False)
    configure_engine("sqlite:///:memory:")
    init_db()
    yield


@pytest.fixture
def clock():
    """Wednesday 2026-03-11 12:00 UTC, advanced by hand."""
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def registry(qapp, store, clock):
    """Fresh registry on an in-memory store, driven by the fake clock."""
    return MultiTimerRegistry(store, clock=clock)


@pytest.fixture
def ledger(qapp, clock):
    """Non-persisting ledger at the default 150/200 energy."""
    return EnergyLedger(clock=clock)
