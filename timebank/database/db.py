"""Engine and session handling for the TimeBank SQLite database.

The database lives at ``<app support dir>/timebank.db`` unless
``TIMEBANK_DATABASE_URL`` names another SQLAlchemy URL.  Tests call
:func:`configure_engine` with ``sqlite:///:memory:`` instead.
"""

import logging
import os
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session as OrmSession
from sqlalchemy.pool import StaticPool

from ..settings import app_support_dir
from .models import Base

logger = logging.getLogger(__name__)

DB_FILENAME = "timebank.db"
DATABASE_URL_ENV = "TIMEBANK_DATABASE_URL"

_engine: Engine | None = None
_SessionFactory = None


def database_url() -> str:
    override = os.environ.get(DATABASE_URL_ENV)
    if override:
        return override
    directory = app_support_dir()
    directory.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{directory / DB_FILENAME}"


def _make_engine(url: str) -> Engine:
    kwargs = {}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url:
            # one shared connection, otherwise every session sees an empty DB
            kwargs["poolclass"] = StaticPool
    return create_engine(url, echo=False, **kwargs)


def _get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = _make_engine(database_url())
        logger.debug("Opened database %s", _engine.url)
    return _engine


def _get_session_factory():
    global _SessionFactory
    if _SessionFactory is None:
        _SessionFactory = sessionmaker(bind=_get_engine(), expire_on_commit=False)
    return _SessionFactory


def configure_engine(url: str) -> None:
    """Point TimeBank at *url*, dropping any engine opened earlier."""
    global _engine, _SessionFactory
    if _engine is not None:
        _engine.dispose()
    _SessionFactory = None
    _engine = _make_engine(url)


def init_db() -> None:
    """Create any missing tables.  Safe to call on every start."""
    Base.metadata.create_all(_get_engine())


@contextmanager
def get_session():
    """Yield a session that commits on success and rolls back on error."""
    session: OrmSession = _get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
