"""Durable key-value stores for the active-timer snapshot.

The registry only needs three calls::

    get(key) -> bytes | None
    set(key, value)            # raises PersistenceWriteError
    delete(key)

``MemoryStore`` is for tests and throwaway processes, ``JsonFileStore``
keeps one file per key next to the settings file, and ``SqlStore``
writes into the ``kv_entries`` table of the TimeBank database.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError

from ..clock import naive_utcnow
from ..errors import PersistenceWriteError

logger = logging.getLogger(__name__)


class DurableStore(Protocol):
    def get(self, key: str) -> bytes | None: ...

    def set(self, key: str, value: bytes) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """In-process store.  ``quota_bytes`` mimics a browser storage quota."""

    def __init__(self, quota_bytes: int | None = None) -> None:
        self._data: dict[str, bytes] = {}
        self.quota_bytes = quota_bytes

    def get(self, key: str) -> bytes | None:
        return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        if self.quota_bytes is not None and len(value) > self.quota_bytes:
            raise PersistenceWriteError(
                f"quota exceeded: {len(value)} > {self.quota_bytes} bytes"
            )
        self._data[key] = bytes(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


_SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]")


class JsonFileStore:
    """One file per key under *directory*; writes replace atomically."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / (_SAFE_KEY.sub("_", key) + ".json")

    def get(self, key: str) -> bytes | None:
        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError:
            logger.warning("Could not read %s", path, exc_info=True)
            return None

    def set(self, key: str, value: bytes) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as fh:
                    fh.write(value)
                os.replace(tmp, path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise PersistenceWriteError(f"writing {path}: {exc}") from exc

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class SqlStore:
    """Key-value rows in the TimeBank SQLite database."""

    def get(self, key: str) -> bytes | None:
        from ..database.db import get_session
        from ..database.models import KeyValueEntry

        try:
            with get_session() as db:
                row = db.get(KeyValueEntry, key)
                return bytes(row.value) if row is not None else None
        except SQLAlchemyError:
            logger.warning("Could not read %r from the database", key, exc_info=True)
            return None

    def set(self, key: str, value: bytes) -> None:
        from ..database.db import get_session
        from ..database.models import KeyValueEntry

        try:
            with get_session() as db:
                row = db.get(KeyValueEntry, key)
                if row is None:
                    db.add(KeyValueEntry(key=key, value=value))
                else:
                    row.value = value
                    row.updated_at = naive_utcnow()
        except SQLAlchemyError as exc:
            raise PersistenceWriteError(f"writing {key!r}: {exc}") from exc

    def delete(self, key: str) -> None:
        from ..database.db import get_session
        from ..database.models import KeyValueEntry

        with get_session() as db:
            row = db.get(KeyValueEntry, key)
            if row is not None:
                db.delete(row)
