"""Shared SQLite connection handling."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from dermopt.storage.schema import INIT_SCHEMA


if TYPE_CHECKING:
    from collections.abc import Iterator


class SQLiteStore:
    """Base for stores sharing one SQLite file.

    Each operation opens its own connection and commits on success, so
    stores are safe to use from concurrent request handlers.
    """

    def __init__(self, db_path: str | Path = "dermopt.db") -> None:
        self.db_path = Path(db_path)
        self._init_db()

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._connection() as conn:
            conn.executescript(INIT_SCHEMA)
