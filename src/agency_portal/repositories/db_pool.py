"""Per-thread SQLite/SQLCipher connections shared by the request worker threads."""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import structlog

from agency_portal.core.config import AppConfig, get_required_env

try:
    from pysqlcipher3 import dbapi2 as sqlcipher

    SQLCIPHER_AVAILABLE = True
except ImportError:
    sqlcipher = None
    SQLCIPHER_AVAILABLE = False

logger = structlog.get_logger()


class ThreadLocalConnection:
    """
    One connection per worker thread.

    Statements commit immediately unless they run inside ``transaction()``,
    which groups them into a single commit or rollback.
    """

    def __init__(self, config: AppConfig):
        self._config = config
        self._local = threading.local()
        self._lock = threading.Lock()
        self._open: list[sqlite3.Connection] = []

    def _connect(self) -> sqlite3.Connection:
        db_path = Path(self._config.database.path)
        db_path.parent.mkdir(parents=True, exist_ok=True)

        if SQLCIPHER_AVAILABLE:
            connection = sqlcipher.connect(str(db_path), check_same_thread=False, timeout=30)
            key = get_required_env(self._config.database.key_env).replace("'", "''")
            connection.execute(f"PRAGMA key = '{key}'")
            connection.execute("PRAGMA cipher_compatibility = 4")
        elif self._config.database.allow_sqlite_fallback:
            logger.debug("sqlcipher_unavailable", path=str(db_path))
            connection = sqlite3.connect(str(db_path), check_same_thread=False, timeout=30)
        else:
            raise RuntimeError(
                "SQLCipher is required but unavailable. Install pysqlcipher3 or enable fallback."
            )

        connection.execute("PRAGMA foreign_keys = ON")
        connection.execute("PRAGMA journal_mode = WAL")
        connection.row_factory = sqlite3.Row
        with self._lock:
            self._open.append(connection)
        return connection

    def get_connection(self) -> sqlite3.Connection:
        connection = getattr(self._local, "connection", None)
        if connection is None:
            connection = self._connect()
            self._local.connection = connection
            self._local.depth = 0
        return connection

    def close_all(self) -> None:
        """Close every connection opened by any thread; used on shutdown."""
        with self._lock:
            connections, self._open = self._open, []
        for connection in connections:
            connection.close()
        self._local.connection = None

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        connection = self.get_connection()
        self._local.depth += 1
        try:
            yield connection
        except BaseException:
            if self._local.depth == 1:
                connection.rollback()
            raise
        else:
            if self._local.depth == 1:
                connection.commit()
        finally:
            self._local.depth -= 1

    def execute(self, query: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        connection = self.get_connection()
        cursor = connection.cursor()
        cursor.execute(query, params)
        if not self._local.depth:
            connection.commit()
        return cursor

    def fetchall(self, query: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        return self.execute(query, params).fetchall()

    def fetchone(self, query: str, params: tuple[Any, ...] = ()) -> sqlite3.Row | None:
        return self.execute(query, params).fetchone()
