# src/taskflow/storage/kv_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from pathlib import Path

from ..core.errors import StorageUnavailableError

logger = logging.getLogger(__name__)


class SQLiteKeyValueStorage:
    """
    SQLite key-value storage.

    One row per key; the value is an opaque string (the Store writes JSON).
    Writes replace the whole value, so the last writer wins.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "taskflow.sqlite3") -> None:
        # Nothing touches the file here: an unreadable database surfaces as
        # StorageUnavailableError from get/set, which the Store degrades on.
        self._db_path = Path(db_path)
        self._schema_ready = False

    @property
    def db_path(self) -> Path:
        return self._db_path

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        if not self._schema_ready:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        if not self._schema_ready:
            try:
                self._ensure_schema(conn)
            except sqlite3.Error:
                conn.close()
                raise
            self._schema_ready = True
            logger.info("KeyValueStorage ready db=%s", self._db_path)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    @staticmethod
    def _ensure_schema(conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS kv (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at REAL NOT NULL
            )
            """
        )
        conn.commit()

    # ---- public API ----

    def get(self, key: str) -> str | None:
        try:
            conn = self._get_conn()
            try:
                cur = conn.cursor()
                cur.execute("SELECT value FROM kv WHERE key = ?", (key,))
                row = cur.fetchone()
                return str(row["value"]) if row else None
            finally:
                conn.close()
        except (OSError, sqlite3.Error) as e:
            raise StorageUnavailableError(f"Failed to read key {key!r}: {e}") from e

    def set(self, key: str, value: str) -> None:
        try:
            conn = self._get_conn()
            try:
                conn.execute(
                    """
                    INSERT INTO kv(key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    (key, value, time.time()),
                )
                conn.commit()
            finally:
                conn.close()
        except (OSError, sqlite3.Error) as e:
            raise StorageUnavailableError(f"Failed to write key {key!r}: {e}") from e
        logger.debug("kv write key=%s bytes=%d", key, len(value))

    def keys(self) -> list[str]:
        try:
            conn = self._get_conn()
            try:
                cur = conn.cursor()
                cur.execute("SELECT key FROM kv ORDER BY key")
                return [str(r["key"]) for r in cur.fetchall()]
            finally:
                conn.close()
        except (OSError, sqlite3.Error) as e:
            raise StorageUnavailableError(f"Failed to list keys: {e}") from e


class MemoryKeyValueStorage:
    """In-process storage for tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def keys(self) -> list[str]:
        return sorted(self._data)
