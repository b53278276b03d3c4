# src/cache/sqlite_store.py — v1
"""SQLite-based cache store (CACHE_BACKEND=sqlite).

Uses stdlib sqlite3. Each put is a single transaction, so an
interrupted write leaves the previous row intact.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from pathlib import Path

from codebrief.cache.base_cache_store import BaseCacheStore

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS round_entries (
    key TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);
"""


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed cache store. The database file is opened lazily."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    @property
    def location(self) -> Path:
        return self._db_path.parent

    async def get(self, key: str) -> str | None:
        if self._conn is None and not self._db_path.exists():
            return None
        row = await asyncio.to_thread(self._fetch_one, key)
        return None if row is None else row[0]

    async def put(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._upsert, key, value)

    async def delete(self, key: str) -> None:
        if self._conn is None and not self._db_path.exists():
            return
        await asyncio.to_thread(self._execute, "DELETE FROM round_entries WHERE key = ?", (key,))

    async def clear(self) -> None:
        if self._conn is None and not self._db_path.exists():
            return
        await asyncio.to_thread(self._execute, "DELETE FROM round_entries", ())
        logger.debug("Cleared sqlite cache %s", self._db_path)

    async def list_keys(self) -> list[str]:
        if self._conn is None and not self._db_path.exists():
            return []
        return await asyncio.to_thread(self._fetch_keys)

    def close(self) -> None:
        """Close the database connection. The next operation reopens it."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def _connect(self) -> sqlite3.Connection:
        if self._conn is None:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.executescript(_SCHEMA)
        return self._conn

    def _fetch_one(self, key: str) -> tuple[str] | None:
        with self._lock:
            cursor = self._connect().execute(
                "SELECT data FROM round_entries WHERE key = ?", (key,)
            )
            return cursor.fetchone()

    def _upsert(self, key: str, value: str) -> None:
        with self._lock, self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO round_entries (key, data, updated_at) "
                "VALUES (?, ?, CURRENT_TIMESTAMP)",
                (key, value),
            )

    def _execute(self, sql: str, params: tuple) -> None:
        with self._lock, self._connect() as conn:
            conn.execute(sql, params)

    def _fetch_keys(self) -> list[str]:
        with self._lock:
            cursor = self._connect().execute("SELECT key FROM round_entries ORDER BY key")
            return [row[0] for row in cursor.fetchall()]
