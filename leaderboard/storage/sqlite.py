"""SQLite key/value backend for durable leaderboards."""

from __future__ import annotations

import sqlite3
import threading

from leaderboard.protocol import InternalError


class SqliteBackend:
    def __init__(self, path: str):
        self.path = path
        self.conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def init(self) -> None:
        self.conn = sqlite3.connect(self.path, check_same_thread=False)
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS kv (
              key TEXT PRIMARY KEY,
              value TEXT NOT NULL
            )
            """
        )
        self.conn.commit()

    def close(self) -> None:
        if self.conn:
            self.conn.close()
            self.conn = None

    def _require_conn(self) -> sqlite3.Connection:
        if not self.conn:
            raise InternalError("sqlite backend not initialised")
        return self.conn

    def get(self, key: str) -> str | None:
        conn = self._require_conn()
        try:
            with self._lock:
                row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise InternalError(f"sqlite read failed: {e}")
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        conn = self._require_conn()
        try:
            with self._lock:
                conn.execute(
                    """
                    INSERT INTO kv (key, value) VALUES (?, ?)
                    ON CONFLICT(key) DO UPDATE SET value=excluded.value
                    """,
                    (key, value),
                )
                conn.commit()
        except sqlite3.Error as e:
            raise InternalError(f"sqlite write failed: {e}")
