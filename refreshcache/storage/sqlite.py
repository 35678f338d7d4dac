"""refreshcache.storage.sqlite

Single-row snapshot table. The latest save wins; there is no history.
"""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path

from refreshcache.core.exceptions import StorageError
from refreshcache.storage.base import Snapshot

SCHEMA = """
CREATE TABLE IF NOT EXISTS cache_snapshot (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    payload TEXT NOT NULL,
    saved_at TEXT DEFAULT (datetime('now'))
);
"""


class SQLiteStorage:
    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._lock = threading.RLock()
        self._init_schema()

    def close(self) -> None:
        with self._lock:
            self.conn.close()

    def _init_schema(self) -> None:
        with self.conn:
            self.conn.executescript(SCHEMA)
            self.conn.execute("PRAGMA journal_mode=WAL")
            self.conn.execute("PRAGMA synchronous=NORMAL")

    def load(self) -> Snapshot | None:
        with self._lock:
            try:
                row = self.conn.execute("SELECT payload FROM cache_snapshot WHERE id = 1").fetchone()
            except sqlite3.Error as e:
                raise StorageError(f"Cannot read snapshot from {self.db_path}: {e}") from e
        if row is None:
            return None
        return Snapshot.from_json(row[0])

    def save(self, snapshot: Snapshot) -> None:
        payload = snapshot.to_json()
        with self._lock:
            try:
                with self.conn:
                    self.conn.execute(
                        """
                        INSERT INTO cache_snapshot (id, payload, saved_at)
                        VALUES (1, ?, datetime('now'))
                        ON CONFLICT(id) DO UPDATE SET payload = excluded.payload, saved_at = excluded.saved_at
                        """,
                        (payload,),
                    )
            except sqlite3.Error as e:
                raise StorageError(f"Cannot write snapshot to {self.db_path}: {e}") from e
