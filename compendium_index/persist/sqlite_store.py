"""
SQLite-backed flat store for persisted artifacts.

One table, ``artifacts``, maps a key to a BLOB plus the write timestamp.
Every write is a single statement in its own transaction, so an artifact
is replaced atomically or not at all.
"""

import sqlite3
import time
from pathlib import Path

from compendium_index.errors import PersistenceReadError, PersistenceWriteError


class KVStore:
    """
    File-backed SQLite key/bytes store.

    WAL mode lets readers proceed while a write is in flight.
    """

    TABLE = "artifacts"

    def __init__(self, db_path: Path | str):
        """
        Initialize the store at the given path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(
            str(self.db_path),
            check_same_thread=False,  # store calls run in worker threads
            timeout=10.0,
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")
        self._init_tables()

    def _init_tables(self) -> None:
        self._conn.execute(f"""
            CREATE TABLE IF NOT EXISTS {self.TABLE} (
                key TEXT PRIMARY KEY,
                value BLOB NOT NULL,
                ts INTEGER NOT NULL
            )
        """)
        self._conn.commit()

    def exists(self, key: str) -> bool:
        try:
            cursor = self._conn.execute(
                f"SELECT 1 FROM {self.TABLE} WHERE key = ?", (key,)
            )
            return cursor.fetchone() is not None
        except sqlite3.Error as e:
            raise PersistenceReadError(f"Cannot query {key}: {e}") from e

    def read(self, key: str) -> bytes:
        try:
            cursor = self._conn.execute(
                f"SELECT value FROM {self.TABLE} WHERE key = ?", (key,)
            )
            row = cursor.fetchone()
        except sqlite3.Error as e:
            raise PersistenceReadError(f"Cannot read {key}: {e}") from e

        if row is None:
            raise PersistenceReadError(f"No artifact stored under {key}")
        return bytes(row[0])

    def write(self, key: str, data: bytes) -> None:
        try:
            with self._conn:
                self._conn.execute(
                    f"INSERT OR REPLACE INTO {self.TABLE} (key, value, ts) VALUES (?, ?, ?)",
                    (key, sqlite3.Binary(data), int(time.time())),
                )
        except sqlite3.Error as e:
            raise PersistenceWriteError(f"Cannot write {key}: {e}") from e

    def delete(self, key: str) -> bool:
        try:
            with self._conn:
                cursor = self._conn.execute(
                    f"DELETE FROM {self.TABLE} WHERE key = ?", (key,)
                )
            return cursor.rowcount > 0
        except sqlite3.Error as e:
            raise PersistenceWriteError(f"Cannot delete {key}: {e}") from e

    def stats(self) -> dict:
        """
        Get statistics for the artifact table.

        Returns:
            Dict with count, total_bytes, oldest_ts, newest_ts
        """
        cursor = self._conn.execute(f"""
            SELECT
                COUNT(*) as count,
                SUM(LENGTH(value)) as total_bytes,
                MIN(ts) as oldest_ts,
                MAX(ts) as newest_ts
            FROM {self.TABLE}
        """)
        row = cursor.fetchone()

        return {
            "count": row[0] or 0,
            "total_bytes": row[1] or 0,
            "oldest_ts": row[2] or 0,
            "newest_ts": row[3] or 0,
        }

    def vacuum(self) -> None:
        """Reclaim space after large deletions."""
        self._conn.execute("VACUUM")
        self._conn.commit()

    def close(self) -> None:
        """Close database connection."""
        self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
