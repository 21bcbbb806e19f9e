"""SQLite storage backend for history persistence.

Stores each slot as one row and enforces a byte quota per value.
"""

import logging
import sqlite3
from datetime import UTC, datetime
from pathlib import Path

from .protocol import QuotaExceededError, StorageError

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS slots (
    name TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    size_bytes INTEGER NOT NULL,
    updated_at TEXT NOT NULL
);
"""


class SQLiteSlotStorage:
    """SQLite-based key-value slot storage with a byte quota.

    Args:
        db_path: Path to SQLite database file. ":memory:" is accepted.
        quota_bytes: Maximum encoded size of a single value (None = unbounded).
    """

    def __init__(self, db_path: Path | str, quota_bytes: int | None = None):
        self.db_path = db_path if db_path == ":memory:" else Path(db_path)
        self.quota_bytes = quota_bytes
        self._conn: sqlite3.Connection | None = None

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection, creating if needed."""
        if self._conn is None:
            raise RuntimeError("Storage not initialized. Call initialize() first.")
        return self._conn

    def initialize(self) -> None:
        """Create the database file and schema."""
        if self._conn is not None:
            return

        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(SCHEMA_SQL)
        self._conn.commit()

        logger.info(f"Initialized SQLite slot storage at {self.db_path}")

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def read(self, name: str) -> str | None:
        """Get the value stored under ``name``."""
        conn = self._get_conn()
        row = conn.execute("SELECT value FROM slots WHERE name = ?", (name,)).fetchone()
        return row["value"] if row else None

    def write(self, name: str, value: str) -> None:
        """Replace the value stored under ``name``.

        Raises:
            QuotaExceededError: If the value exceeds the quota or the disk is full.
            StorageError: For other database failures.
        """
        size = len(value.encode("utf-8"))
        if self.quota_bytes is not None and size > self.quota_bytes:
            raise QuotaExceededError(
                f"Value for slot '{name}' is {size} bytes, quota is "
                f"{self.quota_bytes} bytes",
                size_bytes=size,
                quota_bytes=self.quota_bytes,
            )

        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO slots (name, value, size_bytes, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(name) DO UPDATE SET
                    value = excluded.value,
                    size_bytes = excluded.size_bytes,
                    updated_at = excluded.updated_at
                """,
                (name, value, size, datetime.now(UTC).isoformat()),
            )
            conn.commit()
        except sqlite3.OperationalError as e:
            conn.rollback()
            if "full" in str(e).lower():
                raise QuotaExceededError(str(e), size_bytes=size) from e
            raise StorageError(f"Failed to write slot '{name}': {e}") from e

    def delete(self, name: str) -> None:
        """Remove ``name`` if present."""
        conn = self._get_conn()
        conn.execute("DELETE FROM slots WHERE name = ?", (name,))
        conn.commit()

    def size_of(self, name: str) -> int:
        """Stored size of ``name`` in bytes (0 when empty)."""
        conn = self._get_conn()
        row = conn.execute(
            "SELECT size_bytes FROM slots WHERE name = ?", (name,)
        ).fetchone()
        return row["size_bytes"] if row else 0


__all__ = ["SQLiteSlotStorage"]
