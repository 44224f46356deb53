"""SQLite sync cursor store."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator, Optional

from loguru import logger


class SQLiteCursorStore:
    """Persist per-(owner, folder) cursors in a local SQLite database."""

    def __init__(self, db_path: str | Path = "data/cursors.db"):
        self.db_path = Path(db_path)
        self._ensure_db()

    def _ensure_db(self) -> None:
        """Create database and table if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        with self._connection() as conn:
            conn.executescript("""
                PRAGMA journal_mode=WAL;

                CREATE TABLE IF NOT EXISTS sync_cursors (
                    owner TEXT NOT NULL,
                    folder_id TEXT NOT NULL,
                    cursor BLOB NOT NULL,
                    updated_at TEXT NOT NULL,

                    PRIMARY KEY(owner, folder_id)
                );
            """)
            logger.debug(f"Cursor database initialized at {self.db_path}")

    @contextmanager
    def _connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Context manager for database connections."""
        conn = sqlite3.connect(self.db_path, timeout=30.0)
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def get(self, owner: str, folder_id: str) -> Optional[bytes]:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT cursor FROM sync_cursors WHERE owner = ? AND folder_id = ?",
                (owner, folder_id),
            ).fetchone()
        return bytes(row[0]) if row else None

    def put(self, owner: str, folder_id: str, cursor: bytes) -> None:
        now = datetime.now(timezone.utc).isoformat()
        with self._connection() as conn:
            conn.execute(
                """INSERT INTO sync_cursors (owner, folder_id, cursor, updated_at)
                   VALUES (?, ?, ?, ?)
                   ON CONFLICT(owner, folder_id)
                   DO UPDATE SET cursor = excluded.cursor, updated_at = excluded.updated_at""",
                (owner, folder_id, sqlite3.Binary(cursor), now),
            )
        logger.debug(f"Saved cursor for {owner}:{folder_id}")

    def delete_owner(self, owner: str) -> int:
        with self._connection() as conn:
            cursor = conn.execute("DELETE FROM sync_cursors WHERE owner = ?", (owner,))
            count = cursor.rowcount
        logger.info(f"Deleted {count} cursors for {owner}")
        return count

