"""
Thread-safe SQLite record store for spot-resolver.

Every successful link query is recorded here by the background
ResultRecorder: one row per link, holding what kind of collection it
was, its title, cover and how many tracks it contained. Querying the
same link again refreshes the existing row instead of adding a new one.

Schema:
    schema_version:     Single row with DATABASE_VERSION
    download_records:   One row per unique link

Usage:
    db = Database(output_dir / "database.db")

    db.add_record(FolderType.PLAYLIST, "Top 50", link, cover_url, total_files=50)
    for record in db.get_all_records():
        print(record["name"], record["total_files"])
"""

import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator

from spot_resolver.core.exceptions import DatabaseError
from spot_resolver.core.models import FolderType


DATABASE_VERSION = 1


_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS download_records (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    type TEXT NOT NULL,
    name TEXT NOT NULL,
    link TEXT UNIQUE NOT NULL,
    cover_url TEXT,
    total_files INTEGER NOT NULL DEFAULT 0,
    created_at TEXT,
    updated_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_download_records_updated ON download_records(updated_at);
"""


class Database:
    """
    Thread-safe SQLite store of download records.

    Uses a single persistent connection with thread locking for safety.
    All public methods acquire self._lock before executing, so the
    recorder may write from worker threads (asyncio.to_thread) while
    other code reads.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None

        if not db_path.parent.exists():
            raise DatabaseError(
                f"Parent directory does not exist: {db_path.parent}",
                details={"path": str(db_path.parent)}
            )

        try:
            self._init_database()
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to initialize database: {e}",
                details={"path": str(db_path)}
            ) from e

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Get the persistent database connection as a context manager.

        The connection is created once and reused for all operations.
        sqlite3 errors raised inside the block are converted to DatabaseError.
        """
        if self._conn is None:
            self._conn = sqlite3.connect(
                str(self.db_path),
                timeout=30.0,
                check_same_thread=False  # We handle thread safety with _lock
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode = WAL")
        try:
            yield self._conn
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Database operation failed: {e}",
                details={"path": str(self.db_path), "original_error": str(e)}
            ) from e

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def _init_database(self) -> None:
        with self._get_connection() as conn:
            conn.executescript(_SCHEMA_SQL)

            cursor = conn.execute("SELECT version FROM schema_version LIMIT 1")
            row = cursor.fetchone()

            if row is None:
                conn.execute("INSERT INTO schema_version (version) VALUES (?)", (DATABASE_VERSION,))
            elif row[0] != DATABASE_VERSION:
                raise DatabaseError(
                    f"Database version mismatch: expected {DATABASE_VERSION}, got {row[0]}",
                    details={"expected": DATABASE_VERSION, "actual": row[0]}
                )
            conn.commit()

    def _now_iso(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    # =========================================================================
    # Record Operations
    # =========================================================================

    def add_record(
        self,
        folder_type: FolderType,
        name: str,
        link: str,
        cover_url: str | None,
        total_files: int
    ) -> None:
        """
        Create or refresh the record for a link.

        Args:
            folder_type: Kind of collection the link resolved to.
            name: Collection title.
            link: The link exactly as the user supplied it (unique key).
            cover_url: Cover art URL, may be empty.
            total_files: Number of tracks in the collection.
        """
        now = self._now_iso()
        with self._lock:
            with self._get_connection() as conn:
                conn.execute("""
                    INSERT INTO download_records (type, name, link, cover_url, total_files, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(link) DO UPDATE SET
                        type = excluded.type,
                        name = excluded.name,
                        cover_url = excluded.cover_url,
                        total_files = excluded.total_files,
                        updated_at = excluded.updated_at
                """, (folder_type.value, name, link, cover_url, total_files, now, now))
                conn.commit()

    def get_record(self, link: str) -> dict[str, Any] | None:
        """Get the record for a link, or None."""
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute("SELECT * FROM download_records WHERE link = ?", (link,))
                row = cursor.fetchone()
                return self._deserialize_row(row) if row else None

    def get_all_records(self) -> list[dict[str, Any]]:
        """All records, most recently updated first."""
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    "SELECT * FROM download_records ORDER BY updated_at DESC, id DESC"
                )
                return [self._deserialize_row(row) for row in cursor.fetchall()]

    def delete_record(self, link: str) -> bool:
        """Delete the record for a link. Returns True if a row was removed."""
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute("DELETE FROM download_records WHERE link = ?", (link,))
                conn.commit()
                return cursor.rowcount > 0

    def count(self) -> int:
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute("SELECT COUNT(*) FROM download_records")
                return cursor.fetchone()[0]

    def _deserialize_row(self, row: sqlite3.Row) -> dict[str, Any]:
        """Convert SQLite row to Python dict, with 'type' as a FolderType."""
        data = dict(row)
        try:
            data["type"] = FolderType(data["type"])
        except ValueError:
            pass
        return data
