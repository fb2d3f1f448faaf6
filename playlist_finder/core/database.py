"""
Thread-safe SQLite snapshot store for playlist-finder.

Each row holds every remembered version of one playlist as a JSON record
keyed by snapshot id. The store enforces a hard byte quota: a write that
would push the summed payload sizes over the quota is rejected with
StorageQuotaError and leaves the store untouched.

Schema:
    snapshots:  container_id (PK), owner_id, payload (JSON), size, updated_at

Usage:
    store = SnapshotStore(output_dir / "cache.db", quota_bytes=5 * 1024 * 1024)

    record = store.get_record(playlist_id) or {}
    record[snapshot_id] = entry.to_dict()
    store.set_record(playlist_id, owner_id, record)
"""

import json
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator

from playlist_finder.core.exceptions import DatabaseError, StorageQuotaError


DATABASE_VERSION = 1


_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS snapshots (
    container_id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL DEFAULT '',
    payload TEXT NOT NULL,  -- JSON object: {version_id: entry}
    size INTEGER NOT NULL,
    updated_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_snapshots_owner ON snapshots(owner_id);
"""


class SnapshotStore:
    """
    Thread-safe SQLite key/value store with a byte quota.

    Uses a single persistent connection with thread locking for safety.
    All public methods acquire self._lock before executing.
    """

    def __init__(self, db_path: Path, quota_bytes: int) -> None:
        self.db_path = db_path
        self.quota_bytes = quota_bytes
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
                f"Failed to initialize snapshot store: {e}",
                details={"path": str(db_path)}
            ) from e

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Get the persistent database connection, translating sqlite errors.

        The connection is created once and reused for all operations.
        Any sqlite3.Error raised inside the block is rolled back and
        re-raised as DatabaseError.
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
            self._conn.rollback()
            raise DatabaseError(
                f"Snapshot store operation failed: {e}",
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
                    f"Snapshot store version mismatch: expected {DATABASE_VERSION}, got {row[0]}",
                    details={"expected": DATABASE_VERSION, "actual": row[0]}
                )
            conn.commit()

    def _now_iso(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def _decode_payload(self, container_id: str, payload: str) -> dict[str, Any]:
        try:
            record = json.loads(payload)
        except json.JSONDecodeError as e:
            raise DatabaseError(
                f"Corrupt snapshot record for {container_id}",
                details={"container_id": container_id, "original_error": str(e)}
            ) from e
        if not isinstance(record, dict):
            raise DatabaseError(
                f"Corrupt snapshot record for {container_id}",
                details={"container_id": container_id}
            )
        return record

    # =========================================================================
    # Record Operations
    # =========================================================================

    def get_record(self, container_id: str) -> dict[str, Any] | None:
        """Return the {version_id: entry} record of a playlist, or None."""
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    "SELECT payload FROM snapshots WHERE container_id = ?", (container_id,)
                )
                row = cursor.fetchone()
                if row is None:
                    return None
                return self._decode_payload(container_id, row["payload"])

    def set_record(self, container_id: str, owner_id: str, record: dict[str, Any]) -> None:
        """
        Replace the record of a playlist in one transaction.

        Raises:
            StorageQuotaError: If the new record would push the store over
                               quota_bytes. Nothing is written.
            DatabaseError: On any other storage failure.
        """
        payload = json.dumps(record, ensure_ascii=False, separators=(",", ":"))
        size = len(payload.encode("utf-8"))

        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    "SELECT COALESCE(SUM(size), 0) FROM snapshots WHERE container_id != ?",
                    (container_id,)
                )
                used_elsewhere = cursor.fetchone()[0]

                if used_elsewhere + size > self.quota_bytes:
                    raise StorageQuotaError(
                        "Snapshot store quota exceeded",
                        details={
                            "container_id": container_id,
                            "quota_bytes": self.quota_bytes,
                            "required_bytes": used_elsewhere + size,
                        }
                    )

                conn.execute("""
                    INSERT INTO snapshots (container_id, owner_id, payload, size, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT(container_id) DO UPDATE SET
                        owner_id = excluded.owner_id,
                        payload = excluded.payload,
                        size = excluded.size,
                        updated_at = excluded.updated_at
                """, (container_id, owner_id, payload, size, self._now_iso()))
                conn.commit()

    def delete_record(self, container_id: str) -> bool:
        """Delete the record of one playlist. Returns True if a row was removed."""
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    "DELETE FROM snapshots WHERE container_id = ?", (container_id,)
                )
                conn.commit()
                return cursor.rowcount > 0

    def delete_records_for_owner(self, owner_id: str) -> int:
        """
        Delete every record owned by owner_id.

        Returns:
            Number of snapshot versions removed (not rows).
        """
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    "SELECT container_id, payload FROM snapshots WHERE owner_id = ?",
                    (owner_id,)
                )
                removed = sum(
                    len(self._decode_payload(row["container_id"], row["payload"]))
                    for row in cursor.fetchall()
                )
                conn.execute("DELETE FROM snapshots WHERE owner_id = ?", (owner_id,))
                conn.commit()
                return removed

    def all_records(self) -> list[tuple[str, str, dict[str, Any]]]:
        """Return (container_id, owner_id, record) for every stored playlist."""
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    "SELECT container_id, owner_id, payload FROM snapshots ORDER BY updated_at"
                )
                return [
                    (row["container_id"], row["owner_id"],
                     self._decode_payload(row["container_id"], row["payload"]))
                    for row in cursor.fetchall()
                ]

    def used_bytes(self) -> int:
        with self._lock:
            with self._get_connection() as conn:
                cursor = conn.execute("SELECT COALESCE(SUM(size), 0) FROM snapshots")
                return cursor.fetchone()[0]
