"""Snapshot storage backends.

Two independent backends hold the same keyed JSON documents: a structured
SQLite database and a flat JSON key-value file. Both satisfy
``SnapshotBackend``; the store writes to both and reads them in order.
"""

import json
import os
import sqlite3
import threading
from contextlib import closing
from pathlib import Path
from typing import Any, Optional, Protocol

from timeflow.core.locking import lock_file, unlock_file


class BackendError(Exception):
    """Snapshot backend failure."""

    pass


class SnapshotBackend(Protocol):
    """Capability shared by snapshot backends."""

    name: str

    def open(self) -> None:
        """Prepare the backend for use (create files, schema)."""
        ...

    def read(self, key: str) -> Optional[dict[str, Any]]:
        """Return the document stored under ``key`` or None."""
        ...

    def write(self, key: str, data: dict[str, Any]) -> None:
        """Store ``data`` under ``key``, replacing any previous document."""
        ...

    def delete(self, key: str) -> None:
        """Remove ``key``; deleting a missing key is not an error."""
        ...


class SqliteSnapshotBackend:
    """Structured local database holding snapshots in a keyed table."""

    name = "sqlite"

    SCHEMA = (
        "CREATE TABLE IF NOT EXISTS timer_state ("
        " key TEXT PRIMARY KEY,"
        " data TEXT NOT NULL,"
        " last_update INTEGER NOT NULL DEFAULT 0"
        ")",
        "CREATE INDEX IF NOT EXISTS idx_timer_state_last_update ON timer_state (last_update)",
    )

    def __init__(self, db_path: Path):
        """Initialize SQLite backend.

        Args:
            db_path: Database file path
        """
        self.db_path = db_path
        self._opened = False

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.db_path), timeout=5.0)

    def open(self) -> None:
        """Create the database file and schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with closing(self._connect()) as conn, conn:
                for statement in self.SCHEMA:
                    conn.execute(statement)
        except sqlite3.Error as e:
            raise BackendError(f"Cannot open snapshot database {self.db_path}: {e}") from e
        self._opened = True

    def read(self, key: str) -> Optional[dict[str, Any]]:
        """Read a document by key."""
        self._require_open()
        try:
            with closing(self._connect()) as conn:
                row = conn.execute("SELECT data FROM timer_state WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise BackendError(f"Snapshot read failed: {e}") from e
        if row is None:
            return None
        data: dict[str, Any] = json.loads(row[0])
        return data

    def write(self, key: str, data: dict[str, Any]) -> None:
        """Insert or replace a document by key."""
        self._require_open()
        try:
            with closing(self._connect()) as conn, conn:
                conn.execute(
                    "INSERT OR REPLACE INTO timer_state (key, data, last_update) VALUES (?, ?, ?)",
                    (key, json.dumps(data), int(data.get("lastUpdate") or 0)),
                )
        except sqlite3.Error as e:
            raise BackendError(f"Snapshot write failed: {e}") from e

    def delete(self, key: str) -> None:
        """Delete a document by key."""
        self._require_open()
        try:
            with closing(self._connect()) as conn, conn:
                conn.execute("DELETE FROM timer_state WHERE key = ?", (key,))
        except sqlite3.Error as e:
            raise BackendError(f"Snapshot delete failed: {e}") from e

    def _require_open(self) -> None:
        if not self._opened:
            raise BackendError("Snapshot database is not open")


class JsonFileSnapshotBackend:
    """Flat key-value store kept in a single JSON file."""

    name = "json"

    def __init__(self, file_path: Path):
        """Initialize JSON file backend.

        Args:
            file_path: Key-value file path
        """
        self.file_path = file_path
        self._lock = threading.Lock()

    def open(self) -> None:
        """Ensure the parent directory exists."""
        self.file_path.parent.mkdir(parents=True, exist_ok=True)

    def _read_all(self) -> dict[str, Any]:
        if not self.file_path.exists():
            return {}

        with open(self.file_path, encoding="utf-8") as f:
            lock_file(f, exclusive=False)
            try:
                content = f.read()
            finally:
                unlock_file(f)

        if not content.strip():
            return {}
        data = json.loads(content)
        if not isinstance(data, dict):
            raise ValueError(f"Malformed key-value file: {self.file_path}")
        return data

    def _write_all(self, data: dict[str, Any]) -> None:
        """Write the whole file atomically using a temporary file and rename."""
        temp_file = self.file_path.with_suffix(".tmp")

        try:
            with open(temp_file, "w", encoding="utf-8") as f:
                lock_file(f, exclusive=True)
                json.dump(data, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
                unlock_file(f)

            temp_file.replace(self.file_path)

        except Exception as e:
            if temp_file.exists():
                temp_file.unlink()
            raise e

    def read(self, key: str) -> Optional[dict[str, Any]]:
        """Read a document by key."""
        with self._lock:
            try:
                value = self._read_all().get(key)
            except (OSError, ValueError) as e:
                raise BackendError(f"Key-value read failed: {e}") from e
        return value if isinstance(value, dict) else None

    def write(self, key: str, data: dict[str, Any]) -> None:
        """Store a document by key."""
        with self._lock:
            try:
                try:
                    contents = self._read_all()
                except ValueError:
                    # Unreadable file is replaced rather than blocking the write
                    contents = {}
                contents[key] = data
                self._write_all(contents)
            except OSError as e:
                raise BackendError(f"Key-value write failed: {e}") from e

    def delete(self, key: str) -> None:
        """Delete a document by key."""
        with self._lock:
            try:
                contents = self._read_all()
                if key not in contents:
                    return
                del contents[key]
                self._write_all(contents)
            except (OSError, ValueError) as e:
                raise BackendError(f"Key-value delete failed: {e}") from e
