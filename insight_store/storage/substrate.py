"""
Key-value substrates the storage components are built on.

A substrate is a synchronous, profile-scoped, string-keyed store with no
transactions and no cross-key atomicity. Components receive one as a constructor
argument and never reach for a global store.
"""

import logging
import sqlite3
from pathlib import Path
from typing import Protocol, runtime_checkable

from insight_store.exceptions import StorageWriteError

log = logging.getLogger(__name__)


@runtime_checkable
class KeyValueSubstrate(Protocol):
    """The storage port every component writes through."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None:
        """Stores `value` under `key`. Raises StorageWriteError on rejection."""
        ...

    def remove(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...


def _entry_size(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


class MemorySubstrate:
    """
    Dict-backed substrate with an optional byte quota, mirroring a browser
    profile's finite storage.
    """

    def __init__(self, quota_bytes: int | None = None):
        self.quota_bytes = quota_bytes
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            used = self.used_bytes()
            if key in self._data:
                used -= _entry_size(key, self._data[key])
            if used + _entry_size(key, value) > self.quota_bytes:
                raise StorageWriteError(
                    f"Quota of {self.quota_bytes} bytes exceeded writing '{key}'."
                )
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)

    def used_bytes(self) -> int:
        return sum(_entry_size(k, v) for k, v in self._data.items())

    def __len__(self) -> int:
        return len(self._data)


class SqliteSubstrate:
    """
    A file-backed substrate storing every key in a single SQLite table, one
    database file per profile.
    """

    def __init__(self, db_path: Path, quota_bytes: int | None = None):
        self.db_path = db_path
        self.quota_bytes = quota_bytes
        self._initialize_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Gets a new database connection with WAL journaling."""
        try:
            conn = sqlite3.connect(self.db_path, timeout=30)
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
            return conn
        except sqlite3.Error as e:
            log.error(f"Failed to connect to storage database: {e}")
            raise

    def _initialize_db(self) -> None:
        """Creates the database file and the key-value table if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with self._get_connection() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS kv (
                        key TEXT PRIMARY KEY NOT NULL,
                        value TEXT NOT NULL
                    );
                    """
                )
                conn.commit()
        except sqlite3.Error as e:
            log.error(f"Failed to initialize storage database at '{self.db_path}': {e}")

    def get(self, key: str) -> str | None:
        try:
            with self._get_connection() as conn:
                row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            log.error(f"Storage read failed for key '{key}': {e}")
            return None
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        try:
            with self._get_connection() as conn:
                if self.quota_bytes is not None:
                    used = conn.execute(
                        "SELECT COALESCE(SUM(LENGTH(CAST(key AS BLOB))"
                        " + LENGTH(CAST(value AS BLOB))), 0) FROM kv WHERE key != ?",
                        (key,),
                    ).fetchone()[0]
                    if used + _entry_size(key, value) > self.quota_bytes:
                        raise StorageWriteError(
                            f"Quota of {self.quota_bytes} bytes exceeded writing "
                            f"'{key}'."
                        )
                conn.execute(
                    "INSERT INTO kv (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                    (key, value),
                )
                conn.commit()
        except sqlite3.Error as e:
            raise StorageWriteError(f"Storage write failed for '{key}': {e}") from e

    def remove(self, key: str) -> None:
        try:
            with self._get_connection() as conn:
                conn.execute("DELETE FROM kv WHERE key = ?", (key,))
                conn.commit()
        except sqlite3.Error as e:
            log.error(f"Storage delete failed for key '{key}': {e}")

    def keys(self) -> list[str]:
        try:
            with self._get_connection() as conn:
                return [row[0] for row in conn.execute("SELECT key FROM kv ORDER BY key")]
        except sqlite3.Error as e:
            log.error(f"Failed to list storage keys: {e}")
            return []
