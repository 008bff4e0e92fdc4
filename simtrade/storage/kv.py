"""Key-value storage backends for the persistence adapter."""

import logging
import threading
from pathlib import Path
from typing import Protocol

import duckdb

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when a storage backend cannot read or write."""

    pass


class KeyValueStore(Protocol):
    """Durable string key-value storage."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class InMemoryKeyValueStore:
    """Process-local store, used for tests and ephemeral sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._data)


class DuckDBKeyValueStore:
    """DuckDB-backed key-value store.

    Values live in a single table in a dedicated schema. Each call opens
    its own short-lived connection so the file is not held open between
    operations.

    Note: SQL queries use f-strings with the SCHEMA/TABLE constants only;
    keys and values are always bound parameters.
    """

    SCHEMA = "simtrade"  # noqa: S608 - constant, not user input
    TABLE = "kv_store"

    def __init__(self, db_path: str | Path = "data/simtrade.duckdb") -> None:
        """Initialize storage with database path.

        Args:
            db_path: Path to the DuckDB database file.

        Raises:
            StorageError: If the database cannot be created.
        """
        self.db_path = Path(db_path)
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._init_schema()
        except (OSError, duckdb.Error) as e:
            raise StorageError(f"Cannot initialize {self.db_path}: {e}") from e

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        """Get a database connection."""
        return duckdb.connect(str(self.db_path))

    def _init_schema(self) -> None:
        with self._get_connection() as conn:
            conn.execute(f"CREATE SCHEMA IF NOT EXISTS {self.SCHEMA}")
            conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.SCHEMA}.{self.TABLE} (
                    key VARCHAR PRIMARY KEY,
                    value VARCHAR NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

    def get(self, key: str) -> str | None:
        """Read a value.

        Raises:
            StorageError: If the database cannot be read.
        """
        try:
            with self._get_connection() as conn:
                row = conn.execute(
                    f"SELECT value FROM {self.SCHEMA}.{self.TABLE} WHERE key = ?",
                    [key],
                ).fetchone()
        except duckdb.Error as e:
            raise StorageError(f"Failed to read {key!r}: {e}") from e
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        """Write a value, replacing any previous one.

        Raises:
            StorageError: If the database cannot be written.
        """
        try:
            with self._get_connection() as conn:
                conn.execute(
                    f"""
                    INSERT OR REPLACE INTO {self.SCHEMA}.{self.TABLE}
                        (key, value, updated_at)
                    VALUES (?, ?, CURRENT_TIMESTAMP)
                    """,
                    [key, value],
                )
        except duckdb.Error as e:
            raise StorageError(f"Failed to write {key!r}: {e}") from e

    def delete(self, key: str) -> None:
        try:
            with self._get_connection() as conn:
                conn.execute(
                    f"DELETE FROM {self.SCHEMA}.{self.TABLE} WHERE key = ?", [key]
                )
        except duckdb.Error as e:
            raise StorageError(f"Failed to delete {key!r}: {e}") from e
