"""
Key-value persistence port and its implementations
"""

import logging
from typing import Protocol

from .connection import DatabaseConnection

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Durable string store surviving process restarts"""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...

    def remove_all(self, keys: list[str]) -> None: ...


class InMemoryKeyValueStore:
    """Process-local store, used for tests and throwaway sessions"""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def remove_all(self, keys: list[str]) -> None:
        for key in keys:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)


class SQLiteKeyValueStore:
    """Store backed by the kv_store table.

    Errors propagate to the caller; the engines decide whether a failed
    read or write is fatal (it never is for them).
    """

    def __init__(self, db_connection: DatabaseConnection):
        self.db_connection = db_connection

    def get(self, key: str) -> str | None:
        with self.db_connection.get_connection() as conn:
            cursor = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
            row = cursor.fetchone()
            return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        with self.db_connection.get_connection() as conn:
            conn.execute(
                """
                INSERT INTO kv_store (key, value)
                VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (key, value),
            )
            conn.commit()

    def remove(self, key: str) -> None:
        with self.db_connection.get_connection() as conn:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            conn.commit()

    def remove_all(self, keys: list[str]) -> None:
        if not keys:
            return
        with self.db_connection.get_connection() as conn:
            conn.executemany(
                "DELETE FROM kv_store WHERE key = ?", [(key,) for key in keys]
            )
            conn.commit()
        logger.info(f"Removed {len(keys)} keys from state store")

    def keys(self) -> list[str]:
        with self.db_connection.get_connection() as conn:
            cursor = conn.execute("SELECT key FROM kv_store ORDER BY key")
            return [row["key"] for row in cursor.fetchall()]


def create_store(db_path: str | None = None) -> SQLiteKeyValueStore:
    """Open (and initialize) the SQLite-backed store"""
    db_connection = DatabaseConnection(db_path)
    db_connection.init_database()
    return SQLiteKeyValueStore(db_connection)
