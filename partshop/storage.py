"""Durable key-value storage used for the cart snapshot and admin session."""

from datetime import datetime, timezone
from typing import Dict, Optional

from partshop.db import DEFAULT_DB_PATH, get_connection, init_db

__all__ = ["KeyValueStorage", "SqliteStorage", "MemoryStorage"]


class KeyValueStorage:
    """String-to-string storage. ``read`` returns None for absent keys."""

    def read(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def write(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class SqliteStorage(KeyValueStorage):
    """Key-value entries in the shop database's ``kv_store`` table.

    Every write commits before returning, so a restarted process sees the
    last written value.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        self.db_path = db_path
        init_db(db_path)

    def read(self, key: str) -> Optional[str]:
        with get_connection(self.db_path) as conn:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else None

    def write(self, key: str, value: str) -> None:
        with get_connection(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (key, value, datetime.now(timezone.utc).isoformat()),
            )
            conn.commit()

    def delete(self, key: str) -> None:
        with get_connection(self.db_path) as conn:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            conn.commit()


class MemoryStorage(KeyValueStorage):
    """In-process storage for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def read(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def write(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)
