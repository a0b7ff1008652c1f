"""SQLite-backed key/value storage used for on-device secrets."""

from __future__ import annotations

import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Iterable, Mapping, Optional


class SQLiteStore:
    """Simple key-value store; multi-key writes share one transaction."""

    def __init__(self, db_path: str, table: str = "secure_items") -> None:
        if not table.isidentifier():
            raise ValueError(f"Invalid table name: {table!r}")
        self._db_path = Path(db_path)
        self._table = table
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self._table} (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )

    def put(self, key: str, value: str) -> None:
        self.put_many({key: value})

    def put_many(self, items: Mapping[str, str]) -> None:
        """Write every item or none of them."""
        with closing(self._connect()) as conn, conn:
            conn.executemany(
                f"""
                INSERT INTO {self._table} (key, value)
                VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                list(items.items()),
            )

    def get(self, key: str) -> Optional[str]:
        with closing(self._connect()) as conn, conn:
            row = conn.execute(
                f"SELECT value FROM {self._table} WHERE key = ?",
                (key,),
            ).fetchone()
        if not row:
            return None
        return row["value"]

    def get_many(self, keys: Iterable[str]) -> dict[str, str]:
        """Read several keys from a single snapshot."""
        keys = list(keys)
        if not keys:
            return {}
        placeholders = ", ".join("?" for _ in keys)
        with closing(self._connect()) as conn, conn:
            rows = conn.execute(
                f"SELECT key, value FROM {self._table} WHERE key IN ({placeholders})",
                keys,
            ).fetchall()
        return {row["key"]: row["value"] for row in rows}

    def delete(self, key: str) -> None:
        self.delete_many([key])

    def delete_many(self, keys: Iterable[str]) -> None:
        with closing(self._connect()) as conn, conn:
            conn.executemany(
                f"DELETE FROM {self._table} WHERE key = ?",
                [(key,) for key in keys],
            )


__all__ = ["SQLiteStore"]
