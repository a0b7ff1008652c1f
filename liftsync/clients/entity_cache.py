"""SQLite-backed local cache for server entities with change observation."""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Type, TypeVar

from liftsync.models.cache import ENTITY_TYPES, CachedEntity

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=CachedEntity)


@dataclass(slots=True)
class CacheChange:
    """Identities touched by one committed transaction, grouped by kind."""

    added: Dict[str, List[int]] = field(default_factory=dict)
    updated: Dict[str, List[int]] = field(default_factory=dict)
    removed: Dict[str, List[int]] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.updated or self.removed)

    def changed_ids(self, kind: str) -> List[int]:
        """Added and updated identities of ``kind``, in write order."""
        return self.added.get(kind, []) + self.updated.get(kind, [])

    def _record(self, bucket: Dict[str, List[int]], kind: str, server_id: int) -> None:
        ids = bucket.setdefault(kind, [])
        if server_id not in ids:
            ids.append(server_id)


CacheListener = Callable[[CacheChange], None]


class CacheTransaction:
    """Write handle valid only inside ``SQLiteEntityCache.transaction()``."""

    def __init__(self, cache: "SQLiteEntityCache", conn: sqlite3.Connection) -> None:
        self._cache = cache
        self._conn = conn
        self.change = CacheChange()

    def get(self, model: Type[E], server_id: int) -> Optional[E]:
        """Read through the transaction's own connection."""
        row = self._conn.execute(
            f"SELECT data FROM {model.kind} WHERE server_id = ?", (server_id,)
        ).fetchone()
        return model.model_validate_json(row["data"]) if row else None

    def upsert(self, entity: CachedEntity) -> bool:
        """Insert or overwrite ``entity``; returns False when nothing changed."""
        kind = entity.kind
        data = entity.model_dump_json()
        row = self._conn.execute(
            f"SELECT data FROM {kind} WHERE server_id = ?", (entity.server_id,)
        ).fetchone()
        if row is not None and row["data"] == data:
            return False
        self._cache._write_row(self._conn, kind, entity.server_id, entity.sort_key(), data)
        bucket = self.change.updated if row is not None else self.change.added
        self.change._record(bucket, kind, entity.server_id)
        return True

    def delete(self, model: Type[CachedEntity], server_id: int) -> bool:
        cursor = self._conn.execute(
            f"DELETE FROM {model.kind} WHERE server_id = ?", (server_id,)
        )
        if cursor.rowcount:
            self.change._record(self.change.removed, model.kind, server_id)
            return True
        return False

    def set_state(self, name: str, value: str) -> None:
        self._conn.execute(
            """
            INSERT INTO sync_state (name, value) VALUES (?, ?)
            ON CONFLICT(name) DO UPDATE SET value = excluded.value
            """,
            (name, value),
        )

    def clear(self) -> None:
        """Remove every cached entity and all sync state."""
        for kind in ENTITY_TYPES:
            rows = self._conn.execute(f"SELECT server_id FROM {kind}").fetchall()
            for row in rows:
                self.change._record(self.change.removed, kind, row["server_id"])
            self._conn.execute(f"DELETE FROM {kind}")
        self._conn.execute("DELETE FROM sync_state")


class SQLiteEntityCache:
    """Keyed object store: one table per entity kind plus a sync state table."""

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._write_lock = threading.RLock()
        self._listeners: List[CacheListener] = []
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False, isolation_level=None)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        conn = self._connect()
        try:
            for kind in ENTITY_TYPES:
                conn.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {kind} (
                        server_id INTEGER PRIMARY KEY,
                        sort_key TEXT,
                        data TEXT NOT NULL
                    )
                    """
                )
                conn.execute(
                    f"CREATE INDEX IF NOT EXISTS idx_{kind}_sort_key ON {kind} (sort_key)"
                )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS sync_state (
                    name TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
        finally:
            conn.close()

    def _write_row(
        self,
        conn: sqlite3.Connection,
        kind: str,
        server_id: int,
        sort_key: Optional[str],
        data: str,
    ) -> None:
        conn.execute(
            f"""
            INSERT INTO {kind} (server_id, sort_key, data)
            VALUES (?, ?, ?)
            ON CONFLICT(server_id) DO UPDATE SET
                sort_key = excluded.sort_key,
                data = excluded.data
            """,
            (server_id, sort_key, data),
        )

    @contextmanager
    def transaction(self) -> Iterator[CacheTransaction]:
        """All writes inside the block commit together or not at all."""
        with self._write_lock:
            conn = self._connect()
            try:
                conn.execute("BEGIN IMMEDIATE")
                txn = CacheTransaction(self, conn)
                try:
                    yield txn
                except BaseException:
                    conn.execute("ROLLBACK")
                    raise
                conn.execute("COMMIT")
            finally:
                conn.close()
        if not txn.change.is_empty:
            self._publish(txn.change)

    def subscribe(self, listener: CacheListener) -> Callable[[], None]:
        """Register ``listener`` for committed changes; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, change: CacheChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:  # pylint: disable=broad-except
                logger.exception("Cache change listener %r failed", listener)

    def get(self, model: Type[E], server_id: int) -> Optional[E]:
        conn = self._connect()
        try:
            row = conn.execute(
                f"SELECT data FROM {model.kind} WHERE server_id = ?", (server_id,)
            ).fetchone()
        finally:
            conn.close()
        if not row:
            return None
        return model.model_validate_json(row["data"])

    def get_many(self, model: Type[E], server_ids: Iterable[int]) -> Dict[int, E]:
        ids = list(dict.fromkeys(server_ids))
        if not ids:
            return {}
        placeholders = ", ".join("?" for _ in ids)
        conn = self._connect()
        try:
            rows = conn.execute(
                f"SELECT server_id, data FROM {model.kind} WHERE server_id IN ({placeholders})",
                ids,
            ).fetchall()
        finally:
            conn.close()
        return {row["server_id"]: model.model_validate_json(row["data"]) for row in rows}

    def list(self, model: Type[E], *, newest_first: bool = True, limit: Optional[int] = None) -> List[E]:
        """Entities of ``model`` ordered by their secondary timestamp."""
        order = "DESC" if newest_first else "ASC"
        query = f"SELECT data FROM {model.kind} ORDER BY sort_key {order}, server_id {order}"
        params: tuple = ()
        if limit is not None:
            query += " LIMIT ?"
            params = (limit,)
        conn = self._connect()
        try:
            rows = conn.execute(query, params).fetchall()
        finally:
            conn.close()
        return [model.model_validate_json(row["data"]) for row in rows]

    def get_state(self, name: str) -> Optional[str]:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT value FROM sync_state WHERE name = ?", (name,)
            ).fetchone()
        finally:
            conn.close()
        return row["value"] if row else None


__all__ = ["CacheChange", "CacheListener", "CacheTransaction", "SQLiteEntityCache"]
