"""Per-user buffer of usage records collected during an interview session.

Turn-level calls happen before the caller knows which interview they will be
folded into, so records are keyed by user and attributed to an interview only
when that interview is evaluated.

The buffer is best-effort. The in-memory backend loses its contents on restart
and is not shared between processes; use the SQLite backend when several
service processes share one database.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from pathlib import Path
from threading import Lock

from mock_interview.db import connect, ensure_parent, write_transaction
from mock_interview.usage.models import UsageRecord

logger = logging.getLogger(__name__)


class SessionUsageBuffer:
    """Interface: ``record`` appends, ``drain`` removes and returns everything."""

    async def record(self, user_id: str, record: UsageRecord) -> int:
        """Append a record and return the user's buffer size."""
        raise NotImplementedError

    async def drain(self, user_id: str) -> list[UsageRecord]:
        """Remove and return all of the user's records (empty list if none)."""
        raise NotImplementedError

    async def restore(self, user_id: str, records: list[UsageRecord]) -> None:
        """Return drained records to the user's buffer after a failed evaluation."""
        raise NotImplementedError

    async def size(self, user_id: str) -> int:
        raise NotImplementedError


class InMemoryUsageBuffer(SessionUsageBuffer):
    """Process-local buffer.

    No method awaits while touching the map, so on one event loop every
    operation runs to completion; the lock covers callers on other threads.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._entries: dict[str, list[UsageRecord]] = {}

    async def record(self, user_id: str, record: UsageRecord) -> int:
        with self._lock:
            entries = self._entries.setdefault(user_id, [])
            entries.append(record)
            return len(entries)

    async def drain(self, user_id: str) -> list[UsageRecord]:
        with self._lock:
            return self._entries.pop(user_id, [])

    async def restore(self, user_id: str, records: list[UsageRecord]) -> None:
        if not records:
            return
        with self._lock:
            self._entries[user_id] = list(records) + self._entries.get(user_id, [])

    async def size(self, user_id: str) -> int:
        with self._lock:
            return len(self._entries.get(user_id, []))


class SqliteUsageBuffer(SessionUsageBuffer):
    """Buffer persisted in the shared SQLite database.

    Survives restarts and is visible to every process using the same file.
    ``drain`` selects and deletes under one write transaction.
    """

    def __init__(self, db_path: str | Path):
        self.db_path = ensure_parent(db_path)
        self._init_db()

    def _init_db(self) -> None:
        with connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS usage_buffer (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    record_json TEXT NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_usage_buffer_user ON usage_buffer (user_id)"
            )

    async def record(self, user_id: str, record: UsageRecord) -> int:
        return await asyncio.to_thread(self._record_sync, user_id, record)

    async def drain(self, user_id: str) -> list[UsageRecord]:
        return await asyncio.to_thread(self._drain_sync, user_id)

    async def restore(self, user_id: str, records: list[UsageRecord]) -> None:
        if records:
            await asyncio.to_thread(self._restore_sync, user_id, records)

    async def size(self, user_id: str) -> int:
        return await asyncio.to_thread(self._size_sync, user_id)

    def _record_sync(self, user_id: str, record: UsageRecord) -> int:
        with connect(self.db_path) as conn, write_transaction(conn):
            conn.execute(
                "INSERT INTO usage_buffer (user_id, record_json) VALUES (?, ?)",
                (user_id, record.model_dump_json()),
            )
            return self._count(conn, user_id)

    def _drain_sync(self, user_id: str) -> list[UsageRecord]:
        with connect(self.db_path) as conn, write_transaction(conn):
            rows = conn.execute(
                "SELECT id, record_json FROM usage_buffer WHERE user_id = ? ORDER BY id",
                (user_id,),
            ).fetchall()
            if rows:
                conn.execute(
                    "DELETE FROM usage_buffer WHERE user_id = ? AND id <= ?",
                    (user_id, rows[-1]["id"]),
                )
        return [UsageRecord.model_validate_json(row["record_json"]) for row in rows]

    def _restore_sync(self, user_id: str, records: list[UsageRecord]) -> None:
        # Restored records get new ids, so they sort after anything recorded
        # during the failed attempt. Ordering does not affect aggregation.
        with connect(self.db_path) as conn, write_transaction(conn):
            conn.executemany(
                "INSERT INTO usage_buffer (user_id, record_json) VALUES (?, ?)",
                [(user_id, r.model_dump_json()) for r in records],
            )

    def _size_sync(self, user_id: str) -> int:
        with connect(self.db_path) as conn:
            return self._count(conn, user_id)

    @staticmethod
    def _count(conn: sqlite3.Connection, user_id: str) -> int:
        return conn.execute(
            "SELECT COUNT(*) FROM usage_buffer WHERE user_id = ?", (user_id,)
        ).fetchone()[0]


def create_buffer(backend: str, db_path: str | Path) -> SessionUsageBuffer:
    if backend == "sqlite":
        return SqliteUsageBuffer(db_path)
    return InMemoryUsageBuffer()
