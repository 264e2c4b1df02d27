"""SQLite-backed storage of aggregated interview usage logs."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from pathlib import Path

from mock_interview.db import connect, ensure_parent
from mock_interview.usage.models import UsageLog, UsageRecord, UsageStats

DEFAULT_DB_PATH = Path.home() / ".mock-interview" / "interviews.db"

_COLUMNS = (
    "id", "user_id", "interview_id", "category", "level", "tier",
    "total_tokens", "total_prompt_tokens", "total_output_tokens", "total_reasoning_tokens",
    "total_speech_characters", "total_speech_cost",
    "total_transcription_seconds", "total_transcription_cost",
    "total_text_cost", "total_cost", "details_json", "created_at", "completed_at",
)


class UsageStore:
    """Usage logs, at most one per interview (``interview_id`` is UNIQUE)."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH):
        self.db_path = ensure_parent(db_path)
        with connect(self.db_path) as conn:
            self.create_schema(conn)

    @staticmethod
    def create_schema(conn: sqlite3.Connection) -> None:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS usage_logs (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                interview_id TEXT UNIQUE,
                category TEXT,
                level TEXT,
                tier TEXT,
                total_tokens INTEGER NOT NULL DEFAULT 0,
                total_prompt_tokens INTEGER NOT NULL DEFAULT 0,
                total_output_tokens INTEGER NOT NULL DEFAULT 0,
                total_reasoning_tokens INTEGER NOT NULL DEFAULT 0,
                total_speech_characters INTEGER NOT NULL DEFAULT 0,
                total_speech_cost REAL NOT NULL DEFAULT 0.0,
                total_transcription_seconds INTEGER NOT NULL DEFAULT 0,
                total_transcription_cost REAL NOT NULL DEFAULT 0.0,
                total_text_cost REAL NOT NULL DEFAULT 0.0,
                total_cost REAL NOT NULL DEFAULT 0.0,
                details_json TEXT NOT NULL DEFAULT '[]',
                created_at TEXT NOT NULL,
                completed_at TEXT
            )
        """)
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_usage_logs_user ON usage_logs (user_id, created_at)"
        )

    @staticmethod
    def insert_log(conn: sqlite3.Connection, log: UsageLog) -> None:
        """Insert ``log`` on an existing connection (joins its transaction)."""
        placeholders = ", ".join("?" for _ in _COLUMNS)
        conn.execute(
            f"INSERT INTO usage_logs ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
            (
                log.id,
                log.user_id,
                log.interview_id,
                log.category,
                log.level,
                log.tier,
                log.total_tokens,
                log.total_prompt_tokens,
                log.total_output_tokens,
                log.total_reasoning_tokens,
                log.total_speech_characters,
                log.total_speech_cost,
                log.total_transcription_seconds,
                log.total_transcription_cost,
                log.total_text_cost,
                log.total_cost,
                json.dumps([d.model_dump(mode="json") for d in log.details]),
                log.created_at.isoformat(),
                log.completed_at.isoformat() if log.completed_at else None,
            ),
        )

    def save_log(self, log: UsageLog) -> None:
        """Persist a usage log entry."""
        with connect(self.db_path) as conn:
            self.insert_log(conn, log)

    def get_logs(self, user_id: str, page: int = 1, limit: int = 10) -> list[UsageLog]:
        """Return one page of a user's logs, newest first."""
        offset = (max(page, 1) - 1) * limit
        with connect(self.db_path) as conn:
            rows = conn.execute(
                "SELECT * FROM usage_logs WHERE user_id = ? "
                "ORDER BY created_at DESC LIMIT ? OFFSET ?",
                (user_id, limit, offset),
            ).fetchall()
        return [self._row_to_log(row) for row in rows]

    def count_logs(self, user_id: str) -> int:
        with connect(self.db_path) as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM usage_logs WHERE user_id = ?", (user_id,)
            ).fetchone()[0]

    def get_by_interview(self, interview_id: str) -> UsageLog | None:
        with connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM usage_logs WHERE interview_id = ?", (interview_id,)
            ).fetchone()
        return self._row_to_log(row) if row else None

    def get_user_stats(self, user_id: str) -> UsageStats:
        """Lifetime totals for a user."""
        with connect(self.db_path) as conn:
            row = conn.execute(
                """SELECT
                       SUM(total_tokens),
                       COUNT(*),
                       AVG(total_tokens),
                       SUM(total_cost)
                   FROM usage_logs
                   WHERE user_id = ?""",
                (user_id,),
            ).fetchone()
        return UsageStats(
            total_tokens_all_time=row[0] or 0,
            total_interviews=row[1] or 0,
            avg_tokens_per_interview=round(row[2], 1) if row[2] is not None else 0.0,
            total_cost_all_time=row[3] or 0.0,
        )

    def finalize(self, interview_id: str) -> UsageLog | None:
        """Stamp ``completed_at`` on a log created without one."""
        with connect(self.db_path) as conn:
            conn.execute(
                "UPDATE usage_logs SET completed_at = ? "
                "WHERE interview_id = ? AND completed_at IS NULL",
                (datetime.now().isoformat(), interview_id),
            )
        return self.get_by_interview(interview_id)

    @staticmethod
    def _row_to_log(row: sqlite3.Row) -> UsageLog:
        return UsageLog(
            id=row["id"],
            user_id=row["user_id"],
            interview_id=row["interview_id"],
            category=row["category"],
            level=row["level"],
            tier=row["tier"],
            total_tokens=row["total_tokens"],
            total_prompt_tokens=row["total_prompt_tokens"],
            total_output_tokens=row["total_output_tokens"],
            total_reasoning_tokens=row["total_reasoning_tokens"],
            total_speech_characters=row["total_speech_characters"],
            total_speech_cost=row["total_speech_cost"],
            total_transcription_seconds=row["total_transcription_seconds"],
            total_transcription_cost=row["total_transcription_cost"],
            total_text_cost=row["total_text_cost"],
            total_cost=row["total_cost"],
            details=[UsageRecord(**d) for d in json.loads(row["details_json"])],
            created_at=datetime.fromisoformat(row["created_at"]),
            completed_at=(
                datetime.fromisoformat(row["completed_at"]) if row["completed_at"] else None
            ),
        )
