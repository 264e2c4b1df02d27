"""SQLite-backed interview storage."""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path

from mock_interview.db import connect, ensure_parent, write_transaction
from mock_interview.interview.models import Answer, Evaluation, Interview, Question
from mock_interview.usage.models import UsageLog
from mock_interview.usage.usage_store import UsageStore

logger = logging.getLogger(__name__)


class InterviewStore:
    """Interview rows plus the conditional updates backing the evaluation lock.

    Every public method is a coroutine; the SQLite work runs in a worker
    thread so the event loop is never blocked on disk I/O.
    """

    def __init__(self, db_path: str | Path):
        self.db_path = ensure_parent(db_path)
        self._init_db()

    def _init_db(self) -> None:
        with connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS interviews (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    category_id TEXT NOT NULL,
                    category TEXT NOT NULL,
                    level TEXT NOT NULL,
                    tier TEXT NOT NULL,
                    questions_json TEXT NOT NULL DEFAULT '[]',
                    answers_json TEXT NOT NULL DEFAULT '[]',
                    completed_at TEXT NOT NULL,
                    evaluated INTEGER NOT NULL DEFAULT 0,
                    evaluation_json TEXT,
                    evaluated_at TEXT
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_interviews_user "
                "ON interviews (user_id, completed_at)"
            )
            # Usage logs are written in the same transaction as the evaluation.
            UsageStore.create_schema(conn)

    async def create(self, interview: Interview) -> Interview:
        await asyncio.to_thread(self._create_sync, interview)
        return interview

    async def get(self, interview_id: str) -> Interview | None:
        return await asyncio.to_thread(self._get_sync, interview_id)

    async def list_by_user(self, user_id: str) -> list[Interview]:
        return await asyncio.to_thread(self._list_by_user_sync, user_id)

    async def try_acquire(self, interview_id: str) -> Interview | None:
        """Set ``evaluated`` if it is not already set.

        Returns the row as it was before the update when this caller won,
        None when the row is missing or already marked evaluated.
        """
        return await asyncio.to_thread(self._try_acquire_sync, interview_id)

    async def commit_evaluation(
        self,
        interview_id: str,
        evaluation: Evaluation,
        usage_log: UsageLog | None = None,
    ) -> bool:
        """Store the evaluation (and its usage log) atomically.

        Returns False if the row no longer holds the lock, in which case
        nothing is written.
        """
        return await asyncio.to_thread(
            self._commit_evaluation_sync, interview_id, evaluation, usage_log
        )

    async def reset_evaluation(self, interview_id: str) -> bool:
        """Release an uncommitted lock so the evaluation can be retried."""
        return await asyncio.to_thread(self._reset_evaluation_sync, interview_id)

    def _create_sync(self, interview: Interview) -> None:
        with connect(self.db_path) as conn:
            conn.execute(
                """INSERT INTO interviews
                   (id, user_id, category_id, category, level, tier,
                    questions_json, answers_json, completed_at,
                    evaluated, evaluation_json, evaluated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    interview.id,
                    interview.user_id,
                    interview.category_id,
                    interview.category,
                    interview.level,
                    interview.tier,
                    json.dumps([q.model_dump() for q in interview.questions]),
                    json.dumps([a.model_dump() for a in interview.answers]),
                    interview.completed_at.isoformat(),
                    1 if interview.evaluated else 0,
                    _dump_evaluation(interview.evaluation),
                    interview.evaluated_at.isoformat() if interview.evaluated_at else None,
                ),
            )

    def _get_sync(self, interview_id: str) -> Interview | None:
        with connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM interviews WHERE id = ?", (interview_id,)
            ).fetchone()
        return self._row_to_interview(row) if row else None

    def _list_by_user_sync(self, user_id: str) -> list[Interview]:
        with connect(self.db_path) as conn:
            rows = conn.execute(
                "SELECT * FROM interviews WHERE user_id = ? ORDER BY completed_at DESC",
                (user_id,),
            ).fetchall()
        return [self._row_to_interview(row) for row in rows]

    def _try_acquire_sync(self, interview_id: str) -> Interview | None:
        with connect(self.db_path) as conn, write_transaction(conn):
            row = conn.execute(
                "SELECT * FROM interviews WHERE id = ?", (interview_id,)
            ).fetchone()
            cursor = conn.execute(
                "UPDATE interviews SET evaluated = 1, evaluated_at = ? "
                "WHERE id = ? AND evaluated = 0",
                (datetime.now().isoformat(), interview_id),
            )
            acquired = cursor.rowcount == 1
        if not acquired:
            return None
        return self._row_to_interview(row)

    def _commit_evaluation_sync(
        self,
        interview_id: str,
        evaluation: Evaluation,
        usage_log: UsageLog | None,
    ) -> bool:
        with connect(self.db_path) as conn, write_transaction(conn):
            cursor = conn.execute(
                "UPDATE interviews SET evaluation_json = ? "
                "WHERE id = ? AND evaluated = 1 AND evaluation_json IS NULL",
                (_dump_evaluation(evaluation), interview_id),
            )
            if cursor.rowcount != 1:
                return False
            if usage_log is not None:
                UsageStore.insert_log(conn, usage_log)
        return True

    def _reset_evaluation_sync(self, interview_id: str) -> bool:
        with connect(self.db_path) as conn:
            cursor = conn.execute(
                "UPDATE interviews SET evaluated = 0, evaluated_at = NULL "
                "WHERE id = ? AND evaluation_json IS NULL",
                (interview_id,),
            )
            return cursor.rowcount == 1

    @staticmethod
    def _row_to_interview(row: sqlite3.Row) -> Interview:
        evaluation_json = row["evaluation_json"]
        return Interview(
            id=row["id"],
            user_id=row["user_id"],
            category_id=row["category_id"],
            category=row["category"],
            level=row["level"],
            tier=row["tier"],
            questions=[Question(**q) for q in json.loads(row["questions_json"])],
            answers=[Answer(**a) for a in json.loads(row["answers_json"])],
            completed_at=datetime.fromisoformat(row["completed_at"]),
            evaluated=bool(row["evaluated"]),
            evaluation=(
                Evaluation.model_validate_json(evaluation_json) if evaluation_json else None
            ),
            evaluated_at=(
                datetime.fromisoformat(row["evaluated_at"]) if row["evaluated_at"] else None
            ),
        )


def _dump_evaluation(evaluation: Evaluation | None) -> str | None:
    if evaluation is None:
        return None
    return evaluation.model_dump_json(by_alias=True)
