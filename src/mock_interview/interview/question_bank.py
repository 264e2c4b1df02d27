"""Question bank and per-tier question selection for new sessions."""

from __future__ import annotations

import asyncio
import logging
import random
import uuid
from pathlib import Path

import yaml
from pydantic import BaseModel

from mock_interview.db import connect, ensure_parent
from mock_interview.errors import InvalidRequest
from mock_interview.interview.models import Question, QuestionType

logger = logging.getLogger(__name__)


class BankQuestion(BaseModel):
    id: str
    category_id: str
    category: str
    level: str
    type: QuestionType
    content: str
    follow_up: bool = False

    def snapshot(self) -> Question:
        return Question(
            id=self.id,
            content=self.content,
            type=self.type,
            level=self.level,
            follow_up=self.follow_up,
        )


def select_for_quota(
    questions: list[BankQuestion],
    quota: int,
    rng: random.Random | None = None,
) -> list[BankQuestion]:
    """Pick 1 intro, ``quota - 2`` core and 1 closing question at random."""
    if quota < 2:
        raise InvalidRequest(f"Tier quota must allow at least 2 questions, got {quota}")
    rng = rng or random.Random()

    def pick(kind: str, count: int) -> list[BankQuestion]:
        pool = [q for q in questions if q.type == kind]
        return rng.sample(pool, min(count, len(pool)))

    return pick("intro", 1) + pick("core", quota - 2) + pick("closing", 1)


class QuestionBank:
    """SQLite-backed question bank."""

    def __init__(self, db_path: str | Path):
        self.db_path = ensure_parent(db_path)
        with connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS questions (
                    id TEXT PRIMARY KEY,
                    category_id TEXT NOT NULL,
                    category TEXT NOT NULL,
                    level TEXT NOT NULL,
                    type TEXT NOT NULL,
                    content TEXT NOT NULL,
                    follow_up INTEGER NOT NULL DEFAULT 0
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_questions_lookup "
                "ON questions (category_id, level)"
            )

    def add(self, questions: list[BankQuestion]) -> int:
        with connect(self.db_path) as conn:
            conn.executemany(
                """INSERT OR REPLACE INTO questions
                   (id, category_id, category, level, type, content, follow_up)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                [
                    (q.id, q.category_id, q.category, q.level, q.type, q.content,
                     1 if q.follow_up else 0)
                    for q in questions
                ],
            )
        return len(questions)

    def load_yaml(self, path: str | Path) -> int:
        """Load questions from a YAML file.

        Expected layout::

            - category_id: fe
              category: Frontend Developer
              level: junior
              questions:
                - {type: intro, content: "Tell me about yourself."}
        """
        raw = yaml.safe_load(Path(path).read_text()) or []
        questions = [
            BankQuestion(
                id=q.get("id") or uuid.uuid4().hex,
                category_id=str(group["category_id"]),
                category=group["category"],
                level=group["level"],
                type=q["type"],
                content=q["content"],
                follow_up=q.get("follow_up", False),
            )
            for group in raw
            for q in group.get("questions", [])
        ]
        count = self.add(questions)
        logger.info("Loaded %d questions from %s", count, path)
        return count

    def find(self, category_id: str, level: str) -> list[BankQuestion]:
        with connect(self.db_path) as conn:
            rows = conn.execute(
                "SELECT * FROM questions WHERE category_id = ? AND level = ?",
                (category_id, level),
            ).fetchall()
        return [
            BankQuestion(**{**dict(row), "follow_up": bool(row["follow_up"])})
            for row in rows
        ]

    async def start_session(
        self,
        category_id: str,
        level: str,
        tier: str,
        tiers: dict[str, int],
        rng: random.Random | None = None,
    ) -> list[BankQuestion]:
        """Questions for a new session, sized by the tier's quota."""
        quota = tiers.get(tier.lower())
        if quota is None:
            raise InvalidRequest(f"Unknown tier: {tier}")
        questions = await asyncio.to_thread(self.find, category_id, level)
        selected = select_for_quota(questions, quota, rng)
        logger.info(
            "Starting %s session for %s/%s with %d questions",
            tier, category_id, level, len(selected),
        )
        return selected
