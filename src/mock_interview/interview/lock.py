"""Single-flight evaluation lock backed by the interviews table."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from mock_interview.errors import EvaluationInProgress, PersistenceFailure
from mock_interview.interview.models import Evaluation, Interview
from mock_interview.interview.store import InterviewStore
from mock_interview.usage.models import UsageLog

logger = logging.getLogger(__name__)


class LockStatus(str, Enum):
    ACQUIRED = "acquired"
    ALREADY_DONE = "already_done"
    CONTENDED = "contended"
    NOT_FOUND = "not_found"


@dataclass
class LockResult:
    status: LockStatus
    interview: Interview | None = None

    @property
    def acquired(self) -> bool:
        return self.status is LockStatus.ACQUIRED


class EvaluationLock:
    """At most one in-flight evaluation per interview, across processes.

    The only coordination point is a conditional update on the stored row,
    never process memory.
    """

    def __init__(
        self,
        store: InterviewStore,
        wait_seconds: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.store = store
        self.wait_seconds = wait_seconds
        self._sleep = sleep

    async def try_acquire(self, interview_id: str) -> LockResult:
        previous = await self.store.try_acquire(interview_id)
        if previous is not None:
            logger.info("Evaluation lock acquired for interview %s", interview_id)
            return LockResult(LockStatus.ACQUIRED, previous)

        current = await self.store.get(interview_id)
        if current is None:
            return LockResult(LockStatus.NOT_FOUND)
        if current.evaluation is not None:
            return LockResult(LockStatus.ALREADY_DONE, current)
        logger.warning("Interview %s is being evaluated by another request", interview_id)
        return LockResult(LockStatus.CONTENDED, current)

    async def wait_for_result(self, interview_id: str) -> Evaluation:
        """Wait once, re-read once. Raises EvaluationInProgress if still empty."""
        await self._sleep(self.wait_seconds)
        current = await self.store.get(interview_id)
        if current is not None and current.evaluation is not None:
            logger.info("Returning result of concurrent evaluation for %s", interview_id)
            return current.evaluation
        raise EvaluationInProgress(interview_id)

    async def commit(
        self,
        interview_id: str,
        evaluation: Evaluation,
        usage_log: UsageLog | None = None,
    ) -> None:
        """Write the evaluation. The lock stays held; this is the terminal state."""
        committed = await self.store.commit_evaluation(interview_id, evaluation, usage_log)
        if not committed:
            raise PersistenceFailure(
                f"Evaluation lock for interview {interview_id} was lost before commit"
            )

    async def rollback(self, interview_id: str) -> bool:
        """Reset ``evaluated``/``evaluated_at`` so a later request can retry.

        Returns False when the row already holds a committed evaluation.
        """
        released = await self.store.reset_evaluation(interview_id)
        if released:
            logger.info("Rolled back evaluation lock for interview %s", interview_id)
        else:
            logger.warning("Nothing to roll back for interview %s", interview_id)
        return released
