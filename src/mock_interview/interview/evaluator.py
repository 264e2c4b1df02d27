"""Interview evaluator: lock, generate, parse, meter, persist."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pydantic import ValidationError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from mock_interview.clients.llm_client import DEFAULT_MODEL, LLMClient, LLMResponse
from mock_interview.config import RatesConfig
from mock_interview.errors import (
    GenerationFailure,
    InterviewNotFound,
    MalformedEvaluation,
    PersistenceFailure,
)
from mock_interview.interview.lock import EvaluationLock, LockStatus
from mock_interview.interview.models import (
    DIMENSIONS,
    GRADE_SCALE,
    Answer,
    Evaluation,
    Interview,
    format_completion_time,
    grade_for_score,
)
from mock_interview.interview.store import InterviewStore
from mock_interview.usage.buffer import SessionUsageBuffer
from mock_interview.usage.cost_calculator import DEFAULT_RATES, aggregate_usage
from mock_interview.usage.models import UsageLog, UsageRecord
from mock_interview.usage.usage_store import UsageStore
from mock_interview.utils.json_parser import extract_json

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """\
You are an interview expert evaluating a candidate's complete mock interview.

Respond with a single JSON object only, no markdown and no backticks:
{
  "overallScore": <number 0-100>,
  "overallGrade": "<A+, A, A-, B+, B, B-, C+, C, C-, D, F>",
  "evaluations": [
    {
      "category": "<dimension name>",
      "score": <number 0-100>,
      "maxScore": 100,
      "feedback": "<detailed feedback>",
      "strengths": ["<strength>", ...],
      "improvements": ["<improvement>", ...]
    }
  ],
  "summary": "<2-3 sentence overall summary>",
  "recommendations": ["<actionable recommendation>", ...]
}

Evaluate exactly these dimensions, in this order:
1. Content Quality: technical depth, relevance of experience, completeness, concrete examples, impact.
2. Communication Skills: clarity, structure, grammar and vocabulary, professional language, filler words.
3. Relevance & Focus: answers the question asked, concise, focuses on key points, time management.
4. Problem Solving Approach: systematic thinking, analysis, alternatives, decision making, learning.
5. Confidence & Enthusiasm: self-confidence, enthusiasm for the role, growth mindset, attitude.

Rules:
- At least 3 strengths and 2 improvements per dimension.
- At least 5 specific, actionable recommendations.
- Feedback must be constructive and actionable."""


class EvaluationState(str, Enum):
    PENDING = "pending"
    LOCK_ACQUIRED = "lock_acquired"
    GENERATING = "generating"
    PARSING = "parsing"
    PERSISTING = "persisting"
    DONE = "done"
    ROLLED_BACK = "rolled_back"


@dataclass
class EvaluationOutcome:
    evaluation: Evaluation
    cached: bool = False
    usage_log: UsageLog | None = None


def build_evaluation_prompt(category: str, level: str, answers: list[Answer]) -> str:
    """Render the transcript of an interview for the evaluation call."""
    grading = "\n".join(
        f"- {grade}: {minimum}+" for minimum, grade in GRADE_SCALE
    ) + "\n- F: below 50"
    transcript = "\n\n".join(
        f"Q{i}: {a.question}\nA{i}: {a.transcription}\n(spoken for {a.duration or 0:.0f}s)"
        for i, a in enumerate(answers, start=1)
    )
    return f"""Evaluate this interview.

Interview information:
- Position: {category}
- Level: {level}
- Total questions: {len(answers)}

Questions & answers:
{transcript}

Grading scale:
{grading}

Return ONLY the JSON object."""


def parse_evaluation(text: str, answers: list[Answer]) -> Evaluation:
    """Parse the model output into an Evaluation and fill derived fields.

    The letter grade is always recomputed from the score.
    """
    try:
        data = extract_json(text)
        evaluation = Evaluation.model_validate(data)
    except (ValueError, ValidationError) as exc:
        raise MalformedEvaluation(f"Evaluation response did not match schema: {exc}") from exc

    grade = grade_for_score(evaluation.overall_score)
    if grade != evaluation.overall_grade:
        logger.info(
            "Model grade %s disagrees with score %.1f, using %s",
            evaluation.overall_grade, evaluation.overall_score, grade,
        )
    names = [d.category for d in evaluation.evaluations]
    if names != list(DIMENSIONS):
        logger.warning("Unexpected dimension names in evaluation: %s", names)

    evaluation.overall_grade = grade
    evaluation.total_questions = len(answers)
    evaluation.completion_time = format_completion_time(sum(a.duration or 0 for a in answers))
    return evaluation


def usage_from_response(function_name: str, response: LLMResponse) -> UsageRecord | None:
    """UsageRecord for a text-generation call, or None without usage metadata."""
    if not response.has_usage:
        return None
    return UsageRecord(
        function_name=function_name,
        model=response.model,
        prompt_tokens=response.input_tokens or 0,
        output_tokens=response.output_tokens or 0,
        reasoning_tokens=response.reasoning_tokens,
        total_tokens=response.total_tokens,
    )


class InterviewEvaluator:
    """Runs the evaluation protocol for stored interviews.

    The lock is taken before the generation call; every failure after that
    point resets it so the interview stays retryable.
    """

    def __init__(
        self,
        store: InterviewStore,
        lock: EvaluationLock,
        llm: LLMClient,
        buffer: SessionUsageBuffer,
        usage_store: UsageStore,
        *,
        model: str = DEFAULT_MODEL,
        max_tokens: int = 8192,
        rates: RatesConfig = DEFAULT_RATES,
        persist_attempts: int = 2,
        persist_retry_wait: float = 0.2,
    ):
        self.store = store
        self.lock = lock
        self.llm = llm
        self.buffer = buffer
        self.usage_store = usage_store
        self.model = model
        self.max_tokens = max_tokens
        self.rates = rates
        self.persist_attempts = persist_attempts
        self.persist_retry_wait = persist_retry_wait

    async def evaluate(self, interview_id: str) -> EvaluationOutcome:
        interview = await self.store.get(interview_id)
        if interview is None:
            raise InterviewNotFound(interview_id)
        if interview.evaluated and interview.evaluation is not None:
            logger.info("Interview %s already evaluated, returning cached result", interview_id)
            return EvaluationOutcome(interview.evaluation, cached=True)

        result = await self.lock.try_acquire(interview_id)
        if result.status is LockStatus.NOT_FOUND:
            raise InterviewNotFound(interview_id)
        if result.status is LockStatus.ALREADY_DONE:
            return EvaluationOutcome(result.interview.evaluation, cached=True)
        if result.status is LockStatus.CONTENDED:
            evaluation = await self.lock.wait_for_result(interview_id)
            return EvaluationOutcome(evaluation, cached=True)

        return await self._run_locked(result.interview)

    async def _run_locked(self, interview: Interview) -> EvaluationOutcome:
        state = EvaluationState.LOCK_ACQUIRED
        drained: list[UsageRecord] = []
        try:
            state = EvaluationState.GENERATING
            response = await self._generate(interview.category, interview.level, interview.answers)

            state = EvaluationState.PARSING
            evaluation = parse_evaluation(response.text, interview.answers)

            state = EvaluationState.PERSISTING
            drained = await self.buffer.drain(interview.user_id)
            logger.info(
                "Drained %d buffered usage records for user %s", len(drained), interview.user_id
            )
            usage_log = self.build_usage_log(interview, drained, response)
            await self._persist(interview.id, evaluation, usage_log)
            state = EvaluationState.DONE
        except BaseException:
            failed_in = state
            logger.error(
                "Evaluation of interview %s failed while %s", interview.id, failed_in.value,
                exc_info=True,
            )
            await self._rollback(interview, drained)
            state = EvaluationState.ROLLED_BACK
            logger.info("Interview %s %s", interview.id, state.value)
            raise

        logger.info(
            "Interview %s %s: score %.1f (%s), %d usage records, $%.6f",
            interview.id, state.value, evaluation.overall_score, evaluation.overall_grade,
            len(usage_log.details), usage_log.total_cost,
        )
        return EvaluationOutcome(evaluation, usage_log=usage_log)

    async def evaluate_transcript(
        self,
        user_id: str,
        category: str,
        level: str,
        answers: list[Answer],
        tier: str | None = None,
    ) -> EvaluationOutcome:
        """Evaluate an unsaved transcript. No lock, buffer left untouched."""
        response = await self._generate(category, level, answers)
        evaluation = parse_evaluation(response.text, answers)

        record = self._evaluation_record(response, "evaluate_transcript")
        priced, totals = aggregate_usage([record], self.rates)
        usage_log = UsageLog(
            user_id=user_id,
            category=category,
            level=level,
            tier=tier,
            details=priced,
            completed_at=datetime.now(),
            **totals.model_dump(),
        )
        try:
            await asyncio.to_thread(self.usage_store.save_log, usage_log)
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"Could not save usage log: {exc}") from exc
        return EvaluationOutcome(evaluation, usage_log=usage_log)

    def build_usage_log(
        self,
        interview: Interview,
        buffered: list[UsageRecord],
        response: LLMResponse,
    ) -> UsageLog:
        records = [*buffered, self._evaluation_record(response, "evaluate_interview")]
        priced, totals = aggregate_usage(records, self.rates)
        return UsageLog(
            user_id=interview.user_id,
            interview_id=interview.id,
            category=interview.category,
            level=interview.level,
            tier=interview.tier,
            details=priced,
            completed_at=datetime.now(),
            **totals.model_dump(),
        )

    def _evaluation_record(self, response: LLMResponse, function_name: str) -> UsageRecord:
        record = usage_from_response(function_name, response)
        if record is None:
            # Keep the call in the log so the evaluation is still attributed.
            logger.warning("No usage metadata on %s response; counting zero tokens", function_name)
            record = UsageRecord(function_name=function_name, model=response.model)
        return record

    async def _generate(self, category: str, level: str, answers: list[Answer]) -> LLMResponse:
        prompt = build_evaluation_prompt(category, level, answers)
        try:
            return await self.llm.generate(
                prompt=prompt,
                system=SYSTEM_PROMPT,
                model=self.model,
                max_tokens=self.max_tokens,
            )
        except Exception as exc:
            raise GenerationFailure(f"Evaluation generation failed: {exc}") from exc

    async def _persist(self, interview_id: str, evaluation: Evaluation, usage_log: UsageLog) -> None:
        """Commit with a bounded number of attempts on database errors."""
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(sqlite3.Error),
                stop=stop_after_attempt(self.persist_attempts),
                wait=wait_fixed(self.persist_retry_wait),
                reraise=True,
            ):
                with attempt:
                    await self.lock.commit(interview_id, evaluation, usage_log)
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"Could not persist evaluation: {exc}") from exc

    async def _rollback(self, interview: Interview, drained: list[UsageRecord]) -> None:
        try:
            released = await self.lock.rollback(interview.id)
        except Exception:
            logger.error("Rollback of interview %s failed", interview.id, exc_info=True)
            released = False
        if not released:
            if drained:
                logger.warning(
                    "Lock for interview %s not released; %d drained records not restored",
                    interview.id, len(drained),
                )
            return
        if drained:
            try:
                await self.buffer.restore(interview.user_id, drained)
            except Exception:
                logger.error(
                    "Could not restore %d usage records for user %s",
                    len(drained), interview.user_id, exc_info=True,
                )
