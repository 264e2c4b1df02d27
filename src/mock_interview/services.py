"""Wires stores, clients and services together from an AppConfig."""

from __future__ import annotations

from dataclasses import dataclass

from mock_interview.clients.llm_client import LLMClient
from mock_interview.clients.speech_client import SpeechClient
from mock_interview.config import AppConfig
from mock_interview.interview.evaluator import InterviewEvaluator
from mock_interview.interview.lock import EvaluationLock
from mock_interview.interview.question_bank import QuestionBank
from mock_interview.interview.store import InterviewStore
from mock_interview.interview.turns import TurnService
from mock_interview.usage.buffer import SessionUsageBuffer, create_buffer
from mock_interview.usage.usage_store import UsageStore


@dataclass
class Services:
    config: AppConfig
    interviews: InterviewStore
    usage: UsageStore
    questions: QuestionBank
    buffer: SessionUsageBuffer
    evaluator: InterviewEvaluator
    turns: TurnService


def build_services(
    config: AppConfig,
    *,
    llm: LLMClient | None = None,
    speech: SpeechClient | None = None,
    buffer: SessionUsageBuffer | None = None,
) -> Services:
    db_path = config.storage.resolved_db_path
    interviews = InterviewStore(db_path)
    usage = UsageStore(db_path)
    questions = QuestionBank(db_path)
    if buffer is None:
        buffer = create_buffer(config.storage.buffer_backend, db_path)

    if llm is None:
        llm = LLMClient(timeout=config.llm.timeout, max_retries=config.llm.max_retries)
    if speech is None:
        speech = SpeechClient(
            transcribe_model=config.speech.transcribe_model,
            tts_model=config.speech.tts_model,
            tts_voice=config.speech.tts_voice,
            tts_format=config.speech.tts_format,
        )

    lock = EvaluationLock(interviews, wait_seconds=config.evaluation.contention_wait_seconds)
    evaluator = InterviewEvaluator(
        interviews,
        lock,
        llm,
        buffer,
        usage,
        model=config.llm.model,
        max_tokens=config.llm.max_tokens,
        rates=config.rates,
        persist_attempts=config.evaluation.persist_attempts,
    )
    turns = TurnService(
        llm,
        speech,
        buffer,
        model=config.llm.model,
        rates=config.rates,
        simulate_synthesis=config.speech.simulate_synthesis,
    )
    return Services(
        config=config,
        interviews=interviews,
        usage=usage,
        questions=questions,
        buffer=buffer,
        evaluator=evaluator,
        turns=turns,
    )
