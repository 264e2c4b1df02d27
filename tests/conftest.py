"""Shared test fixtures."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from mock_interview.clients.llm_client import LLMClient, LLMResponse
from mock_interview.clients.speech_client import SpeechClient
from mock_interview.interview.evaluator import InterviewEvaluator
from mock_interview.interview.lock import EvaluationLock
from mock_interview.interview.models import DIMENSIONS, Answer, Interview, Question
from mock_interview.interview.store import InterviewStore
from mock_interview.usage.buffer import InMemoryUsageBuffer
from mock_interview.usage.usage_store import UsageStore


async def no_sleep(seconds: float) -> None:
    return None


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "interviews.db"


@pytest.fixture
def sample_questions() -> list[Question]:
    return [
        Question(id="q1", content="Tell me about yourself.", type="intro", level="junior"),
        Question(
            id="q2",
            content="How would you design a REST API for a to-do app?",
            type="core",
            level="junior",
            follow_up=True,
        ),
    ]


@pytest.fixture
def sample_answers() -> list[Answer]:
    return [
        Answer(
            question_id="q1",
            question="Tell me about yourself.",
            transcription="I am a backend developer with two years of Python experience.",
            duration=60,
        ),
        Answer(
            question_id="q2",
            question="How would you design a REST API for a to-do app?",
            transcription="I would start with resources for lists and items, then CRUD routes.",
            duration=45,
        ),
    ]


@pytest.fixture
def sample_interview(sample_questions, sample_answers) -> Interview:
    return Interview(
        user_id="user-1",
        category_id="backend",
        category="Backend Developer",
        level="junior",
        tier="free",
        questions=sample_questions,
        answers=sample_answers,
    )


@pytest.fixture
def evaluation_payload() -> dict:
    return {
        "overallScore": 82,
        "overallGrade": "B+",
        "evaluations": [
            {
                "category": name,
                "score": 80,
                "maxScore": 100,
                "feedback": f"Solid {name.lower()}.",
                "strengths": ["clear", "relevant", "concrete"],
                "improvements": ["more depth", "more examples"],
            }
            for name in DIMENSIONS
        ],
        "summary": "A solid junior candidate with clear answers.",
        "recommendations": [
            "Quantify impact",
            "Use STAR structure",
            "Mention testing",
            "Discuss trade-offs",
            "Prepare questions",
        ],
    }


@pytest.fixture
def evaluation_json(evaluation_payload) -> str:
    return json.dumps(evaluation_payload)


@pytest.fixture
def mock_llm(evaluation_json) -> AsyncMock:
    llm = AsyncMock(spec=LLMClient)
    llm.generate.return_value = LLMResponse(
        text=evaluation_json,
        model="claude-haiku-4-5-20251001",
        input_tokens=1200,
        output_tokens=800,
    )
    return llm


@pytest.fixture
def mock_speech() -> AsyncMock:
    speech = AsyncMock(spec=SpeechClient)
    speech.content_type = "audio/mp3"
    speech.transcribe_model = "whisper-1"
    speech.transcribe = AsyncMock(return_value="I have two years of Python experience.")
    speech.synthesize = AsyncMock(return_value=b"ID3-fake-mp3")
    return speech


@pytest.fixture
def interview_store(db_path) -> InterviewStore:
    return InterviewStore(db_path)


@pytest.fixture
def usage_store(db_path, interview_store) -> UsageStore:
    return UsageStore(db_path)


@pytest.fixture
def buffer() -> InMemoryUsageBuffer:
    return InMemoryUsageBuffer()


@pytest.fixture
def lock(interview_store) -> EvaluationLock:
    return EvaluationLock(interview_store, wait_seconds=2.0, sleep=no_sleep)


@pytest.fixture
def evaluator(interview_store, lock, mock_llm, buffer, usage_store) -> InterviewEvaluator:
    return InterviewEvaluator(
        interview_store,
        lock,
        mock_llm,
        buffer,
        usage_store,
        persist_retry_wait=0,
    )
