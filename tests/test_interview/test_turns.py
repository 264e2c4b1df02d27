"""Tests for turn-level replies, transcription and usage buffering."""

from __future__ import annotations

import base64
from unittest.mock import AsyncMock

import pytest

from mock_interview.clients.llm_client import LLMResponse
from mock_interview.errors import GenerationFailure, SynthesisFailure, TranscriptionFailure
from mock_interview.interview.turns import TurnService
from mock_interview.usage.buffer import InMemoryUsageBuffer

MODEL = "claude-haiku-4-5-20251001"


@pytest.fixture
def turn_llm() -> AsyncMock:
    llm = AsyncMock()
    llm.generate.return_value = LLMResponse(
        text='"Thank you, that is a clear and concrete answer."',
        model=MODEL,
        input_tokens=200,
        output_tokens=40,
    )
    return llm


@pytest.fixture
def turns(turn_llm, mock_speech, buffer) -> TurnService:
    return TurnService(turn_llm, mock_speech, buffer)


class TestRespondToAnswer:
    async def test_simulated_speech(self, turns, buffer, mock_speech):
        reply = await turns.respond_to_answer("user-1", "Tell me about yourself.", "I code.")

        assert reply.text == "Thank you, that is a clear and concrete answer."
        assert reply.speech.performed is False
        assert reply.speech.audio == b""
        assert reply.audio_base64 == ""
        assert reply.speech.characters == len(reply.text)
        assert reply.speech.cost == pytest.approx(len(reply.text) * 0.00022)
        mock_speech.synthesize.assert_not_awaited()

        (record,) = await buffer.drain("user-1")
        assert record.function_name == "respond_to_answer"
        assert record.prompt_tokens == 200
        assert record.output_tokens == 40
        assert record.total_tokens == 240
        assert record.speech_characters == len(reply.text)
        assert record.speech_cost == pytest.approx(reply.speech.cost)

    async def test_real_speech(self, turn_llm, mock_speech, buffer):
        turns = TurnService(turn_llm, mock_speech, buffer, simulate_synthesis=False)
        reply = await turns.respond_to_answer("user-1", "Q", "A")
        assert reply.speech.performed is True
        assert base64.b64decode(reply.audio_base64) == b"ID3-fake-mp3"
        assert reply.content_type == "audio/mp3"
        mock_speech.synthesize.assert_awaited_once_with(reply.text)

    async def test_real_speech_failure_keeps_text_usage(self, turn_llm, mock_speech, buffer):
        mock_speech.synthesize.side_effect = RuntimeError("tts down")
        turns = TurnService(turn_llm, mock_speech, buffer, simulate_synthesis=False)
        with pytest.raises(SynthesisFailure) as excinfo:
            await turns.respond_to_answer("user-1", "Q", "A")
        assert excinfo.value.status_code == 502
        assert await buffer.size("user-1") == 1
        (record,) = await buffer.drain("user-1")
        assert record.total_tokens == 240
        assert record.speech_characters == 0
        assert record.speech_cost == 0.0

    async def test_follow_up_prompt(self, turns, turn_llm):
        reply = await turns.respond_to_answer("user-1", "Q", "A", need_follow_up=True)
        assert reply.is_follow_up is True
        prompt = turn_llm.generate.await_args.kwargs["prompt"]
        assert "follow-up" in prompt

    async def test_no_usage_not_buffered(self, turns, turn_llm, buffer):
        turn_llm.generate.return_value = LLMResponse(text="Noted.", model=MODEL)
        reply = await turns.respond_to_answer("user-1", "Q", "A")
        assert reply.text == "Noted."
        assert reply.usage_recorded is False
        assert await buffer.size("user-1") == 0

    async def test_buffer_error_does_not_fail_turn(self, turn_llm, mock_speech):
        broken = AsyncMock(spec=InMemoryUsageBuffer)
        broken.record.side_effect = RuntimeError("buffer unavailable")
        turns = TurnService(turn_llm, mock_speech, broken)
        reply = await turns.respond_to_answer("user-1", "Q", "A")
        assert reply.usage_recorded is False

    async def test_generation_failure(self, turns, turn_llm, buffer):
        turn_llm.generate.side_effect = RuntimeError("provider down")
        with pytest.raises(GenerationFailure):
            await turns.respond_to_answer("user-1", "Q", "A")
        assert await buffer.size("user-1") == 0

    async def test_records_accumulate_per_user(self, turns, buffer):
        await turns.respond_to_answer("user-1", "Q1", "A1")
        await turns.respond_to_answer("user-1", "Q2", "A2")
        await turns.respond_to_answer("user-2", "Q1", "A1")
        assert await buffer.size("user-1") == 2
        assert await buffer.size("user-2") == 1


class TestTranscribeAnswer:
    async def test_buffers_estimated_duration(self, turns, buffer, mock_speech):
        audio = b"\x00" * (8192 * 20)
        result = await turns.transcribe_answer("user-1", audio, "answer.webm", "audio/webm")

        assert result.text == "I have two years of Python experience."
        assert result.duration_seconds == 20
        assert result.cost == pytest.approx(20 * 0.000025)
        mock_speech.transcribe.assert_awaited_once_with(audio, "answer.webm", "audio/webm")

        (record,) = await buffer.drain("user-1")
        assert record.function_name == "transcribe_audio"
        assert record.model == "whisper-1"
        assert record.transcription_seconds == 20
        assert record.total_tokens == 0

    async def test_short_clip_billed_minimum(self, turns):
        result = await turns.transcribe_answer("user-1", b"\x00" * 100, "a.webm", "audio/webm")
        assert result.duration_seconds == 3

    async def test_failure_not_buffered(self, turns, buffer, mock_speech):
        mock_speech.transcribe.side_effect = RuntimeError("provider error")
        with pytest.raises(TranscriptionFailure) as exc_info:
            await turns.transcribe_answer("user-1", b"\x00" * 100, "a.webm", "audio/webm")
        assert exc_info.value.status_code == 502
        assert await buffer.size("user-1") == 0
