"""Per-turn AI calls and the usage they feed into the session buffer."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass

from mock_interview.clients.llm_client import DEFAULT_MODEL, LLMClient
from mock_interview.clients.speech_client import SpeechClient
from mock_interview.config import RatesConfig
from mock_interview.errors import GenerationFailure, SynthesisFailure, TranscriptionFailure
from mock_interview.interview.evaluator import usage_from_response
from mock_interview.usage.buffer import SessionUsageBuffer
from mock_interview.usage.cost_calculator import (
    DEFAULT_RATES,
    estimate_audio_duration,
    speech_synthesis_cost,
    transcription_cost,
)
from mock_interview.usage.models import UsageRecord

logger = logging.getLogger(__name__)

ACKNOWLEDGE_PROMPT = """\
You are an objective, critical HR professional conducting an interview.
Reply to the candidate's answer below in at most 2 sentences.

Question: {question}
Answer: {answer}

Rules:
- Judge the answer objectively.
- A concrete, relevant answer gets professional appreciation.
- A vague or generic answer gets constructive but firm feedback.
- An irrelevant or evasive answer is pointed out professionally.
- Formal, polite and firm language.
- Return raw text only."""

FOLLOW_UP_PROMPT = """\
You are an HR professional conducting an interview. Ask exactly one follow-up
question that digs deeper into the candidate's answer below.

Question: {question}
Answer: {answer}

Rules:
- Specific to what the candidate said.
- If the answer lacked detail, steer the candidate toward concrete examples.
- At most 2 sentences, formal and polite.
- Ask the question directly, no acknowledgment first.
- Return raw text only."""


@dataclass
class SpeechResult:
    audio: bytes
    characters: int
    cost: float
    performed: bool


@dataclass
class TurnReply:
    text: str
    is_follow_up: bool
    speech: SpeechResult
    content_type: str
    usage_recorded: bool

    @property
    def audio_base64(self) -> str:
        return base64.b64encode(self.speech.audio).decode("ascii")


@dataclass
class TranscriptionResult:
    text: str
    duration_seconds: int
    cost: float


class TurnService:
    """Acknowledgment / follow-up replies and answer transcription.

    Metering is best-effort: a call without usage metadata, or a buffer
    error, never fails the turn.
    """

    def __init__(
        self,
        llm: LLMClient,
        speech: SpeechClient,
        buffer: SessionUsageBuffer,
        *,
        model: str = DEFAULT_MODEL,
        rates: RatesConfig = DEFAULT_RATES,
        simulate_synthesis: bool = True,
    ):
        self.llm = llm
        self.speech = speech
        self.buffer = buffer
        self.model = model
        self.rates = rates
        self.simulate_synthesis = simulate_synthesis

    async def respond_to_answer(
        self,
        user_id: str,
        question: str,
        answer: str,
        need_follow_up: bool = False,
    ) -> TurnReply:
        template = FOLLOW_UP_PROMPT if need_follow_up else ACKNOWLEDGE_PROMPT
        try:
            response = await self.llm.generate(
                prompt=template.format(question=question, answer=answer),
                model=self.model,
                temperature=0.7,
                max_tokens=512,
            )
        except Exception as exc:
            raise GenerationFailure(f"Turn reply generation failed: {exc}") from exc
        text = response.text.strip().strip('"')

        recorded = False
        record = usage_from_response("respond_to_answer", response)
        if record is None:
            logger.warning("No usage metadata for respond_to_answer; not buffered")
        try:
            speech = await self.synthesize(text)
        except SynthesisFailure:
            if record is not None:
                await self._buffer(user_id, record)
            raise
        if record is not None:
            record.speech_characters = speech.characters
            record.speech_cost = speech.cost
            recorded = await self._buffer(user_id, record)

        return TurnReply(
            text=text,
            is_follow_up=need_follow_up,
            speech=speech,
            content_type=self.speech.content_type,
            usage_recorded=recorded,
        )

    async def synthesize(self, text: str) -> SpeechResult:
        """Speech for ``text``. In simulation mode only the cost is computed."""
        characters = len(text)
        cost = speech_synthesis_cost(characters, self.rates)
        if self.simulate_synthesis:
            logger.debug("Simulated synthesis: %d characters, $%.6f", characters, cost)
            return SpeechResult(audio=b"", characters=characters, cost=cost, performed=False)
        try:
            audio = await self.speech.synthesize(text)
        except Exception as exc:
            logger.error("Speech synthesis failed", exc_info=True)
            raise SynthesisFailure(f"Speech synthesis failed: {exc}") from exc
        return SpeechResult(audio=audio, characters=characters, cost=cost, performed=True)

    async def transcribe_answer(
        self,
        user_id: str,
        audio: bytes,
        filename: str,
        mime_type: str,
    ) -> TranscriptionResult:
        duration = estimate_audio_duration(len(audio), self.rates)
        cost = transcription_cost(duration, self.rates)
        try:
            text = await self.speech.transcribe(audio, filename, mime_type)
        except Exception as exc:
            logger.error("Transcription failed", exc_info=True)
            raise TranscriptionFailure(f"Transcription failed: {exc}") from exc

        await self._buffer(
            user_id,
            UsageRecord(
                function_name="transcribe_audio",
                model=self.speech.transcribe_model,
                transcription_seconds=duration,
                transcription_cost=cost,
            ),
        )
        return TranscriptionResult(text=text, duration_seconds=duration, cost=cost)

    async def _buffer(self, user_id: str, record: UsageRecord) -> bool:
        try:
            size = await self.buffer.record(user_id, record)
        except Exception:
            logger.warning("Could not buffer usage for user %s", user_id, exc_info=True)
            return False
        logger.info(
            "Buffered %s usage for user %s (buffer size %d)",
            record.function_name, user_id, size,
        )
        return True
