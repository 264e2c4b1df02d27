"""OpenAI audio wrapper: transcription and speech synthesis."""

from __future__ import annotations

import logging
from io import BytesIO

import openai
from tenacity import retry, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)


class SpeechClient:
    """Async transcription / text-to-speech client.

    Neither endpoint reports billable usage; callers meter it themselves.
    """

    def __init__(
        self,
        api_key: str | None = None,
        transcribe_model: str = "whisper-1",
        tts_model: str = "gpt-4o-mini-tts",
        tts_voice: str = "alloy",
        tts_format: str = "mp3",
    ):
        self._api_key = api_key
        self._client: openai.AsyncOpenAI | None = None
        self.transcribe_model = transcribe_model
        self.tts_model = tts_model
        self.tts_voice = tts_voice
        self.tts_format = tts_format

    @property
    def client(self) -> openai.AsyncOpenAI:
        # Created on first use: the SDK refuses to build without a key.
        if self._client is None:
            kwargs: dict = {}
            if self._api_key is not None:
                kwargs["api_key"] = self._api_key
            self._client = openai.AsyncOpenAI(**kwargs)
        return self._client

    @property
    def content_type(self) -> str:
        return f"audio/{self.tts_format}"

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(min=1, max=10),
        reraise=True,
    )
    async def transcribe(self, audio: bytes, filename: str, mime_type: str) -> str:
        """Transcribe an uploaded audio clip to text."""
        logger.debug("Transcribing %s (%s, %d bytes)", filename, mime_type, len(audio))
        transcription = await self.client.audio.transcriptions.create(
            model=self.transcribe_model,
            file=(filename, BytesIO(audio), mime_type),
        )
        return transcription.text.strip()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(min=1, max=10),
        reraise=True,
    )
    async def synthesize(self, text: str) -> bytes:
        """Render ``text`` as speech and return the raw audio bytes."""
        speech = await self.client.audio.speech.create(
            model=self.tts_model,
            voice=self.tts_voice,
            input=text,
            response_format=self.tts_format,
        )
        audio = speech.content
        if not audio:
            raise ValueError("Speech synthesis returned empty audio")
        return audio
