"""Usage metering data models."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class UsageRecord(BaseModel):
    """Metered inputs of a single text-generation, speech or transcription call."""

    function_name: str
    model: str | None = None
    prompt_tokens: int = 0
    output_tokens: int = 0
    reasoning_tokens: int = 0
    total_tokens: int = 0
    speech_characters: int = 0
    speech_cost: float = 0.0
    transcription_seconds: int = 0
    transcription_cost: float = 0.0
    text_cost: float = 0.0
    timestamp: datetime = Field(default_factory=datetime.now)

    @property
    def cost(self) -> float:
        return self.text_cost + self.speech_cost + self.transcription_cost


class UsageTotals(BaseModel):
    total_tokens: int = 0
    total_prompt_tokens: int = 0
    total_output_tokens: int = 0
    total_reasoning_tokens: int = 0
    total_speech_characters: int = 0
    total_speech_cost: float = 0.0
    total_transcription_seconds: int = 0
    total_transcription_cost: float = 0.0
    total_text_cost: float = 0.0
    total_cost: float = 0.0


class UsageLog(UsageTotals):
    """Aggregated usage of one completed interview evaluation."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    interview_id: str | None = None
    category: str | None = None
    level: str | None = None
    tier: str | None = None
    details: list[UsageRecord] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)
    completed_at: datetime | None = None


class UsageStats(BaseModel):
    """Lifetime usage summary of a single user."""

    total_tokens_all_time: int = 0
    total_interviews: int = 0
    avg_tokens_per_interview: float = 0.0
    total_cost_all_time: float = 0.0
