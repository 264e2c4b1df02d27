from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from mock_interview.interview.models import Answer, Question


class SessionStartRequest(BaseModel):
    category_id: str = Field(min_length=1)
    level: str = Field(min_length=1)
    tier: str = Field(min_length=1)


class SessionQuestion(BaseModel):
    id: str
    category_id: str
    category: str
    level: str
    type: str
    content: str
    follow_up: bool


class TurnRequest(BaseModel):
    question: str = Field(min_length=1)
    answer: str
    need_follow_up: bool = False


class SpeechSimulation(BaseModel):
    characters: int
    cost: float


class TurnResponse(BaseModel):
    text: str
    audio_base64: str
    content_type: str
    is_follow_up: bool
    audio_disabled: bool
    speech: SpeechSimulation


class TranscriptionResponse(BaseModel):
    message: str = "Success transcribe audio"
    transcription: str
    duration_seconds: int
    cost: float


class SaveInterviewRequest(BaseModel):
    category_id: str = Field(min_length=1)
    category: str = Field(min_length=1)
    level: str = Field(min_length=1)
    tier: str = Field(min_length=1)
    questions: list[Question] = Field(min_length=1)
    answers: list[Answer] = Field(min_length=1)


class SaveInterviewResponse(BaseModel):
    message: str = "Interview saved"
    interview_id: str


class TranscriptEvaluationRequest(BaseModel):
    category: str = Field(min_length=1)
    level: str = Field(min_length=1)
    tier: Optional[str] = None
    answers: list[Answer] = Field(min_length=1)


class InterviewSummary(BaseModel):
    id: str
    category_id: str
    category: str
    level: str
    tier: str
    completed_at: datetime
    evaluated: bool
    overall_score: Optional[float] = None
    overall_grade: Optional[str] = None


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
