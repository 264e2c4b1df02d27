"""Pydantic models for interviews and their evaluations."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# (minimum score, grade), highest first; anything below the last bucket is "F".
GRADE_SCALE: tuple[tuple[int, str], ...] = (
    (95, "A+"),
    (90, "A"),
    (85, "A-"),
    (80, "B+"),
    (75, "B"),
    (70, "B-"),
    (65, "C+"),
    (60, "C"),
    (55, "C-"),
    (50, "D"),
)
FAILING_GRADE = "F"
GRADES: tuple[str, ...] = tuple(g for _, g in GRADE_SCALE) + (FAILING_GRADE,)

DIMENSIONS: tuple[str, ...] = (
    "Content Quality",
    "Communication Skills",
    "Relevance & Focus",
    "Problem Solving Approach",
    "Confidence & Enthusiasm",
)

QuestionType = Literal["intro", "core", "closing"]


def grade_for_score(score: float) -> str:
    """Map an overall score (0-100) to its letter grade."""
    if score < 0 or score > 100:
        raise ValueError(f"score must be within 0-100, got {score}")
    for minimum, grade in GRADE_SCALE:
        if score >= minimum:
            return grade
    return FAILING_GRADE


def format_completion_time(total_seconds: float) -> str:
    return f"{int(total_seconds // 60)} minutes"


class Question(BaseModel):
    id: str
    content: str
    type: QuestionType = "core"
    level: str | None = None
    follow_up: bool = False


class Answer(BaseModel):
    question_id: str | None = None
    question: str
    transcription: str = ""
    duration: float = 0.0  # seconds spoken
    is_follow_up: bool = False
    acknowledgment: str | None = None


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DimensionScore(_CamelModel):
    category: str
    score: float = Field(ge=0, le=100)
    max_score: int = 100
    feedback: str
    strengths: list[str]
    improvements: list[str]


class Evaluation(_CamelModel):
    """Structured evaluation of a whole interview.

    Serialized with camelCase keys, the shape the generation prompt asks for.
    """

    overall_score: float = Field(ge=0, le=100)
    overall_grade: str
    evaluations: list[DimensionScore]
    summary: str
    recommendations: list[str]
    total_questions: int = 0
    completion_time: str = ""

    @field_validator("overall_grade")
    @classmethod
    def _known_grade(cls, value: str) -> str:
        value = value.strip()
        if value not in GRADES:
            raise ValueError(f"unknown grade {value!r}")
        return value

    @field_validator("evaluations")
    @classmethod
    def _all_dimensions(cls, value: list[DimensionScore]) -> list[DimensionScore]:
        if len(value) != len(DIMENSIONS):
            raise ValueError(
                f"expected {len(DIMENSIONS)} dimension scores, got {len(value)}"
            )
        return value


class Interview(BaseModel):
    """One interview session.

    ``evaluated`` doubles as the evaluation lock: while ``evaluated`` is true
    and ``evaluation`` is None another request is generating the evaluation.
    """

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    user_id: str
    category_id: str
    category: str
    level: str
    tier: str
    questions: list[Question] = Field(default_factory=list)
    answers: list[Answer] = Field(default_factory=list)
    completed_at: datetime = Field(default_factory=datetime.now)
    evaluated: bool = False
    evaluation: Evaluation | None = None
    evaluated_at: datetime | None = None

    @property
    def evaluation_in_progress(self) -> bool:
        return self.evaluated and self.evaluation is None
