from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from mock_interview.api.deps import get_services, get_user_id
from mock_interview.api.schemas import (
    InterviewSummary,
    SaveInterviewRequest,
    SaveInterviewResponse,
    SessionQuestion,
    SessionStartRequest,
    SpeechSimulation,
    TranscriptEvaluationRequest,
    TranscriptionResponse,
    TurnRequest,
    TurnResponse,
)
from mock_interview.errors import InterviewNotFound
from mock_interview.interview.models import Interview
from mock_interview.services import Services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/interviews", tags=["interviews"])


@router.post("/start", status_code=201, response_model=list[SessionQuestion])
async def start_session(
    body: SessionStartRequest,
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    selected = await services.questions.start_session(
        body.category_id, body.level, body.tier, services.config.tiers
    )
    return [SessionQuestion(**q.model_dump()) for q in selected]


@router.post("/answer", response_model=TranscriptionResponse)
async def answer_question(
    file: Optional[UploadFile] = File(default=None),
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    if file is None:
        raise HTTPException(status_code=400, detail="Please upload an audio file")
    audio = await file.read()
    result = await services.turns.transcribe_answer(
        user_id,
        audio,
        filename=file.filename or "answer.webm",
        mime_type=file.content_type or "application/octet-stream",
    )
    return TranscriptionResponse(
        transcription=result.text,
        duration_seconds=result.duration_seconds,
        cost=result.cost,
    )


@router.post("/response", status_code=201, response_model=TurnResponse)
async def respond_to_answer(
    body: TurnRequest,
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    reply = await services.turns.respond_to_answer(
        user_id, body.question, body.answer, need_follow_up=body.need_follow_up
    )
    return TurnResponse(
        text=reply.text,
        audio_base64=reply.audio_base64,
        content_type=reply.content_type,
        is_follow_up=reply.is_follow_up,
        audio_disabled=not reply.speech.performed,
        speech=SpeechSimulation(characters=reply.speech.characters, cost=reply.speech.cost),
    )


@router.post("/evaluate")
async def evaluate_transcript(
    body: TranscriptEvaluationRequest,
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    outcome = await services.evaluator.evaluate_transcript(
        user_id, body.category, body.level, body.answers, tier=body.tier
    )
    return {"success": True, "evaluation": outcome.evaluation.model_dump(by_alias=True)}


@router.post("/save", status_code=201, response_model=SaveInterviewResponse)
async def save_interview(
    body: SaveInterviewRequest,
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    interview = await services.interviews.create(
        Interview(user_id=user_id, **body.model_dump())
    )
    logger.info("Saved interview %s for user %s", interview.id, user_id)
    return SaveInterviewResponse(interview_id=interview.id)


@router.get("/history", response_model=list[InterviewSummary])
async def interview_history(
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    interviews = await services.interviews.list_by_user(user_id)
    return [
        InterviewSummary(
            id=item.id,
            category_id=item.category_id,
            category=item.category,
            level=item.level,
            tier=item.tier,
            completed_at=item.completed_at,
            evaluated=item.evaluation is not None,
            overall_score=item.evaluation.overall_score if item.evaluation else None,
            overall_grade=item.evaluation.overall_grade if item.evaluation else None,
        )
        for item in interviews
    ]


@router.get("/{interview_id}")
async def get_interview(
    interview_id: str,
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    interview = await services.interviews.get(interview_id)
    if interview is None:
        raise InterviewNotFound(interview_id)
    data = interview.model_dump(mode="json", exclude={"evaluation"})
    data["evaluation"] = (
        interview.evaluation.model_dump(by_alias=True) if interview.evaluation else None
    )
    return data


@router.post("/{interview_id}/evaluate")
async def evaluate_interview(
    interview_id: str,
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    outcome = await services.evaluator.evaluate(interview_id)
    return {
        "success": True,
        "cached": outcome.cached,
        "evaluation": outcome.evaluation.model_dump(by_alias=True),
    }
