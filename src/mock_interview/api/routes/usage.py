from __future__ import annotations

import asyncio
import math

from fastapi import APIRouter, Depends, HTTPException, Query

from mock_interview.api.deps import get_services, get_user_id
from mock_interview.api.schemas import Pagination
from mock_interview.services import Services

router = APIRouter(prefix="/usage", tags=["usage"])


@router.get("")
async def usage_history(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    store = services.usage
    logs, total, stats = await asyncio.gather(
        asyncio.to_thread(store.get_logs, user_id, page, limit),
        asyncio.to_thread(store.count_logs, user_id),
        asyncio.to_thread(store.get_user_stats, user_id),
    )
    return {
        "success": True,
        "data": {
            "logs": [log.model_dump(mode="json") for log in logs],
            "pagination": Pagination(
                current_page=page,
                total_pages=math.ceil(total / limit),
                total_items=total,
            ).model_dump(),
            "stats": stats.model_dump(),
        },
    }


@router.post("/{interview_id}/finalize")
async def finalize_usage_log(
    interview_id: str,
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    existing = await asyncio.to_thread(services.usage.get_by_interview, interview_id)
    if existing is None or existing.user_id != user_id:
        raise HTTPException(status_code=404, detail=f"No usage log for interview {interview_id}")
    log = await asyncio.to_thread(services.usage.finalize, interview_id)
    return {"success": True, "data": log.model_dump(mode="json")}
