"""FastAPI application exposing the interview and usage endpoints."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from mock_interview.api.routes.interviews import router as interviews_router
from mock_interview.api.routes.usage import router as usage_router
from mock_interview.config import AppConfig, load_config
from mock_interview.errors import MockInterviewError
from mock_interview.services import Services, build_services

logger = logging.getLogger(__name__)


def create_app(services: Services | None = None, config: AppConfig | None = None) -> FastAPI:
    if services is None:
        services = build_services(config or load_config())

    app = FastAPI(title="Mock Interview API")
    app.state.services = services

    @app.exception_handler(MockInterviewError)
    async def handle_service_error(request: Request, exc: MockInterviewError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content={"message": str(exc)})

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    app.include_router(interviews_router)
    app.include_router(usage_router)
    return app
