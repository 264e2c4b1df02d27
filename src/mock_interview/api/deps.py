from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException, Request

from mock_interview.services import Services


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    # Identity is issued by the upstream auth gateway.
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id
