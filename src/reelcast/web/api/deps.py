"""
Shared FastAPI dependencies.

The poll handler (and through it the timeline manager and display registry) is
created once per application and stored on ``app.state``; tests override these
dependencies or pass their own handler to ``create_app``.
"""

from __future__ import annotations

from typing import NoReturn

from fastapi import Depends, HTTPException, Request

from ...infra.exceptions import NotFoundError
from ...infra.uow import get_db
from ...runtime import DisplayRegistry, PollHandler, TimelineManager

__all__ = ["get_db", "get_poll_handler", "get_registry", "get_timeline", "raise_http"]


def get_poll_handler(request: Request) -> PollHandler:
    return request.app.state.poll_handler


def get_timeline(handler: PollHandler = Depends(get_poll_handler)) -> TimelineManager:
    return handler.timeline


def get_registry(handler: PollHandler = Depends(get_poll_handler)) -> DisplayRegistry:
    return handler.registry


def raise_http(e: ValueError) -> NoReturn:
    """Map a usecase ValueError to 404 (unknown record) or 400 (bad request)."""
    error_msg = str(e)
    if isinstance(e, NotFoundError) or "not found" in error_msg.lower():
        raise HTTPException(status_code=404, detail=error_msg)
    raise HTTPException(status_code=400, detail=error_msg)
