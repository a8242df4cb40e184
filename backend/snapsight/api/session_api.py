"""
Session API: start/stop the capture loop and read its state.

Endpoints:
- POST /api/session/start  - begin a new session (stats reset)
- POST /api/session/stop   - stop capturing (idempotent)
- POST /api/session/toggle - running -> stop, stopped -> start
- GET  /api/session/status - mode, scheduler state, stats, latest result
"""

from fastapi import APIRouter, Request
from pydantic import BaseModel
from typing import Optional
import logging

from snapsight.schemas.analysis import AnalysisResult
from snapsight.services.presentation import session_view

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/session", tags=["session"])


class SessionStatsResponse(BaseModel):
    processed_count: int
    total_response_time_ms: int
    last_response_time_ms: int
    average_response_time_ms: int


class SessionStatusResponse(BaseModel):
    mode: str
    scheduler_state: str
    stats: SessionStatsResponse
    result: Optional[AnalysisResult] = None
    error_message: Optional[str] = None
    error_kind: Optional[str] = None
    error_text: Optional[str] = None
    summary: str


class SessionActionResponse(BaseModel):
    success: bool
    running: bool
    scheduler_state: str
    message: str


def _scheduler(request: Request):
    return request.app.state.scheduler


def _action_response(scheduler, success: bool, message: str) -> SessionActionResponse:
    return SessionActionResponse(
        success=success,
        running=scheduler.is_running,
        scheduler_state=scheduler.state.value,
        message=message,
    )


@router.post("/start", response_model=SessionActionResponse)
def start_session(request: Request):
    scheduler = _scheduler(request)
    if scheduler.is_running:
        return _action_response(scheduler, True, "Session already running")
    started = scheduler.start()
    logger.info(f"[API] Session start requested (started={started})")
    if not started:
        return _action_response(scheduler, False, scheduler.session.error_message or "Session could not start")
    return _action_response(scheduler, True, "Session started")


@router.post("/stop", response_model=SessionActionResponse)
def stop_session(request: Request):
    scheduler = _scheduler(request)
    scheduler.stop()
    logger.info("[API] Session stop requested")
    return _action_response(scheduler, True, "Session stopped")


@router.post("/toggle", response_model=SessionActionResponse)
def toggle_session(request: Request):
    scheduler = _scheduler(request)
    was_running = scheduler.is_running
    running = scheduler.toggle()
    if was_running:
        return _action_response(scheduler, True, "Session stopped")
    if not running:
        return _action_response(scheduler, False, scheduler.session.error_message or "Session could not start")
    return _action_response(scheduler, True, "Session started")


@router.get("/status", response_model=SessionStatusResponse)
def get_session_status(request: Request):
    """Current session snapshot with a human-readable summary of the latest result."""
    scheduler = _scheduler(request)
    view = session_view(scheduler.session.snapshot(), scheduler.state.value)
    return SessionStatusResponse(**view)
