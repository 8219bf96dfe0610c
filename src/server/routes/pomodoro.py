"""Pomodoro session endpoints."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException

from src.pomodoro import PomodoroCycle, SessionType
from src.tasktide.context import AuthUser
from src.tasktide.exceptions import ImmutableRecordError, WriteFailure

from ..dependencies import config, get_current_user, get_session_repository, serialize_session
from ..schemas import (
    CyclePlanResponse,
    SessionFinishRequest,
    SessionResponse,
    SessionStartRequest,
)

logger = logging.getLogger(__name__)


def register_pomodoro_routes(app: FastAPI) -> None:
    """Register pomodoro session endpoints."""

    @app.get("/api/pomodoro/sessions", response_model=List[SessionResponse])
    async def list_sessions(user: AuthUser = Depends(get_current_user)) -> List[SessionResponse]:
        repo = get_session_repository()
        try:
            sessions = await asyncio.to_thread(repo.list, user.uid)
            return [serialize_session(session) for session in sessions]
        except Exception as exc:
            logger.exception("Failed to list sessions: %s", exc)
            raise HTTPException(status_code=500, detail="Failed to list sessions") from exc

    @app.get("/api/pomodoro/next", response_model=CyclePlanResponse)
    async def next_session(
        work_sessions_completed: int = 0, current: SessionType = SessionType.WORK
    ) -> CyclePlanResponse:
        """Plan the session that follows the current one."""
        cycle = PomodoroCycle(config.pomodoro, max(work_sessions_completed, 0), current)
        cycle.advance()
        return CyclePlanResponse(
            type=cycle.current_type,
            duration=cycle.current_duration(),
            work_sessions_completed=cycle.work_sessions_completed,
            long_break=cycle.current_type is SessionType.BREAK and cycle.is_long_break_due(),
        )

    @app.post("/api/pomodoro/sessions", response_model=SessionResponse)
    async def start_session(
        request: SessionStartRequest, user: AuthUser = Depends(get_current_user)
    ) -> SessionResponse:
        """Start a session; duration defaults to the configured cycle length."""
        duration = request.duration
        if duration is None:
            cycle = PomodoroCycle(config.pomodoro, request.work_sessions_completed, request.type)
            duration = cycle.current_duration()
        repo = get_session_repository()
        try:
            session = await asyncio.to_thread(
                repo.start, user.uid, request.type, duration, request.task_id
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except WriteFailure as exc:
            logger.error("Failed to start session: %s", exc)
            raise HTTPException(status_code=503, detail=exc.user_message) from exc
        return serialize_session(session)

    async def _finish(action, session_id: str, request: Optional[SessionFinishRequest], user: AuthUser):
        end_time = request.end_time if request else None
        try:
            session = await asyncio.to_thread(action, user.uid, session_id, end_time)
        except ImmutableRecordError as exc:
            raise HTTPException(status_code=409, detail=exc.user_message) from exc
        except WriteFailure as exc:
            raise HTTPException(status_code=503, detail=exc.user_message) from exc
        if not session:
            raise HTTPException(status_code=404, detail="Session not found")
        return serialize_session(session)

    @app.post("/api/pomodoro/sessions/{session_id}/complete", response_model=SessionResponse)
    async def complete_session(
        session_id: str,
        request: Optional[SessionFinishRequest] = None,
        user: AuthUser = Depends(get_current_user),
    ) -> SessionResponse:
        """Record a finished session; completed sessions are immutable."""
        return await _finish(get_session_repository().complete, session_id, request, user)

    @app.post("/api/pomodoro/sessions/{session_id}/stop", response_model=SessionResponse)
    async def stop_session(
        session_id: str,
        request: Optional[SessionFinishRequest] = None,
        user: AuthUser = Depends(get_current_user),
    ) -> SessionResponse:
        """Stop a running session without counting it as focus time."""
        return await _finish(get_session_repository().stop, session_id, request, user)
