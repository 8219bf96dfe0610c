"""Dashboard endpoints."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from fastapi import Depends, FastAPI, HTTPException

from src.stats import compute_dashboard_stats
from src.tasktide.context import AuthUser

from ..dependencies import (
    config,
    get_current_user,
    get_quote_service,
    get_session_repository,
    get_task_repository,
    serialize_stats,
)
from ..schemas import DashboardResponse, QuoteResponse

logger = logging.getLogger(__name__)


def register_dashboard_routes(app: FastAPI) -> None:
    """Register dashboard statistics endpoints."""

    @app.get("/api/dashboard", response_model=DashboardResponse)
    async def dashboard(user: AuthUser = Depends(get_current_user)) -> DashboardResponse:
        """Compute dashboard statistics from the user's current records."""
        tasks_repo = get_task_repository()
        sessions_repo = get_session_repository()
        try:
            tasks = await asyncio.to_thread(tasks_repo.list, user.uid)
            sessions = await asyncio.to_thread(sessions_repo.list, user.uid)
        except Exception as exc:
            logger.exception("Failed to load dashboard data: %s", exc)
            raise HTTPException(status_code=500, detail="Failed to load dashboard") from exc
        stats = compute_dashboard_stats(
            tasks,
            sessions,
            datetime.now().astimezone(),
            upcoming_limit=config.upcoming_limit,
            recent_limit=config.recent_limit,
        )
        return serialize_stats(stats)

    @app.get("/api/dashboard/quote", response_model=QuoteResponse)
    async def quote() -> QuoteResponse:
        """Motivational quote; falls back to a stored quote on failure."""
        result = await asyncio.to_thread(get_quote_service().fetch)
        return QuoteResponse(text=result.text, from_ai=result.from_ai, error=result.error)
