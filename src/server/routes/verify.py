"""Email action link endpoint."""

from __future__ import annotations

import asyncio
import logging

from fastapi import FastAPI, HTTPException, Request

from src.tasktide.exceptions import ConfigurationMissing

from ..dependencies import get_email_action_handler
from ..schemas import EmailActionResponse

logger = logging.getLogger(__name__)


def register_verify_routes(app: FastAPI) -> None:
    """Register the email action handler."""

    @app.get("/auth/action", response_model=EmailActionResponse)
    async def email_action(request: Request) -> EmailActionResponse:
        """Handle a link from a verification email."""
        try:
            handler = get_email_action_handler()
        except ConfigurationMissing as exc:
            logger.error("Email action handler unavailable: %s", exc)
            raise HTTPException(status_code=503, detail=exc.user_message) from exc
        result = await asyncio.to_thread(handler.handle, str(request.url))
        return EmailActionResponse(
            outcome=result.outcome.value,
            message=result.message,
            redirect_url=result.redirect_url,
            error_code=result.error_code,
        )
