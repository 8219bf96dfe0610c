"""Chat and study-assistant API routes."""

from __future__ import annotations

import asyncio
import logging
from typing import List

from fastapi import Depends, FastAPI, HTTPException

from src.chat_history import SendStatus
from src.tasktide.context import AuthUser
from src.tasktide.exceptions import CompletionError
from src.tasktide.study_ai import summarize_notes

from ..dependencies import (
    get_chat_assistant,
    get_chat_store,
    get_completion_client,
    get_current_user,
    get_store,
    serialize_message,
)
from ..schemas import (
    ChatMessageResponse,
    ChatRequest,
    ChatResponse,
    HealthResponse,
    SummaryRequest,
    SummaryResponse,
)

logger = logging.getLogger(__name__)


def register_chat_routes(app: FastAPI) -> None:
    """Register chat and health endpoints on the provided app."""

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """Health check that also touches the document store."""
        try:
            collections = await asyncio.to_thread(get_store().collections)
        except Exception as exc:
            logger.exception("Health check failed: %s", exc)
            raise HTTPException(status_code=503, detail="Store unavailable") from exc
        return HealthResponse(status="ok", collections=[name for name, _ in collections])

    @app.get("/api/chat/messages", response_model=List[ChatMessageResponse])
    async def list_messages(user: AuthUser = Depends(get_current_user)) -> List[ChatMessageResponse]:
        """List the user's chat log ordered by creation time."""
        store = get_chat_store()
        try:
            messages = await asyncio.to_thread(store.list_messages, user.uid)
            return [serialize_message(message) for message in messages]
        except Exception as exc:
            logger.exception("Failed to list chat messages: %s", exc)
            raise HTTPException(status_code=500, detail="Failed to list chat messages") from exc

    @app.post("/api/chat", response_model=ChatResponse)
    async def chat(request: ChatRequest, user: AuthUser = Depends(get_current_user)) -> ChatResponse:
        """Save the user's message and append the assistant reply.

        A failed completion still returns 200: the error is part of the chat log.
        """
        if not request.message.strip():
            raise HTTPException(status_code=400, detail="Message must not be empty")
        assistant = get_chat_assistant()
        result = await asyncio.to_thread(assistant.send, user.uid, request.message)
        if result.status is SendStatus.WRITE_FAILED:
            raise HTTPException(status_code=503, detail=result.error.user_message)
        return ChatResponse(
            status=result.status.value,
            draft=result.draft,
            user_message=serialize_message(result.user_message),
            reply=serialize_message(result.reply),
            error=result.error.user_message if result.error else None,
        )

    @app.post("/api/notes/summary", response_model=SummaryResponse)
    async def summarize(
        request: SummaryRequest, user: AuthUser = Depends(get_current_user)
    ) -> SummaryResponse:
        """Summarize study notes with the AI assistant."""
        client = get_completion_client()
        if client is None:
            raise HTTPException(status_code=503, detail="AI service is not configured.")
        try:
            summary = await asyncio.to_thread(summarize_notes, client, request.notes)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except CompletionError as exc:
            logger.error("Note summary failed for %s: %s", user.uid, exc)
            raise HTTPException(status_code=502, detail=exc.user_message) from exc
        return SummaryResponse(summary=summary)
