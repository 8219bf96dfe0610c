"""Task endpoints."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List

from fastapi import Depends, FastAPI, HTTPException

from src.tasks import UNSET
from src.tasktide.context import AuthUser
from src.tasktide.exceptions import WriteFailure
from src.tasktide.study_ai import generate_task_suggestions

from ..dependencies import (
    get_completion_client,
    get_current_user,
    get_task_repository,
    serialize_task,
)
from ..schemas import (
    SuggestionRequest,
    SuggestionResponse,
    TaskCreateRequest,
    TaskResponse,
    TaskUpdateRequest,
)

logger = logging.getLogger(__name__)


def register_task_routes(app: FastAPI) -> None:
    """Register task CRUD endpoints."""

    @app.get("/api/tasks", response_model=List[TaskResponse])
    async def list_tasks(user: AuthUser = Depends(get_current_user)) -> List[TaskResponse]:
        """List the user's tasks in insertion order."""
        repo = get_task_repository()
        try:
            tasks = await asyncio.to_thread(repo.list, user.uid)
            return [serialize_task(task) for task in tasks]
        except Exception as exc:
            logger.exception("Failed to list tasks: %s", exc)
            raise HTTPException(status_code=500, detail="Failed to list tasks") from exc

    @app.post("/api/tasks", response_model=TaskResponse)
    async def create_task(
        request: TaskCreateRequest, user: AuthUser = Depends(get_current_user)
    ) -> TaskResponse:
        """Create a new task."""
        repo = get_task_repository()
        try:
            task = await asyncio.to_thread(
                repo.create,
                user.uid,
                request.title,
                request.subject,
                request.priority,
                request.status,
                request.deadline,
                request.description,
                request.estimated_minutes,
                request.tags,
            )
            return serialize_task(task)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except WriteFailure as exc:
            logger.error("Failed to create task: %s", exc)
            raise HTTPException(status_code=503, detail=exc.user_message) from exc

    @app.patch("/api/tasks/{task_id}", response_model=TaskResponse)
    async def update_task(
        task_id: str, request: TaskUpdateRequest, user: AuthUser = Depends(get_current_user)
    ) -> TaskResponse:
        """Update an existing task."""
        repo = get_task_repository()
        payload = request.model_dump(exclude_unset=True)
        try:
            task = await asyncio.to_thread(
                repo.update,
                user.uid,
                task_id,
                title=payload.get("title"),
                subject=payload.get("subject"),
                description=payload.get("description"),
                priority=payload.get("priority"),
                status=payload.get("status"),
                deadline=payload["deadline"] if "deadline" in payload else UNSET,
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except WriteFailure as exc:
            logger.error("Failed to update task %s: %s", task_id, exc)
            raise HTTPException(status_code=503, detail=exc.user_message) from exc
        if not task:
            raise HTTPException(status_code=404, detail="Task not found")
        return serialize_task(task)

    @app.post("/api/tasks/{task_id}/complete", response_model=TaskResponse)
    async def complete_task(task_id: str, user: AuthUser = Depends(get_current_user)) -> TaskResponse:
        """Mark a task as completed."""
        repo = get_task_repository()
        try:
            task = await asyncio.to_thread(repo.complete, user.uid, task_id)
        except WriteFailure as exc:
            raise HTTPException(status_code=503, detail=exc.user_message) from exc
        if not task:
            raise HTTPException(status_code=404, detail="Task not found")
        return serialize_task(task)

    @app.delete("/api/tasks/{task_id}")
    async def delete_task(task_id: str, user: AuthUser = Depends(get_current_user)) -> Dict[str, bool]:
        """Delete a task."""
        repo = get_task_repository()
        try:
            deleted = await asyncio.to_thread(repo.delete, user.uid, task_id)
        except WriteFailure as exc:
            raise HTTPException(status_code=503, detail=exc.user_message) from exc
        if not deleted:
            raise HTTPException(status_code=404, detail="Task not found")
        return {"deleted": True}

    @app.post("/api/tasks/suggestions", response_model=SuggestionResponse)
    async def suggest_tasks(
        request: SuggestionRequest, user: AuthUser = Depends(get_current_user)
    ) -> SuggestionResponse:
        """Ask the AI assistant for task ideas."""
        client = get_completion_client()
        if client is None:
            raise HTTPException(status_code=503, detail="AI service is not configured.")
        suggestions = await asyncio.to_thread(
            generate_task_suggestions, client, request.subject, request.difficulty
        )
        return SuggestionResponse(suggestions=suggestions)
