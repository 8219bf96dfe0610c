"""Dependency helpers shared across FastAPI routes."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from fastapi import Header, HTTPException

from src.chat_history import ChatAssistant, ChatMessage, ChatSessionStore
from src.pomodoro import PomodoroSession, SessionRepository
from src.stats import DerivedStats
from src.sync import SQLiteDocumentStore
from src.tasks import Task, TaskRepository
from src.tasktide.completion_client import CompletionClient, create_completion_client
from src.tasktide.config import Config
from src.tasktide.context import AuthUser
from src.tasktide.exceptions import ConfigurationMissing
from src.tasktide.logger import setup_logger
from src.tasktide.prompt_templates import FallbackQuotes
from src.tasktide.study_ai import MotivationalQuoteService
from src.verify import EmailActionHandler, IdentityToolkitVerifier

from .schemas import (
    ChatMessageResponse,
    DashboardResponse,
    DayBucketResponse,
    SessionResponse,
    TaskResponse,
)

config = Config.from_yaml()
setup_logger(log_level=config.log_level, log_file=config.log_file)

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_store() -> SQLiteDocumentStore:
    """Singleton document store."""
    return SQLiteDocumentStore(os.getenv("TASKTIDE_DB_PATH") or config.db_path)


@lru_cache(maxsize=1)
def get_task_repository() -> TaskRepository:
    """Singleton TaskRepository."""
    return TaskRepository(get_store())


@lru_cache(maxsize=1)
def get_session_repository() -> SessionRepository:
    """Singleton SessionRepository."""
    return SessionRepository(get_store())


@lru_cache(maxsize=1)
def get_chat_store() -> ChatSessionStore:
    """Singleton ChatSessionStore."""
    return ChatSessionStore(get_store())


@lru_cache(maxsize=1)
def get_completion_client() -> Optional[CompletionClient]:
    """Singleton completion client, or None when the AI provider is not configured."""
    try:
        return create_completion_client(config.ai)
    except ConfigurationMissing as exc:
        logger.warning("AI completion disabled: %s", exc)
        return None


def get_chat_assistant() -> ChatAssistant:
    return ChatAssistant(get_chat_store(), get_completion_client())


@lru_cache(maxsize=1)
def get_quote_service() -> MotivationalQuoteService:
    """Singleton MotivationalQuoteService."""
    quotes_dir = Path(__file__).parent.parent.parent / "config" / "quotes"
    return MotivationalQuoteService(get_completion_client(), FallbackQuotes(quotes_dir))


@lru_cache(maxsize=1)
def get_email_action_handler() -> EmailActionHandler:
    """Singleton EmailActionHandler backed by the Identity Toolkit API."""
    verifier = IdentityToolkitVerifier(config.verify)
    return EmailActionHandler(verifier, config.verify.default_continue_url)


def get_current_user(
    x_user_id: Optional[str] = Header(default=None),
    x_user_name: Optional[str] = Header(default=None),
    x_user_email: Optional[str] = Header(default=None),
) -> AuthUser:
    """Read the signed-in user forwarded by the auth proxy."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Please sign in to continue.")
    return AuthUser(uid=x_user_id, email=x_user_email, display_name=x_user_name)


def serialize_task(task: Task) -> TaskResponse:
    """Convert domain Task to API response."""
    return TaskResponse.model_validate(task)


def serialize_session(session: PomodoroSession) -> SessionResponse:
    return SessionResponse.model_validate(session)


def serialize_message(message: Optional[ChatMessage]) -> Optional[ChatMessageResponse]:
    if message is None:
        return None
    return ChatMessageResponse.model_validate(message)


def serialize_stats(stats: DerivedStats) -> DashboardResponse:
    """Convert DerivedStats dataclass to API response."""
    return DashboardResponse(
        todays_tasks=stats.todays_tasks,
        completed_today=stats.completed_today,
        progress_percentage=stats.progress_percentage,
        total_tasks=stats.total_tasks,
        completed_tasks=stats.completed_tasks,
        in_progress_tasks=stats.in_progress_tasks,
        completion_rate=stats.completion_rate,
        total_focus_minutes=stats.total_focus_minutes,
        focus_hours_label=stats.focus_hours_label,
        todays_pomodoros=stats.todays_pomodoros,
        weekly=[DayBucketResponse.model_validate(bucket) for bucket in stats.weekly],
        upcoming=[serialize_task(task) for task in stats.upcoming],
        recent=[serialize_task(task) for task in stats.recent],
    )
