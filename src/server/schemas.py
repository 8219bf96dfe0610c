"""Pydantic schemas for the FastAPI server."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.chat_history import ChatRole
from src.pomodoro import SessionType
from src.tasks import TaskPriority, TaskStatus


class HealthResponse(BaseModel):
    """Response for health check endpoint."""

    status: str
    collections: List[str] = Field(default_factory=list)


class TaskResponse(BaseModel):
    """Serialized task."""

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: str
    title: str
    subject: str
    description: str
    priority: TaskPriority
    status: TaskStatus
    deadline: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    estimated_minutes: Optional[int] = None
    tags: List[str] = Field(default_factory=list)


class TaskCreateRequest(BaseModel):
    """Request body for creating a task."""

    title: str = Field(..., min_length=1, max_length=200)
    subject: str = Field(default="", max_length=200)
    description: str = Field(default="", max_length=2000)
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM)
    status: TaskStatus = Field(default=TaskStatus.PENDING)
    deadline: Optional[datetime] = Field(default=None, description="ISO 8601 timestamp")
    estimated_minutes: Optional[int] = Field(default=None, gt=0)
    tags: List[str] = Field(default_factory=list)


class TaskUpdateRequest(BaseModel):
    """Request body for updating a task."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    subject: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    priority: Optional[TaskPriority] = Field(default=None)
    status: Optional[TaskStatus] = Field(default=None)
    deadline: Optional[datetime] = Field(default=None)


class SuggestionRequest(BaseModel):
    """Request body for AI task suggestions."""

    subject: str = Field(..., min_length=1)
    difficulty: str = Field(default="medium")


class SuggestionResponse(BaseModel):
    suggestions: List[str]


class SessionResponse(BaseModel):
    """Serialized pomodoro session."""

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: str
    start_time: datetime
    duration: int
    type: SessionType
    completed: bool
    task_id: Optional[str] = None
    end_time: Optional[datetime] = None


class SessionStartRequest(BaseModel):
    """Request body for starting a pomodoro session."""

    type: SessionType = Field(default=SessionType.WORK)
    duration: Optional[int] = Field(
        default=None, gt=0, description="Minutes (defaults to the configured cycle length)"
    )
    task_id: Optional[str] = None
    work_sessions_completed: int = Field(default=0, ge=0)


class SessionFinishRequest(BaseModel):
    end_time: Optional[datetime] = None


class CyclePlanResponse(BaseModel):
    """Next session in the pomodoro cycle."""

    type: SessionType
    duration: int
    work_sessions_completed: int
    long_break: bool

    model_config = ConfigDict(use_enum_values=True)


class DayBucketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    day: date
    label: str
    completed: int
    total: int


class DashboardResponse(BaseModel):
    """Dashboard statistics derived from the current tasks and sessions."""

    model_config = ConfigDict(from_attributes=True)

    todays_tasks: int
    completed_today: int
    progress_percentage: int
    total_tasks: int
    completed_tasks: int
    in_progress_tasks: int
    completion_rate: int
    total_focus_minutes: int
    focus_hours_label: str
    todays_pomodoros: int
    weekly: List[DayBucketResponse]
    upcoming: List[TaskResponse]
    recent: List[TaskResponse]


class QuoteResponse(BaseModel):
    text: str
    from_ai: bool
    error: Optional[str] = None


class ChatMessageResponse(BaseModel):
    """Serialized chat message."""

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: str
    role: ChatRole
    content: str
    created_at: datetime


class ChatRequest(BaseModel):
    """Request body for chat endpoint."""

    message: str = Field(..., description="User message to send to the study assistant")


class ChatResponse(BaseModel):
    """Response body for chat endpoint."""

    status: str
    draft: str = Field(default="", description="Text the input box should keep")
    user_message: Optional[ChatMessageResponse] = None
    reply: Optional[ChatMessageResponse] = None
    error: Optional[str] = None


class SummaryRequest(BaseModel):
    notes: str = Field(..., min_length=1)


class SummaryResponse(BaseModel):
    summary: str


class EmailActionResponse(BaseModel):
    """Result of handling an email action link."""

    outcome: str
    message: str
    redirect_url: Optional[str] = None
    error_code: Optional[str] = None
