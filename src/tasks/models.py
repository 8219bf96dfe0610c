from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TaskStatus(str, Enum):
    """タスクステータス"""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"

    @classmethod
    def _missing_(cls, value):
        # 旧データ: 'todo' / 'in_progress'
        legacy = {"todo": cls.PENDING, "in_progress": cls.IN_PROGRESS, "done": cls.COMPLETED}
        if isinstance(value, str):
            return legacy.get(value)
        return None


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Task(BaseModel):
    """ユーザーの1タスク。購読境界で検証される。"""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    subject: str = ""
    description: str = ""
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    deadline: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    estimated_minutes: Optional[int] = Field(default=None, gt=0)
    tags: List[str] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be blank")
        return value

    @property
    def is_completed(self) -> bool:
        return self.status is TaskStatus.COMPLETED
