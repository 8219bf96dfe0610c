from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SessionType(str, Enum):
    WORK = "work"
    BREAK = "break"


class PomodoroSession(BaseModel):
    """1回の集中タイマー。completed=True 以降は変更不可。"""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str = Field(..., min_length=1)
    start_time: datetime
    duration: int = Field(..., gt=0)  # 分
    type: SessionType = SessionType.WORK
    completed: bool = False
    task_id: Optional[str] = None
    end_time: Optional[datetime] = None

    @property
    def counts_as_focus(self) -> bool:
        return self.completed and self.type is SessionType.WORK
