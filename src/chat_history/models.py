"""Chat History Models

AIチャットの1メッセージ。作成後は変更しない。

Related Classes: ChatSessionStore (store.py)
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    """チャットメッセージ

    同一オーナー内では (created_at, id) で全順序が決まる。
    ロールの交互性は強制しない（assistant のエラーが連続してもよい）。
    """

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str = Field(..., min_length=1)
    role: ChatRole
    content: str = ""
    created_at: datetime

    def sort_key(self) -> Tuple[datetime, str]:
        return (self.created_at, self.id)
