"""Chat History Management

AIチャットの追記専用ログと送信フローを提供します。
"""

from .assistant import ChatAssistant, SendResult, SendStatus
from .models import ChatMessage, ChatRole
from .store import COLLECTION, ChatSessionStore

__all__ = [
    "COLLECTION",
    "ChatAssistant",
    "ChatMessage",
    "ChatRole",
    "ChatSessionStore",
    "SendResult",
    "SendStatus",
]
