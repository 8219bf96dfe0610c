"""Chat Assistant

ユーザーメッセージの保存と、AI応答の生成・保存を行う。

- ユーザーメッセージの書き込みと応答の書き込みは独立（まとめてロールバックしない）
- ユーザーメッセージの書き込みに失敗した場合、下書きはそのまま返す
- 応答生成に失敗した場合、エラー内容を assistant メッセージとして履歴に残す

Related Classes: ChatSessionStore (store.py), CompletionClient
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from src.tasktide.completion_client import CompletionClient
from src.tasktide.exceptions import (
    AuthMissing,
    CompletionError,
    ConfigurationMissing,
    TaskTideError,
    WriteFailure,
)
from src.tasktide.prompt_templates import build_chat_prompt

from .models import ChatMessage, ChatRole
from .store import ChatSessionStore

logger = logging.getLogger(__name__)


class SendStatus(str, Enum):
    SENT = "sent"
    IGNORED = "ignored"  # 空の下書き
    WRITE_FAILED = "write_failed"  # ユーザーメッセージ未保存
    COMPLETION_FAILED = "completion_failed"  # 応答生成失敗（エラーを履歴に記録）
    REPLY_WRITE_FAILED = "reply_write_failed"  # 応答は得たが保存できなかった


@dataclass(frozen=True)
class SendResult:
    """送信結果

    draft は入力欄に残すべきテキスト。ユーザーメッセージが保存されるまでは元の下書き。
    """

    status: SendStatus
    draft: str
    user_message: Optional[ChatMessage] = None
    reply: Optional[ChatMessage] = None
    error: Optional[TaskTideError] = None

    @property
    def ok(self) -> bool:
        return self.status is SendStatus.SENT


class ChatAssistant:
    """チャット送信フロー"""

    def __init__(
        self,
        messages: ChatSessionStore,
        client: Optional[CompletionClient],
        prompt_builder: Callable[[str], str] = build_chat_prompt,
    ):
        self.messages = messages
        self.client = client
        self.prompt_builder = prompt_builder

    def send(self, owner_id: str, draft: str) -> SendResult:
        """下書きを送信し、応答を記録する。例外は送出しない"""
        if not draft or not draft.strip():
            return SendResult(SendStatus.IGNORED, draft)

        try:
            user_message = self.messages.append(owner_id, ChatRole.USER, draft)
        except (WriteFailure, AuthMissing) as exc:
            logger.error("Error saving user message: %s", exc)
            return SendResult(SendStatus.WRITE_FAILED, draft, error=exc)

        try:
            if self.client is None:
                raise ConfigurationMissing()
            reply_text = self.client.complete(self.prompt_builder(draft))
        except (CompletionError, ConfigurationMissing) as exc:
            logger.error("Error getting AI response: %s", exc)
            return self._completion_failed(owner_id, user_message, exc)
        except Exception as exc:
            logger.exception("Unexpected error from completion client")
            failure = CompletionError()
            failure.__cause__ = exc
            return self._completion_failed(owner_id, user_message, failure)

        try:
            reply = self.messages.append(owner_id, ChatRole.ASSISTANT, reply_text)
        except WriteFailure as exc:
            logger.error("Error saving AI message: %s", exc)
            return SendResult(
                SendStatus.REPLY_WRITE_FAILED, "", user_message=user_message, error=exc
            )
        return SendResult(SendStatus.SENT, "", user_message=user_message, reply=reply)

    def _completion_failed(
        self, owner_id: str, user_message: ChatMessage, error: TaskTideError
    ) -> SendResult:
        return SendResult(
            SendStatus.COMPLETION_FAILED,
            "",
            user_message=user_message,
            reply=self._record_error(owner_id, error),
            error=error,
        )

    def _record_error(self, owner_id: str, error: TaskTideError) -> Optional[ChatMessage]:
        try:
            return self.messages.append(
                owner_id, ChatRole.ASSISTANT, f"Sorry, I couldn't respond: {error.user_message}"
            )
        except WriteFailure as exc:
            logger.error("Error saving assistant error message: %s", exc)
            return None
