"""
画面構成

ViewStateCoordinator に具体的なソースと派生関数を組み合わせる。

- dashboard_view: tasks / sessions の購読 + 名言のワンショット
- ChatView: メッセージの購読 + 送信フロー + 表示のみのクリア
"""

import logging
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Sequence, Tuple

from src.chat_history import ChatAssistant, ChatMessage, ChatSessionStore, SendResult, SendStatus
from src.pomodoro import SessionRepository
from src.stats import DerivedStats, compute_dashboard_stats
from src.tasks import TaskRepository

from .context import AppContext
from .coordinator import (
    LiveSource,
    OneShotSource,
    Runner,
    ViewStateCoordinator,
    local_now,
    run_in_background,
)
from .exceptions import AuthMissing
from .study_ai import MotivationalQuoteService

logger = logging.getLogger(__name__)

TASKS = "tasks"
SESSIONS = "sessions"
QUOTE = "quote"
MESSAGES = "messages"


def dashboard_view(
    context: AppContext,
    tasks: TaskRepository,
    sessions: SessionRepository,
    quotes: Optional[MotivationalQuoteService] = None,
    clock: Callable[[], datetime] = local_now,
    runner: Runner = run_in_background,
    upcoming_limit: int = 5,
    recent_limit: int = 5,
) -> ViewStateCoordinator:
    """
    ダッシュボード画面のコーディネーターを作成

    Args:
        context: 認証コンテキスト
        tasks: タスクリポジトリ
        sessions: ポモドーロセッションリポジトリ
        quotes: 名言サービス（None なら名言なし）
        clock: 現在時刻
        runner: ワンショットの実行方法
        upcoming_limit: 期限が近いタスクの表示件数
        recent_limit: 最近のタスクの表示件数

    Returns:
        ViewStateCoordinator: 派生値は DerivedStats
    """

    def derive(data: Mapping[str, Any], now: datetime) -> DerivedStats:
        return compute_dashboard_stats(
            data.get(TASKS) or [],
            data.get(SESSIONS) or [],
            now,
            upcoming_limit=upcoming_limit,
            recent_limit=recent_limit,
        )

    one_shots: Sequence[OneShotSource] = ()
    if quotes is not None:
        one_shots = (OneShotSource(QUOTE, quotes.fetch),)

    return ViewStateCoordinator(
        context,
        [LiveSource(TASKS, tasks.subscribe), LiveSource(SESSIONS, sessions.subscribe)],
        derive=derive,
        one_shots=one_shots,
        clock=clock,
        runner=runner,
        name="dashboard",
    )


class ChatView:
    """チャット画面

    clear_display はローカル表示だけを空にし、保存済み履歴は削除しない。
    """

    def __init__(
        self,
        context: AppContext,
        store: ChatSessionStore,
        assistant: ChatAssistant,
        clock: Callable[[], datetime] = local_now,
    ):
        self.context = context
        self.assistant = assistant
        self.draft = ""
        self.last_result: Optional[SendResult] = None
        self._cleared_after: Optional[Tuple[datetime, str]] = None
        self.coordinator = ViewStateCoordinator(
            context,
            [LiveSource(MESSAGES, store.subscribe)],
            derive=self._visible,
            clock=clock,
            name="chat",
        )

    def _visible(self, data: Mapping[str, Any], now: datetime) -> Tuple[ChatMessage, ...]:
        messages = data.get(MESSAGES) or []
        if self._cleared_after is None:
            return tuple(messages)
        return tuple(message for message in messages if message.sort_key() > self._cleared_after)

    def mount(self) -> bool:
        return self.coordinator.mount()

    def teardown(self) -> None:
        self.coordinator.teardown()

    @property
    def messages(self) -> Tuple[ChatMessage, ...]:
        return self.coordinator.derived or ()

    @property
    def welcome_text(self) -> Optional[str]:
        """表示中のメッセージがなければ挨拶文"""
        user = self.context.user
        if user is None or self.messages:
            return None
        return (
            f"Hi {user.first_name}! I'm your study assistant. "
            "Ask me anything about your courses, tasks, or study plans."
        )

    def send(self, text: Optional[str] = None) -> SendResult:
        """下書き（または text）を送信。結果に応じて下書きを更新"""
        draft = self.draft if text is None else text
        user = self.context.user
        if user is None:
            result = SendResult(SendStatus.WRITE_FAILED, draft, error=AuthMissing())
        else:
            result = self.assistant.send(user.uid, draft)
        self.draft = result.draft
        self.last_result = result
        return result

    def clear_display(self) -> None:
        """現在表示しているメッセージを画面から消す"""
        messages = self.messages
        if not messages:
            return
        self._cleared_after = messages[-1].sort_key()
        logger.info("Chat display cleared up to %s", messages[-1].id)
        self.coordinator.recompute()
