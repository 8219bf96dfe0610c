"""
学習向けAIワンショット機能

- 名言（ダッシュボード表示、失敗時はフォールバック）
- タスク候補の生成
- ノート要約

いずれも購読とは独立した1回きりの呼び出し。
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from .completion_client import CompletionClient
from .exceptions import CompletionError
from .prompt_templates import (
    QUOTE_PROMPT,
    FallbackQuotes,
    build_suggestion_prompt,
    build_summary_prompt,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuoteResult:
    text: str
    from_ai: bool
    error: Optional[str] = None


class MotivationalQuoteService:
    """名言の取得。失敗してもフォールバックを返し、例外は投げない"""

    def __init__(self, client: Optional[CompletionClient], fallback: Optional[FallbackQuotes] = None):
        self.client = client
        self.fallback = fallback or FallbackQuotes()

    def fetch(self) -> QuoteResult:
        if self.client is None:
            return QuoteResult(self.fallback.pick(), False, "AI service is not configured.")
        try:
            text = self.client.complete(QUOTE_PROMPT)
        except CompletionError as exc:
            logger.warning("Motivational quote fell back to default: %s", exc.user_message)
            return QuoteResult(self.fallback.pick(), False, exc.user_message)
        if not text:
            return QuoteResult(self.fallback.pick(), False, None)
        return QuoteResult(text.strip().strip('"'), True)


def generate_task_suggestions(
    client: CompletionClient, subject: str, difficulty: str
) -> List[str]:
    """タスク候補（1行1件）。失敗時は空リスト"""
    try:
        response = client.complete(build_suggestion_prompt(subject, difficulty))
    except CompletionError as exc:
        logger.error("Error generating task suggestions: %s", exc)
        return []
    return [line.strip() for line in response.splitlines() if line.strip()]


def summarize_notes(client: CompletionClient, notes: str) -> str:
    """ノートを要約。失敗は CompletionError として送出"""
    if not notes.strip():
        raise ValueError("Notes must not be empty")
    return client.complete(build_summary_prompt(notes))
