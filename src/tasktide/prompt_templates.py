"""
学習アシスタント用プロンプトテンプレート管理モジュール

関連クラス:
  - study_ai.MotivationalQuoteService: QUOTE_PROMPT とフォールバック名言を使用
  - chat_history.assistant.ChatAssistant: build_chat_prompt を使用
"""

import logging
import random
from pathlib import Path
from typing import List, Optional

CHAT_TEMPLATE = """You are an intelligent study assistant for students. The user said: "{message}"

Please provide a helpful, educational response that:
- Is clear and easy to understand
- Uses examples when appropriate
- Includes actionable advice
- Is encouraging and supportive
- Uses emojis sparingly but effectively

Respond in a friendly, professional tone."""

QUOTE_PROMPT = (
    "Give me a short, motivational quote (max 20 words) for students to stay "
    "productive and focused. Just return the quote without any additional text."
)

SUGGESTION_TEMPLATE = (
    "Generate 5 task suggestions for a {difficulty} level {subject} study session. "
    "Return only the task titles, one per line."
)

SUMMARY_TEMPLATE = "Please summarize the following notes in a clear and concise manner:\n\n{notes}"

DEFAULT_QUOTES = [
    "Success is not final, failure is not fatal: it is the courage to continue that counts.",
    "The only way to do great work is to love what you do.",
    "Believe you can and you're halfway there.",
    "Push yourself, because no one else is going to do it for you.",
    "Great things never come from comfort zones.",
    "Dream it. Wish it. Do it.",
    "Don't stop when you're tired. Stop when you're done.",
]


def build_chat_prompt(message: str) -> str:
    return CHAT_TEMPLATE.format(message=message)


def build_suggestion_prompt(subject: str, difficulty: str) -> str:
    return SUGGESTION_TEMPLATE.format(subject=subject, difficulty=difficulty)


def build_summary_prompt(notes: str) -> str:
    return SUMMARY_TEMPLATE.format(notes=notes)


class FallbackQuotes:
    """AI応答が得られないときに使う名言の管理クラス"""

    def __init__(self, quotes_dir: Optional[Path] = None, rng: Optional[random.Random] = None):
        """
        初期化

        Args:
            quotes_dir: 名言ファイル（*.txt）のディレクトリ。None なら既定の名言のみ
            rng: テスト用に差し替え可能な乱数生成器
        """
        self.quotes_dir = quotes_dir
        self.rng = rng or random.Random()
        self.logger = logging.getLogger(__name__)
        self.quotes: List[str] = []
        self.load_quotes()

    def load_quotes(self) -> None:
        """
        名言ファイルを読み込む

        .txtファイルから行単位で読み込み、空行とコメント行（#で始まる）は無視する。
        """
        self.quotes = []

        if self.quotes_dir is not None:
            if not self.quotes_dir.exists():
                self.logger.warning(f"Quotes directory not found: {self.quotes_dir}")
            else:
                for quote_file in sorted(self.quotes_dir.glob("*.txt")):
                    try:
                        with open(quote_file, "r", encoding="utf-8") as f:
                            for line in f:
                                line = line.strip()
                                if line and not line.startswith("#"):
                                    self.quotes.append(line)
                    except OSError as e:
                        self.logger.error(f"Failed to load quote file {quote_file}: {e}")

        if not self.quotes:
            self.quotes = list(DEFAULT_QUOTES)

    def pick(self) -> str:
        """ランダムに1つ選ぶ"""
        return self.rng.choice(self.quotes)
