"""
AI補完クライアントモジュール（OpenAI互換エンドポイント）

関連クラス:
  - config.AIConfig: エンドポイント・モデル・タイムアウト設定
  - ollama_client.OllamaCompletionClient: ローカルLLM向けの同等クライアント
  - chat_history.assistant.ChatAssistant: このクライアントを使用

注意: 失敗はすべて CompletionError 系の例外に変換する（画面側で表示メッセージに使う）
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Any, Dict, List, Optional, Protocol

import requests

from .config import AIConfig
from .exceptions import (
    CompletionAuthError,
    CompletionError,
    CompletionHTTPError,
    CompletionRateLimited,
    CompletionTimeout,
    ConfigurationMissing,
)


class CompletionClient(Protocol):
    """補完エンドポイントのインターフェース"""

    def complete(self, prompt: str) -> str: ...


class OpenAICompletionClient:
    """OpenAI互換 chat/completions クライアント（Bearer認証）"""

    def __init__(self, config: Optional[AIConfig] = None, session: Optional[requests.Session] = None):
        """
        初期化

        Args:
            config: AI設定（api_key が必須）
            session: テスト用に差し替え可能なHTTPセッション

        Raises:
            ConfigurationMissing: APIキーが未設定の場合
        """
        self.config = config or AIConfig()
        if not self.config.api_key:
            raise ConfigurationMissing()
        self.session = session or requests.Session()
        self.logger = logging.getLogger(__name__)

    def _build_messages(self, prompt: str) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": self.config.system_prompt},
            {"role": "user", "content": prompt},
        ]

    def _post(self, payload: Dict[str, Any]) -> requests.Response:
        # stream を指定しないので本文の受信までここで完了する
        return self.session.post(
            self.config.api_url,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.config.api_key}",
            },
            json=payload,
            timeout=self.config.timeout_seconds,
        )

    def complete(self, prompt: str) -> str:
        """
        プロンプトに対する応答テキストを返す

        Args:
            prompt: ユーザープロンプト

        Returns:
            応答テキスト（前後の空白は除去）

        Raises:
            CompletionTimeout: 本文受信まで含めた所要時間が上限（既定30秒）を超えた場合
            CompletionAuthError: 401
            CompletionRateLimited: 429
            CompletionHTTPError: その他の2xx以外
            CompletionError: 応答形式不正・接続失敗
        """
        payload: Dict[str, Any] = {
            "model": self.config.model,
            "messages": self._build_messages(prompt),
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
        }
        # requests の timeout は読み取り間隔の上限なので、全体の締め切りは別に設ける
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="completion")
        future = executor.submit(self._post, payload)
        try:
            response = future.result(timeout=self.config.timeout_seconds)
        except FutureTimeout as e:
            self.logger.error(f"Completion request exceeded {self.config.timeout_seconds}s")
            raise CompletionTimeout() from e
        except requests.exceptions.Timeout as e:
            self.logger.error(f"Completion request timed out after {self.config.timeout_seconds}s")
            raise CompletionTimeout() from e
        except requests.exceptions.RequestException as e:
            self.logger.error(f"Completion request failed: {e}")
            raise CompletionError("Could not reach the AI service. Check your connection.") from e
        finally:
            executor.shutdown(wait=False)

        if not response.ok:
            self.logger.error(f"Completion API error: {response.status_code} {response.text[:200]}")
            if response.status_code == 401:
                raise CompletionAuthError()
            if response.status_code == 429:
                raise CompletionRateLimited()
            raise CompletionHTTPError(response.status_code)

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            self.logger.error(f"Invalid completion response: {e}")
            raise CompletionError("Invalid response from AI service") from e

        return (content or "").strip()


def create_completion_client(config: AIConfig) -> CompletionClient:
    """設定の provider に応じたクライアントを生成"""
    if config.provider == "ollama":
        from .ollama_client import OllamaCompletionClient

        return OllamaCompletionClient(config)
    return OpenAICompletionClient(config)
