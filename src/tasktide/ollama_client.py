"""
Ollama 補完クライアントモジュール

関連クラス:
  - config.AIConfig: ollama_host / ollama_model を使用
  - completion_client.OpenAICompletionClient: 同じ complete() インターフェース

注意: ローカルLLM向け。APIキーは不要
"""

import logging
from typing import Dict, List, Optional

import httpx
import ollama

from .config import AIConfig
from .exceptions import CompletionError, CompletionHTTPError, CompletionTimeout


class OllamaCompletionClient:
    """Ollama API クライアント（テキスト応答）"""

    def __init__(self, config: Optional[AIConfig] = None, client: Optional[ollama.Client] = None):
        """
        初期化

        Args:
            config: AI設定
            client: テスト用に差し替え可能な ollama.Client
        """
        self.config = config or AIConfig(provider="ollama")
        self.logger = logging.getLogger(__name__)
        self.client = client or ollama.Client(
            host=self.config.ollama_host, timeout=self.config.timeout_seconds
        )

    def complete(self, prompt: str) -> str:
        """
        プロンプトに対する応答テキストを返す

        Raises:
            CompletionTimeout: タイムアウト
            CompletionHTTPError: Ollama がエラーステータスを返した場合
            CompletionError: 接続失敗
        """
        messages: List[Dict[str, str]] = [
            {"role": "system", "content": self.config.system_prompt},
            {"role": "user", "content": prompt},
        ]
        try:
            response = self.client.chat(
                model=self.config.ollama_model,
                messages=messages,
                options={
                    "temperature": self.config.temperature,
                    "num_predict": self.config.max_tokens,
                },
            )
        except httpx.TimeoutException as e:
            self.logger.error(f"Ollama chat timed out: {e}")
            raise CompletionTimeout() from e
        except ollama.ResponseError as e:
            self.logger.error(f"Ollama chat error: {e}")
            status = e.status_code if e.status_code and e.status_code > 0 else 500
            raise CompletionHTTPError(status, str(e.error)) from e
        except ollama.RequestError as e:
            self.logger.error(f"Ollama request rejected: {e}")
            raise CompletionError("The local AI service rejected the request.") from e
        except (httpx.HTTPError, ConnectionError) as e:
            self.logger.error(f"Ollama connection error: {e}")
            raise CompletionError("Could not reach the local AI service.") from e

        return (response["message"]["content"] or "").strip()

