"""
設定管理モジュール

関連クラス:
  - completion_client.OpenAICompletionClient: AI設定を使用
  - ollama_client.OllamaCompletionClient: Ollama設定を使用
  - sync.store.SQLiteDocumentStore: ストア設定を使用
  - verify.identity.IdentityToolkitVerifier: メールアクション設定を使用
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


@dataclass
class AIConfig:
    """AI補完エンドポイント設定"""

    provider: str = "openai"  # openai | ollama
    api_url: str = "https://api.openai.com/v1/chat/completions"
    api_key: Optional[str] = None
    model: str = "gpt-3.5-turbo"
    ollama_host: str = "http://localhost:11434"
    ollama_model: str = "llama3.1:8b"
    max_tokens: int = 500
    temperature: float = 0.7
    timeout_seconds: float = 30.0
    system_prompt: str = (
        "You are a helpful AI study assistant. "
        "Provide clear, concise, and educational responses."
    )


@dataclass
class PomodoroConfig:
    """ポモドーロ周期設定（分）"""

    work_duration: int = 25
    break_duration: int = 5
    long_break_duration: int = 15
    sessions_until_long_break: int = 4


@dataclass
class VerifyConfig:
    """メールアクションリンク検証設定"""

    identity_url: str = "https://identitytoolkit.googleapis.com/v1"
    api_key: Optional[str] = None
    default_continue_url: str = "https://tasktide.rocks/dashboard"
    timeout_seconds: float = 10.0


@dataclass
class Config:
    """アプリケーション設定クラス"""

    ai: AIConfig = None  # type: ignore
    pomodoro: PomodoroConfig = None  # type: ignore
    verify: VerifyConfig = None  # type: ignore

    # ストア設定
    db_path: Optional[str] = None

    # ダッシュボード設定
    upcoming_limit: int = 5
    recent_limit: int = 5

    # ログ設定
    log_level: str = "INFO"
    log_file: str = "logs/tasktide.log"

    def __post_init__(self):
        """デフォルト値の初期化"""
        if self.ai is None:
            self.ai = AIConfig()
        if self.pomodoro is None:
            self.pomodoro = PomodoroConfig()
        if self.verify is None:
            self.verify = VerifyConfig()

    @classmethod
    def from_yaml(cls, config_path: Optional[Path] = None) -> "Config":
        """YAMLファイルから設定を読み込む

        APIキーはYAMLに置かず、環境変数からのみ読み込む。

        Args:
            config_path: 設定ファイルパス（省略時はconfig/app_config.yamlを使用）

        Returns:
            Config: 設定インスタンス
        """
        if config_path is None:
            project_root = Path(__file__).parent.parent.parent
            config_path = project_root / "config" / "app_config.yaml"

        with open(config_path, "r", encoding="utf-8") as f:
            yaml_data: Dict[str, Any] = yaml.safe_load(f) or {}

        ai_data = yaml_data.get("ai") or {}
        pomodoro_data = yaml_data.get("pomodoro") or {}
        store_data = yaml_data.get("store") or {}
        dashboard_data = yaml_data.get("dashboard") or {}
        log_data = yaml_data.get("log") or {}
        verify_data = yaml_data.get("verify") or {}

        defaults = AIConfig()
        return cls(
            ai=AIConfig(
                provider=ai_data.get("provider", defaults.provider),
                api_url=ai_data.get("api_url", defaults.api_url),
                api_key=_api_key_from_env(),
                model=ai_data.get("model", defaults.model),
                ollama_host=ai_data.get("ollama_host", defaults.ollama_host),
                ollama_model=ai_data.get("ollama_model", defaults.ollama_model),
                max_tokens=ai_data.get("max_tokens", defaults.max_tokens),
                temperature=ai_data.get("temperature", defaults.temperature),
                timeout_seconds=ai_data.get("timeout_seconds", defaults.timeout_seconds),
                system_prompt=ai_data.get("system_prompt", defaults.system_prompt),
            ),
            pomodoro=PomodoroConfig(
                work_duration=pomodoro_data.get("work_duration", 25),
                break_duration=pomodoro_data.get("break_duration", 5),
                long_break_duration=pomodoro_data.get("long_break_duration", 15),
                sessions_until_long_break=pomodoro_data.get("sessions_until_long_break", 4),
            ),
            verify=VerifyConfig(
                identity_url=verify_data.get("identity_url", VerifyConfig.identity_url),
                api_key=os.getenv("TASKTIDE_IDENTITY_API_KEY"),
                default_continue_url=verify_data.get(
                    "default_continue_url", VerifyConfig.default_continue_url
                ),
                timeout_seconds=verify_data.get("timeout_seconds", VerifyConfig.timeout_seconds),
            ),
            db_path=os.getenv("TASKTIDE_DB_PATH") or store_data.get("db_path"),
            upcoming_limit=dashboard_data.get("upcoming_limit", 5),
            recent_limit=dashboard_data.get("recent_limit", 5),
            log_level=log_data.get("level", "INFO"),
            log_file=log_data.get("file", "logs/tasktide.log"),
        )

    @classmethod
    def from_env(cls) -> "Config":
        """環境変数から設定を読み込む"""
        return cls(
            ai=AIConfig(
                provider=os.getenv("TASKTIDE_AI_PROVIDER", "openai"),
                api_url=os.getenv(
                    "TASKTIDE_AI_URL", "https://api.openai.com/v1/chat/completions"
                ),
                api_key=_api_key_from_env(),
                model=os.getenv("TASKTIDE_AI_MODEL", "gpt-3.5-turbo"),
                ollama_host=os.getenv("OLLAMA_HOST", "http://localhost:11434"),
                ollama_model=os.getenv("OLLAMA_MODEL", "llama3.1:8b"),
                timeout_seconds=float(os.getenv("TASKTIDE_AI_TIMEOUT", "30")),
            ),
            verify=VerifyConfig(api_key=os.getenv("TASKTIDE_IDENTITY_API_KEY")),
            db_path=os.getenv("TASKTIDE_DB_PATH"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE", "logs/tasktide.log"),
        )


def _api_key_from_env() -> Optional[str]:
    return os.getenv("TASKTIDE_OPENAI_API_KEY") or os.getenv("OPENAI_API_KEY") or None
