"""設定・認証コンテキスト・例外のテスト"""

import logging

import pytest

from src.tasktide.config import Config
from src.tasktide.context import AppContext, AuthUser
from src.tasktide.exceptions import (
    AuthMissing,
    CompletionHTTPError,
    describe_store_error,
)
from src.tasktide.logger import setup_logger


def test_from_yaml_reads_sections(tmp_path, monkeypatch):
    monkeypatch.setenv("TASKTIDE_OPENAI_API_KEY", "sk-yaml")
    monkeypatch.delenv("TASKTIDE_DB_PATH", raising=False)
    config_file = tmp_path / "app_config.yaml"
    config_file.write_text(
        """
ai:
  provider: ollama
  ollama_model: qwen2.5:7b
  timeout_seconds: 12
store:
  db_path: data/custom.db
pomodoro:
  work_duration: 50
dashboard:
  upcoming_limit: 3
log:
  level: DEBUG
""",
        encoding="utf-8",
    )

    config = Config.from_yaml(config_file)

    assert config.ai.provider == "ollama"
    assert config.ai.ollama_model == "qwen2.5:7b"
    assert config.ai.timeout_seconds == 12
    assert config.ai.api_key == "sk-yaml"
    assert config.ai.model == "gpt-3.5-turbo"
    assert config.db_path == "data/custom.db"
    assert config.pomodoro.work_duration == 50
    assert config.pomodoro.sessions_until_long_break == 4
    assert config.upcoming_limit == 3
    assert config.recent_limit == 5
    assert config.log_level == "DEBUG"
    assert config.verify.default_continue_url == "https://tasktide.rocks/dashboard"


def test_from_yaml_tolerates_empty_sections(tmp_path, monkeypatch):
    monkeypatch.setenv("TASKTIDE_DB_PATH", str(tmp_path / "env.db"))
    config_file = tmp_path / "app_config.yaml"
    config_file.write_text("store:\nai:\n", encoding="utf-8")

    config = Config.from_yaml(config_file)

    assert config.db_path == str(tmp_path / "env.db")
    assert config.ai.max_tokens == 500


def test_default_project_config_loads():
    config = Config.from_yaml()
    assert config.pomodoro.long_break_duration == 15
    assert config.ai.temperature == 0.7


def test_from_env(monkeypatch):
    monkeypatch.delenv("TASKTIDE_OPENAI_API_KEY", raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    monkeypatch.setenv("TASKTIDE_AI_TIMEOUT", "5")
    monkeypatch.setenv("TASKTIDE_IDENTITY_API_KEY", "identity-key")

    config = Config.from_env()

    assert config.ai.api_key == "sk-env"
    assert config.ai.timeout_seconds == 5.0
    assert config.verify.api_key == "identity-key"
    assert config.pomodoro.work_duration == 25


def test_setup_logger_creates_log_directory(tmp_path):
    log_file = tmp_path / "logs" / "app.log"
    setup_logger("INFO", str(log_file))
    assert log_file.parent.exists()
    assert logging.getLogger("httpx").level == logging.WARNING


def test_auth_user_first_name_defaults():
    assert AuthUser("u1", display_name="Grace Hopper").first_name == "Grace"
    assert AuthUser("u1").first_name == "Student"
    assert AuthUser("u1", display_name="  ").first_name == "Student"


def test_context_lifecycle_runs_hooks_once():
    context = AppContext()
    with pytest.raises(AuthMissing):
        context.require_user()
    with pytest.raises(AuthMissing):
        context.sign_in(AuthUser(""))

    calls = []
    context.sign_in(AuthUser("u1"))
    context.on_sign_out(lambda: calls.append("first"))
    context.on_sign_out(lambda: 1 / 0)
    context.on_sign_out(lambda: calls.append("second"))

    context.sign_out()
    context.sign_out()

    assert calls == ["first", "second"]
    assert not context.is_authenticated


def test_error_messages_are_specific():
    assert "temporarily unavailable" in CompletionHTTPError(502).user_message
    assert CompletionHTTPError(418).status_code == 418
    assert "permission" in describe_store_error("permission-denied")
    assert "timed out" in describe_store_error("deadline-exceeded")
    assert describe_store_error(None) == "An error occurred. Please try again."
