"""AI補完クライアントのテスト（HTTPはモック）"""

import json
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from unittest.mock import MagicMock

import httpx
import ollama
import pytest
import requests

from src.tasktide.completion_client import OpenAICompletionClient, create_completion_client
from src.tasktide.config import AIConfig
from src.tasktide.exceptions import (
    CompletionAuthError,
    CompletionError,
    CompletionHTTPError,
    CompletionRateLimited,
    CompletionTimeout,
    ConfigurationMissing,
)
from src.tasktide.ollama_client import OllamaCompletionClient


def make_response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.text = ""
    response.json.return_value = payload
    return response


def make_client(response=None, error=None):
    session = MagicMock(spec=requests.Session)
    if error is not None:
        session.post.side_effect = error
    else:
        session.post.return_value = response
    config = AIConfig(api_key="sk-test")
    return OpenAICompletionClient(config, session=session), session


def test_missing_api_key_fails_fast():
    with pytest.raises(ConfigurationMissing):
        OpenAICompletionClient(AIConfig(api_key=None))


def test_successful_completion_sends_expected_request():
    payload = {"choices": [{"message": {"content": "  Keep going!  "}}]}
    client, session = make_client(make_response(200, payload))

    assert client.complete("motivate me") == "Keep going!"

    _, kwargs = session.post.call_args
    assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
    assert kwargs["timeout"] == 30.0
    body = kwargs["json"]
    assert body["model"] == "gpt-3.5-turbo"
    assert body["max_tokens"] == 500
    assert body["temperature"] == 0.7
    assert body["messages"][0]["role"] == "system"
    assert body["messages"][1] == {"role": "user", "content": "motivate me"}


def test_timeout_maps_to_completion_timeout():
    client, _ = make_client(error=requests.exceptions.Timeout())
    with pytest.raises(CompletionTimeout):
        client.complete("hello")


def test_connection_error_maps_to_completion_error():
    client, _ = make_client(error=requests.exceptions.ConnectionError())
    with pytest.raises(CompletionError) as exc_info:
        client.complete("hello")
    assert not isinstance(exc_info.value, CompletionTimeout)


@pytest.mark.parametrize(
    "status_code, expected, fragment",
    [
        (401, CompletionAuthError, "Invalid API key"),
        (429, CompletionRateLimited, "Rate limit"),
        (503, CompletionHTTPError, "temporarily unavailable"),
        (400, CompletionHTTPError, "400"),
    ],
)
def test_http_errors_have_specific_messages(status_code, expected, fragment):
    client, _ = make_client(make_response(status_code, {}))
    with pytest.raises(expected) as exc_info:
        client.complete("hello")
    assert fragment in exc_info.value.user_message


def test_malformed_body_is_completion_error():
    client, _ = make_client(make_response(200, {"choices": []}))
    with pytest.raises(CompletionError):
        client.complete("hello")


def test_factory_selects_provider():
    assert isinstance(create_completion_client(AIConfig(api_key="k")), OpenAICompletionClient)
    ollama_client = create_completion_client(AIConfig(provider="ollama"))
    assert isinstance(ollama_client, OllamaCompletionClient)


def test_ollama_client_returns_message_content():
    backend = MagicMock()
    backend.chat.return_value = {"message": {"content": " Study in short bursts. "}}
    client = OllamaCompletionClient(AIConfig(provider="ollama", ollama_model="test-model"), client=backend)

    assert client.complete("tip?") == "Study in short bursts."
    _, kwargs = backend.chat.call_args
    assert kwargs["model"] == "test-model"
    assert kwargs["messages"][-1] == {"role": "user", "content": "tip?"}


def test_ollama_errors_are_mapped():
    backend = MagicMock()
    client = OllamaCompletionClient(AIConfig(provider="ollama"), client=backend)

    backend.chat.side_effect = httpx.ReadTimeout("slow")
    with pytest.raises(CompletionTimeout):
        client.complete("x")

    backend.chat.side_effect = ollama.ResponseError("model not found", 404)
    with pytest.raises(CompletionHTTPError) as exc_info:
        client.complete("x")
    assert exc_info.value.status_code == 404

    backend.chat.side_effect = ConnectionError("refused")
    with pytest.raises(CompletionError):
        client.complete("x")

    backend.chat.side_effect = ollama.RequestError("must provide a model")
    with pytest.raises(CompletionError):
        client.complete("x")


class TricklingHandler(BaseHTTPRequestHandler):
    """本文を少しずつ送り続ける補完エンドポイント"""

    def do_POST(self):
        self.rfile.read(int(self.headers["Content-Length"]))
        body = json.dumps({"choices": [{"message": {"content": "hi"}}]}).encode()
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        try:
            for start in range(0, len(body), 8):
                self.wfile.write(body[start : start + 8])
                self.wfile.flush()
                time.sleep(0.3)
        except (BrokenPipeError, ConnectionResetError):
            pass

    def log_message(self, format, *args):
        pass


@pytest.fixture
def trickling_server():
    server = ThreadingHTTPServer(("127.0.0.1", 0), TricklingHandler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}/v1/chat/completions"
    server.shutdown()
    server.server_close()


def test_slow_body_is_bounded_by_total_timeout(trickling_server):
    config = AIConfig(api_key="sk-test", api_url=trickling_server, timeout_seconds=0.5)
    session = requests.Session()
    session.trust_env = False
    client = OpenAICompletionClient(config, session=session)

    started = time.monotonic()
    with pytest.raises(CompletionTimeout):
        client.complete("hello")
    assert time.monotonic() - started < 1.5
