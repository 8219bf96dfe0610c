"""Shared fixtures for the TaskTide test suite."""

import time
from datetime import datetime, timedelta, timezone
from typing import List, Union

import pytest

from src.sync import SQLiteDocumentStore
from src.tasktide.context import AppContext, AuthUser


class FakeCompletionClient:
    """CompletionClient stand-in that replays canned replies or raises errors."""

    def __init__(self, *replies: Union[str, Exception]):
        self.replies: List[Union[str, Exception]] = list(replies)
        self.prompts: List[str] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        reply = self.replies.pop(0) if self.replies else "ok"
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def store(tmp_path):
    """Fresh SQLite document store per test."""
    return SQLiteDocumentStore(tmp_path / "tasktide.db")


@pytest.fixture
def fake_client():
    """Factory for FakeCompletionClient instances."""
    return FakeCompletionClient


@pytest.fixture
def user():
    return AuthUser(uid="student-1", email="ada@example.com", display_name="Ada Lovelace")


@pytest.fixture
def context(user):
    return AppContext(user)


@pytest.fixture
def fixed_now():
    return datetime(2025, 3, 12, 15, 0, tzinfo=timezone.utc)




@pytest.fixture
def tokyo_time(monkeypatch):
    """Run the test with the process-local timezone set to Asia/Tokyo."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    monkeypatch.setenv("TZ", "Asia/Tokyo")
    time.tzset()
    yield timezone(timedelta(hours=9))
    monkeypatch.undo()
    time.tzset()
