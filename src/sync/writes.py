"""Write helpers shared by the owner-scoped repositories."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from src.tasktide.exceptions import WriteFailure, describe_store_error

from .store import StoreError

logger = logging.getLogger(__name__)


@contextmanager
def write_guard(action: str) -> Iterator[None]:
    """StoreError を WriteFailure に変換する"""
    try:
        yield
    except StoreError as exc:
        logger.error("Failed to %s: %s", action, exc)
        raise WriteFailure(describe_store_error(exc.code)) from exc
