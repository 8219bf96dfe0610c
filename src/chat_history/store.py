"""Chat Session Store

オーナー単位の追記専用メッセージログ。

- append: 書き込みがコミットされなければ WriteFailure
- subscribe: (created_at, id) 昇順の完全スナップショットを配信
- 削除操作は持たない

Related Classes: ChatMessage (models.py), ChatAssistant (assistant.py)
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from src.sync import DocumentStore, Subscription, parse_documents, subscribe_records, write_guard
from src.tasktide.exceptions import AuthMissing, SubscriptionFailure

from .models import ChatMessage, ChatRole

COLLECTION = "chatMessages"

logger = logging.getLogger(__name__)


class ChatSessionStore:
    """ドキュメントストア上のチャット履歴"""

    def __init__(self, store: DocumentStore):
        self.store = store

    def append(self, owner_id: str, role: ChatRole, content: str) -> ChatMessage:
        """メッセージを追記

        Args:
            owner_id: オーナーID
            role: user / assistant
            content: 本文

        Returns:
            保存されたメッセージ

        Raises:
            AuthMissing: owner_id が空
            WriteFailure: 書き込みがコミットされなかった
        """
        if not owner_id:
            raise AuthMissing()
        record = {"user_id": owner_id, "role": ChatRole(role).value, "content": content}
        with write_guard("append chat message"):
            document = self.store.create(COLLECTION, record)
        logger.debug("Chat message %s appended (%s)", document.id, role)
        return ChatMessage.model_validate(document.as_record())

    def list_messages(self, owner_id: str) -> List[ChatMessage]:
        """(created_at, id) 昇順で全メッセージを返す"""
        if not owner_id:
            raise AuthMissing()
        messages = parse_documents(self.store.list(owner_id, COLLECTION), ChatMessage)
        return sorted(messages, key=ChatMessage.sort_key)

    def subscribe(
        self,
        owner_id: Optional[str],
        on_snapshot: Callable[[List[ChatMessage]], None],
        on_error: Optional[Callable[[SubscriptionFailure], None]] = None,
    ) -> Subscription:
        return subscribe_records(
            self.store,
            owner_id,
            COLLECTION,
            ChatMessage,
            on_snapshot,
            on_error,
            sort_key=ChatMessage.sort_key,
        )
