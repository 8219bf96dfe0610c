"""Remote Collection Subscription

オーナー単位のコレクションを購読し、検証済みレコードの完全な
スナップショットを配信する。

- subscribe ごとに Subscription ハンドルを1つ返す（解除は冪等）
- 解除後は、配信途中のスナップショットも破棄する
- unsubscribe は実行中のコールバックの完了を待つ
- 不正なドキュメントはそのレコードだけをスキップする
- リンク障害は on_error に SubscriptionFailure として通知し、自動再試行しない

Related Classes: DocumentStore (store.py)
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from src.tasktide.exceptions import AuthMissing, SubscriptionFailure, describe_store_error

from .store import Document, DocumentStore

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


class Subscription:
    """購読の解除ハンドル"""

    def __init__(
        self,
        owner_id: str,
        collection: str,
        on_snapshot: Callable[[List[Any]], None],
        on_error: Optional[Callable[[SubscriptionFailure], None]] = None,
    ):
        self.owner_id = owner_id
        self.collection = collection
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self._lock = threading.Lock()
        # 配信と解除を直列化（コールバック内からの解除のため再入可能）
        self._delivery_lock = threading.RLock()
        self._active = True
        self._cancel: Optional[Callable[[], None]] = None
        self.delivered = 0

    @property
    def active(self) -> bool:
        with self._lock:
            return self._active

    def unsubscribe(self) -> bool:
        """購読を解除する。2回目以降は何もしない

        配信中のコールバックがあれば、その完了を待ってから解除する。

        Returns:
            今回の呼び出しで解除した場合True
        """
        with self._delivery_lock:
            with self._lock:
                if not self._active:
                    return False
                self._active = False
                cancel = self._cancel
                self._cancel = None
        if cancel is not None:
            cancel()
        logger.debug("Unsubscribed from %s for %s", self.collection, self.owner_id)
        return True

    def attach(self, cancel: Callable[[], None]) -> None:
        """ストア側の解除関数を紐付ける"""
        with self._lock:
            if self._active:
                self._cancel = cancel
                return
        # 初回配信中に解除済み
        cancel()

    def deliver(self, records: List[Any]) -> bool:
        """スナップショットを配信。解除済みなら破棄してFalse"""
        with self._delivery_lock:
            if not self.active:
                logger.debug("Discarding late snapshot for %s", self.collection)
                return False
            self.delivered += 1
            self._on_snapshot(records)
            return True

    def fail(self, error: SubscriptionFailure) -> bool:
        with self._delivery_lock:
            if not self.active:
                return False
            if self._on_error is None:
                logger.error("Subscription to %s failed: %s", self.collection, error)
                return False
            self._on_error(error)
            return True


def parse_documents(documents: Iterable[Document], model: Type[RecordT]) -> List[RecordT]:
    """ドキュメントをレコード型に変換。不正なものはスキップ"""
    records: List[RecordT] = []
    for document in documents:
        try:
            records.append(model.model_validate(document.as_record()))
        except ValidationError as exc:
            logger.warning(
                "Skipping invalid %s document %s: %s",
                document.collection,
                document.id,
                exc.errors()[0].get("msg", "validation error"),
            )
    return records


def subscribe_records(
    store: DocumentStore,
    owner_id: Optional[str],
    collection: str,
    model: Type[RecordT],
    on_snapshot: Callable[[List[RecordT]], None],
    on_error: Optional[Callable[[SubscriptionFailure], None]] = None,
    sort_key: Optional[Callable[[RecordT], Any]] = None,
) -> Subscription:
    """オーナーのコレクションを購読する

    on_snapshot は登録直後に1回、以後コミットごとに完全なスナップショットで呼ばれる。

    Raises:
        AuthMissing: owner_id が空の場合（購読は確立しない）
    """
    if not owner_id:
        raise AuthMissing()

    handle = Subscription(owner_id, collection, on_snapshot, on_error)

    def handle_documents(documents: List[Document]) -> None:
        records = parse_documents(documents, model)
        if sort_key is not None:
            records.sort(key=sort_key)
        handle.deliver(records)

    def handle_error(exc: Exception) -> None:
        if isinstance(exc, SubscriptionFailure):
            failure = exc
        else:
            failure = SubscriptionFailure(describe_store_error(getattr(exc, "code", None)))
        handle.fail(failure)

    cancel = store.subscribe(owner_id, collection, handle_documents, handle_error)
    handle.attach(cancel)
    logger.info("Subscribed to %s for %s", collection, owner_id)
    return handle
