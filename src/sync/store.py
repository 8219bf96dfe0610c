"""Document Store

ユーザー単位のコレクションを保持するドキュメントストア。
スキーマレスなJSONドキュメントをSQLiteに保存し、コミットのたびに
該当オーナーのリスナーへ完全なスナップショットを配信する。

Related Classes:
  - Subscription / subscribe_records (subscription.py)
  - TaskRepository, SessionRepository, ChatSessionStore
"""

from __future__ import annotations

import json
import logging
import os
import sqlite3
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

OWNER_FIELD = "user_id"
TIMESTAMP_FIELDS = ("created_at", "updated_at")


class StoreError(Exception):
    """ストア操作の失敗（code はエラー種別）"""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


@dataclass(frozen=True)
class Document:
    """ストアから読み出した1ドキュメント"""

    id: str
    collection: str
    data: Dict[str, Any] = field(default_factory=dict)

    def as_record(self) -> Dict[str, Any]:
        """idを含めたレコード辞書を返す"""
        return {**self.data, "id": self.id}


SnapshotListener = Callable[[List[Document]], None]
ErrorListener = Callable[[Exception], None]


@dataclass(eq=False)
class _Listener:
    owner_id: str
    collection: str
    on_snapshot: SnapshotListener
    on_error: Optional[ErrorListener]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        # naive はローカル時刻として扱う（集計エンジンと同じ規則）
        if value.tzinfo is None:
            value = value.astimezone()
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _parse_ts(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.astimezone()
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.astimezone()
    return None


class DocumentStore(ABC):
    """オーナー単位の購読を提供するドキュメントストアの基底クラス

    リスナー登録はストアインスタンスごとに保持する。
    """

    def __init__(self) -> None:
        self._listeners_lock = threading.Lock()
        self._listeners: List[_Listener] = []
        # 書き込みと配信を直列化し、スナップショットをコミット順に届ける
        self._commit_lock = threading.RLock()

    @abstractmethod
    def create(self, collection: str, record: Dict[str, Any]) -> Document:
        """ドキュメントを作成（created_at / updated_at は未指定ならサーバー時刻）"""

    @abstractmethod
    def update(
        self, collection: str, doc_id: str, fields: Dict[str, Any]
    ) -> Optional[Document]:
        """部分更新（updated_at は単調非減少）。存在しなければNone"""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> bool:
        """削除。存在しなければFalse"""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        """1件取得"""

    @abstractmethod
    def list(self, owner_id: str, collection: str) -> List[Document]:
        """オーナーのコレクションを挿入順で取得"""

    def subscribe(
        self,
        owner_id: str,
        collection: str,
        on_snapshot: SnapshotListener,
        on_error: Optional[ErrorListener] = None,
    ) -> Callable[[], None]:
        """リスナーを登録し、現在のスナップショットを即時配信する

        Returns:
            リスナー解除関数（冪等）
        """
        listener = _Listener(owner_id, collection, on_snapshot, on_error)

        def cancel() -> None:
            with self._listeners_lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        with self._commit_lock:
            with self._listeners_lock:
                self._listeners.append(listener)
            self._deliver([listener], owner_id, collection)
        return cancel

    def listener_count(self, owner_id: Optional[str] = None) -> int:
        with self._listeners_lock:
            if owner_id is None:
                return len(self._listeners)
            return sum(1 for item in self._listeners if item.owner_id == owner_id)

    def _notify(self, collection: str, owner_id: str) -> None:
        """コミット後、該当オーナー・コレクションのリスナーへ配信"""
        with self._listeners_lock:
            targets = [
                item
                for item in self._listeners
                if item.owner_id == owner_id and item.collection == collection
            ]
        if targets:
            self._deliver(targets, owner_id, collection)

    def _deliver(self, targets: List[_Listener], owner_id: str, collection: str) -> None:
        try:
            documents = self.list(owner_id, collection)
        except (StoreError, sqlite3.Error) as exc:
            logger.error("Failed to read %s for %s: %s", collection, owner_id, exc)
            self._dispatch_error(targets, exc)
            return
        for item in targets:
            try:
                item.on_snapshot(list(documents))
            except Exception as exc:
                logger.exception("Snapshot listener for %s raised: %s", collection, exc)

    def broadcast_error(self, owner_id: str, collection: str, error: Exception) -> None:
        """リモートリンク障害をリスナーへ通知（自動再試行はしない）"""
        with self._listeners_lock:
            targets = [
                item
                for item in self._listeners
                if item.owner_id == owner_id and item.collection == collection
            ]
        self._dispatch_error(targets, error)

    @staticmethod
    def _dispatch_error(targets: List[_Listener], error: Exception) -> None:
        for item in targets:
            if item.on_error is None:
                logger.warning("Unhandled listener error on %s: %s", item.collection, error)
                continue
            try:
                item.on_error(error)
            except Exception as exc:
                logger.exception("Error listener for %s raised: %s", item.collection, exc)


class SQLiteDocumentStore(DocumentStore):
    """SQLiteベースのドキュメントストア"""

    def __init__(self, db_path: Optional[Path] = None):
        super().__init__()
        root = Path(__file__).resolve().parents[2]
        default_path = root / "data" / "tasktide.db"
        env_path = os.getenv("TASKTIDE_DB_PATH")
        if db_path:
            self.db_path = Path(db_path)
        elif env_path:
            self.db_path = Path(env_path)
        else:
            self.db_path = default_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _initialize(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    doc_id TEXT NOT NULL UNIQUE,
                    collection TEXT NOT NULL,
                    owner_id TEXT NOT NULL,
                    data_json TEXT NOT NULL
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_documents_owner "
                "ON documents(collection, owner_id)"
            )
            conn.commit()

    @staticmethod
    def _row_to_document(row: sqlite3.Row) -> Document:
        return Document(
            id=row["doc_id"],
            collection=row["collection"],
            data=json.loads(row["data_json"]),
        )

    def _fetch(self, conn: sqlite3.Connection, collection: str, doc_id: str):
        return conn.execute(
            "SELECT * FROM documents WHERE collection = ? AND doc_id = ?",
            (collection, doc_id),
        ).fetchone()

    def create(self, collection: str, record: Dict[str, Any]) -> Document:
        owner_id = record.get(OWNER_FIELD)
        if not owner_id:
            raise StoreError("Documents must carry an owner identifier", "permission-denied")

        now = _utcnow()
        data = {key: value for key, value in record.items() if key != "id"}
        for name in TIMESTAMP_FIELDS:
            if data.get(name) is None:
                data[name] = now
        doc_id = uuid.uuid4().hex

        with self._commit_lock:
            try:
                with self._connect() as conn:
                    conn.execute(
                        """
                        INSERT INTO documents (doc_id, collection, owner_id, data_json)
                        VALUES (?, ?, ?, ?)
                        """,
                        (doc_id, collection, owner_id, json.dumps(data, default=_encode)),
                    )
                    conn.commit()
                    row = self._fetch(conn, collection, doc_id)
            except sqlite3.Error as exc:
                raise StoreError(str(exc), "unavailable") from exc
            self._notify(collection, owner_id)
        return self._row_to_document(row)

    def update(
        self, collection: str, doc_id: str, fields: Dict[str, Any]
    ) -> Optional[Document]:
        with self._commit_lock:
            try:
                with self._connect() as conn:
                    row = self._fetch(conn, collection, doc_id)
                    if row is None:
                        return None
                    data = json.loads(row["data_json"])
                    changes = {
                        key: value
                        for key, value in fields.items()
                        if key not in ("id", OWNER_FIELD, "created_at")
                    }
                    previous = _parse_ts(data.get("updated_at"))
                    data.update(changes)
                    requested = _parse_ts(changes.get("updated_at")) or _utcnow()
                    data["updated_at"] = max(requested, previous) if previous else requested
                    conn.execute(
                        "UPDATE documents SET data_json = ? WHERE seq = ?",
                        (json.dumps(data, default=_encode), row["seq"]),
                    )
                    conn.commit()
                    row = self._fetch(conn, collection, doc_id)
            except sqlite3.Error as exc:
                raise StoreError(str(exc), "unavailable") from exc
            self._notify(collection, row["owner_id"])
        return self._row_to_document(row)

    def delete(self, collection: str, doc_id: str) -> bool:
        with self._commit_lock:
            try:
                with self._connect() as conn:
                    row = self._fetch(conn, collection, doc_id)
                    if row is None:
                        return False
                    conn.execute("DELETE FROM documents WHERE seq = ?", (row["seq"],))
                    conn.commit()
            except sqlite3.Error as exc:
                raise StoreError(str(exc), "unavailable") from exc
            self._notify(collection, row["owner_id"])
        return True

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        with self._connect() as conn:
            row = self._fetch(conn, collection, doc_id)
        return self._row_to_document(row) if row else None

    def list(self, owner_id: str, collection: str) -> List[Document]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM documents
                WHERE collection = ? AND owner_id = ?
                ORDER BY seq ASC
                """,
                (collection, owner_id),
            ).fetchall()
        return [self._row_to_document(row) for row in rows]

    def collections(self) -> List[Tuple[str, int]]:
        """コレクション名と件数の一覧（診断用）"""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT collection, COUNT(*) AS n FROM documents GROUP BY collection"
            ).fetchall()
        return [(row["collection"], row["n"]) for row in rows]
