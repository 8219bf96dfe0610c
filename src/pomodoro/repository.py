"""Pomodoro Session Repository

集中セッションの記録。セッションは開始時に completed=False で作成し、
complete() で確定する。確定済みセッションへの更新は ImmutableRecordError。

Related Classes: PomodoroSession (models.py), PomodoroCycle (cycle.py)
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from src.sync import DocumentStore, Subscription, parse_documents, subscribe_records, write_guard
from src.tasktide.exceptions import AuthMissing, ImmutableRecordError, SubscriptionFailure

from .models import PomodoroSession, SessionType

COLLECTION = "pomodoroSessions"

logger = logging.getLogger(__name__)


class SessionRepository:
    """オーナー単位のポモドーロセッション操作"""

    def __init__(self, store: DocumentStore):
        self.store = store

    def _owned(self, owner_id: str, session_id: str) -> Optional[PomodoroSession]:
        document = self.store.get(COLLECTION, session_id)
        if document is None or document.data.get("user_id") != owner_id:
            return None
        parsed = parse_documents([document], PomodoroSession)
        return parsed[0] if parsed else None

    def list(self, owner_id: str) -> List[PomodoroSession]:
        if not owner_id:
            raise AuthMissing()
        return parse_documents(self.store.list(owner_id, COLLECTION), PomodoroSession)

    def start(
        self,
        owner_id: str,
        session_type: SessionType,
        duration: int,
        task_id: Optional[str] = None,
        start_time: Optional[datetime] = None,
        completed: bool = False,
    ) -> PomodoroSession:
        """セッションを作成

        Args:
            owner_id: オーナーID
            session_type: work / break
            duration: 分（正の整数）
            task_id: 紐付けるタスク
            start_time: 開始時刻（省略時は現在時刻）
            completed: 完了時に記録する場合True
        """
        if not owner_id:
            raise AuthMissing()
        if isinstance(duration, bool) or not isinstance(duration, int) or duration <= 0:
            raise ValueError("Session duration must be a positive number of minutes")

        now = datetime.now(timezone.utc)
        record = {
            "user_id": owner_id,
            "type": SessionType(session_type).value,
            "duration": duration,
            "start_time": start_time or now,
            "completed": completed,
            "task_id": task_id,
            "end_time": now if completed else None,
        }
        with write_guard("create pomodoro session"):
            document = self.store.create(COLLECTION, record)
        logger.info("Pomodoro session %s started (%s, %d min)", document.id, session_type, duration)
        return PomodoroSession.model_validate(document.as_record())

    def _finish(
        self, owner_id: str, session_id: str, completed: bool, end_time: Optional[datetime]
    ) -> Optional[PomodoroSession]:
        current = self._owned(owner_id, session_id)
        if current is None:
            return None
        if current.completed:
            raise ImmutableRecordError("Completed sessions cannot be changed.")
        fields = {
            "completed": completed,
            "end_time": end_time or datetime.now(timezone.utc),
        }
        with write_guard("finish pomodoro session"):
            document = self.store.update(COLLECTION, session_id, fields)
        return PomodoroSession.model_validate(document.as_record()) if document else None

    def complete(
        self, owner_id: str, session_id: str, end_time: Optional[datetime] = None
    ) -> Optional[PomodoroSession]:
        """セッションを完了として確定"""
        return self._finish(owner_id, session_id, True, end_time)

    def stop(
        self, owner_id: str, session_id: str, end_time: Optional[datetime] = None
    ) -> Optional[PomodoroSession]:
        """途中停止（未完了のまま終了時刻を記録）"""
        return self._finish(owner_id, session_id, False, end_time)

    def subscribe(
        self,
        owner_id: Optional[str],
        on_snapshot: Callable[[List[PomodoroSession]], None],
        on_error: Optional[Callable[[SubscriptionFailure], None]] = None,
    ) -> Subscription:
        return subscribe_records(
            self.store, owner_id, COLLECTION, PomodoroSession, on_snapshot, on_error
        )
