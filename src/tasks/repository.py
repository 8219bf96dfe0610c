from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Iterable, List, Optional

from src.sync import DocumentStore, Subscription, parse_documents, subscribe_records, write_guard
from src.tasktide.exceptions import AuthMissing, SubscriptionFailure

from .models import Task, TaskPriority, TaskStatus

COLLECTION = "tasks"
UNSET = object()

logger = logging.getLogger(__name__)


class TaskRepository:
    """オーナー単位のタスク操作。削除は明示的な delete のみ。"""

    def __init__(self, store: DocumentStore):
        self.store = store

    def _owned(self, owner_id: str, task_id: str) -> Optional[Task]:
        document = self.store.get(COLLECTION, task_id)
        if document is None or document.data.get("user_id") != owner_id:
            return None
        parsed = parse_documents([document], Task)
        return parsed[0] if parsed else None

    def list(self, owner_id: str) -> list[Task]:
        if not owner_id:
            raise AuthMissing()
        return parse_documents(self.store.list(owner_id, COLLECTION), Task)

    def get(self, owner_id: str, task_id: str) -> Optional[Task]:
        return self._owned(owner_id, task_id)

    def create(
        self,
        owner_id: str,
        title: str,
        subject: str = "",
        priority: TaskPriority = TaskPriority.MEDIUM,
        status: TaskStatus = TaskStatus.PENDING,
        deadline: Optional[datetime] = None,
        description: str = "",
        estimated_minutes: Optional[int] = None,
        tags: Optional[Iterable[str]] = None,
    ) -> Task:
        if not owner_id:
            raise AuthMissing()
        if not title or not title.strip():
            raise ValueError("Task title is required")

        record = {
            "user_id": owner_id,
            "title": title.strip(),
            "subject": subject,
            "description": description,
            "priority": TaskPriority(priority).value,
            "status": TaskStatus(status).value,
            "deadline": deadline,
            "estimated_minutes": estimated_minutes,
            "tags": list(tags or []),
        }
        with write_guard("create task"):
            document = self.store.create(COLLECTION, record)
        logger.info("Task created: %s", document.id)
        return Task.model_validate(document.as_record())

    def update(
        self,
        owner_id: str,
        task_id: str,
        *,
        title: Optional[str] = None,
        subject: Optional[str] = None,
        description: Optional[str] = None,
        priority: Optional[TaskPriority] = None,
        status: Optional[TaskStatus] = None,
        deadline: Any = UNSET,
    ) -> Optional[Task]:
        if self._owned(owner_id, task_id) is None:
            return None

        fields: dict[str, Any] = {}
        if title is not None:
            if not title.strip():
                raise ValueError("Task title is required")
            fields["title"] = title.strip()
        if subject is not None:
            fields["subject"] = subject
        if description is not None:
            fields["description"] = description
        if priority is not None:
            fields["priority"] = TaskPriority(priority).value
        if status is not None:
            fields["status"] = TaskStatus(status).value
        if deadline is not UNSET:
            fields["deadline"] = deadline

        if not fields:
            return self.get(owner_id, task_id)

        with write_guard("update task"):
            document = self.store.update(COLLECTION, task_id, fields)
        return Task.model_validate(document.as_record()) if document else None

    def complete(self, owner_id: str, task_id: str) -> Optional[Task]:
        return self.update(owner_id, task_id, status=TaskStatus.COMPLETED)

    def delete(self, owner_id: str, task_id: str) -> bool:
        if self._owned(owner_id, task_id) is None:
            return False
        with write_guard("delete task"):
            return self.store.delete(COLLECTION, task_id)

    def subscribe(
        self,
        owner_id: Optional[str],
        on_snapshot: Callable[[List[Task]], None],
        on_error: Optional[Callable[[SubscriptionFailure], None]] = None,
    ) -> Subscription:
        """タスクの購読（挿入順）"""
        return subscribe_records(self.store, owner_id, COLLECTION, Task, on_snapshot, on_error)

    def bulk_create(self, owner_id: str, items: Iterable[dict]) -> list[Task]:
        """テスト/初期データ投入用のヘルパー。"""
        return [
            self.create(
                owner_id,
                title=item.get("title", ""),
                subject=item.get("subject", ""),
                priority=TaskPriority(item.get("priority", TaskPriority.MEDIUM.value)),
                status=TaskStatus(item.get("status", TaskStatus.PENDING.value)),
                deadline=item.get("deadline"),
                description=item.get("description", ""),
            )
            for item in items
        ]
