from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from src.stats import todays_tasks
from src.sync import StoreError
from src.tasks import TaskPriority, TaskRepository, TaskStatus
from src.tasktide.exceptions import AuthMissing, WriteFailure


def test_task_repository_crud_cycle(store):
    repo = TaskRepository(store)
    deadline = datetime(2025, 12, 1, 17, 0, tzinfo=timezone.utc)

    created = repo.create(
        "u1",
        title="  Write report  ",
        subject="Economics",
        priority=TaskPriority.HIGH,
        status=TaskStatus.IN_PROGRESS,
        deadline=deadline,
    )
    assert created.title == "Write report"
    assert created.status is TaskStatus.IN_PROGRESS
    assert created.deadline == deadline

    assert [task.id for task in repo.list("u1")] == [created.id]
    assert repo.list("u2") == []

    updated = repo.update("u1", created.id, status=TaskStatus.COMPLETED, deadline=None)
    assert updated is not None
    assert updated.status is TaskStatus.COMPLETED
    assert updated.deadline is None
    assert updated.priority is TaskPriority.HIGH
    assert updated.subject == "Economics"
    assert updated.updated_at >= created.updated_at

    assert repo.delete("u1", created.id) is True
    assert repo.list("u1") == []


def test_naive_deadline_keeps_its_local_day_through_the_store(store, tokyo_time):
    repo = TaskRepository(store)
    now = datetime(2025, 3, 12, 20, 0, tzinfo=tokyo_time)
    naive_tonight = datetime(2025, 3, 12, 23, 0)

    repo.create("u1", title="Late reading", deadline=naive_tonight)
    stored = repo.list("u1")

    assert stored[0].deadline == datetime(2025, 3, 12, 23, 0, tzinfo=tokyo_time)
    assert len(todays_tasks(stored, now)) == 1


def test_update_is_owner_scoped(store):
    repo = TaskRepository(store)
    task = repo.create("u1", title="Mine")

    assert repo.update("u2", task.id, title="Stolen") is None
    assert repo.delete("u2", task.id) is False
    assert repo.get("u1", task.id).title == "Mine"


def test_every_mutation_refreshes_updated_at(store):
    repo = TaskRepository(store)
    task = repo.create("u1", title="Revise notes")

    stamps = [task.updated_at]
    for priority in (TaskPriority.LOW, TaskPriority.HIGH):
        task = repo.update("u1", task.id, priority=priority)
        stamps.append(task.updated_at)
    task = repo.complete("u1", task.id)
    stamps.append(task.updated_at)

    assert stamps == sorted(stamps)
    assert task.is_completed


def test_create_validates_input(store):
    repo = TaskRepository(store)
    with pytest.raises(ValueError):
        repo.create("u1", title="   ")
    with pytest.raises(AuthMissing):
        repo.create("", title="Orphan")
    task = repo.create("u1", title="Ok")
    with pytest.raises(ValueError):
        repo.update("u1", task.id, title=" ")


def test_store_failure_becomes_write_failure():
    store = MagicMock()
    store.create.side_effect = StoreError("offline", "unavailable")
    repo = TaskRepository(store)

    with pytest.raises(WriteFailure) as exc_info:
        repo.create("u1", title="Offline task")
    assert "temporarily unavailable" in exc_info.value.user_message


def test_legacy_status_values_are_accepted(store):
    store.create("tasks", {"user_id": "u1", "title": "Old", "status": "todo"})
    store.create("tasks", {"user_id": "u1", "title": "Older", "status": "done"})

    statuses = [task.status for task in TaskRepository(store).list("u1")]
    assert statuses == [TaskStatus.PENDING, TaskStatus.COMPLETED]


def test_bulk_create_and_subscribe(store):
    repo = TaskRepository(store)
    snapshots = []
    handle = repo.subscribe("u1", snapshots.append)

    repo.bulk_create(
        "u1",
        [
            {"title": "Problem set 4", "subject": "Math", "priority": "high"},
            {"title": "Read ch. 2", "subject": "Biology", "status": "in-progress"},
        ],
    )

    assert [task.title for task in snapshots[-1]] == ["Problem set 4", "Read ch. 2"]
    assert snapshots[-1][1].status is TaskStatus.IN_PROGRESS
    handle.unsubscribe()
