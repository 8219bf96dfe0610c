"""DocumentStore / Subscription のテスト"""

import threading

import pytest

from src.sync import StoreError, Subscription, parse_documents, subscribe_records
from src.sync.store import Document
from src.tasks import Task
from src.tasktide.exceptions import AuthMissing, SubscriptionFailure


def test_create_requires_owner(store):
    with pytest.raises(StoreError) as exc_info:
        store.create("tasks", {"title": "No owner"})
    assert exc_info.value.code == "permission-denied"


def test_create_assigns_server_timestamps(store):
    document = store.create("tasks", {"user_id": "u1", "title": "Read chapter 3"})
    assert document.id
    assert document.data["created_at"] == document.data["updated_at"]
    assert document.as_record()["id"] == document.id


def test_list_is_owner_scoped_and_in_insertion_order(store):
    first = store.create("tasks", {"user_id": "u1", "title": "A"})
    store.create("tasks", {"user_id": "u2", "title": "B"})
    third = store.create("tasks", {"user_id": "u1", "title": "C"})

    ids = [doc.id for doc in store.list("u1", "tasks")]
    assert ids == [first.id, third.id]
    assert dict(store.collections()) == {"tasks": 3}


def test_update_keeps_owner_and_updated_at_monotonic(store):
    document = store.create("tasks", {"user_id": "u1", "title": "A"})
    previous = document.data["updated_at"]

    updated = store.update(
        "tasks",
        document.id,
        {"title": "B", "user_id": "intruder", "updated_at": "2000-01-01T00:00:00+00:00"},
    )
    assert updated.data["title"] == "B"
    assert updated.data["user_id"] == "u1"
    assert updated.data["updated_at"] >= previous
    assert store.update("tasks", "missing", {"title": "x"}) is None


def test_update_never_moves_updated_at_behind_stored_value(store):
    document = store.create(
        "tasks", {"user_id": "u1", "title": "A", "updated_at": "2099-01-01T00:00:00+00:00"}
    )

    stale = store.update("tasks", document.id, {"updated_at": "2000-01-01T00:00:00+00:00"})
    assert stale.data["updated_at"] == "2099-01-01T00:00:00+00:00"

    touched = store.update("tasks", document.id, {"title": "B"})
    assert touched.data["updated_at"] == "2099-01-01T00:00:00+00:00"


def test_delete_returns_false_for_missing(store):
    document = store.create("tasks", {"user_id": "u1", "title": "A"})
    assert store.delete("tasks", document.id) is True
    assert store.delete("tasks", document.id) is False


def test_subscribe_delivers_initial_and_full_snapshots(store):
    snapshots = []
    handle = subscribe_records(store, "u1", "tasks", Task, snapshots.append)

    assert snapshots == [[]]
    store.create("tasks", {"user_id": "u1", "title": "Essay outline", "subject": "History"})
    store.create("tasks", {"user_id": "u2", "title": "Someone else"})
    store.create("tasks", {"user_id": "u1", "title": "Flashcards"})

    assert len(snapshots) == 3
    latest = snapshots[-1]
    assert [task.title for task in latest] == ["Essay outline", "Flashcards"]
    assert latest[0].subject == "History"
    assert handle.delivered == 3


def test_created_record_round_trips_into_next_snapshot(store):
    snapshots = []
    subscribe_records(store, "u1", "tasks", Task, snapshots.append)

    document = store.create(
        "tasks",
        {"user_id": "u1", "title": "Lab report", "subject": "Chemistry", "priority": "high"},
    )

    task = snapshots[-1][0]
    assert task.id == document.id
    assert task.title == "Lab report"
    assert task.subject == "Chemistry"
    assert task.priority.value == "high"
    assert task.updated_at >= task.created_at


def test_subscribe_without_owner_fails_fast(store):
    with pytest.raises(AuthMissing):
        subscribe_records(store, None, "tasks", Task, lambda records: None)
    assert store.listener_count() == 0


def test_unsubscribe_is_idempotent_and_releases_listener(store):
    snapshots = []
    handle = subscribe_records(store, "u1", "tasks", Task, snapshots.append)
    assert store.listener_count("u1") == 1

    assert handle.unsubscribe() is True
    assert handle.unsubscribe() is False
    assert store.listener_count("u1") == 0

    store.create("tasks", {"user_id": "u1", "title": "After teardown"})
    assert snapshots == [[]]


def test_unsubscribe_then_emit_discards_in_flight_snapshot(store):
    """解除と配信が競合しても、解除後にコールバックは呼ばれない"""
    snapshots = []
    handle = subscribe_records(store, "u1", "tasks", Task, snapshots.append)
    captured = store._listeners[0]

    handle.unsubscribe()
    # 解除前に取り出されていたリスナーへの遅延配信をシミュレート
    captured.on_snapshot([Document("late", "tasks", {"user_id": "u1", "title": "Late"})])

    assert snapshots == [[]]


def test_invalid_record_is_skipped_not_whole_snapshot(store):
    store.create("tasks", {"user_id": "u1", "title": "Valid"})
    store.create("tasks", {"user_id": "u1", "title": "   "})
    store.create("tasks", {"user_id": "u1", "title": "Bad priority", "priority": "urgent"})

    snapshots = []
    subscribe_records(store, "u1", "tasks", Task, snapshots.append)

    assert [task.title for task in snapshots[-1]] == ["Valid"]


def test_parse_documents_skips_invalid():
    stamp = "2025-01-01T00:00:00+00:00"
    documents = [
        Document("a", "tasks", {"user_id": "u1", "title": "Ok", "created_at": stamp, "updated_at": stamp}),
        Document("b", "tasks", {"user_id": "u1"}),
    ]
    records = parse_documents(documents, Task)
    assert [record.id for record in records] == ["a"]


def test_link_failure_reported_through_error_channel(store):
    errors = []
    subscribe_records(store, "u1", "tasks", Task, lambda records: None, errors.append)

    store.broadcast_error("u1", "tasks", StoreError("revoked", "permission-denied"))

    assert len(errors) == 1
    assert isinstance(errors[0], SubscriptionFailure)
    assert "permission" in errors[0].user_message


def test_listener_exception_does_not_break_writes(store):
    def boom(records):
        if records:
            raise RuntimeError("render failed")

    subscribe_records(store, "u1", "tasks", Task, boom)
    document = store.create("tasks", {"user_id": "u1", "title": "Still saved"})
    assert store.get("tasks", document.id) is not None


def test_attach_after_unsubscribe_cancels_immediately():
    handle = Subscription("u1", "tasks", lambda records: None)
    handle.unsubscribe()
    cancelled = []
    handle.attach(lambda: cancelled.append(True))
    assert cancelled == [True]


def test_concurrent_writes_deliver_in_commit_order(store):
    counts = []
    subscribe_records(store, "u1", "tasks", Task, lambda records: counts.append(len(records)))

    def writer(n):
        for i in range(5):
            store.create("tasks", {"user_id": "u1", "title": f"task {n}-{i}"})

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(3)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert counts == sorted(counts)
    assert counts[-1] == 15


def test_unsubscribe_waits_for_in_flight_snapshot():
    entered, release = threading.Event(), threading.Event()
    applied = []

    def on_snapshot(records):
        entered.set()
        release.wait(5)
        applied.append(records)

    handle = Subscription("u1", "tasks", on_snapshot)
    deliverer = threading.Thread(target=handle.deliver, args=([1],))
    deliverer.start()
    assert entered.wait(5)

    unsubscriber = threading.Thread(target=handle.unsubscribe)
    unsubscriber.start()
    unsubscriber.join(0.2)
    assert unsubscriber.is_alive()
    assert handle.active

    release.set()
    unsubscriber.join(5)
    deliverer.join(5)
    assert applied == [[1]]
    assert not handle.active
    assert handle.deliver([2]) is False


def test_callback_may_unsubscribe_its_own_handle():
    holder = {}

    def on_snapshot(records):
        holder["handle"].unsubscribe()

    holder["handle"] = Subscription("u1", "tasks", on_snapshot)
    assert holder["handle"].deliver([1]) is True
    assert not holder["handle"].active
