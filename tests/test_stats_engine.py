"""集計エンジンのテスト"""

from datetime import datetime, timedelta, timezone

from src.pomodoro import PomodoroSession, SessionType
from src.stats import (
    completion_rate,
    compute_dashboard_stats,
    recent_tasks,
    todays_tasks,
    total_focus_minutes,
    upcoming_tasks,
    weekly_series,
)
from src.tasks import Task, TaskStatus

NOW = datetime(2025, 3, 12, 15, 0, tzinfo=timezone.utc)


def make_task(task_id, deadline=None, status=TaskStatus.PENDING, updated_at=None):
    created = NOW - timedelta(days=10)
    return Task(
        id=task_id,
        user_id="u1",
        title=f"Task {task_id}",
        status=status,
        deadline=deadline,
        created_at=created,
        updated_at=updated_at or created,
    )


def make_session(session_id, duration=25, completed=True, session_type=SessionType.WORK, start=NOW):
    return PomodoroSession(
        id=session_id,
        user_id="u1",
        start_time=start,
        duration=duration,
        type=session_type,
        completed=completed,
    )


def test_empty_collection():
    stats = compute_dashboard_stats([], [], NOW)

    assert stats.completion_rate == 0
    assert stats.upcoming == ()
    assert len(stats.weekly) == 7
    assert all(bucket.completed == 0 and bucket.total == 0 for bucket in stats.weekly)
    assert stats.total_focus_minutes == 0


def test_five_due_today_three_completed():
    tasks = [
        make_task(str(i), NOW.replace(hour=9 + i), TaskStatus.COMPLETED if i < 3 else TaskStatus.PENDING)
        for i in range(5)
    ]
    tasks.append(make_task("tomorrow", NOW + timedelta(days=1)))

    stats = compute_dashboard_stats(tasks, [], NOW)

    assert len(todays_tasks(tasks, NOW)) == 5
    assert stats.todays_tasks == 5
    assert stats.completed_today == 3
    assert stats.progress_percentage == 60


def test_today_is_calendar_day_not_rolling_window():
    late_yesterday = NOW.replace(hour=0, minute=0) - timedelta(minutes=1)
    early_tomorrow = NOW.replace(hour=23, minute=59) + timedelta(minutes=2)
    tasks = [make_task("a", late_yesterday), make_task("b", early_tomorrow)]
    assert todays_tasks(tasks, NOW) == []


def test_total_focus_minutes_counts_completed_work_only():
    sessions = [
        make_session("w1"),
        make_session("w2"),
        make_session("w3"),
        make_session("w4", completed=False),
        make_session("b1", duration=10, session_type=SessionType.BREAK),
    ]
    assert total_focus_minutes(sessions) == 75
    assert compute_dashboard_stats([], sessions, NOW).focus_hours_label == "1h 15m"


def test_completion_rate_bounds_and_rounding():
    assert completion_rate([]) == 0
    tasks = [make_task("a", status=TaskStatus.COMPLETED), make_task("b"), make_task("c")]
    assert completion_rate(tasks) == 33
    tasks = [make_task("a", status=TaskStatus.COMPLETED), make_task("b")]
    assert completion_rate(tasks) == 50
    eight = [make_task(str(i), status=TaskStatus.COMPLETED if i < 5 else TaskStatus.PENDING) for i in range(8)]
    # 62.5 -> 63
    assert completion_rate(eight) == 63
    assert 0 <= completion_rate(eight) <= 100


def test_weekly_series_oldest_first_and_idempotent():
    tasks = [
        make_task("a", NOW - timedelta(days=6), TaskStatus.COMPLETED),
        make_task("b", NOW - timedelta(days=6)),
        make_task("c", NOW, TaskStatus.COMPLETED),
        make_task("old", NOW - timedelta(days=7), TaskStatus.COMPLETED),
    ]

    first = weekly_series(tasks, NOW)
    second = weekly_series(tasks, NOW)

    assert first == second
    assert [bucket.day for bucket in first] == sorted(bucket.day for bucket in first)
    assert first[0].day == (NOW - timedelta(days=6)).date()
    assert (first[0].completed, first[0].total) == (1, 2)
    assert (first[-1].completed, first[-1].total) == (1, 1)
    assert first[-1].label == "Wed"
    assert sum(bucket.total for bucket in first) == 3


def test_upcoming_excludes_completed_and_past_with_id_tiebreak():
    soon = NOW + timedelta(hours=2)
    tasks = [
        make_task("z", soon),
        make_task("a", soon),
        make_task("later", NOW + timedelta(days=2)),
        make_task("done", NOW + timedelta(hours=1), TaskStatus.COMPLETED),
        make_task("past", NOW - timedelta(hours=1)),
        make_task("exact", NOW),
        make_task("none"),
    ]

    result = upcoming_tasks(tasks, NOW, limit=5)

    assert [task.id for task in result] == ["a", "z", "later"]
    assert [task.id for task in upcoming_tasks(tasks, NOW, limit=1)] == ["a"]
    assert upcoming_tasks(tasks, NOW, limit=0) == []


def test_recent_tasks_by_updated_at_desc():
    tasks = [
        make_task("a", updated_at=NOW - timedelta(hours=3)),
        make_task("b", updated_at=NOW - timedelta(hours=1)),
        make_task("c", updated_at=NOW - timedelta(hours=1)),
        make_task("d", updated_at=NOW - timedelta(hours=2)),
    ]
    assert [task.id for task in recent_tasks(tasks, limit=3)] == ["b", "c", "d"]


def test_recompute_uses_only_latest_snapshot():
    first = [make_task("a", NOW, TaskStatus.COMPLETED), make_task("b", NOW)]
    second = [make_task("c", NOW + timedelta(days=1))]

    compute_dashboard_stats(first, [], NOW)
    stats = compute_dashboard_stats(second, [], NOW)

    assert stats.total_tasks == 1
    assert stats.todays_tasks == 0
    assert [task.id for task in stats.upcoming] == ["c"]
    assert [task.id for task in stats.recent] == ["c"]


def test_naive_deadlines_are_read_as_local_time(tokyo_time):
    now = datetime(2025, 3, 12, 20, 0, tzinfo=tokyo_time)
    naive_tonight = datetime(2025, 3, 12, 23, 0)
    stats = compute_dashboard_stats([make_task("a", naive_tonight)], [], now)
    assert stats.todays_tasks == 1
    assert [task.id for task in stats.upcoming] == ["a"]
