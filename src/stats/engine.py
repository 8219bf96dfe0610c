"""
集計エンジン

タスク・ポモドーロセッションのスナップショットからダッシュボード集計を計算する。
すべて純粋関数で、入力と `now` が同じなら同じ結果を返す。

- 「今日」は `now` のタイムゾーンでの暦日（24時間の移動窓ではない）
- 同順位は id の昇順で並べる
- 率は整数に四捨五入（0.5 は切り上げ）
"""

from datetime import date, datetime, timedelta
from typing import Iterable, List, Sequence

from src.pomodoro import PomodoroSession
from src.tasks import Task, TaskStatus

from .models import DayBucket, DerivedStats

WEEK_DAYS = 7
DEFAULT_UPCOMING_LIMIT = 5
DEFAULT_RECENT_LIMIT = 5


def _align(value: datetime, now: datetime) -> datetime:
    """naive / aware を `now` に揃える（naive はローカル時刻とみなす）"""
    if value.tzinfo is None and now.tzinfo is not None:
        return value.astimezone()
    if value.tzinfo is not None and now.tzinfo is None:
        return value.astimezone().replace(tzinfo=None)
    return value


def _calendar_day(value: datetime, now: datetime) -> date:
    value = _align(value, now)
    if now.tzinfo is not None:
        value = value.astimezone(now.tzinfo)
    return value.date()


def _percentage(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return (200 * part + whole) // (2 * whole)


def _due_on(tasks: Iterable[Task], day: date, now: datetime) -> List[Task]:
    return [
        task
        for task in tasks
        if task.deadline is not None and _calendar_day(task.deadline, now) == day
    ]


def todays_tasks(tasks: Sequence[Task], now: datetime) -> List[Task]:
    """期限が `now` と同じ暦日のタスク"""
    return _due_on(tasks, now.date(), now)


def completion_rate(tasks: Sequence[Task]) -> int:
    """完了率（%）。タスクがなければ0"""
    completed = sum(1 for task in tasks if task.status is TaskStatus.COMPLETED)
    return _percentage(completed, len(tasks))


def progress_percentage(tasks: Sequence[Task], now: datetime) -> int:
    """今日期限のタスクの完了率（%）"""
    return completion_rate(todays_tasks(tasks, now))


def total_focus_minutes(sessions: Iterable[PomodoroSession]) -> int:
    """完了した作業セッションの合計時間（分）。休憩・未完了は含めない"""
    return sum(session.duration for session in sessions if session.counts_as_focus)


def todays_pomodoros(sessions: Iterable[PomodoroSession], now: datetime) -> int:
    """今日開始して完了したセッション数"""
    today = now.date()
    return sum(
        1
        for session in sessions
        if session.completed and _calendar_day(session.start_time, now) == today
    )


def weekly_series(tasks: Sequence[Task], now: datetime) -> List[DayBucket]:
    """`now` を含む直近7日分の完了数/総数（古い日から順）"""
    today = now.date()
    series: List[DayBucket] = []
    for offset in range(WEEK_DAYS - 1, -1, -1):
        day = today - timedelta(days=offset)
        due = _due_on(tasks, day, now)
        series.append(
            DayBucket(
                day=day,
                label=day.strftime("%a"),
                completed=sum(1 for task in due if task.status is TaskStatus.COMPLETED),
                total=len(due),
            )
        )
    return series


def upcoming_tasks(
    tasks: Sequence[Task], now: datetime, limit: int = DEFAULT_UPCOMING_LIMIT
) -> List[Task]:
    """期限が `now` より後の未完了タスクを期限の昇順で最大 limit 件"""
    if limit <= 0:
        return []
    pending = [
        task
        for task in tasks
        if task.deadline is not None
        and task.status is not TaskStatus.COMPLETED
        and _align(task.deadline, now) > now
    ]
    pending.sort(key=lambda task: (_align(task.deadline, now), task.id))
    return pending[:limit]


def recent_tasks(tasks: Sequence[Task], limit: int = DEFAULT_RECENT_LIMIT) -> List[Task]:
    """更新日時の新しい順に最大 limit 件"""
    if limit <= 0:
        return []
    ordered = sorted(tasks, key=lambda task: task.id)
    ordered.sort(key=lambda task: task.updated_at, reverse=True)
    return ordered[:limit]


def compute_dashboard_stats(
    tasks: Sequence[Task],
    sessions: Sequence[PomodoroSession],
    now: datetime,
    upcoming_limit: int = DEFAULT_UPCOMING_LIMIT,
    recent_limit: int = DEFAULT_RECENT_LIMIT,
) -> DerivedStats:
    """最新スナップショットからダッシュボード集計を計算"""
    today = todays_tasks(tasks, now)
    return DerivedStats(
        todays_tasks=len(today),
        completed_today=sum(1 for task in today if task.status is TaskStatus.COMPLETED),
        progress_percentage=completion_rate(today),
        total_tasks=len(tasks),
        completed_tasks=sum(1 for task in tasks if task.status is TaskStatus.COMPLETED),
        in_progress_tasks=sum(1 for task in tasks if task.status is TaskStatus.IN_PROGRESS),
        completion_rate=completion_rate(tasks),
        total_focus_minutes=total_focus_minutes(sessions),
        todays_pomodoros=todays_pomodoros(sessions, now),
        weekly=tuple(weekly_series(tasks, now)),
        upcoming=tuple(upcoming_tasks(tasks, now, upcoming_limit)),
        recent=tuple(recent_tasks(tasks, recent_limit)),
    )
