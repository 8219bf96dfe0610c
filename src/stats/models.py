"""Derived Stats Models

ダッシュボードに表示する集計値。永続化せず、スナップショットから毎回再計算する。

Related: engine.compute_dashboard_stats
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Tuple

from src.tasks import Task


@dataclass(frozen=True)
class DayBucket:
    """週次グラフの1日分"""

    day: date
    label: str  # 曜日の短縮名（Mon, Tue, ...）
    completed: int
    total: int


@dataclass(frozen=True)
class DerivedStats:
    """ダッシュボード集計"""

    todays_tasks: int
    completed_today: int
    progress_percentage: int
    total_tasks: int
    completed_tasks: int
    in_progress_tasks: int
    completion_rate: int
    total_focus_minutes: int
    todays_pomodoros: int
    weekly: Tuple[DayBucket, ...]
    upcoming: Tuple[Task, ...]
    recent: Tuple[Task, ...]

    @property
    def focus_hours_label(self) -> str:
        hours, minutes = divmod(self.total_focus_minutes, 60)
        return f"{hours}h {minutes}m"
