"""Derived dashboard statistics computed from the latest snapshots."""

from .engine import (
    completion_rate,
    compute_dashboard_stats,
    progress_percentage,
    recent_tasks,
    todays_pomodoros,
    todays_tasks,
    total_focus_minutes,
    upcoming_tasks,
    weekly_series,
)
from .models import DayBucket, DerivedStats

__all__ = [
    "DayBucket",
    "DerivedStats",
    "completion_rate",
    "compute_dashboard_stats",
    "progress_percentage",
    "recent_tasks",
    "todays_pomodoros",
    "todays_tasks",
    "total_focus_minutes",
    "upcoming_tasks",
    "weekly_series",
]
