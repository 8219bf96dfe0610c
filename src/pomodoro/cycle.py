"""Pomodoro cycle planning: work, short break, long break every N work sessions."""

from __future__ import annotations

from dataclasses import dataclass

from src.tasktide.config import PomodoroConfig

from .models import SessionType


@dataclass
class PomodoroCycle:
    """現在のセッション種別と、完了した作業セッション数を保持"""

    config: PomodoroConfig
    work_sessions_completed: int = 0
    current_type: SessionType = SessionType.WORK

    def is_long_break_due(self) -> bool:
        every = self.config.sessions_until_long_break
        return (
            self.work_sessions_completed > 0
            and every > 0
            and self.work_sessions_completed % every == 0
        )

    def current_duration(self) -> int:
        """現在のセッションの長さ（分）"""
        if self.current_type is SessionType.WORK:
            return self.config.work_duration
        if self.is_long_break_due():
            return self.config.long_break_duration
        return self.config.break_duration

    def advance(self) -> SessionType:
        """現在のセッションを完了し、次の種別を返す"""
        if self.current_type is SessionType.WORK:
            self.work_sessions_completed += 1
            self.current_type = SessionType.BREAK
        else:
            self.current_type = SessionType.WORK
        return self.current_type
