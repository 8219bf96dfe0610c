"""Pomodoro focus sessions."""

from .cycle import PomodoroCycle
from .models import PomodoroSession, SessionType
from .repository import COLLECTION, SessionRepository

__all__ = ["PomodoroCycle", "PomodoroSession", "SessionType", "SessionRepository", "COLLECTION"]
