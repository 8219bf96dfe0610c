"""Owner-scoped task records shared by the dashboard, server and AI features."""

from .models import Task, TaskPriority, TaskStatus
from .repository import COLLECTION, UNSET, TaskRepository

__all__ = ["Task", "TaskPriority", "TaskStatus", "TaskRepository", "COLLECTION", "UNSET"]
