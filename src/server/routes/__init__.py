"""Route registration helpers."""

from .chat import register_chat_routes
from .dashboard import register_dashboard_routes
from .pomodoro import register_pomodoro_routes
from .tasks import register_task_routes
from .verify import register_verify_routes

__all__ = [
    "register_chat_routes",
    "register_dashboard_routes",
    "register_pomodoro_routes",
    "register_task_routes",
    "register_verify_routes",
]
