"""FastAPI application bootstrap."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .dependencies import (  # noqa: F401  re-exported for tests
    get_chat_store,
    get_completion_client,
    get_email_action_handler,
    get_quote_service,
    get_session_repository,
    get_store,
    get_task_repository,
)
from .routes import (
    register_chat_routes,
    register_dashboard_routes,
    register_pomodoro_routes,
    register_task_routes,
    register_verify_routes,
)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(title="TaskTide API", version="1.0.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_chat_routes(app)
    register_task_routes(app)
    register_pomodoro_routes(app)
    register_dashboard_routes(app)
    register_verify_routes(app)

    return app


app = create_app()
