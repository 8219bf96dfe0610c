"""CLI entry point for launching the FastAPI app with uvicorn."""

import os

import uvicorn

from .app import app


def main() -> None:
    """Run the development server."""
    uvicorn.run(
        app,
        host=os.getenv("TASKTIDE_HOST", "0.0.0.0"),
        port=int(os.getenv("TASKTIDE_PORT", "8000")),
    )


if __name__ == "__main__":
    main()
