"""FastAPI application serving the board API."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from .. import __version__
from ..service import KanbanService
from .router import create_router


def create_app(
    project_dir: Optional[Path] = None,
    enable_cors: bool = True,
    service: Optional[KanbanService] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        project_dir: Default board directory; the current directory when omitted.
        enable_cors: Whether to enable permissive CORS for local front ends.
        service: Pre-built service used for requests without ``project_dir``.

    Returns:
        Configured FastAPI app.
    """
    app = FastAPI(
        title="daybase",
        description="Kanban task engine with a self-resetting daily column",
        version=__version__,
    )

    if enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.state.default_project_dir = project_dir
    app.state.default_service = service
    services: dict[Path, KanbanService] = {}
    services_lock = threading.Lock()

    def _resolve_service(project_dir_param: Optional[str] = None) -> KanbanService:
        if not project_dir_param and app.state.default_service is not None:
            return app.state.default_service
        board_dir = Path(project_dir_param or app.state.default_project_dir or Path.cwd()).resolve()
        with services_lock:
            cached = services.get(board_dir)
            if cached is None:
                logger.info("Opening board at {}", board_dir)
                cached = KanbanService.for_directory(board_dir)
                services[board_dir] = cached
            return cached

    @app.get("/")
    async def root() -> dict[str, Any]:
        return {"name": "daybase", "version": __version__, "status": "running"}

    app.include_router(create_router(_resolve_service))
    return app
