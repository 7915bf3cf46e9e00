"""Provide the public `daybase` package exports."""

from __future__ import annotations

from .service import KanbanService

__version__ = "0.1.0"

__all__ = ["KanbanService", "__version__"]
