"""Logging setup and compact renderings of board records for log lines."""

from __future__ import annotations

import json
import sys
from typing import Any

from loguru import logger


def configure_logging(level: str = "INFO") -> None:
    """Configure loguru logger with the specified level."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{module}</cyan>:<cyan>{line}</cyan> - "
            "{message}"
        ),
    )


def summarize_task(task: Any) -> dict[str, Any]:
    """Render a compact, JSON-friendly summary of a task for log lines.

    Args:
        task: Task instance (or None).

    Returns:
        A dictionary with the fields most useful when tracing moves.
    """
    if task is None:
        return {"task": None}
    title = str(getattr(task, "title", "") or "")
    return {
        "id": getattr(task, "id", None),
        "title": (title[:60] + "…") if len(title) > 60 else title,
        "column_id": getattr(task, "column_id", None),
        "status": getattr(task, "status", None),
        "order": getattr(task, "order", None),
    }


def pretty(obj: Any, *, indent: int = 2) -> str:
    """Serialize an object as JSON for readable output.

    Args:
        obj: Object to serialize.
        indent: Indentation level for JSON output.

    Returns:
        A JSON string when possible; otherwise `str(obj)`.
    """
    try:
        return json.dumps(obj, indent=indent, default=str)
    except (TypeError, ValueError):
        return str(obj)
