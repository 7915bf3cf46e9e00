"""Default board contents for a fresh state directory."""

from __future__ import annotations

from typing import Any

from loguru import logger

from ..constants import DAILY_COLUMN_TITLE, DAY_MS, WEEK_MS
from ..domain.models import User
from .columns import ColumnStore
from .context import BoardContext
from .tasks import TaskStore
from .transitions import MoveEngine

DEFAULT_USER = {"name": "Alex Rivera", "email": "alex@daybase.local", "avatar": "AR", "role": "admin"}

# (key, title, type, status_mapping, color)
DEFAULT_COLUMNS = (
    ("daily", DAILY_COLUMN_TITLE, "daily", "todo", "#8b5cf6"),
    ("todo", "To Do", "custom", "todo", "#64748b"),
    ("progress", "In Progress", "custom", "in_progress", "#3b82f6"),
    ("review", "Review", "custom", "in_progress", "#f59e0b"),
    ("done", "Done", "custom", "done", "#10b981"),
)

# (column key, title, description, priority, tags, due offset ms, recurrence, mark done)
SAMPLE_TASKS = (
    ("daily", "Morning standup", "Daily team sync", "high", ["daily", "meeting"], DAY_MS, "daily", False),
    ("daily", "Code review", "Review PRs from team", "medium", ["daily", "dev"], DAY_MS, "daily", False),
    ("daily", "Email cleanup", "Clear inbox", "low", ["daily"], DAY_MS, "daily", True),
    ("todo", "Design system update", "Update component library", "high", ["design", "system"], WEEK_MS, "none", False),
    ("todo", "API documentation", "Document new endpoints", "medium", ["docs", "api"], WEEK_MS, "none", False),
    ("progress", "Feature: Dark mode", "Implement dark theme toggle", "high", ["feature", "ui"], WEEK_MS, "none", False),
    ("done", "Setup CI/CD", "Configure CI pipelines", "medium", ["devops"], -DAY_MS, "none", False),
)


def seed_board(
    ctx: BoardContext,
    columns: ColumnStore,
    tasks: TaskStore,
    mover: MoveEngine,
    with_samples: bool = True,
) -> dict[str, Any]:
    if ctx.container.columns.list():
        logger.warning("Board already has columns; refusing to seed")
        return {"success": False, "message": "Board already seeded. Delete existing data first."}

    user = User(created_at=ctx.clock.now_ms(), **DEFAULT_USER)
    ctx.container.users.upsert(user)

    column_ids: dict[str, str] = {}
    for key, title, column_type, mapping, color in DEFAULT_COLUMNS:
        column = columns.create_column(
            title,
            color=color,
            type=column_type,
            status_mapping=mapping,
            created_by=user.id,
        )
        column_ids[key] = column.id

    task_ids: list[str] = []
    if with_samples:
        now = ctx.clock.now_ms()
        for key, title, description, priority, tags, offset, recurrence, done in SAMPLE_TASKS:
            task = tasks.create_task(
                title,
                column_ids[key],
                description=description,
                assignee_id=user.id,
                priority=priority,
                tags=list(tags),
                due_date=now + offset,
                recurrence=recurrence,
                created_by=user.id,
            )
            if done:
                mover.mark_done(task.id, performed_by=user.id)
            task_ids.append(task.id)

    logger.info("Seeded board with {} columns and {} tasks", len(column_ids), len(task_ids))
    return {
        "success": True,
        "message": "Board seeded with default columns and tasks.",
        "user_id": user.id,
        "column_ids": column_ids,
        "task_ids": task_ids,
    }
