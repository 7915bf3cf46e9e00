from __future__ import annotations

from typing import Any, Optional

from loguru import logger

from ..constants import COLUMN_TYPE_DAILY, DEFAULT_COLUMN_COLOR
from ..domain.errors import DuplicateDailyColumnError, LockedColumnError, ValidationError
from ..domain.models import COLUMN_TYPES, TASK_STATUSES, Column, check_choice, check_title
from .context import BoardContext
from .tasks import TaskStore
from .transitions import MoveEngine


def _column_key(column: Column) -> tuple[int, str]:
    return (column.order, column.id)


class ColumnStore:
    """Column CRUD with the daily-column and lock rules.

    At most one column has ``type="daily"``; it is always locked and always
    maps to ``todo``. Locked columns cannot be deleted and keep their title,
    colour and mapping; only their order may change. Changing the mapping of
    a column re-derives the status of every task already in it.
    """

    def __init__(self, ctx: BoardContext, tasks: TaskStore, mover: MoveEngine) -> None:
        self._ctx = ctx
        self._tasks = tasks
        self._mover = mover

    def create_column(
        self,
        title: str,
        color: Optional[str] = None,
        type: str = "custom",
        status_mapping: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> Column:
        clean_title = check_title(title)
        check_choice("type", type, COLUMN_TYPES)
        if status_mapping is not None:
            check_choice("status_mapping", status_mapping, TASK_STATUSES)
        is_daily = type == COLUMN_TYPE_DAILY
        if is_daily and self.get_daily_base_column() is not None:
            raise DuplicateDailyColumnError("A daily column already exists")

        existing = self._ctx.container.columns.list()
        column = Column(
            title=clean_title,
            order=max((c.order for c in existing), default=-1) + 1,
            type=type,  # type: ignore[arg-type]
            locked=is_daily,
            color=color or DEFAULT_COLUMN_COLOR,
            status_mapping="todo" if is_daily else (status_mapping or "todo"),  # type: ignore[arg-type]
            created_at=self._ctx.clock.now_ms(),
            created_by=self._ctx.actor(created_by),
        )
        self._ctx.container.columns.upsert(column)
        logger.info("Created column {} ({}, maps to {})", column.id, column.title, column.status_mapping)
        self._ctx.emit("columns", "column.created", column.id, title=column.title, type=column.type)
        return column

    def update_column(
        self,
        column_id: str,
        title: Optional[str] = None,
        color: Optional[str] = None,
        order: Optional[int] = None,
        status_mapping: Optional[str] = None,
        performed_by: Optional[str] = None,
    ) -> Column:
        column = self._ctx.require_column(column_id)
        previous_mapping = column.status_mapping
        changes: dict[str, Any] = {}
        if order is not None:
            if isinstance(order, bool) or not isinstance(order, int):
                raise ValidationError("'order' must be an integer")
            changes["order"] = order
        if not column.locked:
            if title is not None:
                changes["title"] = check_title(title)
            if color is not None:
                changes["color"] = color
            if status_mapping is not None:
                changes["status_mapping"] = check_choice("status_mapping", status_mapping, TASK_STATUSES)
        elif title is not None or color is not None or status_mapping is not None:
            logger.debug("Ignoring title/color/mapping edits on locked column {}", column.id)

        for key, value in changes.items():
            setattr(column, key, value)
        if changes:
            self._ctx.container.columns.upsert(column)
            self._ctx.emit("columns", "column.updated", column.id, fields=sorted(changes))
        if column.status_mapping != previous_mapping:
            self._mover.restatus_column(column, previous_mapping, performed_by)
        return column

    def delete_column(self, column_id: str, performed_by: Optional[str] = None) -> int:
        """Delete an unlocked column and every task in it; returns the task count."""
        column = self._ctx.require_column(column_id)
        if column.locked:
            raise LockedColumnError(f"Column {column.id} is locked and cannot be deleted")

        owned = self._tasks.get_by_column(column.id)
        for task in owned:
            self._tasks.delete_task(task.id, performed_by=performed_by, metadata={"reason": "column_deleted"})
        self._ctx.container.columns.delete(column.id)
        logger.info("Deleted column {} with {} task(s)", column.id, len(owned))
        self._ctx.emit("columns", "column.deleted", column.id, tasks_deleted=len(owned))
        return len(owned)

    def reorder_column(self, column_id: str, new_order: int) -> Column:
        return self.update_column(column_id, order=new_order)

    def get_column(self, column_id: str) -> Column:
        return self._ctx.require_column(column_id)

    def get_all_columns(self) -> list[Column]:
        return sorted(self._ctx.container.columns.list(), key=_column_key)

    def get_daily_base_column(self) -> Optional[Column]:
        return next((c for c in self.get_all_columns() if c.is_daily), None)

    def get_terminal_column(self) -> Optional[Column]:
        return next((c for c in self.get_all_columns() if c.is_terminal), None)

    def get_backlog_column(self, preferred_id: Optional[str] = None) -> Optional[Column]:
        """Where the daily reset parks unfinished work."""
        if preferred_id:
            preferred = self._ctx.container.columns.get(preferred_id)
            if preferred is not None and not preferred.locked:
                return preferred
            logger.warning("Configured backlog column {} is missing or locked", preferred_id)
        return next(
            (c for c in self.get_all_columns() if not c.locked and not c.is_daily and c.status_mapping == "todo"),
            None,
        )
