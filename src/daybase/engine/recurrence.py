from __future__ import annotations

import calendar
from datetime import date, datetime, timezone, tzinfo
from typing import Optional

from loguru import logger

from ..constants import DAY_MS, RECURRENCE_NONE, WEEK_MS
from ..domain.models import RECURRENCES, Task, check_choice, from_ms, to_ms
from .context import BoardContext
from .tasks import TaskStore


def add_months(day: date, months: int) -> date:
    """Same day *months* later, clamped to the target month's last day."""
    year = day.year + (day.month - 1 + months) // 12
    month = (day.month - 1 + months) % 12 + 1
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last))


def next_due_date(base_ms: int, recurrence: str, tz: tzinfo = timezone.utc) -> Optional[int]:
    """Due date of the next instance, or ``None`` for ``"none"``.

    Daily and weekly add fixed spans. Monthly keeps the wall-clock time in
    *tz* and moves to the same day of the next month, so Jan 31 lands on the
    last day of February.
    """
    check_choice("recurrence", recurrence, RECURRENCES)
    if recurrence == "daily":
        return base_ms + DAY_MS
    if recurrence == "weekly":
        return base_ms + WEEK_MS
    if recurrence == "monthly":
        base = from_ms(base_ms, tz)
        target = add_months(base.date(), 1)
        return to_ms(datetime.combine(target, base.time(), tzinfo=tz))
    return None


class RecurrenceEngine:
    def __init__(self, ctx: BoardContext, tasks: TaskStore) -> None:
        self._ctx = ctx
        self._tasks = tasks

    def handle_recurrence(
        self,
        task_id: str,
        recurrence_type: Optional[str] = None,
        performed_by: Optional[str] = None,
        column_id: Optional[str] = None,
    ) -> Optional[str]:
        """Clone *task_id* as the next instance; returns the new id.

        The clone stays in the source column unless *column_id* names
        another existing column.

        A source that no longer exists is not an error: firing can race
        with deletion, so the call quietly returns ``None``.
        """
        if recurrence_type is not None:
            check_choice("recurrence", recurrence_type, RECURRENCES)
        source = self._ctx.container.tasks.get(task_id)
        if source is None:
            logger.info("Recurrence source {} no longer exists; nothing to do", task_id)
            return None

        recurrence = recurrence_type or source.recurrence
        if recurrence == RECURRENCE_NONE:
            return None

        now = self._ctx.clock.now_ms()
        base = source.due_date if source.due_date is not None else now
        clone = Task(
            title=source.title,
            description=source.description,
            column_id=self._target_column(source, column_id),
            assignee_id=source.assignee_id,
            priority=source.priority,
            status="todo",
            tags=list(source.tags),
            order=source.order,
            due_date=next_due_date(base, recurrence, self._ctx.clock.tz),
            recurrence=source.recurrence,
            created_at=now,
            created_by=source.created_by,
            updated_at=now,
        )
        self._tasks.insert(
            clone,
            performed_by=self._ctx.actor(performed_by),
            metadata={"recurrence_from": source.id, "type": recurrence},
        )
        logger.info("Recurred {} -> {} ({})", source.id, clone.id, recurrence)
        return clone.id

    def _target_column(self, source: Task, column_id: Optional[str]) -> str:
        if column_id and self._ctx.container.columns.get(column_id) is not None:
            return column_id
        return source.column_id
