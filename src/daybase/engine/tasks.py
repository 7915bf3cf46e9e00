from __future__ import annotations

from typing import Any, Optional

from loguru import logger

from ..constants import PRIORITY_WEIGHT
from ..domain.errors import ValidationError
from ..domain.models import (
    PRIORITIES,
    RECURRENCES,
    TASK_STATUSES,
    HistoryEntry,
    Task,
    check_choice,
    check_title,
)
from ..logging_utils import summarize_task
from .context import BoardContext
from .transitions import MoveEngine, MovePlan, MoveResult, derive_status

EDITABLE_FIELDS = (
    "title",
    "description",
    "assignee_id",
    "priority",
    "tags",
    "due_date",
    "recurrence",
    "order",
    "column_id",
    "metadata",
)


def _check_tags(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ValidationError("'tags' must be a list of strings")
    return [str(tag).strip() for tag in value if str(tag).strip()]


def _check_due_date(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("'due_date' must be epoch milliseconds or null")
    return value


def _check_order(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("'order' must be an integer")
    return value


def sort_key(task: Task) -> tuple[int, int, int, int, str]:
    """Due date (undated last), then priority high to low, then order."""
    undated = 1 if task.due_date is None else 0
    return (undated, task.due_date or 0, -PRIORITY_WEIGHT.get(task.priority, 0), task.order, task.id)


class TaskStore:
    """Task CRUD and read queries.

    Column changes requested through :meth:`update_task` are routed through
    the :class:`MoveEngine`, so status is always recomputed from the target
    column and a caller can never set it directly.
    """

    def __init__(self, ctx: BoardContext, mover: MoveEngine) -> None:
        self._ctx = ctx
        self._mover = mover

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_task(
        self,
        title: str,
        column_id: str,
        *,
        description: Optional[str] = None,
        assignee_id: Optional[str] = None,
        priority: str = "medium",
        tags: Optional[list[str]] = None,
        due_date: Optional[int] = None,
        recurrence: str = "none",
        order: Optional[int] = None,
        created_by: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Task:
        clean_title = check_title(title)
        check_choice("priority", priority, PRIORITIES)
        check_choice("recurrence", recurrence, RECURRENCES)
        clean_tags = _check_tags(tags)
        clean_due = _check_due_date(due_date)
        if order is not None:
            _check_order(order)
        column = self._ctx.require_column(column_id)

        actor = self._ctx.actor(created_by)
        now = self._ctx.clock.now_ms()
        status = derive_status(column)
        task = Task(
            title=clean_title,
            description=description,
            column_id=column.id,
            assignee_id=assignee_id or None,
            priority=priority,  # type: ignore[arg-type]
            status=status,  # type: ignore[arg-type]
            tags=clean_tags,
            order=order if order is not None else self._ctx.next_task_order(column.id),
            due_date=clean_due,
            recurrence=recurrence,  # type: ignore[arg-type]
            created_at=now,
            created_by=actor,
            updated_at=now,
            completed_at=now if status == "done" else None,
            metadata=dict(metadata or {}),
        )
        return self.insert(task, performed_by=actor)

    def insert(self, task: Task, *, performed_by: str, metadata: Optional[dict[str, Any]] = None) -> Task:
        """Persist an already validated new task and account for it."""
        self._ctx.container.tasks.upsert(task)
        self._ctx.history.record(task.id, "created", performed_by=performed_by, metadata=metadata)
        self._ctx.rollups.created()
        logger.info("Created task {}", summarize_task(task))
        self._ctx.emit("tasks", "task.created", task.id, column_id=task.column_id)
        return task

    def update_task(
        self, task_id: str, changes: dict[str, Any], performed_by: Optional[str] = None
    ) -> MoveResult:
        """Edit fields and, when ``column_id`` changes, move; the result reports a completion."""
        if "status" in changes:
            raise ValidationError("'status' is derived from the column; move the task or use mark_done instead")
        unknown = sorted(set(changes) - set(EDITABLE_FIELDS))
        if unknown:
            raise ValidationError(f"Unknown task fields: {', '.join(unknown)}")
        task = self._ctx.require_task(task_id)

        updates: dict[str, Any] = {}
        if "title" in changes:
            updates["title"] = check_title(changes["title"])
        if "description" in changes:
            updates["description"] = changes["description"]
        if "assignee_id" in changes:
            updates["assignee_id"] = changes["assignee_id"] or None
        if "priority" in changes:
            updates["priority"] = check_choice("priority", changes["priority"], PRIORITIES)
        if "recurrence" in changes:
            updates["recurrence"] = check_choice("recurrence", changes["recurrence"], RECURRENCES)
        if "tags" in changes:
            updates["tags"] = _check_tags(changes["tags"])
        if "due_date" in changes:
            updates["due_date"] = _check_due_date(changes["due_date"])
        if "metadata" in changes:
            if not isinstance(changes["metadata"], dict):
                raise ValidationError("'metadata' must be a mapping")
            updates["metadata"] = dict(changes["metadata"])
        new_order = _check_order(changes["order"]) if changes.get("order") is not None else None

        plan: Optional[MovePlan] = None
        target = changes.get("column_id")
        if target and target != task.column_id:
            plan = self._mover.plan_move(task, str(target), new_order)
        elif new_order is not None and new_order != task.order:
            updates["order"] = new_order

        actor = self._ctx.actor(performed_by)
        changed = sorted(k for k, v in updates.items() if getattr(task, k) != v)
        if changed:
            for key in changed:
                setattr(task, key, updates[key])
            self._ctx.save_task(task)
            self._ctx.history.record(task.id, "updated", performed_by=actor, metadata={"fields": changed})
            logger.info("Updated task {} fields={}", task.id, changed)
            self._ctx.emit("tasks", "task.updated", task.id, fields=changed)

        if plan is not None:
            result = self._mover.apply_move(task, plan, performed_by=actor)
            result.changed = result.changed or bool(changed)
            return result
        return MoveResult(task=task, changed=bool(changed), from_column_id=task.column_id)

    def delete_task(
        self,
        task_id: str,
        performed_by: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Task:
        task = self._ctx.require_task(task_id)
        self._ctx.container.tasks.delete(task.id)
        self._ctx.history.record(
            task.id,
            "deleted",
            performed_by=self._ctx.actor(performed_by),
            metadata={"title": task.title, **(metadata or {})},
        )
        logger.info("Deleted task {}", summarize_task(task))
        self._ctx.emit("tasks", "task.deleted", task.id, column_id=task.column_id)
        return task

    def reorder_task(self, task_id: str, new_order: int, performed_by: Optional[str] = None) -> Task:
        _check_order(new_order)
        task = self._ctx.require_task(task_id)
        if task.order == new_order:
            return task
        task.order = new_order
        self._ctx.save_task(task)
        self._ctx.history.record(
            task.id,
            "updated",
            performed_by=self._ctx.actor(performed_by),
            metadata={"reordered": True, "order": new_order},
        )
        self._ctx.emit("tasks", "task.reordered", task.id, order=new_order)
        return task

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_task(self, task_id: str) -> Task:
        return self._ctx.require_task(task_id)

    def get_all(self) -> list[Task]:
        return sorted(self._ctx.container.tasks.list(), key=sort_key)

    def get_by_column(self, column_id: str) -> list[Task]:
        return sorted(self._ctx.container.tasks.for_column(column_id), key=lambda t: (t.order, t.id))

    def get_by_status(self, status: str) -> list[Task]:
        check_choice("status", status, TASK_STATUSES)
        return [t for t in self.get_all() if t.status == status]

    def get_by_assignee(self, assignee_id: str) -> list[Task]:
        return [t for t in self.get_all() if t.assignee_id == assignee_id]

    def get_today_tasks(self) -> list[Task]:
        """Due today or sitting in the daily column, excluding done."""
        clock = self._ctx.clock
        start, end = clock.day_bounds_ms(clock.today())
        daily_ids = {c.id for c in self._ctx.container.columns.list() if c.is_daily}
        found = [
            t
            for t in self._ctx.container.tasks.list()
            if not t.is_done
            and (t.column_id in daily_ids or (t.due_date is not None and start <= t.due_date < end))
        ]
        return sorted(found, key=lambda t: (-PRIORITY_WEIGHT.get(t.priority, 0), t.order, t.id))

    def get_overdue(self) -> list[Task]:
        now = self._ctx.clock.now_ms()
        return [t for t in self.get_all() if not t.is_done and t.due_date is not None and t.due_date < now]

    def history(self, task_id: str) -> list[HistoryEntry]:
        return self._ctx.history.for_task(task_id)
