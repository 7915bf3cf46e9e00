"""Move/transition engine: the task status state machine.

Status is a projection of column membership. Every column carries an
explicit ``status_mapping``; a task's status is recomputed from it on every
column-changing mutation and never taken from the caller. The two narrow
exceptions are :meth:`MoveEngine.mark_done` and :meth:`MoveEngine.skip_task`,
which set status without a move.

Leaving the locked daily column is governed by ``board.locked_move_policy``:
``warn`` (default) lets the move through and reports
``left_locked_column`` in :attr:`MoveResult.warnings`; ``block`` raises
:class:`LockedColumnError` before anything is written.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import Any, Optional

from loguru import logger

from ..constants import (
    DAY_MS,
    LOCKED_MOVE_BLOCK,
    SKIP_START_OF_DAY,
    WARNING_LEFT_LOCKED_COLUMN,
)
from ..domain.errors import LockedColumnError, ValidationError
from ..domain.models import Column, Task, to_ms
from ..logging_utils import summarize_task
from .context import BoardContext


def derive_status(column: Column) -> str:
    """Status a task takes on when it sits in *column*."""
    return "todo" if column.is_daily else column.status_mapping


@dataclass
class MovePlan:
    """Validated, not yet applied, relocation of one task."""

    source: Column
    target: Column
    status: str
    order: int
    warnings: list[str] = field(default_factory=list)

    @property
    def crosses_columns(self) -> bool:
        return self.source.id != self.target.id


@dataclass
class MoveResult:
    task: Task
    changed: bool = False
    moved: bool = False
    completed: bool = False
    from_column_id: Optional[str] = None
    warnings: list[str] = field(default_factory=list)
    follow_up_task_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "task": self.task.to_dict(),
            "changed": self.changed,
            "moved": self.moved,
            "completed": self.completed,
            "from_column_id": self.from_column_id,
            "warnings": list(self.warnings),
            "follow_up_task_id": self.follow_up_task_id,
        }


class MoveEngine:
    def __init__(self, ctx: BoardContext) -> None:
        self._ctx = ctx

    # ------------------------------------------------------------------
    # Planning / applying (shared with TaskStore.update_task and the reset job)
    # ------------------------------------------------------------------

    def plan_move(
        self,
        task: Task,
        target_column_id: str,
        new_order: Optional[int] = None,
        *,
        enforce_lock: bool = True,
    ) -> MovePlan:
        if new_order is not None and not isinstance(new_order, int):
            raise ValidationError("'new_order' must be an integer")
        source = self._ctx.require_column(task.column_id)
        target = self._ctx.require_column(target_column_id)

        warnings: list[str] = []
        if source.locked and source.id != target.id and enforce_lock:
            if self._ctx.settings.locked_move_policy == LOCKED_MOVE_BLOCK:
                raise LockedColumnError(f"Task {task.id} cannot leave locked column {source.id}")
            warnings.append(WARNING_LEFT_LOCKED_COLUMN)

        if new_order is None:
            order = task.order if source.id == target.id else self._ctx.next_task_order(target.id)
        else:
            order = new_order
        return MovePlan(source=source, target=target, status=derive_status(target), order=order, warnings=warnings)

    def apply_move(
        self,
        task: Task,
        plan: MovePlan,
        *,
        performed_by: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> MoveResult:
        """Persist *plan* for *task*: record, then history, then rollups."""
        previous_status = task.status
        result = MoveResult(task=task, from_column_id=task.column_id, warnings=list(plan.warnings))
        unchanged = (
            not plan.crosses_columns
            and plan.order == task.order
            and plan.status == task.status
        )
        if unchanged:
            logger.debug("Move of {} is a no-op", task.id)
            return result

        now = self._ctx.clock.now_ms()
        task.column_id = plan.target.id
        task.status = plan.status  # type: ignore[assignment]
        task.order = plan.order
        result.completed = plan.status == "done" and previous_status != "done"
        if result.completed:
            task.completed_at = now
        elif plan.status != "done":
            task.completed_at = None
        self._ctx.save_task(task)

        actor = self._ctx.actor(performed_by)
        if plan.crosses_columns:
            self._ctx.history.record(
                task.id,
                "moved",
                performed_by=actor,
                from_column_id=plan.source.id,
                to_column_id=plan.target.id,
                metadata=metadata,
            )
        else:
            self._ctx.history.record(
                task.id,
                "updated",
                performed_by=actor,
                metadata={"reordered": True, **(metadata or {})},
            )

        if plan.crosses_columns:
            self._ctx.rollups.moved()
        if result.completed:
            self._ctx.rollups.completed()

        result.changed = True
        result.moved = plan.crosses_columns
        if WARNING_LEFT_LOCKED_COLUMN in result.warnings:
            logger.warning("Task {} left locked column {}", task.id, plan.source.id)
        logger.info("Moved task {}", summarize_task(task))
        self._ctx.emit(
            "tasks",
            "task.moved" if result.moved else "task.updated",
            task.id,
            from_column_id=plan.source.id,
            to_column_id=plan.target.id,
            status=task.status,
            completed=result.completed,
            warnings=result.warnings,
        )
        return result

    def restatus_column(
        self,
        column: Column,
        previous_mapping: str,
        performed_by: Optional[str] = None,
    ) -> list[MoveResult]:
        """Re-derive status for every task in *column* after its mapping changed."""
        status = derive_status(column)
        actor = self._ctx.actor(performed_by)
        results: list[MoveResult] = []
        for task in self._ctx.container.tasks.for_column(column.id):
            if task.status == status:
                continue
            result = MoveResult(task=task, from_column_id=column.id, changed=True)
            result.completed = status == "done"
            task.status = status  # type: ignore[assignment]
            task.completed_at = self._ctx.clock.now_ms() if result.completed else None
            self._ctx.save_task(task)
            self._ctx.history.record(
                task.id,
                "updated",
                performed_by=actor,
                metadata={"status_mapping": {"from": previous_mapping, "to": column.status_mapping}},
            )
            if result.completed:
                self._ctx.rollups.completed()
            self._ctx.emit("tasks", "task.updated", task.id, status=status, completed=result.completed)
            results.append(result)
        if results:
            logger.info("Re-derived status of {} task(s) in column {} as {}", len(results), column.id, status)
        return results

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def move_task(
        self,
        task_id: str,
        target_column_id: str,
        new_order: Optional[int] = None,
        performed_by: Optional[str] = None,
    ) -> MoveResult:
        task = self._ctx.require_task(task_id)
        plan = self.plan_move(task, target_column_id, new_order)
        return self.apply_move(task, plan, performed_by=performed_by)

    def mark_done(self, task_id: str, performed_by: Optional[str] = None) -> MoveResult:
        """Flip status to done without requiring a column move."""
        task = self._ctx.require_task(task_id)
        result = MoveResult(task=task, from_column_id=task.column_id)
        if task.status == "done":
            logger.debug("Task {} already done", task.id)
            return result

        task.status = "done"
        task.completed_at = self._ctx.clock.now_ms()
        self._ctx.save_task(task)
        self._ctx.history.record(
            task.id,
            "updated",
            performed_by=self._ctx.actor(performed_by),
            metadata={"status_changed_to": "done"},
        )
        self._ctx.rollups.completed()

        result.changed = True
        result.completed = True
        logger.info("Marked task {} done", task.id)
        self._ctx.emit("tasks", "task.completed", task.id, column_id=task.column_id)
        return result

    def skip_task(self, task_id: str, reason: Optional[str] = None, performed_by: Optional[str] = None) -> Task:
        """Postpone to tomorrow and reset to todo; the column is untouched."""
        task = self._ctx.require_task(task_id)
        task.due_date = self.tomorrow_ms()
        task.status = "todo"
        task.completed_at = None
        self._ctx.save_task(task)
        self._ctx.history.record(
            task.id,
            "updated",
            performed_by=self._ctx.actor(performed_by),
            metadata={"action": "skipped", "reason": reason},
        )
        logger.info("Skipped task {} until {}", task.id, task.due_date)
        self._ctx.emit("tasks", "task.skipped", task.id, due_date=task.due_date, reason=reason)
        return task

    def tomorrow_ms(self) -> int:
        clock = self._ctx.clock
        if self._ctx.settings.skip_alignment == SKIP_START_OF_DAY:
            tomorrow = clock.today() + timedelta(days=1)
            return to_ms(datetime.combine(tomorrow, time.min, tzinfo=clock.tz))
        return clock.now_ms() + DAY_MS
