from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from loguru import logger

from ..constants import FOLLOW_UP_KEY
from ..domain.models import Task
from .columns import ColumnStore
from .context import BoardContext
from .recurrence import RecurrenceEngine
from .tasks import TaskStore
from .transitions import MoveEngine

RESET_REASON = "daily_reset"


@dataclass
class ResetReport:
    archived: list[str] = field(default_factory=list)
    relocated: list[str] = field(default_factory=list)
    reseeded: list[str] = field(default_factory=list)
    kept: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    date: Optional[str] = None

    @property
    def changed(self) -> bool:
        return bool(self.archived or self.relocated or self.reseeded)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class DailyResetJob:
    """Clears the daily column at the start of a new day.

    Done work is archived (deleted; daily-recurring tasks are reseeded
    first), daily-recurring incomplete tasks stay, and everything else goes
    back to the backlog column with status ``todo``. Incomplete work is
    never deleted, so running the job twice in a day changes nothing the
    second time.
    """

    def __init__(
        self,
        ctx: BoardContext,
        columns: ColumnStore,
        tasks: TaskStore,
        mover: MoveEngine,
        recurrence: RecurrenceEngine,
    ) -> None:
        self._ctx = ctx
        self._columns = columns
        self._tasks = tasks
        self._mover = mover
        self._recurrence = recurrence

    def reset_daily_base(self, performed_by: Optional[str] = None) -> ResetReport:
        report = ResetReport(date=self._ctx.clock.today_iso())
        daily = self._columns.get_daily_base_column()
        if daily is None:
            logger.info("No daily column; nothing to reset")
            return report

        backlog = self._columns.get_backlog_column(self._ctx.settings.backlog_column_id)
        for task in self._tasks.get_by_column(daily.id):
            if task.is_done:
                self._archive(task, report, performed_by)
            elif task.recurrence == "daily":
                report.kept.append(task.id)
            elif backlog is None:
                report.skipped.append(task.id)
            else:
                plan = self._mover.plan_move(task, backlog.id, enforce_lock=False)
                self._mover.apply_move(task, plan, performed_by=performed_by, metadata={"reason": RESET_REASON})
                report.relocated.append(task.id)

        if report.skipped:
            logger.warning(
                "No backlog column for daily reset; left {} unfinished task(s) in {}",
                len(report.skipped),
                daily.id,
            )
        self._record_run(report.date)
        logger.info(
            "Daily reset: archived={} relocated={} reseeded={} kept={}",
            len(report.archived),
            len(report.relocated),
            len(report.reseeded),
            len(report.kept),
        )
        self._ctx.emit("system", "daily_reset.completed", daily.id, **report.to_dict())
        return report

    def _archive(self, task: Task, report: ResetReport, performed_by: Optional[str]) -> None:
        if task.recurrence == "daily" and not task.metadata.get(FOLLOW_UP_KEY):
            new_id = self._recurrence.handle_recurrence(task.id, "daily", performed_by=performed_by)
            if new_id:
                report.reseeded.append(new_id)
        self._tasks.delete_task(
            task.id,
            performed_by=performed_by,
            metadata={"reason": RESET_REASON, "archived": True},
        )
        report.archived.append(task.id)

    def _record_run(self, day: Optional[str]) -> None:
        repo = self._ctx.container.config
        config = repo.load()
        section = config.get("daily_reset")
        if not isinstance(section, dict):
            section = {}
        section["last_run"] = day
        config["daily_reset"] = section
        repo.save(config)
