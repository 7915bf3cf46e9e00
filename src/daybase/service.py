"""Board facade: one object wiring every engine for a :class:`Container`."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from loguru import logger

from .config import BoardSettings, get_last_reset
from .constants import FOLLOW_UP_KEY
from .domain.errors import NotFoundError
from .domain.models import USER_ROLES, Column, DailyRollup, HistoryEntry, Task, User, check_choice, check_title
from .engine.analytics import AnalyticsAggregator
from .engine.clock import Clock
from .engine.columns import ColumnStore
from .engine.context import BoardContext
from .engine.daily_reset import DailyResetJob, ResetReport
from .engine.recurrence import RecurrenceEngine
from .engine.seed import seed_board
from .engine.tasks import TaskStore
from .engine.transitions import MoveEngine, MoveResult
from .events.bus import EventBus
from .storage.container import Container


class KanbanService:
    """Operation surface for one board.

    Engines stay free of caller-side effects; this facade owns them. With
    ``board.recur_on_complete`` enabled, completing a recurring task (by
    moving it into a done-mapped column, through a ``column_id`` change in
    :meth:`update_task` or through :meth:`mark_done`)
    immediately creates its next instance and reports the new id on the
    returned :class:`MoveResult`.
    """

    def __init__(
        self,
        container: Container,
        bus: Optional[EventBus] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.container = container
        self.bus = bus or EventBus(container.board_id)
        settings = BoardSettings.from_config(container.config.load())
        self.clock = clock or Clock(settings.tz)
        self.ctx = BoardContext(container, self.bus, self.clock, settings)

        self.mover = MoveEngine(self.ctx)
        self.tasks = TaskStore(self.ctx, self.mover)
        self.columns = ColumnStore(self.ctx, self.tasks, self.mover)
        self.recurrence = RecurrenceEngine(self.ctx, self.tasks)
        self.analytics = AnalyticsAggregator(self.ctx)
        self.daily_reset = DailyResetJob(self.ctx, self.columns, self.tasks, self.mover, self.recurrence)

    @classmethod
    def for_directory(cls, board_dir: Path, **kwargs: Any) -> "KanbanService":
        return cls(Container.for_directory(Path(board_dir)), **kwargs)

    @classmethod
    def in_memory(cls, config: Optional[dict[str, Any]] = None, **kwargs: Any) -> "KanbanService":
        return cls(Container.in_memory(config), **kwargs)

    @property
    def settings(self) -> BoardSettings:
        return self.ctx.settings

    def reload_settings(self) -> BoardSettings:
        self.ctx.settings = BoardSettings.from_config(self.container.config.load())
        return self.ctx.settings

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    def create_column(
        self,
        title: str,
        color: Optional[str] = None,
        type: str = "custom",
        status_mapping: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> Column:
        return self.columns.create_column(title, color, type, status_mapping, created_by)

    def update_column(self, column_id: str, **changes: Any) -> Column:
        return self.columns.update_column(column_id, **changes)

    def delete_column(self, column_id: str, performed_by: Optional[str] = None) -> int:
        return self.columns.delete_column(column_id, performed_by)

    def reorder_column(self, column_id: str, new_order: int) -> Column:
        return self.columns.reorder_column(column_id, new_order)

    def get_column(self, column_id: str) -> Column:
        return self.columns.get_column(column_id)

    def get_all_columns(self) -> list[Column]:
        return self.columns.get_all_columns()

    def get_daily_base_column(self) -> Optional[Column]:
        return self.columns.get_daily_base_column()

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def create_task(self, title: str, column_id: str, **fields: Any) -> Task:
        return self.tasks.create_task(title, column_id, **fields)

    def update_task(self, task_id: str, changes: dict[str, Any], performed_by: Optional[str] = None) -> Task:
        result = self.tasks.update_task(task_id, changes, performed_by)
        return self._after_completion(result, performed_by).task

    def move_task(
        self,
        task_id: str,
        target_column_id: str,
        new_order: Optional[int] = None,
        performed_by: Optional[str] = None,
    ) -> MoveResult:
        result = self.mover.move_task(task_id, target_column_id, new_order, performed_by)
        return self._after_completion(result, performed_by)

    def mark_done(self, task_id: str, performed_by: Optional[str] = None) -> MoveResult:
        result = self.mover.mark_done(task_id, performed_by)
        return self._after_completion(result, performed_by)

    def skip_task(self, task_id: str, reason: Optional[str] = None, performed_by: Optional[str] = None) -> Task:
        return self.mover.skip_task(task_id, reason, performed_by)

    def delete_task(self, task_id: str, performed_by: Optional[str] = None) -> Task:
        return self.tasks.delete_task(task_id, performed_by)

    def reorder_task(self, task_id: str, new_order: int, performed_by: Optional[str] = None) -> Task:
        return self.tasks.reorder_task(task_id, new_order, performed_by)

    def handle_recurrence(
        self,
        task_id: str,
        recurrence_type: Optional[str] = None,
        performed_by: Optional[str] = None,
    ) -> Optional[str]:
        return self.recurrence.handle_recurrence(task_id, recurrence_type, performed_by)

    def get_task(self, task_id: str) -> Task:
        return self.tasks.get_task(task_id)

    def get_all(self) -> list[Task]:
        return self.tasks.get_all()

    def get_by_column(self, column_id: str) -> list[Task]:
        return self.tasks.get_by_column(column_id)

    def get_today_tasks(self) -> list[Task]:
        return self.tasks.get_today_tasks()

    def get_by_status(self, status: str) -> list[Task]:
        return self.tasks.get_by_status(status)

    def get_by_assignee(self, assignee_id: str) -> list[Task]:
        return self.tasks.get_by_assignee(assignee_id)

    def get_overdue(self) -> list[Task]:
        return self.tasks.get_overdue()

    def get_task_history(self, task_id: str) -> list[HistoryEntry]:
        return self.tasks.history(task_id)

    def get_board(self) -> list[dict[str, Any]]:
        """Columns in display order, each with its tasks."""
        return [
            {"column": column, "tasks": self.tasks.get_by_column(column.id)}
            for column in self.columns.get_all_columns()
        ]

    def _after_completion(self, result: MoveResult, performed_by: Optional[str]) -> MoveResult:
        if not (result.completed and self.settings.recur_on_complete and result.task.is_recurring):
            return result
        follow_up = self.recurrence.handle_recurrence(
            result.task.id,
            performed_by=performed_by,
            column_id=self._follow_up_column(result),
        )
        if follow_up:
            task = self.container.tasks.get(result.task.id)
            if task is not None:
                task.metadata[FOLLOW_UP_KEY] = follow_up
                self.ctx.save_task(task)
                result.task = task
            result.follow_up_task_id = follow_up
        return result

    def _follow_up_column(self, result: MoveResult) -> Optional[str]:
        """A todo column for the next instance when the finished one sits in a done column."""
        current = self.container.columns.get(result.task.column_id)
        if current is None or not current.is_terminal:
            return None
        origin = self.container.columns.get(result.from_column_id) if result.from_column_id else None
        if origin is not None and origin.status_mapping == "todo":
            return origin.id
        backlog = self.columns.get_backlog_column(self.settings.backlog_column_id)
        return backlog.id if backlog else None

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    def get_dashboard_stats(self) -> dict[str, Any]:
        return self.analytics.get_dashboard_stats()

    def get_weekly_data(self) -> list[dict[str, Any]]:
        return self.analytics.get_weekly_data()

    def get_priority_distribution(self) -> dict[str, int]:
        return self.analytics.get_priority_distribution()

    def get_status_distribution(self) -> dict[str, int]:
        return self.analytics.get_status_distribution()

    def get_team_stats(self) -> list[dict[str, Any]]:
        return self.analytics.get_team_stats()

    def get_completion_stats(self) -> dict[str, float]:
        return self.analytics.get_completion_stats()

    def get_rollups(self, start: Optional[str] = None, end: Optional[str] = None) -> list[DailyRollup]:
        if start or end:
            return self.analytics.get_rollups_between(start or "0000-00-00", end or "9999-12-31")
        return self.analytics.get_rollups()

    def get_today_rollup(self) -> DailyRollup:
        return self.analytics.get_today_rollup()

    # ------------------------------------------------------------------
    # Board maintenance and users
    # ------------------------------------------------------------------

    def reset_daily_base(self, performed_by: Optional[str] = None) -> ResetReport:
        return self.daily_reset.reset_daily_base(performed_by)

    def last_reset(self) -> Optional[str]:
        return get_last_reset(self.container.config.load())

    def seed(self, with_samples: bool = True) -> dict[str, Any]:
        return seed_board(self.ctx, self.columns, self.tasks, self.mover, with_samples)

    def create_user(self, name: str, email: str = "", avatar: Optional[str] = None, role: str = "member") -> User:
        user = User(
            name=check_title(name),
            email=email,
            avatar=avatar,
            role=check_choice("role", role, USER_ROLES),  # type: ignore[arg-type]
            created_at=self.clock.now_ms(),
        )
        self.container.users.upsert(user)
        logger.info("Created user {} ({})", user.id, user.name)
        return user

    def list_users(self) -> list[User]:
        return sorted(self.container.users.list(), key=lambda u: (u.created_at, u.id))

    def get_user(self, user_id: str) -> User:
        user = self.container.users.get(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user
