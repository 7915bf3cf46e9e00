"""Shared wiring handed to every engine component."""

from __future__ import annotations

from typing import Any, Optional

from ..config import BoardSettings
from ..constants import SYSTEM_USER
from ..domain.errors import NotFoundError
from ..domain.models import Column, Task
from ..events.bus import EventBus
from ..storage.container import Container
from .clock import Clock
from .history import HistoryLog, RollupCounter


class BoardContext:
    def __init__(
        self,
        container: Container,
        bus: EventBus,
        clock: Clock,
        settings: Optional[BoardSettings] = None,
    ) -> None:
        self.container = container
        self.bus = bus
        self.clock = clock
        self.settings = settings or BoardSettings()
        self.history = HistoryLog(container.history, clock)
        self.rollups = RollupCounter(container.rollups, clock)

    def actor(self, performed_by: Optional[str]) -> str:
        return performed_by or self.settings.default_user or SYSTEM_USER

    def require_column(self, column_id: str) -> Column:
        column = self.container.columns.get(column_id)
        if column is None:
            raise NotFoundError("Column", column_id)
        return column

    def require_task(self, task_id: str) -> Task:
        task = self.container.tasks.get(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    def save_task(self, task: Task) -> Task:
        """Persist an existing task, stamping ``updated_at`` in board time."""
        task.updated_at = self.clock.now_ms()
        return self.container.tasks.upsert(task)

    def next_task_order(self, column_id: str) -> int:
        siblings = self.container.tasks.for_column(column_id)
        return max((t.order for t in siblings), default=-1) + 1

    def emit(self, channel: str, event_type: str, entity_id: str, **payload: Any) -> None:
        self.bus.emit(channel=channel, event_type=event_type, entity_id=entity_id, payload=payload)
