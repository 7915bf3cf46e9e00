"""Append-only task history and the per-day rollup counters.

History rows are written after the record mutation they describe; rollup
increments come last and are best-effort, so a crash can only ever
under-count analytics.
"""

from __future__ import annotations

from typing import Any, Optional

from loguru import logger

from ..domain.models import HistoryEntry
from ..storage.interfaces import HistoryRepository, RollupRepository
from .clock import Clock


class HistoryLog:
    def __init__(self, repo: HistoryRepository, clock: Clock) -> None:
        self._repo = repo
        self._clock = clock

    def record(
        self,
        task_id: str,
        action: str,
        *,
        performed_by: str,
        from_column_id: Optional[str] = None,
        to_column_id: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> HistoryEntry:
        if action != "moved":
            from_column_id = None
            to_column_id = None
        entry = HistoryEntry(
            task_id=task_id,
            action=action,  # type: ignore[arg-type]
            from_column_id=from_column_id,
            to_column_id=to_column_id,
            performed_by=performed_by,
            performed_at=self._clock.now_ms(),
            metadata=metadata or None,
        )
        return self._repo.append(entry)

    def for_task(self, task_id: str) -> list[HistoryEntry]:
        return sorted(self._repo.for_task(task_id), key=lambda e: e.performed_at)

    def all(self) -> list[HistoryEntry]:
        return self._repo.list()


class RollupCounter:
    def __init__(self, repo: RollupRepository, clock: Clock) -> None:
        self._repo = repo
        self._clock = clock

    def _bump(self, counter: str) -> None:
        today = self._clock.today_iso()
        try:
            self._repo.increment(today, counter, updated_at=self._clock.now_ms())
        except Exception:
            logger.exception("Failed to increment {} for {}", counter, today)

    def created(self) -> None:
        self._bump("tasks_created")

    def completed(self) -> None:
        self._bump("tasks_completed")

    def moved(self) -> None:
        self._bump("tasks_moved")
