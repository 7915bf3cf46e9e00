"""In-process repositories.

Records are copied on the way in and out so callers never mutate stored
state without an explicit ``upsert``, matching the file-backed behaviour.
"""

from __future__ import annotations

import copy
import threading
from typing import Any, Optional

from ..domain.models import Column, DailyRollup, HistoryEntry, Task, User, now_ms
from .file_repos import ROLLUP_COUNTERS
from .interfaces import (
    ColumnRepository,
    ConfigRepository,
    HistoryRepository,
    RollupRepository,
    TaskRepository,
    UserRepository,
)


class _MemoryCollection:
    def __init__(self) -> None:
        self._items: dict[str, Any] = {}
        self._lock = threading.RLock()

    def list(self) -> list[Any]:
        with self._lock:
            return [copy.deepcopy(item) for item in self._items.values()]

    def get(self, item_id: str) -> Optional[Any]:
        with self._lock:
            item = self._items.get(item_id)
            return copy.deepcopy(item) if item is not None else None

    def put(self, item_id: str, item: Any) -> Any:
        with self._lock:
            self._items[item_id] = copy.deepcopy(item)
        return item

    def delete(self, item_id: str) -> bool:
        with self._lock:
            return self._items.pop(item_id, None) is not None


class MemoryColumnRepository(ColumnRepository):
    def __init__(self) -> None:
        self._items = _MemoryCollection()

    def list(self) -> list[Column]:
        return self._items.list()

    def get(self, column_id: str) -> Optional[Column]:
        return self._items.get(column_id)

    def upsert(self, column: Column) -> Column:
        return self._items.put(column.id, column)

    def delete(self, column_id: str) -> bool:
        return self._items.delete(column_id)


class MemoryTaskRepository(TaskRepository):
    def __init__(self) -> None:
        self._items = _MemoryCollection()

    def list(self) -> list[Task]:
        return self._items.list()

    def get(self, task_id: str) -> Optional[Task]:
        return self._items.get(task_id)

    def upsert(self, task: Task) -> Task:
        return self._items.put(task.id, task)

    def delete(self, task_id: str) -> bool:
        return self._items.delete(task_id)


class MemoryUserRepository(UserRepository):
    def __init__(self) -> None:
        self._items = _MemoryCollection()

    def list(self) -> list[User]:
        return self._items.list()

    def get(self, user_id: str) -> Optional[User]:
        return self._items.get(user_id)

    def upsert(self, user: User) -> User:
        return self._items.put(user.id, user)


class MemoryHistoryRepository(HistoryRepository):
    def __init__(self) -> None:
        self._entries: list[HistoryEntry] = []
        self._lock = threading.RLock()

    def append(self, entry: HistoryEntry) -> HistoryEntry:
        with self._lock:
            self._entries.append(copy.deepcopy(entry))
        return entry

    def list(self) -> list[HistoryEntry]:
        with self._lock:
            return [copy.deepcopy(e) for e in self._entries]


class MemoryRollupRepository(RollupRepository):
    def __init__(self) -> None:
        self._items = _MemoryCollection()

    def list(self) -> list[DailyRollup]:
        return self._items.list()

    def get(self, date: str) -> Optional[DailyRollup]:
        return self._items.get(date)

    def increment(
        self, date: str, counter: str, amount: int = 1, updated_at: Optional[int] = None
    ) -> DailyRollup:
        if counter not in ROLLUP_COUNTERS:
            raise ValueError(f"Unknown rollup counter: {counter}")
        if amount < 0:
            raise ValueError("Rollup counters are never decremented")
        with self._items._lock:
            row = self._items.get(date) or DailyRollup(date=date)
            setattr(row, counter, getattr(row, counter) + amount)
            row.updated_at = updated_at if updated_at is not None else now_ms()
            self._items.put(date, row)
        return row


class MemoryConfigRepository(ConfigRepository):
    def __init__(self, initial: Optional[dict[str, Any]] = None) -> None:
        self._config: dict[str, Any] = copy.deepcopy(initial or {})

    def load(self) -> dict[str, Any]:
        return copy.deepcopy(self._config)

    def save(self, config: dict[str, Any]) -> dict[str, Any]:
        self._config = copy.deepcopy(config)
        return config
