from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from ..domain.models import Column, DailyRollup, HistoryEntry, Task, User


class ColumnRepository(ABC):
    @abstractmethod
    def list(self) -> list[Column]:
        raise NotImplementedError

    @abstractmethod
    def get(self, column_id: str) -> Optional[Column]:
        raise NotImplementedError

    @abstractmethod
    def upsert(self, column: Column) -> Column:
        raise NotImplementedError

    @abstractmethod
    def delete(self, column_id: str) -> bool:
        raise NotImplementedError


class TaskRepository(ABC):
    @abstractmethod
    def list(self) -> list[Task]:
        raise NotImplementedError

    @abstractmethod
    def get(self, task_id: str) -> Optional[Task]:
        raise NotImplementedError

    @abstractmethod
    def upsert(self, task: Task) -> Task:
        raise NotImplementedError

    @abstractmethod
    def delete(self, task_id: str) -> bool:
        raise NotImplementedError

    def for_column(self, column_id: str) -> list[Task]:
        return [t for t in self.list() if t.column_id == column_id]


class HistoryRepository(ABC):
    """Append-only audit log. Entries are never updated or removed."""

    @abstractmethod
    def append(self, entry: HistoryEntry) -> HistoryEntry:
        raise NotImplementedError

    @abstractmethod
    def list(self) -> list[HistoryEntry]:
        raise NotImplementedError

    def for_task(self, task_id: str) -> list[HistoryEntry]:
        return [e for e in self.list() if e.task_id == task_id]

    def list_recent(self, limit: int = 100) -> list[HistoryEntry]:
        if limit <= 0:
            return []
        return self.list()[-limit:]


class RollupRepository(ABC):
    @abstractmethod
    def list(self) -> list[DailyRollup]:
        raise NotImplementedError

    @abstractmethod
    def get(self, date: str) -> Optional[DailyRollup]:
        raise NotImplementedError

    @abstractmethod
    def increment(
        self, date: str, counter: str, amount: int = 1, updated_at: Optional[int] = None
    ) -> DailyRollup:
        """Create the row for *date* if missing, then add *amount* to *counter*."""
        raise NotImplementedError


class UserRepository(ABC):
    @abstractmethod
    def list(self) -> list[User]:
        raise NotImplementedError

    @abstractmethod
    def get(self, user_id: str) -> Optional[User]:
        raise NotImplementedError

    @abstractmethod
    def upsert(self, user: User) -> User:
        raise NotImplementedError


class ConfigRepository(ABC):
    @abstractmethod
    def load(self) -> dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def save(self, config: dict[str, Any]) -> dict[str, Any]:
        raise NotImplementedError
