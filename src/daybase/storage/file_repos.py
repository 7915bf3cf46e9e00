from __future__ import annotations

import json
import os
import threading
from collections import deque
from pathlib import Path
from typing import Any, Callable, Generic, Optional, TypeVar

import yaml
from filelock import FileLock

from ..constants import SCHEMA_VERSION
from ..domain.models import Column, DailyRollup, HistoryEntry, Task, User, now_ms
from .interfaces import (
    ColumnRepository,
    ConfigRepository,
    HistoryRepository,
    RollupRepository,
    TaskRepository,
    UserRepository,
)


T = TypeVar("T")

ROLLUP_COUNTERS = ("tasks_created", "tasks_completed", "tasks_moved")


def _write_yaml(path: Path, payload: Any) -> None:
    """Write-tmp-then-replace so readers never see a half-written file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(f"{path.suffix}.tmp")
    with tmp_path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(payload, handle, sort_keys=False)
        handle.flush()
        os.fsync(handle.fileno())
    os.replace(tmp_path, path)


class _YamlCollectionRepo(Generic[T]):
    def __init__(
        self,
        path: Path,
        lock_path: Path,
        key: str,
        loader: Callable[[dict[str, Any]], T],
        dumper: Callable[[T], dict[str, Any]],
    ) -> None:
        self._path = path
        self._lock = FileLock(str(lock_path))
        self._thread_lock = threading.RLock()
        self._key = key
        self._loader = loader
        self._dumper = dumper

    def _load(self) -> list[T]:
        if not self._path.exists():
            return []
        raw = yaml.safe_load(self._path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            return []
        items = raw.get(self._key, [])
        if not isinstance(items, list):
            return []
        out: list[T] = []
        for item in items:
            if isinstance(item, dict):
                out.append(self._loader(item))
        return out

    def _save(self, items: list[T]) -> None:
        payload = {"version": SCHEMA_VERSION, self._key: [self._dumper(item) for item in items]}
        _write_yaml(self._path, payload)

    def list(self) -> list[T]:
        with self._thread_lock:
            with self._lock:
                return self._load()

    def find(self, predicate: Callable[[T], bool]) -> Optional[T]:
        for item in self.list():
            if predicate(item):
                return item
        return None

    def upsert(self, item: T, key: Callable[[T], str]) -> T:
        with self._thread_lock:
            with self._lock:
                items = self._load()
                for idx, existing in enumerate(items):
                    if key(existing) == key(item):
                        items[idx] = item
                        self._save(items)
                        return item
                items.append(item)
                self._save(items)
        return item

    def delete(self, item_id: str, key: Callable[[T], str]) -> bool:
        with self._thread_lock:
            with self._lock:
                items = self._load()
                keep = [i for i in items if key(i) != item_id]
                if len(keep) == len(items):
                    return False
                self._save(keep)
        return True


class FileColumnRepository(ColumnRepository):
    def __init__(self, path: Path, lock_path: Path) -> None:
        self._repo = _YamlCollectionRepo[Column](
            path,
            lock_path,
            "columns",
            loader=Column.from_dict,
            dumper=lambda c: c.to_dict(),
        )

    def list(self) -> list[Column]:
        return self._repo.list()

    def get(self, column_id: str) -> Optional[Column]:
        return self._repo.find(lambda c: c.id == column_id)

    def upsert(self, column: Column) -> Column:
        return self._repo.upsert(column, key=lambda c: c.id)

    def delete(self, column_id: str) -> bool:
        return self._repo.delete(column_id, key=lambda c: c.id)


class FileTaskRepository(TaskRepository):
    def __init__(self, path: Path, lock_path: Path) -> None:
        self._repo = _YamlCollectionRepo[Task](
            path,
            lock_path,
            "tasks",
            loader=Task.from_dict,
            dumper=lambda t: t.to_dict(),
        )

    def list(self) -> list[Task]:
        return self._repo.list()

    def get(self, task_id: str) -> Optional[Task]:
        return self._repo.find(lambda t: t.id == task_id)

    def upsert(self, task: Task) -> Task:
        return self._repo.upsert(task, key=lambda t: t.id)

    def delete(self, task_id: str) -> bool:
        return self._repo.delete(task_id, key=lambda t: t.id)


class FileUserRepository(UserRepository):
    def __init__(self, path: Path, lock_path: Path) -> None:
        self._repo = _YamlCollectionRepo[User](
            path,
            lock_path,
            "users",
            loader=User.from_dict,
            dumper=lambda u: u.to_dict(),
        )

    def list(self) -> list[User]:
        return self._repo.list()

    def get(self, user_id: str) -> Optional[User]:
        return self._repo.find(lambda u: u.id == user_id)

    def upsert(self, user: User) -> User:
        return self._repo.upsert(user, key=lambda u: u.id)


class FileRollupRepository(RollupRepository):
    def __init__(self, path: Path, lock_path: Path) -> None:
        self._repo = _YamlCollectionRepo[DailyRollup](
            path,
            lock_path,
            "rollups",
            loader=DailyRollup.from_dict,
            dumper=lambda r: r.to_dict(),
        )

    def list(self) -> list[DailyRollup]:
        return self._repo.list()

    def get(self, date: str) -> Optional[DailyRollup]:
        return self._repo.find(lambda r: r.date == date)

    def increment(
        self, date: str, counter: str, amount: int = 1, updated_at: Optional[int] = None
    ) -> DailyRollup:
        if counter not in ROLLUP_COUNTERS:
            raise ValueError(f"Unknown rollup counter: {counter}")
        if amount < 0:
            raise ValueError("Rollup counters are never decremented")
        with self._repo._thread_lock:
            with self._repo._lock:
                rollups = self._repo._load()
                row = next((r for r in rollups if r.date == date), None)
                if row is None:
                    row = DailyRollup(date=date)
                    rollups.append(row)
                setattr(row, counter, getattr(row, counter) + amount)
                row.updated_at = updated_at if updated_at is not None else now_ms()
                self._repo._save(rollups)
        return row


class FileHistoryRepository(HistoryRepository):
    def __init__(self, path: Path, lock_path: Path) -> None:
        self._path = path
        self._lock = FileLock(str(lock_path))
        self._thread_lock = threading.RLock()

    def append(self, entry: HistoryEntry) -> HistoryEntry:
        with self._thread_lock:
            with self._lock:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                with self._path.open("a", encoding="utf-8") as handle:
                    handle.write(json.dumps(entry.to_dict()) + "\n")
                    handle.flush()
                    os.fsync(handle.fileno())
        return entry

    def _read(self, lines: Any) -> list[HistoryEntry]:
        entries: list[HistoryEntry] = []
        for line in lines:
            try:
                parsed = json.loads(line)
            except json.JSONDecodeError:
                continue
            if isinstance(parsed, dict):
                entries.append(HistoryEntry.from_dict(parsed))
        return entries

    def list(self) -> list[HistoryEntry]:
        if not self._path.exists():
            return []
        with self._thread_lock:
            with self._lock:
                with self._path.open("r", encoding="utf-8") as handle:
                    return self._read(handle)

    def list_recent(self, limit: int = 100) -> list[HistoryEntry]:
        if limit <= 0 or not self._path.exists():
            return []
        with self._thread_lock:
            with self._lock:
                with self._path.open("r", encoding="utf-8") as handle:
                    selected = list(deque(handle, maxlen=limit))
        return self._read(selected)


class FileConfigRepository(ConfigRepository):
    def __init__(self, path: Path, lock_path: Path) -> None:
        self._path = path
        self._lock = FileLock(str(lock_path))
        self._thread_lock = threading.RLock()

    def load(self) -> dict[str, Any]:
        with self._thread_lock:
            with self._lock:
                if not self._path.exists():
                    return {}
                raw = yaml.safe_load(self._path.read_text(encoding="utf-8"))
                return raw if isinstance(raw, dict) else {}

    def save(self, config: dict[str, Any]) -> dict[str, Any]:
        with self._thread_lock:
            with self._lock:
                _write_yaml(self._path, config)
        return config
