from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from .errors import ValidationError


ColumnType = Literal["daily", "custom"]
TaskStatus = Literal["todo", "in_progress", "done"]
Priority = Literal["low", "medium", "high"]
Recurrence = Literal["daily", "weekly", "monthly", "none"]
HistoryAction = Literal["created", "moved", "updated", "deleted"]
UserRole = Literal["admin", "member"]

COLUMN_TYPES: tuple[str, ...] = ("daily", "custom")
TASK_STATUSES: tuple[str, ...] = ("todo", "in_progress", "done")
PRIORITIES: tuple[str, ...] = ("low", "medium", "high")
RECURRENCES: tuple[str, ...] = ("daily", "weekly", "monthly", "none")
HISTORY_ACTIONS: tuple[str, ...] = ("created", "moved", "updated", "deleted")
USER_ROLES: tuple[str, ...] = ("admin", "member")


def now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def to_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def from_ms(value: int, tz: Any = timezone.utc) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=tz)


def _id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:10]}"


def check_choice(name: str, value: Any, choices: tuple[str, ...]) -> str:
    """Return *value* as a string if it is one of *choices*, else raise."""
    if value not in choices:
        raise ValidationError(f"'{name}' must be one of {list(choices)}, got {value!r}")
    return str(value)


def check_title(value: Any) -> str:
    title = str(value or "").strip()
    if not title:
        raise ValidationError("'title' is required and must be non-empty")
    return title


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass
class Column:
    id: str = field(default_factory=lambda: _id("col"))
    title: str = ""
    order: int = 0
    type: ColumnType = "custom"
    locked: bool = False
    color: str = "#64748b"
    status_mapping: TaskStatus = "todo"
    created_at: int = field(default_factory=now_ms)
    created_by: Optional[str] = None

    @property
    def is_daily(self) -> bool:
        return self.type == "daily"

    @property
    def is_terminal(self) -> bool:
        return self.status_mapping == "done"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Column":
        column_type = str(data.get("type") or "custom")
        if column_type not in COLUMN_TYPES:
            column_type = "custom"
        mapping = str(data.get("status_mapping") or "todo")
        if mapping not in TASK_STATUSES:
            mapping = "todo"
        return cls(
            id=str(data.get("id") or _id("col")),
            title=str(data.get("title") or ""),
            order=int(data.get("order") or 0),
            type=column_type,  # type: ignore[arg-type]
            locked=bool(data.get("locked")) or column_type == "daily",
            color=str(data.get("color") or "#64748b"),
            status_mapping="todo" if column_type == "daily" else mapping,  # type: ignore[arg-type]
            created_at=int(data.get("created_at") or now_ms()),
            created_by=data.get("created_by"),
        )


@dataclass
class Task:
    id: str = field(default_factory=lambda: _id("task"))
    title: str = ""
    description: Optional[str] = None
    column_id: str = ""
    assignee_id: Optional[str] = None
    priority: Priority = "medium"
    status: TaskStatus = "todo"
    tags: list[str] = field(default_factory=list)
    order: int = 0
    due_date: Optional[int] = None
    recurrence: Recurrence = "none"

    created_at: int = field(default_factory=now_ms)
    created_by: Optional[str] = None
    updated_at: int = field(default_factory=now_ms)
    completed_at: Optional[int] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_done(self) -> bool:
        return self.status == "done"

    @property
    def is_recurring(self) -> bool:
        return self.recurrence != "none"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        payload = {k: data.get(k) for k in cls.__dataclass_fields__}
        payload["id"] = str(data.get("id") or _id("task"))
        payload["title"] = str(data.get("title") or "")
        payload["column_id"] = str(data.get("column_id") or "")
        priority = str(data.get("priority") or "medium")
        payload["priority"] = priority if priority in PRIORITIES else "medium"
        status = str(data.get("status") or "todo")
        payload["status"] = status if status in TASK_STATUSES else "todo"
        recurrence = str(data.get("recurrence") or "none")
        payload["recurrence"] = recurrence if recurrence in RECURRENCES else "none"
        payload["tags"] = [str(tag) for tag in list(data.get("tags") or [])]
        payload["order"] = int(data.get("order") or 0)
        payload["due_date"] = _optional_int(data.get("due_date"))
        payload["created_at"] = int(data.get("created_at") or now_ms())
        payload["updated_at"] = int(data.get("updated_at") or payload["created_at"])
        payload["completed_at"] = _optional_int(data.get("completed_at"))
        payload["metadata"] = dict(data.get("metadata") or {})
        return cls(**payload)


@dataclass(frozen=True)
class HistoryEntry:
    """One immutable audit row; appended per mutating task operation."""

    id: str = field(default_factory=lambda: _id("hist"))
    task_id: str = ""
    action: HistoryAction = "updated"
    from_column_id: Optional[str] = None
    to_column_id: Optional[str] = None
    performed_by: Optional[str] = None
    performed_at: int = field(default_factory=now_ms)
    metadata: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistoryEntry":
        action = str(data.get("action") or "updated")
        if action not in HISTORY_ACTIONS:
            action = "updated"
        metadata = data.get("metadata")
        performed_at = _optional_int(data.get("performed_at"))
        return cls(
            id=str(data.get("id") or _id("hist")),
            task_id=str(data.get("task_id") or ""),
            action=action,  # type: ignore[arg-type]
            from_column_id=data.get("from_column_id"),
            to_column_id=data.get("to_column_id"),
            performed_by=data.get("performed_by"),
            performed_at=performed_at if performed_at is not None else now_ms(),
            metadata=dict(metadata) if isinstance(metadata, dict) else None,
        )


@dataclass
class DailyRollup:
    date: str = ""
    tasks_created: int = 0
    tasks_completed: int = 0
    tasks_moved: int = 0
    updated_at: int = field(default_factory=now_ms)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DailyRollup":
        return cls(
            date=str(data.get("date") or ""),
            tasks_created=int(data.get("tasks_created") or 0),
            tasks_completed=int(data.get("tasks_completed") or 0),
            tasks_moved=int(data.get("tasks_moved") or 0),
            updated_at=int(data.get("updated_at") or now_ms()),
        )


@dataclass
class User:
    id: str = field(default_factory=lambda: _id("user"))
    name: str = ""
    email: str = ""
    avatar: Optional[str] = None
    role: UserRole = "member"
    created_at: int = field(default_factory=now_ms)

    @property
    def display_avatar(self) -> str:
        return self.avatar or (self.name[:1] if self.name else "?")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "User":
        role = str(data.get("role") or "member")
        return cls(
            id=str(data.get("id") or _id("user")),
            name=str(data.get("name") or ""),
            email=str(data.get("email") or ""),
            avatar=data.get("avatar"),
            role=role if role in USER_ROLES else "member",  # type: ignore[arg-type]
            created_at=int(data.get("created_at") or now_ms()),
        )
