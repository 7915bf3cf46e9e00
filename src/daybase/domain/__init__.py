from .errors import (
    DaybaseError,
    DuplicateDailyColumnError,
    LockedColumnError,
    NotFoundError,
    ValidationError,
)
from .models import Column, DailyRollup, HistoryEntry, Task, User

__all__ = [
    "Column",
    "Task",
    "HistoryEntry",
    "DailyRollup",
    "User",
    "DaybaseError",
    "NotFoundError",
    "ValidationError",
    "DuplicateDailyColumnError",
    "LockedColumnError",
]
