"""Error taxonomy for board operations.

Every error is raised before any repository write, so callers can treat
them as clean validation failures.
"""

from __future__ import annotations


class DaybaseError(Exception):
    """Base class for all board errors."""

    pass


class NotFoundError(DaybaseError, LookupError):
    """A referenced column, task or user does not exist."""

    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(f"{kind} not found: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id


class ValidationError(DaybaseError, ValueError):
    """Malformed input rejected before any store write."""

    pass


class DuplicateDailyColumnError(DaybaseError):
    """A second daily column was requested."""

    pass


class LockedColumnError(DaybaseError):
    """A locked column was deleted, or a move out of it was blocked."""

    pass
