"""Pydantic request bodies for the board API."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class CreateColumnRequest(BaseModel):
    title: str
    color: Optional[str] = None
    type: str = "custom"
    status_mapping: Optional[str] = None
    created_by: Optional[str] = None


class UpdateColumnRequest(BaseModel):
    title: Optional[str] = None
    color: Optional[str] = None
    order: Optional[int] = None
    status_mapping: Optional[str] = None


class ReorderRequest(BaseModel):
    new_order: int
    performed_by: Optional[str] = None


class CreateTaskRequest(BaseModel):
    title: str
    column_id: str
    description: Optional[str] = None
    assignee_id: Optional[str] = None
    priority: str = "medium"
    tags: list[str] = Field(default_factory=list)
    due_date: Optional[int] = None
    recurrence: str = "none"
    order: Optional[int] = None
    created_by: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class UpdateTaskRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    assignee_id: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    tags: Optional[list[str]] = None
    due_date: Optional[int] = None
    recurrence: Optional[str] = None
    order: Optional[int] = None
    column_id: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
    performed_by: Optional[str] = None


class MoveTaskRequest(BaseModel):
    target_column_id: str
    new_order: Optional[int] = None
    performed_by: Optional[str] = None


class ActorRequest(BaseModel):
    performed_by: Optional[str] = None


class SkipTaskRequest(BaseModel):
    reason: Optional[str] = None
    performed_by: Optional[str] = None


class RecurrenceRequest(BaseModel):
    recurrence_type: Optional[str] = None
    performed_by: Optional[str] = None


class SeedRequest(BaseModel):
    with_samples: bool = True


class CreateUserRequest(BaseModel):
    name: str
    email: str = ""
    avatar: Optional[str] = None
    role: str = "member"
