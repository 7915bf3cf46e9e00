from __future__ import annotations

from typing import Any, Callable, Optional, TypeVar

from fastapi import APIRouter, HTTPException, Query

from ..domain.errors import (
    DaybaseError,
    DuplicateDailyColumnError,
    LockedColumnError,
    NotFoundError,
)
from ..engine.transitions import MoveResult
from ..service import KanbanService
from .models import (
    ActorRequest,
    CreateColumnRequest,
    CreateTaskRequest,
    CreateUserRequest,
    MoveTaskRequest,
    RecurrenceRequest,
    ReorderRequest,
    SeedRequest,
    SkipTaskRequest,
    UpdateColumnRequest,
    UpdateTaskRequest,
)

T = TypeVar("T")


def status_for(exc: DaybaseError) -> int:
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, (DuplicateDailyColumnError, LockedColumnError)):
        return 409
    return 400


def _call(fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    try:
        return fn(*args, **kwargs)
    except DaybaseError as exc:
        raise HTTPException(status_code=status_for(exc), detail=str(exc)) from exc


def _move_payload(result: MoveResult) -> dict[str, Any]:
    return {
        "task": result.task.to_dict(),
        "changed": result.changed,
        "moved": result.moved,
        "completed": result.completed,
        "warnings": list(result.warnings),
        "recurrence_task_id": result.follow_up_task_id,
    }


def _tasks_payload(tasks: list[Any]) -> dict[str, Any]:
    data = [t.to_dict() for t in tasks]
    return {"tasks": data, "total": len(data)}


def create_router(resolve_service: Callable[[Optional[str]], KanbanService]) -> APIRouter:
    """Create the board API router.

    *resolve_service* maps the optional ``project_dir`` query parameter to
    the :class:`KanbanService` for that board.
    """
    router = APIRouter(prefix="/api", tags=["board"])

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    @router.get("/columns")
    async def list_columns(project_dir: Optional[str] = Query(None)) -> dict[str, Any]:
        service = resolve_service(project_dir)
        return {"columns": [c.to_dict() for c in service.get_all_columns()]}

    @router.post("/columns", status_code=201)
    async def create_column(body: CreateColumnRequest, project_dir: Optional[str] = Query(None)) -> dict[str, Any]:
        service = resolve_service(project_dir)
        column = _call(service.create_column, **body.model_dump())
        return {"column": column.to_dict()}

    @router.get("/columns/daily")
    async def daily_column(project_dir: Optional[str] = Query(None)) -> dict[str, Any]:
        column = resolve_service(project_dir).get_daily_base_column()
        if column is None:
            raise HTTPException(status_code=404, detail="No daily column")
        return {"column": column.to_dict()}

    @router.patch("/columns/{column_id}")
    async def update_column(
        column_id: str,
        body: UpdateColumnRequest,
        project_dir: Optional[str] = Query(None),
    ) -> dict[str, Any]:
        service = resolve_service(project_dir)
        column = _call(service.update_column, column_id, **body.model_dump(exclude_unset=True))
        return {"column": column.to_dict()}

    @router.delete("/columns/{column_id}")
    async def delete_column(
        column_id: str,
        project_dir: Optional[str] = Query(None),
        performed_by: Optional[str] = Query(None),
    ) -> dict[str, Any]:
        deleted = _call(resolve_service(project_dir).delete_column, column_id, performed_by)
        return {"status": "deleted", "tasks_deleted": deleted}

    @router.post("/columns/{column_id}/reorder")
    async def reorder_column(
        column_id: str,
        body: ReorderRequest,
        project_dir: Optional[str] = Query(None),
    ) -> dict[str, Any]:
        column = _call(resolve_service(project_dir).reorder_column, column_id, body.new_order)
        return {"column": column.to_dict()}

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    @router.get("/tasks")
    async def list_tasks(
        project_dir: Optional[str] = Query(None),
        column_id: Optional[str] = Query(None),
        status: Optional[str] = Query(None),
        assignee_id: Optional[str] = Query(None),
    ) -> dict[str, Any]:
        service = resolve_service(project_dir)
        if column_id:
            tasks = service.get_by_column(column_id)
        elif status:
            tasks = _call(service.get_by_status, status)
        else:
            tasks = service.get_all()
        if status:
            tasks = [t for t in tasks if t.status == status]
        if assignee_id:
            tasks = [t for t in tasks if t.assignee_id == assignee_id]
        return _tasks_payload(tasks)

    @router.post("/tasks", status_code=201)
    async def create_task(body: CreateTaskRequest, project_dir: Optional[str] = Query(None)) -> dict[str, Any]:
        fields = body.model_dump()
        title = fields.pop("title")
        column_id = fields.pop("column_id")
        task = _call(resolve_service(project_dir).create_task, title, column_id, **fields)
        return {"task": task.to_dict()}

    @router.get("/tasks/today")
    async def today_tasks(project_dir: Optional[str] = Query(None)) -> dict[str, Any]:
        return _tasks_payload(resolve_service(project_dir).get_today_tasks())

    @router.get("/tasks/overdue")
    async def overdue_tasks(project_dir: Optional[str] = Query(None)) -> dict[str, Any]:
        return _tasks_payload(resolve_service(project_dir).get_overdue())

    @router.get("/tasks/{task_id}")
    async def get_task(task_id: str, project_dir: Optional[str] = Query(None)) -> dict[str, Any]:
        task = _call(resolve_service(project_dir).get_task, task_id)
        return {"task": task.to_dict()}

    @router.patch("/tasks/{task_id}")
    async def update_task(
        task_id: str,
        body: UpdateTaskRequest,
        project_dir: Optional[str] = Query(None),
    ) -> dict[str, Any]:
        changes = body.model_dump(exclude_unset=True)
        performed_by = changes.pop("performed_by", None)
        task = _call(resolve_service(project_dir).update_task, task_id, changes, performed_by)
        return {"task": task.to_dict()}

    @router.delete("/tasks/{task_id}")
    async def delete_task(
        task_id: str,
        project_dir: Optional[str] = Query(None),
        performed_by: Optional[str] = Query(None),
    ) -> dict[str, str]:
        _call(resolve_service(project_dir).delete_task, task_id, performed_by)
        return {"status": "deleted"}

    @router.post("/tasks/{task_id}/move")
    async def move_task(
        task_id: str,
        body: MoveTaskRequest,
        project_dir: Optional[str] = Query(None),
    ) -> dict[str, Any]:
        service = resolve_service(project_dir)
        result = _call(service.move_task, task_id, body.target_column_id, body.new_order, body.performed_by)
        return _move_payload(result)

    @router.post("/tasks/{task_id}/reorder")
    async def reorder_task(
        task_id: str,
        body: ReorderRequest,
        project_dir: Optional[str] = Query(None),
    ) -> dict[str, Any]:
        task = _call(resolve_service(project_dir).reorder_task, task_id, body.new_order, body.performed_by)
        return {"task": task.to_dict()}

    @router.post("/tasks/{task_id}/done")
    async def mark_done(
        task_id: str,
        body: Optional[ActorRequest] = None,
        project_dir: Optional[str] = Query(None),
    ) -> dict[str, Any]:
        performed_by = body.performed_by if body else None
        result = _call(resolve_service(project_dir).mark_done, task_id, performed_by)
        return _move_payload(result)

    @router.post("/tasks/{task_id}/skip")
    async def skip_task(
        task_id: str,
        body: Optional[SkipTaskRequest] = None,
        project_dir: Optional[str] = Query(None),
    ) -> dict[str, Any]:
        body = body or SkipTaskRequest()
        task = _call(resolve_service(project_dir).skip_task, task_id, body.reason, body.performed_by)
        return {"task": task.to_dict()}

    @router.post("/tasks/{task_id}/recurrence")
    async def fire_recurrence(
        task_id: str,
        body: Optional[RecurrenceRequest] = None,
        project_dir: Optional[str] = Query(None),
    ) -> dict[str, Any]:
        body = body or RecurrenceRequest()
        service = resolve_service(project_dir)
        new_id = _call(service.handle_recurrence, task_id, body.recurrence_type, body.performed_by)
        return {"task_id": new_id}

    @router.get("/tasks/{task_id}/history")
    async def task_history(task_id: str, project_dir: Optional[str] = Query(None)) -> dict[str, Any]:
        entries = resolve_service(project_dir).get_task_history(task_id)
        return {"history": [e.to_dict() for e in entries]}

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    @router.get("/analytics/dashboard")
    async def dashboard(project_dir: Optional[str] = Query(None)) -> dict[str, Any]:
        return resolve_service(project_dir).get_dashboard_stats()

    @router.get("/analytics/weekly")
    async def weekly(project_dir: Optional[str] = Query(None)) -> dict[str, Any]:
        return {"days": resolve_service(project_dir).get_weekly_data()}

    @router.get("/analytics/priority")
    async def priority(project_dir: Optional[str] = Query(None)) -> dict[str, int]:
        return resolve_service(project_dir).get_priority_distribution()

    @router.get("/analytics/status")
    async def status(project_dir: Optional[str] = Query(None)) -> dict[str, int]:
        return resolve_service(project_dir).get_status_distribution()

    @router.get("/analytics/team")
    async def team(project_dir: Optional[str] = Query(None)) -> dict[str, Any]:
        return {"members": resolve_service(project_dir).get_team_stats()}

    @router.get("/analytics/completion")
    async def completion(project_dir: Optional[str] = Query(None)) -> dict[str, float]:
        return resolve_service(project_dir).get_completion_stats()

    @router.get("/analytics/rollups")
    async def rollups(
        project_dir: Optional[str] = Query(None),
        start: Optional[str] = Query(None),
        end: Optional[str] = Query(None),
    ) -> dict[str, Any]:
        rows = resolve_service(project_dir).get_rollups(start, end)
        return {"rollups": [r.to_dict() for r in rows]}

    # ------------------------------------------------------------------
    # Board maintenance and users
    # ------------------------------------------------------------------

    @router.get("/board")
    async def board(project_dir: Optional[str] = Query(None)) -> dict[str, Any]:
        lanes = resolve_service(project_dir).get_board()
        return {
            "columns": [
                {**lane["column"].to_dict(), "tasks": [t.to_dict() for t in lane["tasks"]]} for lane in lanes
            ]
        }

    @router.post("/board/reset-daily")
    async def reset_daily(
        body: Optional[ActorRequest] = None,
        project_dir: Optional[str] = Query(None),
    ) -> dict[str, Any]:
        performed_by = body.performed_by if body else None
        report = _call(resolve_service(project_dir).reset_daily_base, performed_by)
        return {"report": report.to_dict()}

    @router.post("/board/seed")
    async def seed(
        body: Optional[SeedRequest] = None,
        project_dir: Optional[str] = Query(None),
    ) -> dict[str, Any]:
        body = body or SeedRequest()
        result = _call(resolve_service(project_dir).seed, body.with_samples)
        if not result.get("success"):
            raise HTTPException(status_code=409, detail=result.get("message"))
        return result

    @router.get("/users")
    async def list_users(project_dir: Optional[str] = Query(None)) -> dict[str, Any]:
        return {"users": [u.to_dict() for u in resolve_service(project_dir).list_users()]}

    @router.post("/users", status_code=201)
    async def create_user(body: CreateUserRequest, project_dir: Optional[str] = Query(None)) -> dict[str, Any]:
        user = _call(resolve_service(project_dir).create_user, **body.model_dump())
        return {"user": user.to_dict()}

    return router
