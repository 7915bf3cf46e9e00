"""Tests for the board HTTP API."""

from __future__ import annotations

from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from conftest import FrozenNow, make_service
from daybase.server.api import create_app
from daybase.service import KanbanService


@pytest.fixture
def app(service: KanbanService):
    return create_app(enable_cors=False, service=service)


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def _column(client: AsyncClient, title: str, **extra) -> str:
    resp = await client.post("/api/columns", json={"title": title, **extra})
    assert resp.status_code == 201
    return resp.json()["column"]["id"]


async def _task(client: AsyncClient, title: str, column_id: str, **extra) -> dict:
    resp = await client.post("/api/tasks", json={"title": title, "column_id": column_id, **extra})
    assert resp.status_code == 201
    return resp.json()["task"]


@pytest.mark.anyio
class TestRoot:
    async def test_root(self, client: AsyncClient) -> None:
        resp = await client.get("/")
        assert resp.status_code == 200
        assert resp.json()["status"] == "running"


@pytest.mark.anyio
class TestColumnsAPI:
    async def test_create_list_update(self, client: AsyncClient) -> None:
        column_id = await _column(client, "To Do")
        resp = await client.patch(f"/api/columns/{column_id}", json={"title": "Backlog"})
        assert resp.status_code == 200
        assert resp.json()["column"]["title"] == "Backlog"

        resp = await client.get("/api/columns")
        assert [c["title"] for c in resp.json()["columns"]] == ["Backlog"]

    async def test_daily_column_rules(self, client: AsyncClient) -> None:
        resp = await client.get("/api/columns/daily")
        assert resp.status_code == 404

        daily_id = await _column(client, "Daily BASE", type="daily")
        resp = await client.get("/api/columns/daily")
        assert resp.json()["column"]["locked"] is True

        resp = await client.post("/api/columns", json={"title": "Again", "type": "daily"})
        assert resp.status_code == 409
        resp = await client.delete(f"/api/columns/{daily_id}")
        assert resp.status_code == 409

    async def test_invalid_mapping_is_400(self, client: AsyncClient) -> None:
        resp = await client.post("/api/columns", json={"title": "X", "status_mapping": "blocked"})
        assert resp.status_code == 400

    async def test_delete_cascades(self, client: AsyncClient) -> None:
        column_id = await _column(client, "To Do")
        await _task(client, "A", column_id)
        await _task(client, "B", column_id)
        resp = await client.delete(f"/api/columns/{column_id}")
        assert resp.json() == {"status": "deleted", "tasks_deleted": 2}
        resp = await client.get("/api/tasks")
        assert resp.json()["total"] == 0

    async def test_reorder(self, client: AsyncClient) -> None:
        first = await _column(client, "A")
        await _column(client, "B")
        resp = await client.post(f"/api/columns/{first}/reorder", json={"new_order": 9})
        assert resp.json()["column"]["order"] == 9


@pytest.mark.anyio
class TestTasksAPI:
    async def test_crud(self, client: AsyncClient) -> None:
        column_id = await _column(client, "To Do")
        task = await _task(client, "Write docs", column_id, priority="high", tags=["docs"])
        assert task["status"] == "todo"

        resp = await client.get(f"/api/tasks/{task['id']}")
        assert resp.json()["task"]["tags"] == ["docs"]

        resp = await client.patch(f"/api/tasks/{task['id']}", json={"title": "Write more docs"})
        assert resp.json()["task"]["title"] == "Write more docs"

        resp = await client.delete(f"/api/tasks/{task['id']}")
        assert resp.json() == {"status": "deleted"}
        resp = await client.get(f"/api/tasks/{task['id']}")
        assert resp.status_code == 404

        resp = await client.get(f"/api/tasks/{task['id']}/history")
        assert [e["action"] for e in resp.json()["history"]] == ["created", "updated", "deleted"]

    async def test_status_cannot_be_patched(self, client: AsyncClient) -> None:
        column_id = await _column(client, "To Do")
        task = await _task(client, "T", column_id)
        resp = await client.patch(f"/api/tasks/{task['id']}", json={"status": "done"})
        assert resp.status_code == 400

    async def test_validation_and_missing_column(self, client: AsyncClient) -> None:
        column_id = await _column(client, "To Do")
        resp = await client.post("/api/tasks", json={"title": "T", "column_id": column_id, "priority": "urgent"})
        assert resp.status_code == 400
        resp = await client.post("/api/tasks", json={"title": "T", "column_id": "col-missing"})
        assert resp.status_code == 404
        resp = await client.post("/api/tasks", json={"column_id": column_id})
        assert resp.status_code == 422

    async def test_filters(self, client: AsyncClient) -> None:
        todo = await _column(client, "To Do")
        progress = await _column(client, "Doing", status_mapping="in_progress")
        await _task(client, "A", todo, assignee_id="user-1")
        await _task(client, "B", progress, assignee_id="user-1")
        await _task(client, "C", progress)

        resp = await client.get("/api/tasks", params={"status": "in_progress"})
        assert resp.json()["total"] == 2
        resp = await client.get("/api/tasks", params={"column_id": progress, "assignee_id": "user-1"})
        assert [t["title"] for t in resp.json()["tasks"]] == ["B"]
        resp = await client.get("/api/tasks", params={"status": "blocked"})
        assert resp.status_code == 400

    async def test_move_reports_completion_and_recurrence(self, client: AsyncClient) -> None:
        todo = await _column(client, "To Do")
        done = await _column(client, "Done", status_mapping="done")
        task = await _task(client, "Weekly review", todo, recurrence="weekly")

        resp = await client.post(f"/api/tasks/{task['id']}/move", json={"target_column_id": done})

        data = resp.json()
        assert resp.status_code == 200
        assert data["completed"] is True
        assert data["moved"] is True
        assert data["task"]["status"] == "done"
        assert data["recurrence_task_id"]
        resp = await client.get(f"/api/tasks/{data['recurrence_task_id']}")
        assert resp.json()["task"]["column_id"] == todo

        again = await client.post(f"/api/tasks/{task['id']}/move", json={"target_column_id": done})
        assert again.json()["changed"] is False

    async def test_move_out_of_daily_warns(self, client: AsyncClient) -> None:
        daily = await _column(client, "Daily BASE", type="daily")
        todo = await _column(client, "To Do")
        task = await _task(client, "Focus", daily)
        resp = await client.post(f"/api/tasks/{task['id']}/move", json={"target_column_id": todo})
        assert resp.json()["warnings"] == ["left_locked_column"]

    async def test_done_skip_and_recurrence(self, client: AsyncClient) -> None:
        todo = await _column(client, "To Do")
        task = await _task(client, "T", todo)

        resp = await client.post(f"/api/tasks/{task['id']}/skip", json={"reason": "busy"})
        assert resp.json()["task"]["due_date"] is not None

        resp = await client.post(f"/api/tasks/{task['id']}/done")
        assert resp.json()["task"]["status"] == "done"
        assert resp.json()["recurrence_task_id"] is None

        resp = await client.post(f"/api/tasks/{task['id']}/recurrence", json={"recurrence_type": "daily"})
        assert resp.json()["task_id"]
        resp = await client.post(f"/api/tasks/{task['id']}/recurrence", json={"recurrence_type": "hourly"})
        assert resp.status_code == 400
        resp = await client.post("/api/tasks/task-missing/recurrence")
        assert resp.json() == {"task_id": None}

    async def test_unknown_task_is_404(self, client: AsyncClient) -> None:
        for method, path in (
            ("post", "/api/tasks/task-missing/done"),
            ("post", "/api/tasks/task-missing/skip"),
            ("delete", "/api/tasks/task-missing"),
        ):
            resp = await getattr(client, method)(path)
            assert resp.status_code == 404, path


@pytest.mark.anyio
class TestBoardAPI:
    async def test_seed_then_board(self, client: AsyncClient) -> None:
        resp = await client.post("/api/board/seed")
        assert resp.status_code == 200
        assert resp.json()["success"] is True

        resp = await client.get("/api/board")
        lanes = resp.json()["columns"]
        assert lanes[0]["type"] == "daily"
        assert sum(len(lane["tasks"]) for lane in lanes) == 7

        resp = await client.post("/api/board/seed")
        assert resp.status_code == 409

    async def test_reset_daily(self, client: AsyncClient) -> None:
        await client.post("/api/board/seed")
        resp = await client.post("/api/board/reset-daily")
        report = resp.json()["report"]
        assert len(report["archived"]) == 1
        assert len(report["reseeded"]) == 1
        assert len(report["kept"]) == 2

    async def test_analytics(self, client: AsyncClient) -> None:
        await client.post("/api/board/seed", json={"with_samples": True})

        dashboard = (await client.get("/api/analytics/dashboard")).json()
        assert dashboard["total_tasks"] == 7
        assert dashboard["tasks_completed"] == 2
        assert dashboard["streak"] == 1

        weekly = (await client.get("/api/analytics/weekly")).json()["days"]
        assert len(weekly) == 7
        assert weekly[-1]["created"] == 7

        assert sum((await client.get("/api/analytics/priority")).json().values()) == 7
        assert (await client.get("/api/analytics/status")).json()["in_progress"] == 1
        members = (await client.get("/api/analytics/team")).json()["members"]
        assert [m["name"] for m in members] == ["Alex Rivera"]
        assert set((await client.get("/api/analytics/completion")).json()) == {
            "avg_completion_time",
            "fastest_completion",
            "slowest_completion",
        }
        rollups = (await client.get("/api/analytics/rollups", params={"start": "2026-03-10"})).json()["rollups"]
        assert [r["date"] for r in rollups] == ["2026-03-10"]

    async def test_users(self, client: AsyncClient) -> None:
        resp = await client.post("/api/users", json={"name": "Sam"})
        assert resp.status_code == 201
        resp = await client.get("/api/users")
        assert [u["name"] for u in resp.json()["users"]] == ["Sam"]
        resp = await client.post("/api/users", json={"name": "Sam", "role": "owner"})
        assert resp.status_code == 400


@pytest.mark.anyio
class TestProjectDirectory:
    async def test_boards_are_resolved_per_directory(self, tmp_path: Path, frozen: FrozenNow) -> None:
        first = tmp_path / "one"
        second = tmp_path / "two"
        make_service(frozen, board_dir=first).create_column("Only in one")
        app = create_app(project_dir=second, enable_cors=False)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            resp = await client.get("/api/columns")
            assert resp.json()["columns"] == []
            resp = await client.get("/api/columns", params={"project_dir": str(first)})
            assert [c["title"] for c in resp.json()["columns"]] == ["Only in one"]

        assert (second / ".daybase" / "columns.yaml").exists()
