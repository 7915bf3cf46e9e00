from __future__ import annotations

import pytest

from conftest import FrozenNow
from daybase.constants import DAY_MS
from daybase.domain.errors import NotFoundError, ValidationError
from daybase.service import KanbanService


class TestCreateTask:
    def test_defaults(self, service: KanbanService, board: dict) -> None:
        task = service.create_task("  Plan sprint  ", board["todo"])
        assert task.title == "Plan sprint"
        assert (task.priority, task.recurrence, task.status) == ("medium", "none", "todo")
        assert task.order == 0
        assert task.created_by == "system"
        assert task.completed_at is None
        assert service.create_task("Next", board["todo"]).order == 1

    def test_status_comes_from_column(self, service: KanbanService, board: dict) -> None:
        assert service.create_task("T", board["progress"]).status == "in_progress"
        done = service.create_task("T", board["done"])
        assert done.status == "done"
        assert done.completed_at == service.clock.now_ms()

    @pytest.mark.parametrize(
        "fields",
        [
            {"priority": "urgent"},
            {"recurrence": "hourly"},
            {"tags": "not-a-list"},
            {"due_date": "tomorrow"},
            {"order": 1.5},
        ],
    )
    def test_rejects_invalid_fields(self, service: KanbanService, board: dict, fields: dict) -> None:
        with pytest.raises(ValidationError):
            service.create_task("T", board["todo"], **fields)
        assert service.get_all() == []

    def test_blank_title_and_unknown_column(self, service: KanbanService, board: dict) -> None:
        with pytest.raises(ValidationError):
            service.create_task("   ", board["todo"])
        with pytest.raises(NotFoundError):
            service.create_task("T", "col-missing")
        assert service.get_today_rollup().tasks_created == 0

    def test_records_history_and_counter(self, service: KanbanService, board: dict) -> None:
        task = service.create_task("T", board["todo"], created_by="user-9")
        history = service.get_task_history(task.id)
        assert [(e.action, e.performed_by) for e in history] == [("created", "user-9")]
        assert service.get_today_rollup().tasks_created == 1


class TestUpdateTask:
    def test_changes_only_differing_fields(self, service: KanbanService, board: dict) -> None:
        task = service.create_task("T", board["todo"], priority="low")
        updated = service.update_task(task.id, {"priority": "low", "title": "Renamed", "tags": ["a", " ", "b"]})
        assert updated.title == "Renamed"
        assert updated.tags == ["a", "b"]
        last = service.get_task_history(task.id)[-1]
        assert last.metadata == {"fields": ["tags", "title"]}

    def test_updated_at_uses_board_clock(self, service: KanbanService, board: dict, frozen: FrozenNow) -> None:
        task = service.create_task("T", board["todo"])
        assert task.updated_at == task.created_at == service.clock.now_ms()

        frozen.advance(minutes=5)
        service.update_task(task.id, {"title": "Later"})
        stored = service.get_task(task.id)
        assert stored.updated_at == service.clock.now_ms()
        assert stored.updated_at == service.get_task_history(task.id)[-1].performed_at

        frozen.advance(minutes=5)
        moved = service.move_task(task.id, board["done"]).task
        assert moved.updated_at == moved.completed_at == service.clock.now_ms()
        assert service.get_today_rollup().updated_at == service.clock.now_ms()

    def test_noop_update_writes_nothing(self, service: KanbanService, board: dict) -> None:
        task = service.create_task("T", board["todo"])
        service.update_task(task.id, {"title": "T"})
        assert [e.action for e in service.get_task_history(task.id)] == ["created"]

    def test_unknown_field(self, service: KanbanService, board: dict) -> None:
        task = service.create_task("T", board["todo"])
        with pytest.raises(ValidationError):
            service.update_task(task.id, {"created_at": 0})

    def test_unknown_task(self, service: KanbanService) -> None:
        with pytest.raises(NotFoundError):
            service.update_task("task-missing", {"title": "x"})


class TestDeleteAndReorder:
    def test_delete_records_title(self, service: KanbanService, board: dict) -> None:
        task = service.create_task("Gone soon", board["todo"])
        service.delete_task(task.id, performed_by="user-1")
        with pytest.raises(NotFoundError):
            service.get_task(task.id)
        last = service.get_task_history(task.id)[-1]
        assert (last.action, last.performed_by, last.metadata) == ("deleted", "user-1", {"title": "Gone soon"})

    def test_delete_unknown(self, service: KanbanService) -> None:
        with pytest.raises(NotFoundError):
            service.delete_task("task-missing")

    def test_reorder(self, service: KanbanService, board: dict) -> None:
        first = service.create_task("A", board["todo"])
        second = service.create_task("B", board["todo"])
        service.reorder_task(first.id, 5)
        assert [t.title for t in service.get_by_column(board["todo"])] == ["B", "A"]
        assert service.get_task_history(first.id)[-1].metadata == {"reordered": True, "order": 5}
        service.reorder_task(second.id, second.order)
        assert len(service.get_task_history(second.id)) == 1

    def test_reorder_rejects_non_integer(self, service: KanbanService, board: dict) -> None:
        task = service.create_task("A", board["todo"])
        with pytest.raises(ValidationError):
            service.reorder_task(task.id, "first")  # type: ignore[arg-type]


class TestQueries:
    def test_get_all_sorts_by_due_then_priority(self, service: KanbanService, board: dict) -> None:
        now = service.clock.now_ms()
        service.create_task("undated", board["todo"], priority="high")
        service.create_task("later", board["todo"], due_date=now + 2 * DAY_MS)
        service.create_task("soon-low", board["todo"], due_date=now + DAY_MS, priority="low")
        service.create_task("soon-high", board["todo"], due_date=now + DAY_MS, priority="high")
        assert [t.title for t in service.get_all()] == ["soon-high", "soon-low", "later", "undated"]

    def test_today_tasks(self, service: KanbanService, board: dict, frozen: FrozenNow) -> None:
        now = service.clock.now_ms()
        service.create_task("daily low", board["daily"], priority="low")
        service.create_task("due today", board["todo"], due_date=now + 3_600_000, priority="high")
        service.create_task("due tomorrow", board["todo"], due_date=now + DAY_MS)
        service.create_task("done today", board["done"], due_date=now)
        assert [t.title for t in service.get_today_tasks()] == ["due today", "daily low"]

    def test_overdue(self, service: KanbanService, board: dict, frozen: FrozenNow) -> None:
        now = service.clock.now_ms()
        late = service.create_task("late", board["todo"], due_date=now + 60_000)
        service.create_task("finished late", board["done"], due_date=now + 60_000)
        service.create_task("undated", board["todo"])
        assert service.get_overdue() == []
        frozen.advance(minutes=5)
        assert [t.id for t in service.get_overdue()] == [late.id]

    def test_by_status_and_assignee(self, service: KanbanService, board: dict) -> None:
        mine = service.create_task("mine", board["progress"], assignee_id="user-1")
        service.create_task("theirs", board["progress"], assignee_id="user-2")
        service.create_task("open", board["todo"])
        assert len(service.get_by_status("in_progress")) == 2
        assert [t.id for t in service.get_by_assignee("user-1")] == [mine.id]
        with pytest.raises(ValidationError):
            service.get_by_status("blocked")

    def test_board_snapshot(self, service: KanbanService, board: dict) -> None:
        service.create_task("T", board["progress"])
        snapshot = service.get_board()
        assert [entry["column"].id for entry in snapshot] == [board[k] for k in ("daily", "todo", "progress", "done")]
        assert [t.title for t in snapshot[2]["tasks"]] == ["T"]


class TestUsers:
    def test_create_and_lookup(self, service: KanbanService) -> None:
        user = service.create_user("Sam Lee", email="sam@example.com", role="admin")
        assert service.get_user(user.id) == user
        assert [u.id for u in service.list_users()] == [user.id]
        assert user.display_avatar == "S"

    def test_invalid_role_and_missing_user(self, service: KanbanService) -> None:
        with pytest.raises(ValidationError):
            service.create_user("Sam", role="owner")
        with pytest.raises(NotFoundError):
            service.get_user("user-missing")
