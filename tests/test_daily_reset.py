from __future__ import annotations

from pathlib import Path

import pytest

from conftest import FrozenNow, make_service
from daybase.constants import FOLLOW_UP_KEY
from daybase.domain.errors import NotFoundError
from daybase.engine.daily_reset import RESET_REASON
from daybase.service import KanbanService


@pytest.fixture
def loaded(service: KanbanService, board: dict) -> dict[str, str]:
    """Daily column with one task of every kind the reset distinguishes."""
    ids = {
        "done_plain": service.create_task("Inbox zero", board["daily"]).id,
        "done_daily": service.create_task("Stretch", board["daily"], recurrence="daily").id,
        "open_daily": service.create_task("Standup", board["daily"], recurrence="daily").id,
        "open_plain": service.create_task("Write report", board["daily"]).id,
        "elsewhere": service.create_task("Backlog item", board["todo"]).id,
    }
    service.mover.mark_done(ids["done_plain"])
    service.mover.mark_done(ids["done_daily"])
    return ids


class TestResetDailyBase:
    def test_partitions_the_daily_column(self, service: KanbanService, board: dict, loaded: dict) -> None:
        report = service.reset_daily_base()

        assert sorted(report.archived) == sorted([loaded["done_plain"], loaded["done_daily"]])
        assert report.relocated == [loaded["open_plain"]]
        assert report.kept == [loaded["open_daily"]]
        assert len(report.reseeded) == 1
        assert report.skipped == []
        assert report.date == "2026-03-10"

        for task_id in report.archived:
            with pytest.raises(NotFoundError):
                service.get_task(task_id)

        relocated = service.get_task(loaded["open_plain"])
        assert relocated.column_id == board["todo"]
        assert relocated.status == "todo"
        assert service.get_task(loaded["open_daily"]).column_id == board["daily"]

        reseeded = service.get_task(report.reseeded[0])
        assert reseeded.title == "Stretch"
        assert reseeded.column_id == board["daily"]
        assert reseeded.status == "todo"

        remaining_daily = {t.id for t in service.get_by_column(board["daily"])}
        assert remaining_daily == {loaded["open_daily"], reseeded.id}

    def test_history_reasons(self, service: KanbanService, board: dict, loaded: dict) -> None:
        service.reset_daily_base()

        archived = service.get_task_history(loaded["done_plain"])[-1]
        assert archived.action == "deleted"
        assert archived.metadata["reason"] == RESET_REASON
        assert archived.metadata["archived"] is True

        moved = service.get_task_history(loaded["open_plain"])[-1]
        assert moved.action == "moved"
        assert (moved.from_column_id, moved.to_column_id) == (board["daily"], board["todo"])
        assert moved.metadata == {"reason": RESET_REASON}

    def test_second_run_is_a_no_op(self, service: KanbanService, board: dict, loaded: dict) -> None:
        service.reset_daily_base()
        snapshot = {t.id: t for t in service.get_all()}
        history_len = len(service.ctx.history.all())

        again = service.reset_daily_base()

        assert again.changed is False
        assert again.archived == again.relocated == again.reseeded == []
        assert {t.id: t for t in service.get_all()} == snapshot
        assert len(service.ctx.history.all()) == history_len

    def test_ignores_lock_policy(self, frozen: FrozenNow) -> None:
        service = make_service(frozen, {"board": {"locked_move_policy": "block"}})
        daily = service.create_column("Daily BASE", type="daily")
        todo = service.create_column("To Do")
        task = service.create_task("Carry over", daily.id)

        report = service.reset_daily_base()

        assert report.relocated == [task.id]
        assert service.get_task(task.id).column_id == todo.id

    def test_configured_backlog_column(self, frozen: FrozenNow) -> None:
        service = make_service(frozen)
        daily = service.create_column("Daily BASE", type="daily")
        service.create_column("To Do")
        later = service.create_column("Someday")
        service.container.config.save(
            {**service.container.config.load(), "board": {"backlog_column_id": later.id}}
        )
        service.reload_settings()
        task = service.create_task("Carry over", daily.id)

        service.reset_daily_base()

        assert service.get_task(task.id).column_id == later.id

    def test_without_backlog_column_tasks_stay(self, service: KanbanService) -> None:
        daily = service.create_column("Daily BASE", type="daily")
        service.create_column("Done", status_mapping="done")
        task = service.create_task("Stuck", daily.id)

        report = service.reset_daily_base()

        assert report.skipped == [task.id]
        assert service.get_task(task.id).column_id == daily.id

    def test_no_daily_column(self, service: KanbanService) -> None:
        service.create_column("To Do")
        report = service.reset_daily_base()
        assert report.changed is False
        assert service.last_reset() is None

    def test_records_last_run(self, tmp_path: Path, frozen: FrozenNow) -> None:
        service = make_service(frozen, board_dir=tmp_path)
        service.create_column("Daily BASE", type="daily")
        service.reset_daily_base()
        assert service.last_reset() == "2026-03-10"
        assert make_service(frozen, board_dir=tmp_path).last_reset() == "2026-03-10"

    def test_emits_system_event(self, service: KanbanService, board: dict, loaded: dict) -> None:
        seen: list[dict] = []
        service.bus.subscribe(seen.append, {"system"})
        service.reset_daily_base()
        assert [e["type"] for e in seen] == ["daily_reset.completed"]
        assert seen[0]["entity_id"] == board["daily"]
        assert seen[0]["payload"]["kept"] == [loaded["open_daily"]]


class TestResetAfterCompletionHook:
    def test_follow_up_is_not_seeded_twice(self, service: KanbanService, board: dict) -> None:
        task = service.create_task("Journal", board["daily"], recurrence="daily")
        result = service.mark_done(task.id)
        assert service.get_task(task.id).metadata[FOLLOW_UP_KEY] == result.follow_up_task_id

        report = service.reset_daily_base()

        assert report.archived == [task.id]
        assert report.reseeded == []
        journals = [t for t in service.get_all() if t.title == "Journal"]
        assert [t.id for t in journals] == [result.follow_up_task_id]
