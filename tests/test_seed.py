from __future__ import annotations

from daybase.engine.seed import DEFAULT_COLUMNS, SAMPLE_TASKS
from daybase.service import KanbanService


class TestSeed:
    def test_fresh_board(self, service: KanbanService) -> None:
        result = service.seed()

        assert result["success"] is True
        columns = service.get_all_columns()
        assert [c.title for c in columns] == [title for _, title, *_ in DEFAULT_COLUMNS]
        daily = service.get_daily_base_column()
        assert daily is not None and daily.locked
        assert len(service.get_all()) == len(SAMPLE_TASKS)
        assert [u.name for u in service.list_users()] == ["Alex Rivera"]
        assert all(t.assignee_id == result["user_id"] for t in service.get_all())

    def test_sample_statuses_follow_columns(self, service: KanbanService) -> None:
        result = service.seed()
        ids = result["column_ids"]
        by_title = {t.title: t for t in service.get_all()}
        assert by_title["Email cleanup"].status == "done"
        assert by_title["Email cleanup"].column_id == ids["daily"]
        assert by_title["Feature: Dark mode"].status == "in_progress"
        assert by_title["Setup CI/CD"].status == "done"
        assert service.get_today_rollup().tasks_completed == 1

    def test_without_samples(self, service: KanbanService) -> None:
        result = service.seed(with_samples=False)
        assert result["task_ids"] == []
        assert service.get_all() == []
        assert len(service.get_all_columns()) == len(DEFAULT_COLUMNS)

    def test_refuses_populated_board(self, service: KanbanService) -> None:
        service.create_column("Mine")
        result = service.seed()
        assert result["success"] is False
        assert [c.title for c in service.get_all_columns()] == ["Mine"]
        assert service.list_users() == []
