from __future__ import annotations

import dataclasses

import pytest

from daybase.config import BoardSettings, get_last_reset
from daybase.domain import Column, DailyRollup, HistoryEntry, Task, User, ValidationError
from daybase.domain.models import check_choice, check_title


class TestColumnModel:
    def test_from_dict_forces_daily_column_locked_and_todo(self) -> None:
        column = Column.from_dict({"id": "col-1", "title": "Daily", "type": "daily", "status_mapping": "done"})
        assert column.locked is True
        assert column.status_mapping == "todo"
        assert column.is_daily

    def test_from_dict_defaults_unknown_values(self) -> None:
        column = Column.from_dict({"title": "X", "type": "weird", "status_mapping": "blocked"})
        assert column.type == "custom"
        assert column.status_mapping == "todo"
        assert column.id.startswith("col-")

    def test_terminal_follows_mapping(self) -> None:
        assert Column(title="Done", status_mapping="done").is_terminal
        assert not Column(title="Doing", status_mapping="in_progress").is_terminal


class TestTaskModel:
    def test_round_trip_keeps_fields(self) -> None:
        task = Task(
            title="Write",
            column_id="col-1",
            priority="high",
            tags=["a", "b"],
            due_date=1_700_000_000_000,
            recurrence="weekly",
            metadata={"k": "v"},
        )
        again = Task.from_dict(task.to_dict())
        assert again == task

    def test_from_dict_sanitizes_enums_and_numbers(self) -> None:
        task = Task.from_dict(
            {"title": "T", "priority": "urgent", "status": "blocked", "recurrence": "hourly", "due_date": "soon"}
        )
        assert task.priority == "medium"
        assert task.status == "todo"
        assert task.recurrence == "none"
        assert task.due_date is None

    def test_flags(self) -> None:
        assert Task(status="done").is_done
        assert Task(recurrence="daily").is_recurring
        assert not Task().is_recurring


class TestRecords:
    def test_history_entry_is_frozen(self) -> None:
        entry = HistoryEntry(task_id="task-1", action="moved")
        with pytest.raises(dataclasses.FrozenInstanceError):
            entry.action = "deleted"  # type: ignore[misc]

    def test_history_unknown_action_falls_back(self) -> None:
        entry = HistoryEntry.from_dict({"task_id": "t", "action": "exploded", "metadata": "nope"})
        assert entry.action == "updated"
        assert entry.metadata is None

    def test_rollup_from_dict(self) -> None:
        row = DailyRollup.from_dict({"date": "2026-03-10", "tasks_completed": "3"})
        assert row.tasks_completed == 3
        assert row.tasks_created == 0

    def test_user_avatar_fallback(self) -> None:
        assert User(name="Robin").display_avatar == "R"
        assert User(name="Robin", avatar="RB").display_avatar == "RB"


class TestValidators:
    def test_check_title_strips(self) -> None:
        assert check_title("  hello ") == "hello"

    @pytest.mark.parametrize("value", ["", "   ", None])
    def test_check_title_rejects_blank(self, value: object) -> None:
        with pytest.raises(ValidationError):
            check_title(value)

    def test_check_choice(self) -> None:
        assert check_choice("priority", "low", ("low", "high")) == "low"
        with pytest.raises(ValidationError, match="priority"):
            check_choice("priority", "urgent", ("low", "high"))


class TestBoardSettings:
    def test_defaults(self) -> None:
        settings = BoardSettings.from_config({})
        assert settings.locked_move_policy == "warn"
        assert settings.skip_alignment == "rolling"
        assert settings.recur_on_complete is True
        assert settings.backlog_column_id is None

    def test_invalid_values_fall_back(self) -> None:
        settings = BoardSettings.from_config(
            {"board": {"locked_move_policy": "explode", "skip_alignment": 3, "timezone": "Mars/Olympus"}}
        )
        assert settings.locked_move_policy == "warn"
        assert settings.skip_alignment == "rolling"
        assert str(settings.tz) == "UTC"

    def test_reads_board_section(self) -> None:
        settings = BoardSettings.from_config(
            {
                "board": {
                    "locked_move_policy": "block",
                    "skip_alignment": "start_of_day",
                    "timezone": "Europe/Berlin",
                    "backlog_column_id": "col-9",
                    "recur_on_complete": False,
                }
            }
        )
        assert settings.locked_move_policy == "block"
        assert settings.skip_alignment == "start_of_day"
        assert str(settings.tz) == "Europe/Berlin"
        assert settings.backlog_column_id == "col-9"
        assert settings.recur_on_complete is False

    def test_last_reset(self) -> None:
        assert get_last_reset({}) is None
        assert get_last_reset({"daily_reset": {"last_run": "2026-03-10"}}) == "2026-03-10"
