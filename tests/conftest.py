from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional

import pytest
from loguru import logger

from daybase.engine.clock import Clock
from daybase.service import KanbanService
from daybase.storage.container import Container

START = datetime(2026, 3, 10, 9, 30, tzinfo=timezone.utc)


class FrozenNow:
    """Callable clock source that only moves when told to."""

    def __init__(self, start: datetime = START) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **delta: float) -> None:
        self.current += timedelta(**delta)


def make_service(
    frozen: FrozenNow,
    config: Optional[dict[str, Any]] = None,
    board_dir: Optional[Path] = None,
) -> KanbanService:
    if board_dir is not None:
        container = Container.for_directory(board_dir)
        if config:
            merged = container.config.load()
            for section, values in config.items():
                merged.setdefault(section, {}).update(values)
            container.config.save(merged)
    else:
        container = Container.in_memory(config)
    return KanbanService(container, clock=Clock(timezone.utc, frozen))


@pytest.fixture
def frozen() -> FrozenNow:
    return FrozenNow()


@pytest.fixture
def service(frozen: FrozenNow) -> KanbanService:
    return make_service(frozen)


@pytest.fixture
def board(service: KanbanService) -> dict[str, str]:
    """Daily BASE, To Do, In Progress and Done, keyed by short name."""
    return {
        "daily": service.create_column("Daily BASE", type="daily").id,
        "todo": service.create_column("To Do").id,
        "progress": service.create_column("In Progress", status_mapping="in_progress").id,
        "done": service.create_column("Done", status_mapping="done").id,
    }


@pytest.fixture(autouse=True)
def _restore_log_sink():
    """CLI tests reconfigure loguru onto a captured stream; put stderr back."""
    yield
    logger.remove()
    logger.add(sys.stderr, level="WARNING")
