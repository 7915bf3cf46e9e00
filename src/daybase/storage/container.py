from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from .bootstrap import apply_config_defaults, ensure_state_root
from .file_repos import (
    FileColumnRepository,
    FileConfigRepository,
    FileHistoryRepository,
    FileRollupRepository,
    FileTaskRepository,
    FileUserRepository,
)
from .interfaces import (
    ColumnRepository,
    ConfigRepository,
    HistoryRepository,
    RollupRepository,
    TaskRepository,
    UserRepository,
)
from .memory_repos import (
    MemoryColumnRepository,
    MemoryConfigRepository,
    MemoryHistoryRepository,
    MemoryRollupRepository,
    MemoryTaskRepository,
    MemoryUserRepository,
)


class Container:
    """The repositories backing one board.

    Engines only see the repository interfaces, so any persistence can be
    injected; :meth:`for_directory` and :meth:`in_memory` are the two
    built-in wirings.
    """

    def __init__(
        self,
        *,
        columns: ColumnRepository,
        tasks: TaskRepository,
        history: HistoryRepository,
        rollups: RollupRepository,
        users: UserRepository,
        config: ConfigRepository,
        board_id: str = "board",
    ) -> None:
        self.columns = columns
        self.tasks = tasks
        self.history = history
        self.rollups = rollups
        self.users = users
        self.config = config
        self.board_id = board_id

    @classmethod
    def for_directory(cls, board_dir: Path) -> "Container":
        board_dir = board_dir.resolve()
        root = ensure_state_root(board_dir)
        return cls(
            columns=FileColumnRepository(root / "columns.yaml", root / "columns.lock"),
            tasks=FileTaskRepository(root / "tasks.yaml", root / "tasks.lock"),
            history=FileHistoryRepository(root / "history.jsonl", root / "history.lock"),
            rollups=FileRollupRepository(root / "rollups.yaml", root / "rollups.lock"),
            users=FileUserRepository(root / "users.yaml", root / "users.lock"),
            config=FileConfigRepository(root / "config.yaml", root / "config.lock"),
            board_id=board_dir.name,
        )

    @classmethod
    def in_memory(cls, config: Optional[dict[str, Any]] = None) -> "Container":
        merged = apply_config_defaults(dict(config or {}))
        return cls(
            columns=MemoryColumnRepository(),
            tasks=MemoryTaskRepository(),
            history=MemoryHistoryRepository(),
            rollups=MemoryRollupRepository(),
            users=MemoryUserRepository(),
            config=MemoryConfigRepository(merged),
            board_id="memory",
        )


__all__ = ["Container"]
