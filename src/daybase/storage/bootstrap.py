from __future__ import annotations

import copy
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml

from ..constants import (
    COLUMNS_FILE,
    CONFIG_FILE,
    HISTORY_FILE,
    ROLLUPS_FILE,
    SCHEMA_VERSION,
    STATE_DIR_NAME,
    TASKS_FILE,
    USERS_FILE,
)
from .file_repos import FileConfigRepository


STATE_FILES = {
    "columns": COLUMNS_FILE,
    "tasks": TASKS_FILE,
    "users": USERS_FILE,
    "rollups": ROLLUPS_FILE,
    "history": HISTORY_FILE,
    "config": CONFIG_FILE,
}

DEFAULT_CONFIG: dict[str, Any] = {
    "board": {
        "locked_move_policy": "warn",
        "skip_alignment": "rolling",
        "timezone": "UTC",
        "backlog_column_id": None,
        "recur_on_complete": True,
        "default_user": None,
    },
    "daily_reset": {"last_run": None},
}


def _utc_stamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def _schema_version(path: Path) -> int | None:
    if not path.exists():
        return None
    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        return None
    value = raw.get("schema_version")
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _needs_archive(base: Path) -> bool:
    if not base.exists():
        return False
    if not (base / CONFIG_FILE).exists():
        return True
    version = _schema_version(base / CONFIG_FILE)
    return version is not None and version > SCHEMA_VERSION


def apply_config_defaults(config: dict[str, Any]) -> dict[str, Any]:
    """Fill missing sections/keys from DEFAULT_CONFIG without overwriting."""
    for section, defaults in DEFAULT_CONFIG.items():
        current = config.get(section)
        if not isinstance(current, dict):
            config[section] = copy.deepcopy(defaults)
            continue
        for key, value in defaults.items():
            current.setdefault(key, copy.deepcopy(value))
    return config


def ensure_state_root(board_dir: Path) -> Path:
    """Create (or adopt) ``<board_dir>/.daybase`` and seed empty collections.

    A state directory written by an unknown, newer schema is moved aside
    rather than reinterpreted.
    """
    state_root = board_dir / STATE_DIR_NAME

    if _needs_archive(state_root):
        archive_target = board_dir / f"{STATE_DIR_NAME}_legacy_{_utc_stamp()}"
        state_root.rename(archive_target)

    state_root.mkdir(parents=True, exist_ok=True)

    for file_name in STATE_FILES.values():
        target = state_root / file_name
        if file_name.endswith(".yaml") and not target.exists():
            target.write_text(f"version: {SCHEMA_VERSION}\n", encoding="utf-8")
        if file_name.endswith(".jsonl") and not target.exists():
            target.touch()

    config_repo = FileConfigRepository(state_root / CONFIG_FILE, state_root / "config.lock")
    config = config_repo.load()
    config.pop("version", None)
    config["schema_version"] = SCHEMA_VERSION
    config_repo.save(apply_config_defaults(config))

    return state_root
