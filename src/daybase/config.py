"""Typed view over the board's ``config.yaml``."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from loguru import logger

from .constants import (
    LOCKED_MOVE_BLOCK,
    LOCKED_MOVE_WARN,
    SKIP_ROLLING,
    SKIP_START_OF_DAY,
)

VALID_LOCKED_MOVE_POLICIES = {LOCKED_MOVE_WARN, LOCKED_MOVE_BLOCK}
VALID_SKIP_ALIGNMENTS = {SKIP_ROLLING, SKIP_START_OF_DAY}


def _get_nested(config: dict[str, Any], *keys: str) -> Any:
    cur: Any = config
    for key in keys:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    return cur


def _choice(raw: Any, valid: set[str], default: str, name: str) -> str:
    if isinstance(raw, str) and raw in valid:
        return raw
    if raw is not None:
        logger.warning("Ignoring invalid {}={!r}; using {}", name, raw, default)
    return default


def _resolve_timezone(name: Any) -> tzinfo:
    try:
        return ZoneInfo(str(name or "UTC"))
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone {!r}; falling back to UTC", name)
        return ZoneInfo("UTC")


@dataclass(frozen=True)
class BoardSettings:
    locked_move_policy: str = LOCKED_MOVE_WARN
    skip_alignment: str = SKIP_ROLLING
    timezone: str = "UTC"
    backlog_column_id: Optional[str] = None
    recur_on_complete: bool = True
    default_user: Optional[str] = None

    @property
    def tz(self) -> tzinfo:
        return _resolve_timezone(self.timezone)

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "BoardSettings":
        """Build settings from a raw config mapping, defaulting bad values."""
        board = _get_nested(config, "board")
        board = board if isinstance(board, dict) else {}
        backlog = board.get("backlog_column_id")
        default_user = board.get("default_user")
        return cls(
            locked_move_policy=_choice(
                board.get("locked_move_policy"), VALID_LOCKED_MOVE_POLICIES, LOCKED_MOVE_WARN, "locked_move_policy"
            ),
            skip_alignment=_choice(
                board.get("skip_alignment"), VALID_SKIP_ALIGNMENTS, SKIP_ROLLING, "skip_alignment"
            ),
            timezone=str(board.get("timezone") or "UTC"),
            backlog_column_id=str(backlog) if backlog else None,
            recur_on_complete=bool(board.get("recur_on_complete", True)),
            default_user=str(default_user) if default_user else None,
        )


def get_last_reset(config: dict[str, Any]) -> Optional[str]:
    raw = _get_nested(config, "daily_reset", "last_run")
    return str(raw) if raw else None
