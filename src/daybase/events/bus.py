from __future__ import annotations

import threading
import uuid
from typing import Any, Callable

from loguru import logger

from ..domain.models import now_ms


Subscriber = Callable[[dict[str, Any]], None]

CHANNELS = {"columns", "tasks", "analytics", "system"}


class EventBus:
    """Explicit change-notification channel for one board.

    Subscribers receive a plain dict per event. A failing subscriber is
    logged and skipped; it never rolls back the mutation that emitted.
    """

    def __init__(self, board_id: str = "board") -> None:
        self._board_id = board_id
        self._subscribers: dict[int, tuple[set[str], Subscriber]] = {}
        self._counter = 0
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber, channels: set[str] | None = None) -> Callable[[], None]:
        """Register *callback*; returns a function that unsubscribes it."""
        wanted = set(channels or CHANNELS) & CHANNELS
        with self._lock:
            self._counter += 1
            token = self._counter
            self._subscribers[token] = (wanted, callback)

        def _unsubscribe() -> None:
            with self._lock:
                self._subscribers.pop(token, None)

        return _unsubscribe

    def emit(self, *, channel: str, event_type: str, entity_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        event = {
            "id": f"evt-{uuid.uuid4().hex[:10]}",
            "ts": now_ms(),
            "channel": channel,
            "type": event_type,
            "entity_id": entity_id,
            "payload": payload,
            "board_id": self._board_id,
        }
        with self._lock:
            targets = [cb for chans, cb in self._subscribers.values() if channel in chans]
        for callback in targets:
            try:
                callback(event)
            except Exception:
                logger.exception("Event subscriber failed for {} {}", event_type, entity_id)
        return event
