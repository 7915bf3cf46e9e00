from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Callable, Optional

from ..domain.models import to_ms


class Clock:
    """Board-local time source; *now_fn* is injectable for tests."""

    def __init__(self, tz: tzinfo = timezone.utc, now_fn: Optional[Callable[[], datetime]] = None) -> None:
        self.tz = tz
        self._now_fn = now_fn or (lambda: datetime.now(timezone.utc))

    def now(self) -> datetime:
        current = self._now_fn()
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        return current.astimezone(self.tz)

    def now_ms(self) -> int:
        return to_ms(self.now())

    def today(self) -> date:
        return self.now().date()

    def today_iso(self) -> str:
        return self.today().isoformat()

    def day_bounds_ms(self, day: date) -> tuple[int, int]:
        """Inclusive start / exclusive end of *day* in board time, as epoch ms."""
        start = datetime.combine(day, time.min, tzinfo=self.tz)
        end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=self.tz)
        return to_ms(start), to_ms(end)
