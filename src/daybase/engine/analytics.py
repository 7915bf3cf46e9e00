"""On-demand board statistics.

Nothing here is cached: every figure is recomputed from the current task
set and the per-day rollup rows.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Optional

from ..constants import DAY_MS, WEEKDAY_NAMES
from ..domain.models import PRIORITIES, TASK_STATUSES, DailyRollup, Task
from .context import BoardContext


def completion_rate(done: int, total: int) -> int:
    if total <= 0:
        return 0
    return round(100 * done / total)


class AnalyticsAggregator:
    def __init__(self, ctx: BoardContext) -> None:
        self._ctx = ctx

    def _tasks(self) -> list[Task]:
        return self._ctx.container.tasks.list()

    def _rollups_by_date(self) -> dict[str, DailyRollup]:
        return {row.date: row for row in self._ctx.container.rollups.list()}

    def get_dashboard_stats(self) -> dict[str, Any]:
        tasks = self._tasks()
        total = len(tasks)
        done = sum(1 for t in tasks if t.status == "done")
        in_progress = sum(1 for t in tasks if t.status == "in_progress")
        rollups = self._rollups_by_date()
        today = rollups.get(self._ctx.clock.today_iso())
        return {
            "total_tasks": total,
            "tasks_completed": done,
            "tasks_in_progress": in_progress,
            "tasks_pending": total - done - in_progress,
            "completion_rate": completion_rate(done, total),
            "avg_tasks_per_day": round(done / max(len(rollups), 1), 1),
            "today_completed": today.tasks_completed if today else 0,
            "today_created": today.tasks_created if today else 0,
            "streak": self.get_streak(rollups),
        }

    def get_streak(self, rollups: Optional[dict[str, DailyRollup]] = None) -> int:
        """Consecutive days up to today with at least one completion."""
        rows = rollups if rollups is not None else self._rollups_by_date()
        day = self._ctx.clock.today()
        streak = 0
        while True:
            row = rows.get(day.isoformat())
            if row is None or row.tasks_completed <= 0:
                return streak
            streak += 1
            day -= timedelta(days=1)

    def get_weekly_data(self) -> list[dict[str, Any]]:
        rows = self._rollups_by_date()
        today = self._ctx.clock.today()
        data = []
        for offset in range(6, -1, -1):
            day = today - timedelta(days=offset)
            row = rows.get(day.isoformat())
            data.append(
                {
                    "date": day.isoformat(),
                    "day": WEEKDAY_NAMES[day.weekday()],
                    "completed": row.tasks_completed if row else 0,
                    "created": row.tasks_created if row else 0,
                }
            )
        return data

    def get_priority_distribution(self) -> dict[str, int]:
        counts = {priority: 0 for priority in PRIORITIES}
        for task in self._tasks():
            counts[task.priority] = counts.get(task.priority, 0) + 1
        return counts

    def get_status_distribution(self) -> dict[str, int]:
        counts = {status: 0 for status in TASK_STATUSES}
        for task in self._tasks():
            counts[task.status] = counts.get(task.status, 0) + 1
        return counts

    def get_team_stats(self) -> list[dict[str, Any]]:
        tasks = self._tasks()
        users = sorted(self._ctx.container.users.list(), key=lambda u: (u.name, u.id))
        known = {u.id for u in users}
        members: list[tuple[str, str, Optional[str]]] = [(u.id, u.name, u.display_avatar) for u in users]
        strays = sorted({t.assignee_id for t in tasks if t.assignee_id and t.assignee_id not in known})
        members.extend((assignee, assignee, None) for assignee in strays)

        stats = []
        for user_id, name, avatar in members:
            mine = [t for t in tasks if t.assignee_id == user_id]
            done = sum(1 for t in mine if t.status == "done")
            stats.append(
                {
                    "user_id": user_id,
                    "name": name,
                    "avatar": avatar,
                    "total_tasks": len(mine),
                    "completed_tasks": done,
                    "completion_rate": completion_rate(done, len(mine)),
                }
            )
        return stats

    def get_completion_stats(self) -> dict[str, float]:
        """Average/fastest/slowest of (due date - creation) in days for done tasks."""
        spans = [
            (t.due_date - t.created_at) / DAY_MS
            for t in self._tasks()
            if t.status == "done" and t.due_date is not None
        ]
        if not spans:
            return {"avg_completion_time": 0, "fastest_completion": 0, "slowest_completion": 0}
        return {
            "avg_completion_time": round(sum(spans) / len(spans), 1),
            "fastest_completion": round(min(spans), 1),
            "slowest_completion": round(max(spans), 1),
        }

    def get_rollups(self) -> list[DailyRollup]:
        return sorted(self._ctx.container.rollups.list(), key=lambda r: r.date)

    def get_rollups_between(self, start: str, end: str) -> list[DailyRollup]:
        return [row for row in self.get_rollups() if start <= row.date <= end]

    def get_today_rollup(self) -> DailyRollup:
        today = self._ctx.clock.today_iso()
        return self._ctx.container.rollups.get(today) or DailyRollup(date=today, updated_at=self._ctx.clock.now_ms())
