from .analytics import AnalyticsAggregator
from .clock import Clock
from .columns import ColumnStore
from .context import BoardContext
from .daily_reset import DailyResetJob, ResetReport
from .history import HistoryLog, RollupCounter
from .recurrence import RecurrenceEngine, add_months, next_due_date
from .tasks import TaskStore
from .transitions import MoveEngine, MovePlan, MoveResult, derive_status

__all__ = [
    "AnalyticsAggregator",
    "BoardContext",
    "Clock",
    "ColumnStore",
    "DailyResetJob",
    "HistoryLog",
    "MoveEngine",
    "MovePlan",
    "MoveResult",
    "RecurrenceEngine",
    "ResetReport",
    "RollupCounter",
    "TaskStore",
    "add_months",
    "derive_status",
    "next_due_date",
]
