STATE_DIR_NAME = ".daybase"
CONFIG_FILE = "config.yaml"
COLUMNS_FILE = "columns.yaml"
TASKS_FILE = "tasks.yaml"
USERS_FILE = "users.yaml"
ROLLUPS_FILE = "rollups.yaml"
HISTORY_FILE = "history.jsonl"
SCHEMA_VERSION = 1

DAY_MS = 24 * 60 * 60 * 1000
WEEK_MS = 7 * DAY_MS

DEFAULT_COLUMN_COLOR = "#64748b"
DAILY_COLUMN_TITLE = "Daily BASE"
SYSTEM_USER = "system"

COLUMN_TYPE_DAILY = "daily"

RECURRENCE_NONE = "none"

LOCKED_MOVE_WARN = "warn"
LOCKED_MOVE_BLOCK = "block"
SKIP_ROLLING = "rolling"
SKIP_START_OF_DAY = "start_of_day"

WARNING_LEFT_LOCKED_COLUMN = "left_locked_column"

PRIORITY_WEIGHT = {"high": 3, "medium": 2, "low": 1}
WEEKDAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
FOLLOW_UP_KEY = "follow_up_task_id"
