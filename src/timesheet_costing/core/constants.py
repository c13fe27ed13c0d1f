"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

MAX_DISCIPLINE_CODES = 8
MAX_DAILY_HOURS = 24
MAX_OVERTIME_DAYS = 7
WEEK_LENGTH_DAYS = 7

DEFAULT_HOURLY_RATE = 50.0
DEFAULT_OVERTIME_MULTIPLIER = 1.0
UNASSIGNED_DISCIPLINE = "UNASSIGNED"

DEFAULT_LIST_LIMIT = 500
