"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from datetime import time

# Punches before this hour belong to the previous work day.
WORKDAY_ROLLOVER_HOUR = 6

WEEKEND_PAYOUT_MULTIPLIER = 2
HOLIDAY_BONUS_MINUTES = 9 * 60

# Team whose members earn extra minutes for arriving before office start.
OPERATIONS_TEAM_NAME = "Operations"

DAY_END = time(23, 59)
DAY_START = time(0, 0)

MAX_ENTRIES_PER_DAY = 3

DEFAULT_BUFFER_MINUTES = 30
DEFAULT_REDUCED_BUFFER_MINUTES = 10
DEFAULT_SAFE_ZONE_MINUTES = 10
DEFAULT_BUFFER_ABUSE_LIMIT = 5
DEFAULT_OFFICE_START = time(10, 0)
DEFAULT_OFFICE_END = time(19, 0)

DEFAULT_BUFFER_HISTORY_LIMIT = 12
