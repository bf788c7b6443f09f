"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from datetime import time

DEFAULT_EYE_CARE_INTERVAL_MINUTES = 20
MIN_EYE_CARE_INTERVAL_MINUTES = 15
MAX_EYE_CARE_INTERVAL_MINUTES = 60
DEFAULT_CLOCK_OUT_THRESHOLD_HOURS = 10.0

DEFAULT_LATE_AFTER = time(9, 0)
DEFAULT_STALE_CLOSE_TIME = time(18, 0)

DEFAULT_POLICY_CHECK_SECONDS = 60
DEFAULT_STALE_SWEEP_MINUTES = 60
DEFAULT_DISPLAY_TICK_SECONDS = 1

HOURS_DECIMALS = 2
DAYS_PER_WEEK = 7
