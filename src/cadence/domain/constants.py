"""Centralized constants for the Cadence scheduler.

Every scheduling constant lives here so that the scheduler, the service and
the tests agree on a single source of truth. Changing any value here changes
every schedule derived from it.
"""

# ---------- Ratings ----------
MIN_RATING = 1
MAX_RATING = 5
SUCCESS_RATING = 3  # Ratings at or above this count as a successful recall

# ---------- Ease Factor ----------
DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
MAX_EASE_FACTOR = 2.5
EASE_BONUS = 0.1
EASE_LINEAR_PENALTY = 0.08
EASE_QUADRATIC_PENALTY = 0.02
FAILURE_EASE_PENALTY = 0.2

# ---------- Intervals (days) ----------
DEFAULT_INTERVAL_DAYS = 1
HARD_INTERVAL_MULTIPLIER = 1.2
FIRST_GOOD_INTERVAL_DAYS = 6
FIRST_EASY_INTERVAL_DAYS = 4  # Smaller than the first Good jump
EASY_INTERVAL_BONUS = 1.3

# ---------- Review History ----------
REVIEWED_AT_STEP_MICROSECONDS = 1

# ---------- Storage ----------
SQLITE_CHUNK_SIZE = 500  # Max bound parameters per IN (...) query
