"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_TIMEZONE = "Europe/Moscow"

DEFAULT_EARLY_MINUTES = 30
DEFAULT_LATE_MINUTES = 120
MAX_EARLY_MINUTES = 120
MAX_LATE_MINUTES = 480

# Sessions left open longer than this are auto-closed with zero hours.
MAX_SESSION_HOURS = 18
# Elapsed time credited to a still-open session in timesheets is capped.
ACTIVE_SESSION_CAP_HOURS = 14
# Timesheets list sessions open longer than this as "unclosed".
UNCLOSED_NOTICE_HOURS = 12

DEVICE_ONLINE_MINUTES = 5

DEFAULT_PLANNED_HOURS = 8
SESSION_MUTATION_ATTEMPTS = 3
SESSION_LOCK_TIMEOUT_SECONDS = 10

DEFAULT_EVENTS_LIMIT = 50
MAX_EVENTS_LIMIT = 500

REDACTED_PAYLOAD_KEYS = frozenset({"api_key", "password", "token"})
