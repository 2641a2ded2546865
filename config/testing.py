import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "restaurant_attendance_test"),
}

DEBUG = False
TESTING = True

AUTO_INIT_DB = False

LOG_LEVEL = "WARNING"
LOG_JSON = False

DEFAULT_TIMEZONE = "Europe/Moscow"

MAX_SESSION_HOURS = 18
DEVICE_ONLINE_MINUTES = 5
DEFAULT_EARLY_MINUTES = 30
DEFAULT_LATE_MINUTES = 120

SESSION_LOCK_BACKEND = "local"
SESSION_LOCK_TIMEOUT = 10
