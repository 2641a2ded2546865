import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "restaurant_attendance"),
}

DEBUG = True

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
LOG_JSON = bool(int(os.getenv("LOG_JSON", "0")))

# Used when a restaurant has no timezone of its own
DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "Europe/Moscow")

MAX_SESSION_HOURS = int(os.getenv("MAX_SESSION_HOURS", "18"))
DEVICE_ONLINE_MINUTES = int(os.getenv("DEVICE_ONLINE_MINUTES", "5"))
DEFAULT_EARLY_MINUTES = int(os.getenv("DEFAULT_EARLY_MINUTES", "30"))
DEFAULT_LATE_MINUTES = int(os.getenv("DEFAULT_LATE_MINUTES", "120"))

# "local" serializes per user inside one process, "mysql" across workers
SESSION_LOCK_BACKEND = os.getenv("SESSION_LOCK_BACKEND", "local")
SESSION_LOCK_TIMEOUT = int(os.getenv("SESSION_LOCK_TIMEOUT", "10"))
