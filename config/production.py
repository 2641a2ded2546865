import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "restaurant_attendance"),
}

DEBUG = False

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = bool(int(os.getenv("LOG_JSON", "1")))

DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "Europe/Moscow")

MAX_SESSION_HOURS = int(os.getenv("MAX_SESSION_HOURS", "18"))
DEVICE_ONLINE_MINUTES = int(os.getenv("DEVICE_ONLINE_MINUTES", "5"))
DEFAULT_EARLY_MINUTES = int(os.getenv("DEFAULT_EARLY_MINUTES", "30"))
DEFAULT_LATE_MINUTES = int(os.getenv("DEFAULT_LATE_MINUTES", "120"))

SESSION_LOCK_BACKEND = os.getenv("SESSION_LOCK_BACKEND", "mysql")
SESSION_LOCK_TIMEOUT = int(os.getenv("SESSION_LOCK_TIMEOUT", "10"))
