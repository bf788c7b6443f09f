import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "timekeeper_test"),
}

STORE_BACKEND = "memory"

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = False

WEEK_STARTS_ON = "sunday"
LATE_AFTER = "09:00"

STALE_CLOSE_POLICY = "end_of_day"
STALE_CLOSE_TIME = "18:00"

# Tests drive checks explicitly
SCHEDULER_ENABLED = False
POLICY_CHECK_SECONDS = 60
STALE_SWEEP_MINUTES = 60
