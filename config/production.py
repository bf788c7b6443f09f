import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "timekeeper_db"),
}

STORE_BACKEND = os.getenv("STORE_BACKEND", "mysql")

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

WEEK_STARTS_ON = os.getenv("WEEK_STARTS_ON", "sunday")
LATE_AFTER = os.getenv("LATE_AFTER", "09:00")

STALE_CLOSE_POLICY = os.getenv("STALE_CLOSE_POLICY", "end_of_day")
STALE_CLOSE_TIME = os.getenv("STALE_CLOSE_TIME", "18:00")

SCHEDULER_ENABLED = bool(int(os.getenv("SCHEDULER_ENABLED", "1")))
POLICY_CHECK_SECONDS = int(os.getenv("POLICY_CHECK_SECONDS", "60"))
STALE_SWEEP_MINUTES = int(os.getenv("STALE_SWEEP_MINUTES", "60"))
