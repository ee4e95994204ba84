import os

APP_ENV_NAME = "development"

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "academic_hub"),
}

# Bearer token lifetime in seconds
TOKEN_MAX_AGE = int(os.getenv("TOKEN_MAX_AGE", str(24 * 60 * 60)))

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also seed demo users, timetable and attendance on startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
