# src/pongstats/config.py

"""Runtime settings read from the environment."""

import os

# Database URL from environment variable with SQLite fallback for development
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./pongstats.db")
DB_ECHO = os.getenv("DB_ECHO", "false").lower() == "true"
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "20"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "10"))
DB_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "3600"))

# How many of the latest results are returned as `recent_form`
RECENT_FORM_LENGTH = int(os.getenv("PONGSTATS_RECENT_FORM_LENGTH", "5"))

# How many of the latest results feed the recent-form ranking bonus
RECENT_WINDOW = int(os.getenv("PONGSTATS_RECENT_WINDOW", "10"))
