import os

from .base import *  # noqa: F401,F403

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DEBUG = bool(int(os.getenv("DEBUG", "1")))

# If enabled, the app applies schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also create the bootstrap admin account on startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
