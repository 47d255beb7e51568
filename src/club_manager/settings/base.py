"""Settings shared by every environment."""
import os

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "club_manager"),
}

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Dues and suspension rules
DUES_DAY = int(os.getenv("DUES_DAY", "10"))
REACTIVATION_GRACE_HOURS = int(os.getenv("REACTIVATION_GRACE_HOURS", "24"))
ARREARS_LOOKBACK_MONTHS = int(os.getenv("ARREARS_LOOKBACK_MONTHS", "12"))

# Bootstrap admin account, created by ensure_admin when missing
ADMIN_PHONE = os.getenv("ADMIN_PHONE", "0700000000")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin123")
