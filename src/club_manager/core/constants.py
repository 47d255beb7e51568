"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_SESSION_DAYS = 7
DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 500

# Monthly dues are expected by this day of the month; suspensions apply after it.
DUES_DAY = 10
REACTIVATION_GRACE_HOURS = 24
ARREARS_LOOKBACK_MONTHS = 12

REJECT_REASON_MAX_LENGTH = 500
MIN_PASSWORD_LENGTH = 6

RECENT_ACTIVITY_DAYS = 30
CURRENCY_LABEL = "FCFA"
PHOTO_URL_MAX_LENGTH = 500
