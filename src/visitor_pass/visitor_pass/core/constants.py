"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_TOKEN_TTL_MINUTES = 8 * 60
DEFAULT_LIST_LIMIT = 500

PASS_CODE_PREFIX = "PASS-"
PASS_CODE_RANDOM_CHARS = 4
PASS_CODE_MAX_ATTEMPTS = 3

MIN_VISITOR_NAME_LENGTH = 2
MIN_PURPOSE_LENGTH = 3
MIN_PASSWORD_LENGTH = 8
PHONE_PATTERN = r"^[0-9]{10}$"
EMAIL_PATTERN = r"^\S+@\S+\.\S+$"
