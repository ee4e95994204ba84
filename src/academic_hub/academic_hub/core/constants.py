"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_TOKEN_MAX_AGE = 24 * 60 * 60
TOKEN_SALT = "academic-hub-auth"

MIN_PASSWORD_LENGTH = 6
MIN_SEMESTER = 1
MAX_SEMESTER = 8
MAX_REMARKS_LENGTH = 200

TIME_RANGE_PATTERN = r"^\d{2}:\d{2}\s-\s\d{2}:\d{2}$"

CLIENT_TIMEOUT_SECONDS = 10
DEFAULT_API_URL = "http://localhost:5000/api"
