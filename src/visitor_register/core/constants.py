"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

RETENTION_DAYS = 2 * 365
DEFAULT_RETENTION_INTERVAL_HOURS = 24

PLACEHOLDER_VALUE = "--"
DEFAULT_VISITOR_TYPE = "Visitor"

MAX_UPLOAD_MB = 20
ALLOWED_PHOTO_MIMETYPES = frozenset({"image/jpeg", "image/png", "image/gif"})

# MySQL ER_DUP_ENTRY
DUPLICATE_KEY_ERRNO = 1062
