import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "visitor_register_test"),
}
DB_POOL_SIZE = 2

ADMIN_PASSWORD = "admin-secret"
MASTER_PASSWORD = "master-secret"
HISTORY_PASSWORD = "history-secret"

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
MAX_UPLOAD_MB = 20

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"
LOG_FILE = ""

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

RETENTION_ENABLED = False
RETENTION_INTERVAL_HOURS = 24.0
