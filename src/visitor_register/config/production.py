import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "visitor_register"),
}
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "20"))

ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "")
MASTER_PASSWORD = os.getenv("MASTER_PASSWORD", "")
HISTORY_PASSWORD = os.getenv("HISTORY_PASSWORD", "")

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", "20"))

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", "logs/visitor_register.log")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

RETENTION_ENABLED = bool(int(os.getenv("RETENTION_ENABLED", "1")))
RETENTION_INTERVAL_HOURS = float(os.getenv("RETENTION_INTERVAL_HOURS", "24"))
