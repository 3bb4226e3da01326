"""One-shot data retention cleanup.

Exits with status 1 when the run did not complete (the audit log still gets
an ERROR entry).
"""
from __future__ import annotations

import importlib
import sys

from dotenv import load_dotenv

from visitor_register.config import get_settings_module
from visitor_register.core.logger import setup_logging
from visitor_register.database.connection import DBConfig
from visitor_register.database.gateway import PersistenceGateway
from visitor_register.retention.job import RetentionJob
from visitor_register.retention.mysql_retention_repository import MySQLRetentionRepository


def main() -> int:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    setup_logging(getattr(settings, "LOG_LEVEL", "INFO"), getattr(settings, "LOG_FILE", "") or None)

    gateway = PersistenceGateway(DBConfig.from_mapping(dict(settings.DB_CONFIG), pool_size=1)).connect()
    try:
        job = RetentionJob(MySQLRetentionRepository(gateway), gateway)
        result = job.run()
    finally:
        gateway.close()

    c = result.counts
    if not result.ok:
        print(f"FAILED: {result.error_message}", file=sys.stderr)
        return 1
    print(f"OK: deleted dependents={c.dependents} visits={c.visits} profiles={c.profiles}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
