"""Data retention compliance cleanup.

Deletes visit data older than the retention window in dependency order:
dependents, then visits, then visitor profiles left without visits (banned
visitors are kept to preserve ban history). Every step commits on its own and
exactly one audit entry is written per run, whatever happened.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_utc, years_ago
from ..core.constants import RETENTION_DAYS
from ..core.enums import AuditEvent, AuditStatus
from ..database.gateway import AuditCounts, AuditWriter
from .repository import RetentionRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetentionResult:
    status: AuditStatus
    counts: AuditCounts
    threshold: datetime
    error_message: str = ""
    audit_written: bool = False

    @property
    def ok(self) -> bool:
        return self.status == AuditStatus.OK


class RetentionJob:
    def __init__(
        self,
        repo: RetentionRepository,
        audit: AuditWriter,
        *,
        retention_days: int = RETENTION_DAYS,
    ):
        self._repo = repo
        self._audit = audit
        self._retention_days = int(retention_days)

    def threshold(self, now: datetime | None = None) -> datetime:
        return years_ago(now or now_utc(), days=self._retention_days)

    def run(
        self,
        callback: Optional[Callable[[str], None]] = None,
        *,
        now: datetime | None = None,
    ) -> RetentionResult:
        """Run one cleanup pass. Never raises; ``callback`` gets "" or the error message."""
        threshold = self.threshold(now)
        logger.info("--- Starting data retention cleanup (threshold %s) ---", threshold.isoformat())

        dependents = visits = profiles = 0
        status = AuditStatus.OK
        event = AuditEvent.CLEANUP_SUCCEEDED
        error_message = ""

        try:
            dependents = self._repo.delete_dependents_before(threshold)
            logger.info("Cleanup: deleted %s old dependent record(s).", dependents)

            visits = self._repo.delete_visits_before(threshold)
            logger.info("Cleanup: deleted %s old visit record(s).", visits)

            profiles = self._repo.delete_orphan_visitors()
            logger.info("Cleanup: deleted %s inactive visitor profile(s).", profiles)
        except Exception as e:
            status = AuditStatus.ERROR
            event = AuditEvent.CLEANUP_FAILED
            error_message = str(e) or e.__class__.__name__
            logger.error("Cleanup error: %s", error_message)

        counts = AuditCounts(profiles=profiles, visits=visits, dependents=dependents)
        audit_written = False
        try:
            audit_written = bool(self._audit.log_audit(event.value, status, counts, message=error_message or None))
        except Exception as e:
            logger.error("FATAL: could not write audit log: %s", e)
        logger.info("--- Data retention cleanup complete (%s) ---", status.value)

        result = RetentionResult(
            status=status,
            counts=counts,
            threshold=threshold,
            error_message=error_message,
            audit_written=audit_written,
        )
        if callback is not None:
            try:
                callback(error_message)
            except Exception:
                logger.exception("Retention callback failed")
        return result
