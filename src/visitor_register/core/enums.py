from __future__ import annotations

from enum import Enum


class AuditStatus(str, Enum):
    """Outcome stored in audit_logs.status."""

    OK = "OK"
    ERROR = "ERROR"


class VisitState(str, Enum):
    """Open visits have no exit_time yet."""

    OPEN = "OPEN"
    CLOSED = "CLOSED"


class AuditEvent(str, Enum):
    CLEANUP_SUCCEEDED = "Compliance Cleanup Succeeded"
    CLEANUP_FAILED = "Compliance Cleanup Failed"
    VISITOR_BANNED = "Visitor Banned"
    VISITOR_UNBANNED = "Visitor Unbanned"
