from __future__ import annotations

from typing import Optional

from ..core.constants import DUPLICATE_KEY_ERRNO


class DatabaseError(Exception):
    """Base exception for persistence failures (reported as 500)."""


class DatabaseConnectionError(DatabaseError):
    """Raised when the pool is not initialized or no connection can be obtained."""


class QueryError(DatabaseError):
    """Wraps a driver error raised while executing a statement."""

    def __init__(self, message: str, *, errno: Optional[int] = None, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.errno = errno
        self.cause = cause

    @property
    def is_duplicate_key(self) -> bool:
        return self.errno == DUPLICATE_KEY_ERRNO
