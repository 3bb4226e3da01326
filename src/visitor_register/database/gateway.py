"""Persistence gateway: the only component that holds database connections."""
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Protocol, Union

import mysql.connector
from mysql.connector import errors as mysql_errors, pooling

from ..common.datetime_utils import now_utc
from ..core.enums import AuditStatus
from .connection import DBConfig
from .errors import DatabaseConnectionError, QueryError

logger = logging.getLogger(__name__)

Params = Optional[Union[Mapping[str, Any], tuple]]


@dataclass(frozen=True)
class QueryResult:
    rows: List[Dict[str, Any]] = field(default_factory=list)
    rowcount: int = 0
    lastrowid: Optional[int] = None

    def first(self) -> Optional[Dict[str, Any]]:
        return self.rows[0] if self.rows else None


@dataclass(frozen=True)
class AuditCounts:
    profiles: int = 0
    visits: int = 0
    dependents: int = 0


class AuditWriter(Protocol):
    def log_audit(
        self,
        event_name: str,
        status: AuditStatus,
        counts: AuditCounts = AuditCounts(),
        message: Optional[str] = None,
    ) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class AuditInsert:
    event_name: str
    timestamp: datetime
    status: str
    message: Optional[str]
    profiles_deleted: int
    visits_deleted: int
    dependents_deleted: int


INSERT_AUDIT_SQL = """
    INSERT INTO audit_logs(
        event_name, timestamp, status, message,
        profiles_deleted, visits_deleted, dependents_deleted
    )
    VALUES(
        %(event_name)s, %(timestamp)s, %(status)s, %(message)s,
        %(profiles_deleted)s, %(visits_deleted)s, %(dependents_deleted)s
    )
"""


def _run(conn, statement: str, params: Params) -> QueryResult:
    cur = conn.cursor(dictionary=True)
    try:
        cur.execute(statement, params or ())
        rows: List[Dict[str, Any]] = []
        if cur.with_rows:
            rows = list(cur.fetchall() or [])
        lastrowid = cur.lastrowid
        return QueryResult(
            rows=rows,
            rowcount=max(int(cur.rowcount or 0), 0),
            lastrowid=int(lastrowid) if lastrowid else None,
        )
    except mysql.connector.Error as e:
        logger.error("SQL execution error: %s", e)
        raise QueryError(f"Database error during execution: {e}", errno=getattr(e, "errno", None), cause=e) from e
    finally:
        cur.close()


class Transaction:
    """Statements bound to one connection until commit or rollback."""

    def __init__(self, conn):
        self._conn = conn
        self._finished = False

    @property
    def finished(self) -> bool:
        return self._finished

    def execute(self, statement: str, params: Params = None) -> QueryResult:
        if self._finished:
            raise DatabaseConnectionError("Transaction is already finished.")
        return _run(self._conn, statement, params)

    def commit(self) -> None:
        try:
            self._conn.commit()
        except mysql.connector.Error as e:
            self.rollback()
            raise QueryError(f"Commit failed: {e}", errno=getattr(e, "errno", None), cause=e) from e
        self._release()

    def rollback(self) -> None:
        """Roll back; a failure here is logged and swallowed so the caller's error wins."""
        if self._finished:
            return
        try:
            self._conn.rollback()
            logger.info("Transaction rolled back.")
        except Exception as e:
            logger.error("Transaction rollback failed: %s", e)
        finally:
            self._release()

    def _release(self) -> None:
        if self._finished:
            return
        self._finished = True
        try:
            self._conn.close()
        except Exception as e:
            logger.warning("Failed to return connection to pool: %s", e)


class PersistenceGateway:
    """Owns the connection pool.

    Constructed once at startup and passed to the repositories; ``connect()``
    failing is a fatal startup condition.
    """

    def __init__(
        self,
        config: DBConfig,
        *,
        pool_name: str = "visitor_register",
        pool_factory: Optional[Callable[..., Any]] = None,
        acquire_timeout: float = 5.0,
    ):
        self._config = config
        self._pool_name = pool_name
        self._pool_factory = pool_factory or pooling.MySQLConnectionPool
        self._acquire_timeout = acquire_timeout
        self._pool = None

    @property
    def initialized(self) -> bool:
        return self._pool is not None

    def connect(self) -> "PersistenceGateway":
        logger.info("Connecting to MySQL %s", self._config.describe())
        try:
            self._pool = self._pool_factory(
                pool_name=self._pool_name,
                pool_size=int(self._config.pool_size),
                **self._config.connect_kwargs(),
            )
        except mysql.connector.Error as e:
            logger.critical("Database connection failed: %s", e)
            raise DatabaseConnectionError(f"Database connection failed: {e}") from e
        logger.info("MySQL connection pool created (size=%s)", self._config.pool_size)
        return self

    def close(self) -> None:
        self._pool = None
        logger.info("Connection pool released")

    def _acquire(self):
        """Borrow a pooled connection.

        ``MySQLConnectionPool`` fails at once when every connection is lent
        out, so an exhausted pool is polled until ``acquire_timeout`` passes.
        """
        if self._pool is None:
            raise DatabaseConnectionError("Database connection pool is not initialized. Call connect() first.")
        deadline = time.monotonic() + self._acquire_timeout
        while True:
            try:
                return self._pool.get_connection()
            except mysql_errors.PoolError as e:
                if time.monotonic() >= deadline:
                    logger.error("Connection pool exhausted for %.1fs: %s", self._acquire_timeout, e)
                    raise DatabaseConnectionError(f"Could not get a database connection: {e}") from e
                time.sleep(0.05)
            except mysql.connector.Error as e:
                logger.error("Could not get a pooled connection: %s", e)
                raise DatabaseConnectionError(f"Could not get a database connection: {e}") from e

    def execute(self, statement: str, params: Params = None) -> QueryResult:
        """Run one statement in its own unit of work and commit it."""
        conn = self._acquire()
        try:
            result = _run(conn, statement, params)
            conn.commit()
            return result
        except QueryError:
            try:
                conn.rollback()
            except Exception as e:
                logger.error("Rollback after failed statement also failed: %s", e)
            raise
        except mysql.connector.Error as e:
            raise QueryError(f"Commit failed: {e}", errno=getattr(e, "errno", None), cause=e) from e
        finally:
            conn.close()

    def begin(self) -> Transaction:
        conn = self._acquire()
        try:
            conn.start_transaction()
        except mysql.connector.Error as e:
            conn.close()
            raise QueryError(f"Could not begin transaction: {e}", errno=getattr(e, "errno", None), cause=e) from e
        return Transaction(conn)

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """
        Usage:
            with gateway.transaction() as tx:
                tx.execute(...)
                tx.execute(...)

        Commits when the block exits normally, rolls back on any exception.
        """
        tx = self.begin()
        try:
            yield tx
        except BaseException:
            tx.rollback()
            raise
        if not tx.finished:
            tx.commit()

    def log_audit(
        self,
        event_name: str,
        status: AuditStatus,
        counts: AuditCounts = AuditCounts(),
        message: Optional[str] = None,
    ) -> bool:
        """Append an audit entry. Never raises: returns False when the write failed."""
        try:
            params = AuditInsert(
                event_name=event_name,
                timestamp=now_utc(),
                status=AuditStatus(status).value,
                message=(message or "")[:1000] or None,
                profiles_deleted=int(counts.profiles),
                visits_deleted=int(counts.visits),
                dependents_deleted=int(counts.dependents),
            )
            self.execute(INSERT_AUDIT_SQL, asdict(params))
        except Exception as e:
            logger.error("CRITICAL: Failed to log audit event %r: %s", event_name, e)
            return False
        logger.info("Audit log recorded: %s - %s", event_name, params.status)
        return True
