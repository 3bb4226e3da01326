from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterator, Optional

import mysql.connector

from .connection import DBConfig

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"

# The target database comes from DBConfig, never from the schema file.
_DATABASE_DIRECTIVE = re.compile(r"^(CREATE\s+DATABASE|USE)\b", re.IGNORECASE)
_QUOTES = "'\"`"


def _split_on_semicolons(sql: str) -> Iterator[str]:
    """Yield raw statements; ``;`` inside quoted strings or identifiers is kept."""
    start = 0
    quote: Optional[str] = None
    i = 0
    while i < len(sql):
        ch = sql[i]
        if quote:
            if ch == "\\" and quote != "`":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in _QUOTES:
            quote = ch
        elif ch == ";":
            yield sql[start:i]
            start = i + 1
        i += 1
    yield sql[start:]


def schema_statements(sql: str) -> list[str]:
    """Statements to run for a schema file: comment lines and database directives dropped."""
    body = "\n".join(line for line in sql.splitlines() if not line.lstrip().startswith("--"))
    statements = []
    for raw in _split_on_semicolons(body):
        stmt = raw.strip()
        if stmt and not _DATABASE_DIRECTIVE.match(stmt):
            statements.append(stmt)
    return statements


def ensure_database_exists(config: DBConfig) -> None:
    conn = mysql.connector.connect(
        host=config.host,
        port=config.port,
        user=config.user,
        password=config.password,
        use_pure=True,
    )
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{config.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci;"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(config: DBConfig, *, schema_path: Optional[str | Path] = None) -> int:
    """Create the database and apply the idempotent schema; returns the statement count."""
    ensure_database_exists(config)

    schema_path = Path(schema_path or DEFAULT_SCHEMA_PATH)
    statements = schema_statements(schema_path.read_text(encoding="utf-8"))

    conn = mysql.connector.connect(use_pure=True, **config.connect_kwargs())
    try:
        cur = conn.cursor()
        for stmt in statements:
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()
    logger.info("Applied %s statement(s) from %s", len(statements), schema_path.name)
    return len(statements)


def list_tables(config: DBConfig) -> list[str]:
    conn = mysql.connector.connect(use_pure=True, **config.connect_kwargs())
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
