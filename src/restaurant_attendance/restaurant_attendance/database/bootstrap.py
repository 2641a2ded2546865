from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterator

from .connection import DatabaseConnection, DBConfig

logger = logging.getLogger(__name__)

# schema.sql may carry its own CREATE DATABASE / USE lines for manual runs;
# the configured database name always wins here.
_SKIPPED_LINES = re.compile(r"(?i)^\s*(--|CREATE\s+DATABASE\b|USE\b)")


def split_statements(sql: str) -> Iterator[str]:
    """Split a schema file on ``;`` at line ends. Full-line ``--`` comments are dropped."""
    lines = [line for line in sql.splitlines() if not _SKIPPED_LINES.match(line)]
    buf: list[str] = []
    for line in lines:
        buf.append(line)
        if line.rstrip().endswith(";"):
            stmt = "\n".join(buf).strip().rstrip(";").strip()
            buf.clear()
            if stmt:
                yield stmt
    tail = "\n".join(buf).strip()
    if tail:
        yield tail


def ensure_database_exists(db_config: dict) -> None:
    target = DBConfig.from_dict(db_config)
    conn = DatabaseConnection(target).connect(with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` "
            "CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
        cur.close()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> int:
    """Create missing tables from schema.sql. Safe to rerun. Returns the statement count."""
    ensure_database_exists(db_config)
    statements = list(split_statements(Path(schema_path).read_text(encoding="utf-8")))

    conn = DatabaseConnection(DBConfig.from_dict(db_config)).connect()
    try:
        cur = conn.cursor()
        for stmt in statements:
            cur.execute(stmt)
        conn.commit()
        cur.close()
    finally:
        conn.close()

    logger.info("schema applied", extra={"statements": len(statements), "schema": str(schema_path)})
    return len(statements)


def list_tables(db_config: dict) -> list[str]:
    conn = DatabaseConnection(DBConfig.from_dict(db_config)).connect()
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        tables = [row[0] for row in cur.fetchall()]
        cur.close()
        return tables
    finally:
        conn.close()
