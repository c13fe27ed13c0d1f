"""Schema installation for a fresh or existing MySQL database.

`schema.sql` only uses CREATE ... IF NOT EXISTS, so applying it twice is safe.
"""

from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union

import mysql.connector

from .connection import DBConfig

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"

_DATABASE_STATEMENT = re.compile(r"(?im)^\s*(CREATE\s+DATABASE|USE)\b[^;]*;\s*$")
_LINE_COMMENT = re.compile(r"(?m)^\s*--.*$")


def strip_database_statements(sql: str) -> str:
    # The target database comes from settings, never from the script.
    return _DATABASE_STATEMENT.sub("", sql)


def strip_line_comments(sql: str) -> str:
    return _LINE_COMMENT.sub("", sql)


def iter_sql_statements(sql: str) -> Iterator[str]:
    """Split a script on ';' outside of quoted strings."""
    start = 0
    quote = None
    i = 0
    while i < len(sql):
        ch = sql[i]
        if quote:
            if ch == "\\":
                i += 1
            elif ch == quote:
                quote = None
        elif ch in ("'", '"', "`"):
            quote = ch
        elif ch == ";":
            stmt = sql[start:i].strip()
            if stmt:
                yield stmt
            start = i + 1
        i += 1

    tail = sql[start:].strip()
    if tail:
        yield tail


@contextmanager
def _server(config: DBConfig, *, with_database: bool = True):
    conn = mysql.connector.connect(**config.connect_kwargs(with_database=with_database), use_pure=True)
    try:
        yield conn
    finally:
        conn.close()


def ensure_database_exists(db_config: dict) -> None:
    config = DBConfig.from_settings(db_config)
    with _server(config, with_database=False) as conn:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{config.database}` "
            "CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()


def load_schema(schema_path: Union[str, Path] = SCHEMA_PATH) -> list[str]:
    sql = Path(schema_path).read_text(encoding="utf-8")
    return list(iter_sql_statements(strip_line_comments(strip_database_statements(sql))))


def apply_schema(db_config: dict, *, schema_path: Union[str, Path] = SCHEMA_PATH) -> None:
    config = DBConfig.from_settings(db_config)
    statements = load_schema(schema_path)
    ensure_database_exists(db_config)

    with _server(config) as conn:
        cur = conn.cursor()
        for stmt in statements:
            cur.execute(stmt)
        conn.commit()
    logger.info("Applied %s statements from %s to %s", len(statements), Path(schema_path).name, config.database)


def list_tables(db_config: dict) -> list[str]:
    config = DBConfig.from_settings(db_config)
    with _server(config) as conn:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return sorted(row[0] for row in cur.fetchall())
