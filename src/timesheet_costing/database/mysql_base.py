from __future__ import annotations

import json
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Dict, List, Optional

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import DuplicateKeyError
from .connection import DatabaseConnection

_LOCK_CONFLICTS = frozenset({errorcode.ER_LOCK_DEADLOCK, errorcode.ER_LOCK_WAIT_TIMEOUT})


@contextmanager
def db_cursor(
    conn_factory: DatabaseConnection,
    *,
    dictionary: bool = True,
    lock_conflict_is_duplicate: bool = False,
):
    """Open a connection, yield (conn, cursor), commit on success.

    Everything executed inside one block is a single transaction. Unique key
    violations surface as DuplicateKeyError so services never see driver types.
    With `lock_conflict_is_duplicate`, a deadlock or lock wait timeout is
    reported the same way: the block guarded a uniqueness rule with a locking
    read and lost to a concurrent writer of the same key.
    """
    conn = conn_factory.connect()
    try:
        # Buffered: one block may run several statements on the same cursor.
        cur = conn.cursor(dictionary=dictionary, buffered=True)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.IntegrityError as e:
        conn.rollback()
        if e.errno == errorcode.ER_DUP_ENTRY:
            raise DuplicateKeyError(str(e)) from e
        raise
    except mysql.connector.DatabaseError as e:
        conn.rollback()
        if lock_conflict_is_duplicate and e.errno in _LOCK_CONFLICTS:
            raise DuplicateKeyError(str(e)) from e
        raise
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def to_float(value: Any) -> Optional[float]:
    """MySQL DECIMAL columns come back as Decimal; the domain works in floats."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return float(value)
    return float(value)


def dump_codes(codes) -> str:
    return json.dumps(list(codes or []))


def load_codes(value: Any) -> tuple[str, ...]:
    """Decode a JSON column holding a list of strings (tolerates NULL and bytes)."""
    if value is None or value == "":
        return ()
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        value = json.loads(value)
    return tuple(str(v) for v in value or [])


def in_clause(values) -> str:
    """Placeholders for `IN (...)`; callers must pass a non-empty sequence."""
    return ",".join(["%s"] * len(values))
