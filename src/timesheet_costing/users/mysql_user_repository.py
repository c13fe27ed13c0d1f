from __future__ import annotations

from typing import Iterable, Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, to_float
from .model import User
from .repository import UserRepository

_COLUMNS = "user_id, full_name, email, role, hourly_rate, is_active"


def _to_user(row: dict) -> User:
    return User(
        user_id=int(row["user_id"]),
        full_name=row["full_name"],
        email=row["email"],
        role=Role(row["role"]),
        hourly_rate=to_float(row.get("hourly_rate")),
        is_active=bool(row.get("is_active", True)),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE user_id=%s", (int(user_id),))
            row = fetchone(cur)
            return _to_user(row) if row else None

    def get_many(self, user_ids: Iterable[int]) -> dict[int, User]:
        ids = sorted({int(u) for u in user_ids})
        if not ids:
            return {}
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE user_id IN ({in_clause(ids)})", tuple(ids))
            return {u.user_id: u for u in (_to_user(r) for r in fetchall(cur))}

    def search_ids_by_name(self, name: str) -> Sequence[int]:
        pattern = f"%{name.strip()}%"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT user_id FROM users
                WHERE LOWER(full_name) LIKE LOWER(%s) OR LOWER(email) LIKE LOWER(%s)
                """,
                (pattern, pattern),
            )
            return [int(r["user_id"]) for r in fetchall(cur)]
