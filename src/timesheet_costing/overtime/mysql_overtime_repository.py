from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import OvertimeStatus
from ..core.exceptions import DuplicateKeyError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, to_float
from .model import DailyOvertime, NewOvertimeRequest, OvertimeRequest
from .repository import OvertimeRequestRepository

_COLUMNS = """
    r.request_id, r.user_id, r.project_id, r.week_start_date, r.week_end_date,
    r.reason, r.work_description, r.discipline_code, r.area, r.status,
    r.created_at, r.decided_by, r.decided_at, r.rejection_reason
"""

_ACTIVE = (OvertimeStatus.PENDING.value, OvertimeStatus.APPROVED.value)


class MySQLOvertimeRequestRepository(OvertimeRequestRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    # -------- helpers --------
    @staticmethod
    def _load_days(cur, request_ids: list[int]) -> dict[int, list[DailyOvertime]]:
        days: dict[int, list[DailyOvertime]] = {rid: [] for rid in request_ids}
        if not request_ids:
            return days
        cur.execute(
            f"""
            SELECT request_id, work_date, hours, actual_hours
            FROM overtime_request_days
            WHERE request_id IN ({in_clause(request_ids)})
            ORDER BY work_date
            """,
            tuple(request_ids),
        )
        for d in fetchall(cur):
            days[int(d["request_id"])].append(
                DailyOvertime(
                    work_date=d["work_date"],
                    hours=to_float(d["hours"]) or 0.0,
                    actual_hours=to_float(d.get("actual_hours")),
                )
            )
        return days

    def _hydrate(self, cur, rows: list[dict]) -> list[OvertimeRequest]:
        days = self._load_days(cur, [int(r["request_id"]) for r in rows])
        out: list[OvertimeRequest] = []
        for r in rows:
            rid = int(r["request_id"])
            out.append(
                OvertimeRequest(
                    request_id=rid,
                    user_id=int(r["user_id"]),
                    project_id=int(r["project_id"]),
                    week_start_date=r["week_start_date"],
                    week_end_date=r["week_end_date"],
                    daily_hours=tuple(days.get(rid, [])),
                    reason=r["reason"],
                    status=OvertimeStatus(r["status"]),
                    created_at=r["created_at"],
                    work_description=r.get("work_description"),
                    discipline_code=r.get("discipline_code"),
                    area=r.get("area"),
                    decided_by=r.get("decided_by"),
                    decided_at=r.get("decided_at"),
                    rejection_reason=r.get("rejection_reason"),
                )
            )
        return out

    @staticmethod
    def _lock_overlapping(cur, request: NewOvertimeRequest, exclude_request_id: Optional[int]) -> list[dict]:
        # Locking read: InnoDB next-key locks on ix_overtime_span keep a concurrent
        # insert for the same user/project range from slipping in before commit.
        clauses = [
            "user_id=%s",
            "project_id=%s",
            f"status IN ({in_clause(_ACTIVE)})",
            "week_start_date<=%s",
            "week_end_date>=%s",
        ]
        params: list[object] = [
            int(request.user_id),
            int(request.project_id),
            *_ACTIVE,
            request.week_end_date,
            request.week_start_date,
        ]
        if exclude_request_id is not None:
            clauses.append("request_id<>%s")
            params.append(int(exclude_request_id))
        cur.execute(
            f"SELECT request_id FROM overtime_requests WHERE {' AND '.join(clauses)} FOR UPDATE",
            tuple(params),
        )
        return fetchall(cur)

    @staticmethod
    def _insert_days(cur, request_id: int, request: NewOvertimeRequest) -> None:
        cur.executemany(
            """
            INSERT INTO overtime_request_days(request_id, work_date, hours)
            VALUES(%s,%s,%s)
            """,
            [(int(request_id), d.work_date, d.hours) for d in request.daily_hours],
        )

    # -------- writes --------
    def create(self, request: NewOvertimeRequest) -> int:
        with db_cursor(self._conn_factory, lock_conflict_is_duplicate=True) as (_, cur):
            if self._lock_overlapping(cur, request, None):
                raise DuplicateKeyError("overlapping active overtime request")
            cur.execute(
                """
                INSERT INTO overtime_requests(
                    user_id, project_id, week_start_date, week_end_date, total_requested_hours,
                    reason, work_description, discipline_code, area, status
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(request.user_id),
                    int(request.project_id),
                    request.week_start_date,
                    request.week_end_date,
                    sum(d.hours for d in request.daily_hours),
                    request.reason,
                    request.work_description,
                    request.discipline_code,
                    request.area,
                    OvertimeStatus.PENDING.value,
                ),
            )
            request_id = int(cur.lastrowid)
            self._insert_days(cur, request_id, request)
            return request_id

    def update_pending(self, *, request_id: int, request: NewOvertimeRequest) -> bool:
        with db_cursor(self._conn_factory, lock_conflict_is_duplicate=True) as (_, cur):
            cur.execute(
                "SELECT status FROM overtime_requests WHERE request_id=%s FOR UPDATE",
                (int(request_id),),
            )
            row = fetchone(cur)
            if not row or row["status"] != OvertimeStatus.PENDING.value:
                return False
            if self._lock_overlapping(cur, request, request_id):
                raise DuplicateKeyError("overlapping active overtime request")
            cur.execute(
                """
                UPDATE overtime_requests
                SET project_id=%s, week_start_date=%s, week_end_date=%s, total_requested_hours=%s,
                    reason=%s, work_description=%s, discipline_code=%s, area=%s
                WHERE request_id=%s
                """,
                (
                    int(request.project_id),
                    request.week_start_date,
                    request.week_end_date,
                    sum(d.hours for d in request.daily_hours),
                    request.reason,
                    request.work_description,
                    request.discipline_code,
                    request.area,
                    int(request_id),
                ),
            )
            cur.execute("DELETE FROM overtime_request_days WHERE request_id=%s", (int(request_id),))
            self._insert_days(cur, int(request_id), request)
            return True

    def delete_pending(self, *, request_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM overtime_requests WHERE request_id=%s AND status=%s",
                (int(request_id), OvertimeStatus.PENDING.value),
            )
            return cur.rowcount > 0

    def decide(
        self,
        *,
        request_id: int,
        status: OvertimeStatus,
        decided_by: int,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE overtime_requests
                SET status=%s, decided_by=%s, decided_at=NOW(), rejection_reason=%s
                WHERE request_id=%s AND status=%s
                """,
                (
                    status.value,
                    int(decided_by),
                    rejection_reason,
                    int(request_id),
                    OvertimeStatus.PENDING.value,
                ),
            )
            return cur.rowcount > 0

    def set_actual_hours(self, *, request_id: int, work_date: date, actual_hours: Optional[float]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE overtime_request_days SET actual_hours=%s
                WHERE request_id=%s AND work_date=%s
                """,
                (actual_hours, int(request_id), work_date),
            )
            return cur.rowcount > 0

    # -------- reads --------
    def get(self, *, request_id: int) -> Optional[OvertimeRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM overtime_requests r WHERE r.request_id=%s", (int(request_id),))
            row = fetchone(cur)
            if not row:
                return None
            return self._hydrate(cur, [row])[0]

    def find_active_overlapping(
        self,
        *,
        user_id: int,
        project_id: int,
        start: date,
        end: date,
        exclude_request_id: Optional[int] = None,
    ) -> Sequence[OvertimeRequest]:
        clauses = [
            "r.user_id=%s",
            "r.project_id=%s",
            f"r.status IN ({in_clause(_ACTIVE)})",
            "r.week_start_date<=%s",
            "r.week_end_date>=%s",
        ]
        params: list[object] = [int(user_id), int(project_id), *_ACTIVE, end, start]
        if exclude_request_id is not None:
            clauses.append("r.request_id<>%s")
            params.append(int(exclude_request_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM overtime_requests r WHERE {' AND '.join(clauses)}", tuple(params))
            return self._hydrate(cur, fetchall(cur))

    def find_approved_for_day(self, *, user_id: int, project_id: int, work_date: date) -> Optional[OvertimeRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM overtime_requests r
                JOIN overtime_request_days d ON d.request_id = r.request_id
                WHERE r.user_id=%s AND r.project_id=%s AND r.status=%s AND d.work_date=%s
                ORDER BY r.decided_at DESC
                LIMIT 1
                """,
                (int(user_id), int(project_id), OvertimeStatus.APPROVED.value, work_date),
            )
            row = fetchone(cur)
            if not row:
                return None
            return self._hydrate(cur, [row])[0]

    def list_requests(
        self,
        *,
        status: Optional[OvertimeStatus] = None,
        user_id: Optional[int] = None,
        project_id: Optional[int] = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> Sequence[OvertimeRequest]:
        clauses = ["1=1"]
        params: list[object] = []

        if status is not None:
            clauses.append("r.status=%s")
            params.append(status.value)
        if user_id is not None:
            clauses.append("r.user_id=%s")
            params.append(int(user_id))
        if project_id is not None:
            clauses.append("r.project_id=%s")
            params.append(int(project_id))

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM overtime_requests r
                WHERE {where}
                ORDER BY r.created_at DESC
                LIMIT %s
                """,
                tuple(params + [int(limit)]),
            )
            return self._hydrate(cur, fetchall(cur))
