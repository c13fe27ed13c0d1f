from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import TimesheetStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_codes, fetchall, fetchone, in_clause, load_codes, to_float
from .model import Timesheet, TimesheetEntry, TimesheetQuery
from .repository import TimesheetRepository

_COLUMNS = """
    t.timesheet_id, t.user_id, t.project_id, t.discipline_codes, t.area, t.platform,
    t.month, t.year, t.status, t.resubmission_count, t.rejection_reason, t.comments,
    t.submitted_at, t.approved_by, t.approval_date, t.created_at, t.updated_at
"""


class MySQLTimesheetRepository(TimesheetRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    # -------- helpers --------
    @staticmethod
    def _load_entries(cur, timesheet_ids: list[int]) -> dict[int, list[TimesheetEntry]]:
        entries: dict[int, list[TimesheetEntry]] = {tid: [] for tid in timesheet_ids}
        if not timesheet_ids:
            return entries
        cur.execute(
            f"""
            SELECT timesheet_id, work_date, normal_hours, ot_hours, discipline_codes,
                   platform, hours_code, description, detailed_description
            FROM timesheet_entries
            WHERE timesheet_id IN ({in_clause(timesheet_ids)})
            ORDER BY work_date
            """,
            tuple(timesheet_ids),
        )
        for e in fetchall(cur):
            entries[int(e["timesheet_id"])].append(
                TimesheetEntry(
                    work_date=e["work_date"],
                    normal_hours=to_float(e["normal_hours"]) or 0.0,
                    ot_hours=to_float(e["ot_hours"]) or 0.0,
                    discipline_codes=load_codes(e.get("discipline_codes")),
                    platform=e.get("platform"),
                    hours_code=e.get("hours_code"),
                    description=e.get("description"),
                    detailed_description=e.get("detailed_description"),
                )
            )
        return entries

    def _hydrate(self, cur, rows: list[dict]) -> list[Timesheet]:
        entries = self._load_entries(cur, [int(r["timesheet_id"]) for r in rows])
        out: list[Timesheet] = []
        for r in rows:
            tid = int(r["timesheet_id"])
            # Totals are recomputed from entries in Timesheet.__post_init__.
            out.append(
                Timesheet(
                    timesheet_id=tid,
                    user_id=int(r["user_id"]),
                    project_id=int(r["project_id"]),
                    month=int(r["month"]),
                    year=int(r["year"]),
                    discipline_codes=load_codes(r.get("discipline_codes")),
                    area=r.get("area"),
                    platform=r.get("platform"),
                    entries=tuple(entries.get(tid, [])),
                    status=TimesheetStatus(r["status"]),
                    resubmission_count=int(r.get("resubmission_count") or 0),
                    rejection_reason=r.get("rejection_reason"),
                    comments=r.get("comments"),
                    submitted_at=r.get("submitted_at"),
                    approved_by=r.get("approved_by"),
                    approval_date=r.get("approval_date"),
                    created_at=r.get("created_at"),
                    updated_at=r.get("updated_at"),
                )
            )
        return out

    @staticmethod
    def _write_entries(cur, timesheet: Timesheet) -> None:
        cur.execute("DELETE FROM timesheet_entries WHERE timesheet_id=%s", (int(timesheet.timesheet_id),))
        if not timesheet.entries:
            return
        cur.executemany(
            """
            INSERT INTO timesheet_entries(
                timesheet_id, work_date, normal_hours, ot_hours, discipline_codes,
                platform, hours_code, description, detailed_description
            )
            VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
            """,
            [
                (
                    int(timesheet.timesheet_id),
                    e.work_date,
                    e.normal_hours,
                    e.ot_hours,
                    dump_codes(e.discipline_codes),
                    e.platform,
                    e.hours_code,
                    e.description,
                    e.detailed_description,
                )
                for e in timesheet.entries
            ],
        )

    # -------- writes --------
    def create(self, timesheet: Timesheet) -> int:
        timesheet.recompute_totals()
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO timesheets(
                    user_id, project_id, discipline_codes, area, platform, month, year, status,
                    total_normal_hours, total_ot_hours, total_hours, comments
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(timesheet.user_id),
                    int(timesheet.project_id),
                    dump_codes(timesheet.discipline_codes),
                    timesheet.area,
                    timesheet.platform,
                    int(timesheet.month),
                    int(timesheet.year),
                    timesheet.status.value,
                    timesheet.total_normal_hours,
                    timesheet.total_ot_hours,
                    timesheet.total_hours,
                    timesheet.comments,
                ),
            )
            timesheet.timesheet_id = int(cur.lastrowid)
            self._write_entries(cur, timesheet)
            return timesheet.timesheet_id

    def save(self, timesheet: Timesheet) -> bool:
        timesheet.recompute_totals()
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE timesheets
                SET discipline_codes=%s, area=%s, platform=%s, status=%s,
                    total_normal_hours=%s, total_ot_hours=%s, total_hours=%s,
                    resubmission_count=%s, rejection_reason=%s, comments=%s,
                    submitted_at=%s, approved_by=%s, approval_date=%s
                WHERE timesheet_id=%s
                """,
                (
                    dump_codes(timesheet.discipline_codes),
                    timesheet.area,
                    timesheet.platform,
                    timesheet.status.value,
                    timesheet.total_normal_hours,
                    timesheet.total_ot_hours,
                    timesheet.total_hours,
                    int(timesheet.resubmission_count),
                    timesheet.rejection_reason,
                    timesheet.comments,
                    timesheet.submitted_at,
                    timesheet.approved_by,
                    timesheet.approval_date,
                    int(timesheet.timesheet_id),
                ),
            )
            # rowcount is 0 for an unchanged row too, so check existence instead.
            cur.execute("SELECT 1 AS found FROM timesheets WHERE timesheet_id=%s", (int(timesheet.timesheet_id),))
            if not fetchone(cur):
                return False
            self._write_entries(cur, timesheet)
            return True

    def delete(self, *, timesheet_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM timesheets WHERE timesheet_id=%s", (int(timesheet_id),))
            return cur.rowcount > 0

    # -------- reads --------
    def get(self, *, timesheet_id: int) -> Optional[Timesheet]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM timesheets t WHERE t.timesheet_id=%s", (int(timesheet_id),))
            row = fetchone(cur)
            if not row:
                return None
            return self._hydrate(cur, [row])[0]

    def find_for_period(self, *, user_id: int, project_id: int, month: int, year: int) -> Optional[Timesheet]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM timesheets t
                WHERE t.user_id=%s AND t.project_id=%s AND t.month=%s AND t.year=%s
                """,
                (int(user_id), int(project_id), int(month), int(year)),
            )
            row = fetchone(cur)
            if not row:
                return None
            return self._hydrate(cur, [row])[0]

    def list_timesheets(self, query: TimesheetQuery) -> Sequence[Timesheet]:
        clauses = ["1=1"]
        params: list[object] = []

        if query.statuses:
            clauses.append(f"t.status IN ({in_clause(query.statuses)})")
            params.extend(s.value for s in query.statuses)
        if query.month is not None:
            clauses.append("t.month=%s")
            params.append(int(query.month))
        if query.year is not None:
            clauses.append("t.year=%s")
            params.append(int(query.year))
        if query.user_ids is not None:
            if not query.user_ids:
                return []
            clauses.append(f"t.user_id IN ({in_clause(query.user_ids)})")
            params.extend(int(u) for u in query.user_ids)
        if query.project_id is not None:
            clauses.append("t.project_id=%s")
            params.append(int(query.project_id))

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM timesheets t
                WHERE {where}
                ORDER BY t.year DESC, t.month DESC, t.timesheet_id DESC
                LIMIT %s
                """,
                tuple(params + [int(query.limit)]),
            )
            return self._hydrate(cur, fetchall(cur))

    def list_approved_for_project(
        self,
        *,
        project_id: int,
        periods: Optional[Sequence[tuple[int, int]]] = None,
    ) -> Sequence[Timesheet]:
        clauses = ["t.project_id=%s", "t.status=%s"]
        params: list[object] = [int(project_id), TimesheetStatus.APPROVED.value]

        if periods is not None:
            if not periods:
                return []
            clauses.append("(" + " OR ".join(["(t.month=%s AND t.year=%s)"] * len(periods)) + ")")
            for month, year in periods:
                params.extend([int(month), int(year)])

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM timesheets t
                WHERE {' AND '.join(clauses)}
                ORDER BY t.year, t.month, t.timesheet_id
                """,
                tuple(params),
            )
            return self._hydrate(cur, fetchall(cur))
