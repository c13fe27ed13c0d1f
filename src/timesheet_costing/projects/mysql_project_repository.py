from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import ProjectStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, load_codes
from .model import Project
from .repository import ProjectRepository

_COLUMNS = "project_id, project_code, project_name, status, company, contractor, areas, platforms"


def _to_project(row: dict) -> Project:
    return Project.build(
        project_id=row["project_id"],
        project_code=row["project_code"],
        project_name=row["project_name"],
        status=row["status"],
        areas=list(load_codes(row.get("areas"))),
        platforms=list(load_codes(row.get("platforms"))),
        company=row.get("company"),
        contractor=row.get("contractor"),
    )


class MySQLProjectRepository(ProjectRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, project_id: int) -> Optional[Project]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM projects WHERE project_id=%s", (int(project_id),))
            row = fetchone(cur)
            return _to_project(row) if row else None

    def list_by_status(self, status: ProjectStatus) -> Sequence[Project]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM projects WHERE status=%s ORDER BY project_code",
                (status.value,),
            )
            return [_to_project(r) for r in fetchall(cur)]
