from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..common.normalizers import normalize_areas, normalize_platforms
from ..core.enums import ProjectStatus


@dataclass(frozen=True)
class Project:
    """Domain entity: Project (referenced by timesheets and overtime requests)."""

    project_id: int
    project_code: str
    project_name: str
    status: ProjectStatus = ProjectStatus.ACTIVE
    areas: tuple[str, ...] = field(default_factory=tuple)
    platforms: tuple[str, ...] = field(default_factory=tuple)
    company: Optional[str] = None
    contractor: Optional[str] = None

    @classmethod
    def build(
        cls,
        *,
        project_id: int,
        project_code: str,
        project_name: str,
        status: ProjectStatus | str = ProjectStatus.ACTIVE,
        areas=None,
        platforms=None,
        company: Optional[str] = None,
        contractor: Optional[str] = None,
    ) -> "Project":
        """Create a project with code upper-cased and areas/platforms de-duplicated."""
        return cls(
            project_id=int(project_id),
            project_code=(project_code or "").strip().upper(),
            project_name=(project_name or "").strip(),
            status=ProjectStatus(status),
            areas=tuple(normalize_areas(areas) or ()),
            platforms=tuple(normalize_platforms(platforms) or ()),
            company=company,
            contractor=contractor,
        )

    def summary(self) -> dict:
        return {
            "id": self.project_id,
            "projectCode": self.project_code,
            "projectName": self.project_name,
            "company": self.company,
            "contractor": self.contractor,
            "status": self.status.value,
        }
