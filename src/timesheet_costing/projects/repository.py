from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import ProjectStatus
from .model import Project


class ProjectRepository(Protocol):
    def get_by_id(self, project_id: int) -> Optional[Project]:
        raise NotImplementedError

    def list_by_status(self, status: ProjectStatus) -> Sequence[Project]:
        """Projects ordered by project code."""

        raise NotImplementedError
