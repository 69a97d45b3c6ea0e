"""Area path helpers.

Area paths look like ``Project\\Team`` or ``Project\\Team\\Sub Area``; the
first segment after the project is taken as the owning team. Project names
compare case-insensitively, as Azure DevOps treats them.
"""
from typing import Optional

from .models import AREA_PATH_SEPARATOR


def extract_team_name_from_area_path(area_path: str, project_id: str) -> Optional[str]:
    """Return the team segment of an area path, or None when there is none."""
    segments = area_path.split(AREA_PATH_SEPARATOR)
    if project_id and segments[0].casefold() == project_id.casefold():
        # The project root itself names no team
        if len(segments) == 1:
            return None
        segments = segments[1:]

    return segments[0] or None


def team_area_path(project_id: str, team_name: str) -> str:
    """Default area path of a team board."""
    return f"{project_id}{AREA_PATH_SEPARATOR}{team_name}"
