"""Team name/ID resolution backed by a per-process cache.

The cache maps ``project -> {lowercase team name -> team id}``. Entries never
expire; a miss refetches every team of the project, so a stale entry heals on
the next miss. Concurrent refreshes may race: the last writer wins, and since
all writers store the same data for a project that is harmless.
"""
import logging
from typing import Optional

from .errors import (
    ALLOWED_TEAM_BOARDS_ENV,
    AzureDevOpsError,
    TeamNotFound,
    UpstreamFailure,
)
from .models import Team

logger = logging.getLogger("ado-core.team_resolver")


class TeamCache:
    """Lowercase team name to team ID, per project."""

    def __init__(self):
        self._ids: dict[str, dict[str, str]] = {}
        self._display_names: dict[str, dict[str, str]] = {}

    def store(self, project_id: str, teams: list[Team]) -> None:
        """Replace the cached entry of a project with a freshly fetched team list."""
        ids: dict[str, str] = {}
        names: dict[str, str] = {}
        for team in teams:
            if not team.id or not team.name:
                continue
            key = team.name.lower()
            ids[key] = team.id
            names[key] = team.name
        self._ids[project_id] = ids
        self._display_names[project_id] = names

    def team_ids(self, project_id: str) -> dict[str, str]:
        return dict(self._ids.get(project_id, {}))

    def find_name(self, project_id: str, team_id: str) -> Optional[str]:
        """Reverse lookup of a team ID; returns the team's display name."""
        for key, cached_id in self._ids.get(project_id, {}).items():
            if cached_id == team_id:
                return self._display_names[project_id].get(key, key)
        return None

    def find_id(self, project_id: str, team_name: str) -> Optional[str]:
        return self._ids.get(project_id, {}).get(team_name.lower())

    def __contains__(self, project_id: str) -> bool:
        return project_id in self._ids


class TeamResolver:
    """Maps between team names and IDs using the teams API and a TeamCache."""

    def __init__(self, client, cache: Optional[TeamCache] = None):
        self.client = client
        self.cache = cache if cache is not None else TeamCache()

    async def fetch_teams(self, project_id: str) -> list[Team]:
        """Fetch all teams of a project and refresh its cache entry."""
        try:
            teams = await self.client.list_teams(project_id)
        except AzureDevOpsError as e:
            error_cls = type(e) if isinstance(e, UpstreamFailure) else UpstreamFailure
            logger.error(f"Failed to get teams for project '{project_id}': {e}")
            raise error_cls(
                f"Failed to get teams for project '{project_id}': {e}",
                status_code=getattr(e, "status_code", None),
            ) from e

        self.cache.store(project_id, teams)
        logger.info(f"Cached {len(teams)} teams for project '{project_id}'")
        return teams

    async def resolve_team_name(self, project_id: str, team_id: str) -> Optional[str]:
        """Return the name of a team ID, or None when the project has no such team."""
        team_name = self.cache.find_name(project_id, team_id)
        if team_name is not None:
            return team_name

        logger.debug(f"Team cache miss for '{team_id}' in project '{project_id}'")
        await self.fetch_teams(project_id)
        return self.cache.find_name(project_id, team_id)

    async def resolve_allowed_team_ids(
        self,
        project_id: str,
        allowed_team_names: list[str],
    ) -> dict[str, str]:
        """Resolve every allowed team name to its ID.

        All names that do not exist are reported together in one TeamNotFound,
        along with the teams the project does have. The result keeps the
        configured spelling and order of the names.
        """
        teams = await self.fetch_teams(project_id)

        resolved: dict[str, str] = {}
        not_found: list[str] = []
        for team_name in allowed_team_names:
            team_id = self.cache.find_id(project_id, team_name)
            if team_id:
                resolved[team_name] = team_id
            else:
                not_found.append(team_name)

        if not_found:
            available = [team.name or "Unknown" for team in teams]
            raise TeamNotFound(
                f"The following team boards are not found in project '{project_id}': {', '.join(not_found)}. "
                f"Available teams: {', '.join(available)}. "
                f"Please check {ALLOWED_TEAM_BOARDS_ENV} configuration.",
                project_id=project_id,
                missing=not_found,
                available=available,
            )

        return resolved
