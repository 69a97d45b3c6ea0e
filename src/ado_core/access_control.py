"""Team-board access control for work item operations.

The policy is deny-by-default:

1. No allowed team boards configured -> ConfigurationDenied.
2. The work item's team is resolved from ``System.TeamId`` (through the team
   resolver) or, failing that, from the first segment of ``System.AreaPath``.
   An unknown team ID is TeamNotFound; no usable team at all is
   IndeterminateIdentity.
3. The resolved name is compared case-insensitively with the allow-list;
   a mismatch is AccessDenied.

Upstream failures while resolving teams propagate as they are. They are
never turned into an allow or a deny.
"""
import logging
from typing import Any, Optional

from .allow_list import is_team_allowed, parse_allowed_team_boards
from .area_path import extract_team_name_from_area_path, team_area_path
from .errors import (
    ALLOWED_TEAM_BOARDS_ENV,
    AccessDenied,
    AmbiguousCreation,
    AzureDevOpsValidationError,
    ConfigurationDenied,
    IndeterminateIdentity,
    TeamNotFound,
    WorkItemNotFound,
)
from .models import (
    FIELD_AREA_PATH,
    FIELD_TEAM_ID,
    FIELD_TEAM_PROJECT,
    AccessDecision,
    WorkItem,
    WorkItemExpand,
    WorkItemIdentity,
)
from .team_resolver import TeamResolver

logger = logging.getLogger("ado-core.access_control")


class TeamBoardPolicy:
    """Decides whether work items and team boards may be accessed."""

    def __init__(self, allowed_team_boards: Optional[str], resolver: TeamResolver):
        self.allowed_team_boards = allowed_team_boards
        self.allowed_teams = parse_allowed_team_boards(allowed_team_boards)
        self.resolver = resolver

    def require_allow_list(self, action: str = "board access") -> list[str]:
        """Return the allow-list, or deny when it is empty."""
        if not self.allowed_teams:
            logger.warning(f"Denied {action}: {ALLOWED_TEAM_BOARDS_ENV} is not configured")
            raise ConfigurationDenied(action)
        return self.allowed_teams

    def _deny_team(self, team_name: str, subject: Optional[str] = None) -> AccessDenied:
        allowed = self.allowed_teams or []
        logger.warning(f"Denied access to team board '{team_name}'" + (f" ({subject})" if subject else ""))
        if subject:
            reason = f"{subject} belongs to team board '{team_name}' which is not in the allowed list."
        else:
            reason = f"Team board '{team_name}' is not in the allowed list."
        return AccessDenied(
            f"Access denied. {reason} "
            f"Allowed teams: {', '.join(allowed)}. "
            f"Please add '{team_name}' to {ALLOWED_TEAM_BOARDS_ENV} if you need access.",
            team_name=team_name,
            allowed_teams=list(allowed),
        )

    async def check_team_access(self, project_id: str, team_id: Optional[str] = None) -> Optional[str]:
        """Guard for team-scoped listings.

        Without a team ID only the allow-list itself is required. With one, the
        team must exist in the project and be allowed; its name is returned.
        """
        allowed = self.require_allow_list()
        if not team_id:
            return None

        team_name = await self.resolver.resolve_team_name(project_id, team_id)
        if not team_name:
            raise TeamNotFound(
                f"Cannot verify team board access. Team '{team_id}' not found in project '{project_id}'. "
                f"Ensure the team exists and is configured in {ALLOWED_TEAM_BOARDS_ENV}.",
                project_id=project_id,
                missing=[team_id],
            )

        if not is_team_allowed(allowed, team_name):
            raise self._deny_team(team_name)

        logger.info(f"Allowed access to team board '{team_name}'")
        return team_name

    async def resolve_work_item_team(self, project_id: Optional[str], work_item: WorkItem) -> str:
        """Find the single team a work item belongs to."""
        identity = WorkItemIdentity.from_work_item(work_item)
        project = project_id or identity.project

        if identity.team_id:
            if not project:
                raise IndeterminateIdentity(
                    f"Cannot verify team board access for work item #{identity.id}. "
                    f"Team ID '{identity.team_id}' cannot be resolved without a project.",
                    work_item_id=identity.id,
                )
            team_name = await self.resolver.resolve_team_name(project, identity.team_id)
            if not team_name:
                raise TeamNotFound(
                    f"Cannot verify team board access for work item #{identity.id}. "
                    f"Team ID '{identity.team_id}' not found in project '{project}'. "
                    f"Please ensure the team exists and is configured in {ALLOWED_TEAM_BOARDS_ENV}.",
                    project_id=project,
                    missing=[identity.team_id],
                )
            return team_name

        if not identity.area_path:
            raise IndeterminateIdentity(
                f"Cannot verify team board access for work item #{identity.id}. "
                "The work item does not have an associated team or area path. "
                f"Please ensure the work item is assigned to a team that is in {ALLOWED_TEAM_BOARDS_ENV}.",
                work_item_id=identity.id,
            )

        # The item's own project is authoritative for its area path
        team_name = extract_team_name_from_area_path(identity.area_path, identity.project or project_id or "")
        if not team_name:
            raise IndeterminateIdentity(
                f"Cannot verify team board access for work item #{identity.id}. "
                f"Could not extract team name from area path '{identity.area_path}'. "
                f"Please ensure the work item is assigned to a team that is in {ALLOWED_TEAM_BOARDS_ENV}.",
                work_item_id=identity.id,
            )
        return team_name

    async def check_work_item_access(self, project_id: Optional[str], work_item: WorkItem) -> str:
        """Raise unless the work item belongs to an allowed team board."""
        allowed = self.require_allow_list()
        team_name = await self.resolve_work_item_team(project_id, work_item)

        if not is_team_allowed(allowed, team_name):
            raise self._deny_team(team_name, f"Work item #{work_item.id}")

        logger.info(f"Allowed access to work item #{work_item.id} on team board '{team_name}'")
        return team_name

    async def decide_work_item(self, project_id: Optional[str], work_item: WorkItem) -> AccessDecision:
        """Non-raising view of check_work_item_access.

        Only policy outcomes become a DENY; upstream failures still raise.
        """
        try:
            team_name = await self.check_work_item_access(project_id, work_item)
        except AccessDenied as e:
            return AccessDecision.deny(str(e), team_name=e.team_name)
        except (ConfigurationDenied, TeamNotFound, IndeterminateIdentity) as e:
            return AccessDecision.deny(str(e))
        return AccessDecision.allow(team_name)

    async def fetch_and_check_work_item(
        self,
        project_id: Optional[str],
        work_item_id: int,
        expand: WorkItemExpand = WorkItemExpand.ALL,
    ) -> WorkItem:
        """Fetch a work item and return it only if its team board is allowed.

        Every expand level still returns the fields the check reads.
        """
        work_item = await self.resolver.client.get_work_item(work_item_id, expand=expand)
        if work_item is None:
            raise WorkItemNotFound(work_item_id)

        await self.check_work_item_access(project_id, work_item)
        return work_item

    def check_area_path_access(self, project_id: str, area_path: str) -> str:
        """Raise unless an explicit area path lies on an allowed team board."""
        allowed = self.require_allow_list()
        team_name = extract_team_name_from_area_path(area_path, project_id)
        if not team_name:
            raise IndeterminateIdentity(
                f"Could not extract team name from area path '{area_path}'. "
                f"Use an area path under one of the allowed teams: {', '.join(allowed)}."
            )
        if not is_team_allowed(allowed, team_name):
            raise self._deny_team(team_name, f"Area path '{area_path}'")
        return team_name

    def check_field_changes(self, project_id: str, fields: dict[str, Any]) -> Optional[str]:
        """Validate the ownership fields of a create or update payload.

        Field reference names are case-insensitive upstream, so every key is
        compared casefolded. A team or project change is refused outright; an
        area path must lie on an allowed team board. Returns the area path
        being written, if any.
        """
        self.require_allow_list()
        by_name = {name.casefold(): value for name, value in fields.items()}

        for name in (FIELD_TEAM_ID, FIELD_TEAM_PROJECT):
            if by_name.get(name.casefold()) is not None:
                raise AzureDevOpsValidationError(
                    f"Setting {name} is not allowed while team board restrictions are enabled. "
                    "Use area_path to place the work item on an allowed team board."
                )

        area_path = by_name.get(FIELD_AREA_PATH.casefold())
        if area_path is None:
            return None
        if not isinstance(area_path, str):
            raise AzureDevOpsValidationError(f"{FIELD_AREA_PATH} must be a string, got {type(area_path).__name__}")
        self.check_area_path_access(project_id, area_path)
        return area_path

    def default_area_path(self, project_id: str) -> str:
        """Area path for a new work item created without one.

        Only unambiguous with exactly one allowed team.
        """
        allowed = self.require_allow_list("work item creation")
        if len(allowed) > 1:
            raise AmbiguousCreation(
                f"Multiple team boards are configured ({', '.join(allowed)}). "
                "Please specify the area_path parameter to indicate which team's area to create the work item in. "
                f"Example: area_path='{team_area_path(project_id, allowed[0])}'",
                allowed_teams=list(allowed),
            )

        area_path = team_area_path(project_id, allowed[0])
        logger.info(f"Auto-setting area path to {area_path}")
        return area_path


def require_project(project_id: Optional[str], operation: str) -> str:
    """Return the project or fail with a hint about the default project setting."""
    if not project_id:
        raise AzureDevOpsValidationError(
            f"{operation} requires a project. Pass project_id or set AZURE_DEVOPS_DEFAULT_PROJECT."
        )
    return project_id
